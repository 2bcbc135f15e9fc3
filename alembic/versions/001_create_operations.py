"""Create operations table.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create operations table."""
    op.create_table(
        "operations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("operation_id", sa.String(128), nullable=False),
        sa.Column("operation_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("progress", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("result_data", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.String(14), nullable=False),
        sa.Column("started_at", sa.String(14), nullable=True),
        sa.Column("updated_at", sa.String(14), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_operations"),
        sa.UniqueConstraint("operation_id", name="uq_operations_operation_id"),
    )
    op.create_index("ix_operations_status", "operations", ["status"])
    op.create_index("ix_operations_user_id", "operations", ["user_id"])
    op.create_index("ix_operations_type", "operations", ["operation_type"])
    op.create_index("ix_operations_created_at", "operations", ["created_at"])


def downgrade() -> None:
    """Drop operations table."""
    op.drop_index("ix_operations_created_at", table_name="operations")
    op.drop_index("ix_operations_type", table_name="operations")
    op.drop_index("ix_operations_user_id", table_name="operations")
    op.drop_index("ix_operations_status", table_name="operations")
    op.drop_table("operations")
