"""Operation model — tracks a long-running background operation."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from pack_manager.models.base import Base

# Fixed-width UTC timestamps (YYYYMMDDHHMMSS) sort lexicographically.
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
TIMESTAMP_LENGTH = 14


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as a fixed-width UTC timestamp string."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.strftime(TIMESTAMP_FORMAT)


class OperationStatus(StrEnum):
    """Lifecycle state of an operation."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.SUCCESS, OperationStatus.FAILED)


class OperationType(StrEnum):
    """Well-known operation types. Any lowercase identifier is accepted."""

    REPO_ADD = "repo_add"
    REPO_SYNC = "repo_sync"
    REPO_REMOVE = "repo_remove"
    PACK_INSTALL = "pack_install"
    PACK_UPDATE = "pack_update"
    PACK_REMOVE = "pack_remove"
    PACK_APPLY = "pack_apply"


class Operation(Base):
    """A tracked asynchronous unit of work and its progress."""

    __tablename__ = "operations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    operation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OperationStatus.QUEUED, server_default=OperationStatus.QUEUED.value
    )
    progress: Mapped[int | None] = mapped_column(Integer, nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_data: Mapped[Any | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[str] = mapped_column(String(TIMESTAMP_LENGTH), nullable=False)
    started_at: Mapped[str | None] = mapped_column(String(TIMESTAMP_LENGTH), nullable=True)
    updated_at: Mapped[str] = mapped_column(String(TIMESTAMP_LENGTH), nullable=False)

    __table_args__ = (
        Index("ix_operations_status", "status"),
        Index("ix_operations_user_id", "user_id"),
        Index("ix_operations_type", "operation_type"),
        Index("ix_operations_created_at", "created_at"),
    )

    def to_record(self) -> dict[str, Any]:
        """Return the persisted record shape exposed to status queries."""
        return {
            "operation_id": self.operation_id,
            "operation_type": self.operation_type,
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "result_data": self.result_data,
            "user_id": self.user_id,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "updated_at": self.updated_at,
        }
