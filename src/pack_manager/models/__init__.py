"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from pack_manager.models.base import Base
from pack_manager.models.operation import Operation, OperationStatus, OperationType

__all__ = [
    "Base",
    "Operation",
    "OperationStatus",
    "OperationType",
]
