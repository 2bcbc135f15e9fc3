"""Operation registry — persistent state machine for background operations.

Lifecycle::

    queued ──► running ──► success
       │          │
       └──────────┴──────► failed

Every mutation is a single conditional UPDATE guarded by the allowed
source states, so racing writers cannot skip a state and readers never
see a half-applied transition.
"""

import re
import uuid
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager, nullcontext
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pack_manager.core.database import shared_connection_lock
from pack_manager.models.operation import Operation, OperationStatus, format_timestamp

MAX_LIST_LIMIT = 500
DEFAULT_LIST_LIMIT = 50

_OPERATION_TYPE_RE = re.compile(r"^[a-z][a-z0-9_]{0,49}$")


class OperationErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_PROGRESS = "invalid_progress"


class OperationError(RuntimeError):
    """Base class for registry failures."""

    kind: OperationErrorKind

    def __init__(self, message: str, operation_id: str) -> None:
        super().__init__(message)
        self.operation_id = operation_id


class OperationNotFoundError(OperationError):
    kind = OperationErrorKind.NOT_FOUND

    def __init__(self, operation_id: str) -> None:
        super().__init__(f"Operation {operation_id} not found", operation_id)


class InvalidTransitionError(OperationError):
    kind = OperationErrorKind.INVALID_TRANSITION

    def __init__(self, operation_id: str, current: str, target: OperationStatus, message: str | None = None) -> None:
        super().__init__(message or f"Operation {operation_id} cannot move from {current} to {target}", operation_id)
        self.current = current
        self.target = target


class InvalidProgressError(OperationError):
    kind = OperationErrorKind.INVALID_PROGRESS


class OperationRegistry:
    """Creates, advances, and queries operations.

    Each call opens its own session, so the registry is safe to share
    between request handlers and background workers. On a single-connection
    engine those sessions are serialized.

    Args:
        session_factory: Async session factory bound to the operations database.
        clock: Returns the current time; defaults to UTC now.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(UTC))
        bind = session_factory.kw.get("bind")
        self._lock = shared_connection_lock(bind) if isinstance(bind, AsyncEngine) else None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._lock or nullcontext(), self._session_factory() as session:
            yield session

    def _now(self) -> str:
        return format_timestamp(self._clock())

    async def create(self, operation_type: str, user_id: int | None = None) -> str:
        """Register a new queued operation.

        Args:
            operation_type: Lowercase identifier such as ``repo_sync``.
            user_id: Owning user, or None for system-owned operations.

        Returns:
            The new operation id, ``<operation_type>_<hex>``.

        Raises:
            ValueError: If the operation type is not a lowercase identifier.
        """
        if not _OPERATION_TYPE_RE.match(operation_type):
            msg = f"Invalid operation type: {operation_type!r}"
            raise ValueError(msg)

        now = self._now()
        operation_id = f"{operation_type}_{uuid.uuid4().hex}"
        async with self._session() as session:
            session.add(
                Operation(
                    operation_id=operation_id,
                    operation_type=operation_type,
                    status=OperationStatus.QUEUED,
                    progress=None,
                    user_id=user_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            await session.commit()
        logger.info("Created operation {} (user={})", operation_id, user_id)
        return operation_id

    async def start(self, operation_id: str, message: str | None = None) -> Operation:
        """Move a queued operation to running.

        Raises:
            OperationNotFoundError: If the operation does not exist.
            InvalidTransitionError: If the operation is not queued.
        """
        now = self._now()
        values: dict[str, Any] = {"status": OperationStatus.RUNNING, "started_at": now, "updated_at": now}
        if message is not None:
            values["message"] = message
        return await self._transition(operation_id, (OperationStatus.QUEUED,), OperationStatus.RUNNING, values)

    async def report_progress(self, operation_id: str, progress: int, message: str | None = None) -> Operation:
        """Record progress for a running operation.

        Args:
            operation_id: Operation to update.
            progress: Percentage in [0, 100], not below the recorded value.
            message: Optional status message.

        Raises:
            InvalidProgressError: If progress is out of range or decreases.
            OperationNotFoundError: If the operation does not exist.
            InvalidTransitionError: If the operation is not running.
        """
        if not 0 <= progress <= 100:
            msg = f"Progress for {operation_id} must be between 0 and 100, got {progress}"
            raise InvalidProgressError(msg, operation_id)

        values: dict[str, Any] = {"progress": progress, "updated_at": self._now()}
        if message is not None:
            values["message"] = message
        stmt = (
            update(Operation)
            .where(
                Operation.operation_id == operation_id,
                Operation.status == OperationStatus.RUNNING,
                or_(Operation.progress.is_(None), Operation.progress <= progress),
            )
            .values(**values)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            if result.rowcount == 1:
                return await self._require(session, operation_id)

            current = await self._require(session, operation_id)
            if current.status != OperationStatus.RUNNING:
                msg = f"Operation {operation_id} is {current.status}; progress is only accepted while running"
                raise InvalidTransitionError(operation_id, current.status, OperationStatus.RUNNING, msg)
            msg = f"Progress for {operation_id} cannot decrease from {current.progress} to {progress}"
            raise InvalidProgressError(msg, operation_id)

    async def complete(
        self,
        operation_id: str,
        result_data: Any = None,
        message: str | None = None,
    ) -> Operation:
        """Mark a running operation as successful with progress 100.

        Raises:
            OperationNotFoundError: If the operation does not exist.
            InvalidTransitionError: If the operation is not running.
        """
        values: dict[str, Any] = {
            "status": OperationStatus.SUCCESS,
            "progress": 100,
            "result_data": result_data,
            "updated_at": self._now(),
        }
        if message is not None:
            values["message"] = message
        operation = await self._transition(operation_id, (OperationStatus.RUNNING,), OperationStatus.SUCCESS, values)
        logger.info("Operation {} completed", operation_id)
        return operation

    async def fail(self, operation_id: str, message: str, result_data: Any = None) -> Operation:
        """Mark a queued or running operation as failed.

        Raises:
            OperationNotFoundError: If the operation does not exist.
            InvalidTransitionError: If the operation already finished.
        """
        values: dict[str, Any] = {"status": OperationStatus.FAILED, "message": message, "updated_at": self._now()}
        if result_data is not None:
            values["result_data"] = result_data
        operation = await self._transition(
            operation_id, (OperationStatus.QUEUED, OperationStatus.RUNNING), OperationStatus.FAILED, values
        )
        logger.warning("Operation {} failed: {}", operation_id, message)
        return operation

    async def get(self, operation_id: str) -> Operation | None:
        async with self._session() as session:
            return await session.scalar(select(Operation).where(Operation.operation_id == operation_id))

    async def list(
        self,
        user_id: int | None = None,
        *,
        status: OperationStatus | str | None = None,
        operation_type: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Operation]:
        """List operations, most recently created first.

        Args:
            user_id: Only operations owned by this user.
            status: Only operations in this status.
            operation_type: Only operations of this type.
            limit: Maximum rows, 1 to 500.

        Raises:
            ValueError: If limit is out of range.
        """
        if not 1 <= limit <= MAX_LIST_LIMIT:
            msg = f"limit must be between 1 and {MAX_LIST_LIMIT}, got {limit}"
            raise ValueError(msg)

        query = select(Operation)
        if user_id is not None:
            query = query.where(Operation.user_id == user_id)
        if status is not None:
            query = query.where(Operation.status == OperationStatus(status))
        if operation_type is not None:
            query = query.where(Operation.operation_type == operation_type)
        query = query.order_by(Operation.created_at.desc(), Operation.id.desc()).limit(limit)

        async with self._session() as session:
            result = await session.scalars(query)
            return result.all()

    async def count_by_status(self, status: OperationStatus | str) -> int:
        async with self._session() as session:
            count = await session.scalar(
                select(func.count()).select_from(Operation).where(Operation.status == OperationStatus(status))
            )
        return count or 0

    async def stats(self) -> dict[str, int]:
        """Return the number of operations in each status, zero-filled."""
        counts = {status.value: 0 for status in OperationStatus}
        async with self._session() as session:
            rows = await session.execute(select(Operation.status, func.count()).group_by(Operation.status))
            for status, count in rows.all():
                counts[status] = count
        return counts

    async def _transition(
        self,
        operation_id: str,
        allowed: tuple[OperationStatus, ...],
        target: OperationStatus,
        values: dict[str, Any],
    ) -> Operation:
        stmt = (
            update(Operation)
            .where(Operation.operation_id == operation_id, Operation.status.in_(allowed))
            .values(**values)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            current = await self._require(session, operation_id)
            if result.rowcount != 1:
                raise InvalidTransitionError(operation_id, current.status, target)
            return current

    @staticmethod
    async def _require(session: AsyncSession, operation_id: str) -> Operation:
        operation = await session.scalar(select(Operation).where(Operation.operation_id == operation_id))
        if operation is None:
            raise OperationNotFoundError(operation_id)
        return operation
