"""Background operation runner.

Drives a registered operation through its lifecycle on an asyncio task
separate from the request that created it. Request handlers return as
soon as the operation is queued; clients poll the registry for status.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from pack_manager.services.operation_registry import OperationRegistry


class ProgressReporter:
    """Handle passed to operation work for reporting progress."""

    def __init__(self, registry: OperationRegistry, operation_id: str) -> None:
        self.registry = registry
        self.operation_id = operation_id

    async def __call__(self, progress: int, message: str | None = None) -> None:
        await self.registry.report_progress(self.operation_id, progress, message)


OperationWork = Callable[[ProgressReporter], Awaitable[Any]]


class OperationRunner:
    """In-process runner executing operation work with asyncio.create_task().

    Suitable for a single API process. Running tasks are tracked so they
    are not garbage collected and can be awaited on shutdown.
    """

    def __init__(self, registry: OperationRegistry) -> None:
        self.registry = registry
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def submit(self, operation_id: str, work: OperationWork) -> asyncio.Task[None]:
        """Schedule work for an already created operation.

        The runner starts the operation, awaits ``work(reporter)``, and
        completes the operation with the returned value as result data.
        An exception from the work, or a result that cannot be recorded,
        marks the operation failed. An operation that cannot be started is
        left as it is and the work never runs.

        Args:
            operation_id: Id returned by ``OperationRegistry.create``.
            work: Async callable receiving a ProgressReporter.

        Returns:
            The scheduled task.
        """

        async def _run() -> None:
            try:
                await self.registry.start(operation_id)
            except Exception:
                logger.exception("Operation {} could not be started", operation_id)
                return
            try:
                result = await work(ProgressReporter(self.registry, operation_id))
            except Exception as exc:
                logger.exception("Operation {} raised", operation_id)
                await self.registry.fail(operation_id, str(exc) or type(exc).__name__)
                return
            try:
                await self.registry.complete(operation_id, result_data=result)
            except Exception as exc:
                logger.exception("Operation {} result could not be recorded", operation_id)
                await self.registry.fail(operation_id, f"Could not record result: {exc}")

        task = asyncio.create_task(_run(), name=f"operation:{operation_id}")
        self._tasks[operation_id] = task
        task.add_done_callback(lambda done: self._finished(operation_id, done))
        return task

    def _finished(self, operation_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(operation_id) is task:
            del self._tasks[operation_id]
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Operation {} runner crashed", operation_id)

    @property
    def active(self) -> list[str]:
        return list(self._tasks)

    async def wait_all(self) -> None:
        """Wait for every running task to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
