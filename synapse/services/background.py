"""Fire-and-forget persistence writes.

Adapters return their in-memory result immediately and let storage catch
up in background tasks. A failed write is logged and never reaches the
caller. drain() waits for outstanding writes (shutdown, tests).
"""

import asyncio
from typing import Any, Awaitable, Set

import structlog

log = structlog.get_logger(__name__)


class BackgroundWriter:
    """Tracks background write tasks so they are not garbage collected mid-flight."""

    def __init__(self) -> None:
        self._pending: Set[asyncio.Task] = set()
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, write: Awaitable[Any], operation: str, **context: Any) -> asyncio.Task:
        """
        Run write in the background.

        Must be called from inside a running event loop.

        Args:
            write: Awaitable performing the storage call
            operation: Event-name prefix for failure logs
            **context: Extra fields logged on failure
        """
        task = asyncio.create_task(self._run(write, operation, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, write: Awaitable[Any], operation: str, context: dict) -> Any:
        try:
            return await write
        except Exception as e:
            # Storage must never break the core result
            self.failures += 1
            log.warning(f"{operation}_failed", error=str(e), error_type=type(e).__name__, **context)
            return None

    async def drain(self) -> None:
        """Wait for every outstanding write."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
