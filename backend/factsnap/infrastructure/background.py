"""Background Task Runner — detached, deadline-bounded fire-and-forget work.

Invariants:
    - spawn() never blocks the caller and never raises the task's failure back
    - Every task runs under its own timeout, independent of the request lifetime
    - Failures (including timeouts) go to the log only, with task_name attached
    - Strong references are held until a task finishes (event loop keeps weak refs)

Design Decisions:
    - asyncio.create_task over FastAPI BackgroundTasks: side effects are also
      triggered from services, which have no Response object to attach to
    - drain() lets the lifespan shutdown and tests wait for in-flight work
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Owns detached tasks spawned by services."""

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds
        self._tasks: set[asyncio.Task] = set()

    def spawn(
        self,
        name: str,
        coro: Coroutine[Any, Any, Any],
        timeout_seconds: float | None = None,
    ) -> asyncio.Task:
        """Schedule coro detached from the caller. Returns the wrapping task."""
        timeout = timeout_seconds or self.timeout_seconds
        task = asyncio.create_task(self._run(name, coro, timeout), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self, name: str, coro: Coroutine[Any, Any, Any], timeout: float,
    ) -> None:
        try:
            await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"Background task timed out after {timeout}s",
                extra={"task_name": name},
            )
        except asyncio.CancelledError:
            logger.warning("Background task cancelled", extra={"task_name": name})
            raise
        except Exception as e:
            logger.error(
                f"Background task failed: {e}",
                extra={"task_name": name, "error_code": getattr(e, "code", None)},
                exc_info=True,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight task to finish (success or logged failure)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
