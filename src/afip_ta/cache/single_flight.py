"""Per-key de-duplication of concurrent coroutine calls."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Share one in-flight task among concurrent callers of the same key.

    The first caller for a key starts the task; callers arriving while it
    runs await the same task and receive its result or its exception.
    Once the task finishes the key is forgotten, so the next call starts
    a new flight. Cancelling one waiter does not cancel the shared task.

    Example:
        >>> flight = SingleFlight()
        >>> token = await flight.do(("20111111111", "wsfe"), issue_ticket)
    """

    def __init__(self) -> None:
        self._tasks: Dict[Hashable, "asyncio.Task[Any]"] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._tasks

    async def do(self, key: Hashable, func: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(func())
            self._tasks[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.debug(f"Joining in-flight call for {key}")
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: "asyncio.Task[Any]") -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Mark the exception as retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()
