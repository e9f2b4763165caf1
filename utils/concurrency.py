import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class SingleFlight:
    """
    At most one running call per key.

    A caller arriving while a call for the same key is in flight awaits that
    call's result (or exception) instead of starting a new one.
    """

    def __init__(self):
        self._in_flight: Dict[Hashable, asyncio.Task] = {}

    async def run(self, key: Hashable, func: Callable[[], Awaitable[Any]]) -> Any:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(func())
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug(f"🔁 Joining in-flight call for {key}")
        # shield: a cancelled joiner must not cancel the shared call
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
