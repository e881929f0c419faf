"""Named, independently cancellable delayed actions.

At most one timer per name is live: starting a timer cancels any pending
timer of the same name. Callbacks run on the event loop, never concurrently
with other callback turns.
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

IDLE_REVERT = "idle-revert"
SCREEN_REVERT = "screen-revert"
PROCESSING_TIMEOUT = "processing-timeout"


class Timers:
    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def start(self, name: str, delay: float, callback: Callable[[], object]) -> None:
        """Schedule callback after delay seconds, replacing any prior `name`."""
        self.cancel(name)
        loop = asyncio.get_running_loop()
        self._handles[name] = loop.call_later(delay, self._fire, name, callback)
        logger.debug("Timer %s started (%.2fs)", name, delay)

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("Timer %s cancelled", name)
        return True

    def cancel_all(self) -> None:
        for name in list(self._handles):
            self.cancel(name)

    def is_active(self, name: str) -> bool:
        return name in self._handles

    def _fire(self, name: str, callback: Callable[[], object]) -> None:
        self._handles.pop(name, None)
        logger.debug("Timer %s fired", name)
        callback()
