"""Narration engine interface.

The conversation state machine drives any object matching the protocol:

    async def speak(self, text: str) -> None: ...   # resolves on finish or stop()
    def stop(self) -> None: ...
    on_progress: Callable[[float], None] | None       # fraction 0–1
    on_char_position: Callable[[int], None] | None    # clean-text offset

Progress callbacks are installed per utterance with subscribe() and torn
down when the utterance settles, so a late report from an old reply can
never reach the next reply's directive list.

PacedNarrator is a reference engine without audio: it walks the text at a
fixed speaking rate and reports word boundaries. Useful for the console
session and for tests.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
PositionCallback = Callable[[int], None]


# ---------------------------------------------------------------------------
# Protocol — every narration engine must match this shape
# ---------------------------------------------------------------------------

class Narrator(Protocol):
    on_progress: ProgressCallback | None
    on_char_position: PositionCallback | None

    async def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


class NarrationError(RuntimeError):
    """Raised when a narration engine cannot speak an utterance."""


@contextmanager
def subscribe(
    narrator: Narrator,
    on_progress: ProgressCallback | None = None,
    on_char_position: PositionCallback | None = None,
) -> Iterator[Narrator]:
    """Install progress callbacks for exactly one utterance.

    Teardown only removes callbacks this subscription installed: a stopped
    utterance that settles after the next one has subscribed leaves the
    newer callbacks in place.
    """
    narrator.on_progress = on_progress
    narrator.on_char_position = on_char_position
    try:
        yield narrator
    finally:
        if narrator.on_progress is on_progress:
            narrator.on_progress = None
        if narrator.on_char_position is on_char_position:
            narrator.on_char_position = None


# ---------------------------------------------------------------------------
# PacedNarrator — silent engine reporting word boundaries at a fixed rate
# ---------------------------------------------------------------------------

_WORD = re.compile(r"\S+")


class PacedNarrator:
    """Walks text at `chars_per_second`, reporting each word boundary.

    Args:
        chars_per_second: Speaking rate. 17 matches a typical browser voice.
        on_text:          Optional sink receiving each utterance as it starts
                          (the console session prints it).
    """

    def __init__(
        self,
        chars_per_second: float = 17.0,
        on_text: Callable[[str], None] | None = None,
    ) -> None:
        if chars_per_second <= 0:
            raise ValueError("chars_per_second must be positive")
        self.chars_per_second = chars_per_second
        self.on_progress: ProgressCallback | None = None
        self.on_char_position: PositionCallback | None = None
        self._on_text = on_text
        self._stop_event: asyncio.Event | None = None

    @property
    def is_speaking(self) -> bool:
        return self._stop_event is not None

    async def speak(self, text: str) -> None:
        # A new utterance cuts off the one in flight
        self.stop()
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        if self._on_text:
            self._on_text(text)

        words = list(_WORD.finditer(text))
        position = 0
        try:
            for index, word in enumerate(words):
                if await self._pause(stop_event, word.start() - position):
                    return
                position = word.start()
                self._report(position, (index + 1) / len(words))
            if await self._pause(stop_event, len(text) - position):
                return
            self._report(len(text), 1.0)
        finally:
            if self._stop_event is stop_event:
                self._stop_event = None

    def stop(self) -> None:
        if self._stop_event is not None:
            logger.debug("Narration stopped")
            self._stop_event.set()
            self._stop_event = None

    async def _pause(self, stop_event: asyncio.Event, chars: int) -> bool:
        """Wait for `chars` worth of speech. Returns True if stopped meanwhile."""
        if stop_event.is_set():
            return True
        if chars <= 0:
            return False
        try:
            await asyncio.wait_for(stop_event.wait(), chars / self.chars_per_second)
        except asyncio.TimeoutError:
            return False
        return True

    def _report(self, position: int, fraction: float) -> None:
        if self.on_char_position:
            self.on_char_position(position)
        if self.on_progress:
            self.on_progress(fraction)
