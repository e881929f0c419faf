"""Guided breathing loop.

Entered after the introductory narration of a meditation reply. Each cycle
walks four phases (inhale, hold, exhale, rest); every phase sets an avatar
expression, speaks its cue while the countdown runs, and reports to an
optional observer so a display can show the phase and remaining seconds.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from emo_assistant.directives import DirectiveDispatcher
from emo_assistant.narration import NarrationError, Narrator

logger = logging.getLogger(__name__)

PATTERNS: dict[str, dict[str, int]] = {
    "default": {"inhale": 4, "hold_in": 4, "exhale": 6, "hold_out": 2},
    "box": {"inhale": 4, "hold_in": 4, "exhale": 4, "hold_out": 4},
}

AFFIRMATIONS = [
    "You're doing wonderfully.",
    "Let go of any tension.",
    "Feel the calm spreading through you.",
    "Each breath brings more peace.",
    "You are safe and relaxed.",
]

CLOSING_LINE = "Well done. Take a moment before continuing."


class Phase(BaseModel):
    key: str
    name: str
    duration: int
    feel: str
    cue: str | None = None


class PhaseUpdate(BaseModel):
    """What a display needs to render the current moment of the loop."""

    phase: str
    timer: int | None = None
    cycle: int
    max_cycles: int


def build_phases(pattern_name: str) -> list[Phase]:
    pattern = PATTERNS[pattern_name]
    return [
        Phase(key="inhale", name="Breathe In", duration=pattern["inhale"],
              feel="serene, breathe", cue="Breathe in"),
        Phase(key="hold_in", name="Hold", duration=pattern["hold_in"],
              feel="peaceful, glow", cue="Hold"),
        Phase(key="exhale", name="Breathe Out", duration=pattern["exhale"],
              feel="calm, settle", cue="Release"),
        Phase(key="hold_out", name="Rest", duration=pattern["hold_out"],
              feel="resting, gentle sway", cue="Hold" if pattern_name == "box" else None),
    ]


class MeditationController:
    """Runs breathing cycles against the avatar and the narration engine.

    Args:
        dispatcher: Used for the avatar feel expressions.
        narrator:   Speaks cues, affirmations and the closing line.
        pattern:    "default" (4-4-6-2) or "box" (4-4-4-4).
        max_cycles: Cycles before the loop closes on its own.
        on_phase:   Optional observer for display updates.
        on_end:     Called exactly once when the loop ends or is stopped.
        sleep:      Awaitable delay, injectable so tests run without waiting.
    """

    def __init__(
        self,
        dispatcher: DirectiveDispatcher,
        narrator: Narrator,
        pattern: str = "default",
        max_cycles: int = 5,
        on_phase: Callable[[PhaseUpdate], Any] | None = None,
        on_end: Callable[[], Any] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._dispatcher = dispatcher
        self._narrator = narrator
        self.max_cycles = max_cycles
        self.on_phase = on_phase
        self.on_end = on_end
        self._sleep = sleep
        self.is_active = False
        self.cycle_count = 0
        self.current_phase: str | None = None
        self.set_pattern(pattern)

    def set_pattern(self, name: str) -> None:
        if name not in PATTERNS:
            logger.warning("Unknown breathing pattern %r, keeping %r", name, getattr(self, "pattern_name", None))
            return
        self.pattern_name = name
        self.phases = build_phases(name)
        logger.info("Meditation pattern set to %s", name)

    async def start(self) -> None:
        """Run the loop until max_cycles complete or stop() is called."""
        self.is_active = True
        self.cycle_count = 0
        self._report("Breathe with me...")
        self._dispatcher.express("calm, settle, breathe")

        # Let the intro narration settle before the first cycle
        await self._sleep(2)

        while self.is_active and self.cycle_count < self.max_cycles:
            self.cycle_count += 1
            logger.info("Meditation cycle %d/%d", self.cycle_count, self.max_cycles)
            for phase in self.phases:
                if not self.is_active:
                    break
                await self._run_phase(phase)
            if not self.is_active:
                break
            if self.cycle_count % 2 == 0 and self.cycle_count < self.max_cycles:
                await self._speak_affirmation()

        if self.is_active:
            await self._finish()

    def stop(self) -> None:
        """Abort the loop at the next phase boundary."""
        if not self.is_active:
            return
        self.is_active = False
        self.current_phase = None
        self._dispatcher.express("calm, settle")
        logger.info("Meditation stopped at cycle %d", self.cycle_count)
        self._ended()

    async def _run_phase(self, phase: Phase) -> None:
        self.current_phase = phase.key
        self._dispatcher.express(phase.feel)
        await asyncio.gather(
            self._speak_cue(phase.cue),
            self._countdown(phase),
        )

    async def _countdown(self, phase: Phase) -> None:
        for remaining in range(phase.duration, 0, -1):
            if not self.is_active:
                return
            self._report(phase.name, remaining)
            await self._sleep(1)
        self._report(phase.name)

    async def _speak_cue(self, cue: str | None) -> None:
        if not cue or not self.is_active:
            return
        try:
            await self._narrator.speak(cue)
        except NarrationError as e:
            logger.warning("Cue %r not spoken: %s", cue, e)

    async def _speak_affirmation(self) -> None:
        affirmation = random.choice(AFFIRMATIONS)
        self._report(affirmation)
        self._dispatcher.express("love, gentle glow")
        await self._narrator.speak(affirmation)
        await self._sleep(1)

    async def _finish(self) -> None:
        self._report("Complete", cycle=self.max_cycles)
        self._dispatcher.express("calm, shimmer, settle")
        await self._narrator.speak(CLOSING_LINE)
        await self._sleep(2)
        if not self.is_active:
            return
        self.is_active = False
        self.current_phase = None
        self._dispatcher.express("calm, gentle breathing")
        self._ended()

    def _report(self, phase: str, timer: int | None = None, cycle: int | None = None) -> None:
        if self.on_phase:
            self.on_phase(PhaseUpdate(
                phase=phase,
                timer=timer,
                cycle=self.cycle_count if cycle is None else cycle,
                max_cycles=self.max_cycles,
            ))

    def _ended(self) -> None:
        if self.on_end:
            self.on_end()
