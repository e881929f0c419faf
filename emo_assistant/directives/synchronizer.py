"""Replay of inline directives in step with narration.

Directives are sorted by clean-text offset at parse time, so each progress
report is a single forward scan from the cursor. The cursor only moves
forward; a directive fires at most once per reply.
"""

import logging
from collections.abc import Callable, Sequence

from emo_assistant.models import Directive

logger = logging.getLogger(__name__)


class PlaybackSynchronizer:
    def __init__(
        self,
        fire: Callable[[Directive], object],
        directives: Sequence[Directive] = (),
    ) -> None:
        self._fire = fire
        self._directives: list[Directive] = list(directives)
        self._cursor = -1

    def load(self, directives: Sequence[Directive]) -> None:
        """Install the directive list for a new reply and rewind the cursor."""
        self._directives = list(directives)
        self._cursor = -1

    @property
    def cursor(self) -> int:
        """Index of the last fired directive (-1 before the first)."""
        return self._cursor

    @property
    def total(self) -> int:
        return len(self._directives)

    @property
    def pending(self) -> int:
        return len(self._directives) - self._cursor - 1

    def update_progress(self, position: int) -> list[Directive]:
        """Fire every unfired directive whose offset is <= position.

        Returns the directives fired by this call, in offset order.
        """
        fired: list[Directive] = []
        for index in range(self._cursor + 1, len(self._directives)):
            directive = self._directives[index]
            if directive.offset > position:
                break
            self._cursor = index
            self._fire(directive)
            fired.append(directive)
        if fired:
            logger.debug("Position %d fired %d directive(s)", position, len(fired))
        return fired

    def trigger_remaining(self) -> list[Directive]:
        """Fire every directive past the cursor regardless of offset.

        Used when narration ends before reaching the last offset so that
        state-changing directives are not lost.
        """
        fired: list[Directive] = []
        for index in range(self._cursor + 1, len(self._directives)):
            self._cursor = index
            self._fire(self._directives[index])
            fired.append(self._directives[index])
        if fired:
            logger.info("Force-fired %d remaining directive(s)", len(fired))
        return fired

    def get_progress(self) -> float:
        """Fraction of directives fired so far (1.0 when there are none)."""
        if not self._directives:
            return 1.0
        return (self._cursor + 1) / len(self._directives)

    def reset(self) -> None:
        self._directives = []
        self._cursor = -1
