"""Core domain models.

Every directive, parsed reply and session field the protocol engine and the
conversation state machine exchange is one of these types. Pydantic is used
for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Directive(BaseModel):
    """A single parsed command: category + value + optional modifier.

    `offset` is the position in the clean-text coordinate space. Only inline
    directives carry a meaningful offset; trailing directives leave it at 0.
    """

    model_config = ConfigDict(frozen=True)

    category: str  # uppercase keyword as received, e.g. "FEEL"
    raw_value: str
    modifier: str | None = None
    offset: int = 0


class Correction(BaseModel):
    """Result of running a raw value through a vocabulary."""

    model_config = ConfigDict(frozen=True)

    value: str
    was_corrected: bool = False


class Toggle(BaseModel):
    model_config = ConfigDict(frozen=True)

    feature: str
    enabled: bool


class Trailer(BaseModel):
    """A reply split into its spoken body and its trailing directive lines."""

    body: str
    feel: str | None = None
    shape: str | None = None
    meditation_start: bool = False
    toggles: list[Toggle] = Field(default_factory=list)
    preset: str | None = None
    undertone: str | None = None
    chain: str | None = None
    camera: str | None = None


class ConversationState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    THINKING = "thinking"
    SPEAKING = "speaking"
    MEDITATION = "meditation"
    CAROUSEL = "carousel"
    PANEL = "panel"
    TUTORIAL = "tutorial"


MODAL_STATES = frozenset({
    ConversationState.CAROUSEL,
    ConversationState.PANEL,
    ConversationState.TUTORIAL,
})


class Timings(BaseModel):
    """Delays (seconds) for the named session timers."""

    idle_revert: float = 8.0
    screen_revert: float = 6.0
    processing_timeout: float = 3.0


class Session(BaseModel):
    """Mutable per-session state owned by the conversation state machine."""

    current_geometry: str = "crystal"
    user_requested_emotion: bool = False  # reply set an explicit FEEL
    user_manual_selection: bool = False  # carousel / panel pick, no auto-revert
    screen_text: str = "Hold to speak"
    screen_mode: str = ""  # "" | "listening" | "speaking"
    status: str = ""
    progress: float = 0.0  # 0–1 narration progress for the UI


InputKind = Literal["press", "release", "key_down", "key_up", "tap", "cancel"]


class InputEvent(BaseModel):
    """A touch, pointer or keyboard event delivered to the state machine."""

    model_config = ConfigDict(frozen=True)

    kind: InputKind
    key: str | None = None  # "Space" | "Escape" | ... for key events
    target: str | None = None  # "avatar" | "meditation_overlay" | ... for taps
    repeat: bool = False
