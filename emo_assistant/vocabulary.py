"""Closed vocabularies for every directive category.

Each Vocabulary holds the canonical values the avatar engine supports plus a
correction map from common LLM mistakes (synonyms, undertones used as
emotions, shapes the engine does not render) to the nearest legal value.
Pure data, loaded once at import and never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Vocabulary(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    values: frozenset[str]
    corrections: Mapping[str, str] = Field(default_factory=lambda: MappingProxyType({}))

    @field_validator("corrections", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    def __contains__(self, value: object) -> bool:
        return value in self.values

    def sorted_values(self) -> list[str]:
        return sorted(self.values)


EMOTIONS = Vocabulary(
    name="emotion",
    values=frozenset({
        "neutral", "joy", "calm", "love", "excited", "euphoria", "sadness",
        "anger", "fear", "surprise", "disgust", "focused", "suspicion",
        "resting", "glitch",
    }),
    corrections={
        "wonder": "surprise",
        "awe": "euphoria",
        "curious": "focused",
        "curiosity": "focused",
        "excitement": "excited",
        "compassion": "love",
        "compassionate": "love",
        "thoughtful": "focused",
        "contemplative": "calm",
        "anxious": "fear",
        "happy": "joy",
        "sad": "sadness",
        "angry": "anger",
        "scared": "fear",
        "disgusted": "disgust",
        "amazed": "euphoria",
        "amazement": "euphoria",
        "peaceful": "calm",
        "content": "calm",
        "serene": "calm",
        "nervous": "fear",  # undertone, not an emotion
        "confident": "focused",  # undertone, not an emotion
    },
)

SHAPES = Vocabulary(
    name="shape",
    values=frozenset({"crystal", "moon", "sun", "heart", "star", "rough"}),
    corrections={
        "sphere": "crystal",
        "diamond": "crystal",
        "orb": "crystal",
        "gem": "crystal",
        "gemstone": "crystal",
        "crescent": "moon",
        "lunar": "moon",
        "solar": "sun",
        "love": "heart",
        "starlight": "star",
    },
)

PRESETS = Vocabulary(
    name="preset",
    values=frozenset({"quartz", "emerald", "ruby", "sapphire", "amethyst", "citrine"}),
)

UNDERTONES = Vocabulary(
    name="undertone",
    values=frozenset({"nervous", "confident", "sarcastic", "hesitant", "calm", "clear"}),
    corrections={
        "thoughtful": "hesitant",
        "contemplative": "calm",
        "curious": "hesitant",
        "wondering": "hesitant",
        "peaceful": "calm",
        "anxious": "nervous",
        "worried": "nervous",
        "bold": "confident",
        "unsure": "hesitant",
    },
)

CHAINS = Vocabulary(
    name="gesture-chain",
    values=frozenset({
        "rise", "flow", "burst", "drift", "chaos", "morph", "rhythm",
        "spiral", "routine", "radiance", "twinkle", "stream",
    }),
    corrections={
        "discovery": "radiance",
        "wonder": "twinkle",
        "excitement": "burst",
        "energy": "chaos",
        "calm": "drift",
        "peace": "flow",
        "magic": "radiance",
        "sparkle": "twinkle",
        "glow": "radiance",
        "dance": "rhythm",
        "spin": "spiral",
    },
)

CAMERAS = Vocabulary(
    name="camera",
    values=frozenset({"front", "side", "top", "bottom", "angle", "back"}),
)

TOGGLE_FEATURES = Vocabulary(
    name="toggle",
    values=frozenset({"wobble", "particles", "blinking", "breathing", "autorotate"}),
    corrections={
        "auto-rotate": "autorotate",
        "rotation": "autorotate",
    },
)

MOON_PHASES = Vocabulary(
    name="moon-phase",
    values=frozenset({
        "new", "waxing-crescent", "first-quarter", "waxing-gibbous", "full",
        "waning-gibbous", "last-quarter", "waning-crescent",
    }),
    corrections={
        "crescent": "waxing-crescent",
        "half": "first-quarter",
        "gibbous": "waxing-gibbous",
        "quarter": "first-quarter",
    },
)

SUN_ECLIPSES = Vocabulary(
    name="sun-eclipse",
    values=frozenset({"off", "annular", "total"}),
    corrections={
        "eclipse": "total",
        "ring": "annular",
        "solar-eclipse": "total",
        "none": "off",
        "normal": "off",
    },
)

MOON_ECLIPSES = Vocabulary(
    name="moon-eclipse",
    values=frozenset({"off", "partial", "total"}),
    corrections={
        "blood": "total",
        "blood-moon": "total",
        "bloodmoon": "total",
        "lunar-eclipse": "total",
        "eclipse": "total",
        "none": "off",
        "normal": "off",
    },
)

MEDITATION = Vocabulary(name="meditation-start", values=frozenset({"start"}))


# Directive keyword → vocabulary its value is checked against.
CATEGORY_VOCABULARIES: dict[str, Vocabulary] = {
    "FEEL": EMOTIONS,
    "MORPH": SHAPES,
    "TOGGLE": TOGGLE_FEATURES,
    "PRESET": PRESETS,
    "UNDERTONE": UNDERTONES,
    "CHAIN": CHAINS,
    "CAMERA": CAMERAS,
    "PHASE": MOON_PHASES,
    "SUNECLIPSE": SUN_ECLIPSES,
    "MOONECLIPSE": MOON_ECLIPSES,
    "MEDITATION": MEDITATION,
}


def vocabulary_for(category: str) -> Vocabulary | None:
    """Look up the vocabulary for a directive keyword (None if unknown)."""
    return CATEGORY_VOCABULARIES.get(category.upper())
