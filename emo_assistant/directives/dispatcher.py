"""Directive dispatch onto the avatar's capability set.

The avatar is polymorphic over a capability set that may be only partially
implemented. AvatarCapabilities makes that set explicit: every member is an
optional callable, resolved once when the capabilities are built, and a
missing member turns the matching directive into a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict

from emo_assistant.models import Directive
from emo_assistant.vocabulary import vocabulary_for

from .corrector import validate

logger = logging.getLogger(__name__)

Capability = Callable[..., Any] | None


class AvatarCapabilities(BaseModel):
    """Optional avatar entry points, keyed by what they do.

        feel(expression)              "joy, bounce": emotion plus gestures
        morph_to(shape)
        set_preset(preset)            material preset
        set_undertone(undertone)
        play_chain(chain)             gesture chain
        set_camera(preset)
        set_moon_phase(phase)
        set_sun_eclipse(kind)
        set_moon_eclipse(kind)
        toggle(feature, enabled)
    """

    model_config = ConfigDict(frozen=True)

    feel: Capability = None
    morph_to: Capability = None
    set_preset: Capability = None
    set_undertone: Capability = None
    play_chain: Capability = None
    set_camera: Capability = None
    set_moon_phase: Capability = None
    set_sun_eclipse: Capability = None
    set_moon_eclipse: Capability = None
    toggle: Capability = None

    @classmethod
    def from_avatar(cls, avatar: object) -> AvatarCapabilities:
        """Bind whichever capability methods the avatar object exposes."""
        bound: dict[str, Callable[..., Any]] = {}
        for name in cls.model_fields:
            method = getattr(avatar, name, None)
            if callable(method):
                bound[name] = method
        return cls(**bound)

    def supports(self, name: str) -> bool:
        return getattr(self, name, None) is not None


# Directive keyword → capability taking the canonical value as its only argument.
_SINGLE_VALUE_ROUTES: dict[str, str] = {
    "MORPH": "morph_to",
    "PRESET": "set_preset",
    "UNDERTONE": "set_undertone",
    "CHAIN": "play_chain",
    "CAMERA": "set_camera",
    "PHASE": "set_moon_phase",
    "SUNECLIPSE": "set_sun_eclipse",
    "MOONECLIPSE": "set_moon_eclipse",
}


class DirectiveDispatcher:
    """Validate directives and invoke the matching avatar capability.

    Unknown categories, invalid values and missing capabilities are logged
    and skipped; dispatch never raises.
    """

    def __init__(
        self,
        capabilities: AvatarCapabilities,
        on_meditation: Callable[[], Any] | None = None,
    ) -> None:
        self.capabilities = capabilities
        self._on_meditation = on_meditation

    def dispatch(self, directive: Directive) -> str | None:
        """Apply one directive.

        Returns the canonical value handed to the avatar, or None when the
        directive was dropped or the capability is missing.
        """
        category = directive.category.upper()
        vocabulary = vocabulary_for(category)
        if vocabulary is None:
            logger.warning("Unknown directive type: %s", directive.category)
            return None

        value = validate(directive.raw_value, vocabulary)
        if value is None:
            return None

        modifier = directive.modifier
        if category == "FEEL":
            invoked = self._invoke("feel", f"{value}, {modifier}" if modifier else value)
        elif category == "TOGGLE":
            enabled = modifier is None or modifier.strip().lower() != "off"
            invoked = self._invoke("toggle", value, enabled)
        elif category == "MEDITATION":
            invoked = self._on_meditation is not None
            if invoked:
                logger.info("Triggering MEDITATION:%s", value)
                self._on_meditation()
            else:
                logger.debug("No meditation hook installed, skipping")
        else:
            invoked = self._invoke(_SINGLE_VALUE_ROUTES[category], value)
        return value if invoked else None

    def express(self, expression: str) -> bool:
        """Send a free-form feel expression ("calm, gentle breathing")."""
        return self._invoke("feel", expression)

    def _invoke(self, capability: str, *args: Any) -> bool:
        method = getattr(self.capabilities, capability)
        if method is None:
            logger.debug("Avatar has no %s capability, skipping", capability)
            return False
        logger.info("Triggering %s(%s)", capability, ", ".join(repr(a) for a in args))
        try:
            method(*args)
        except Exception:
            logger.exception("Avatar capability %s failed", capability)
            return False
        return True
