"""End-marker parsing for complete conversational replies.

Reply format (one directive per line, after the spoken text):

    Transforming and spinning!
    FEEL: excited, spin
    MORPH: star
    TOGGLE: particles off

Directive lines are removed from the body. Lines wrapped in asterisks
(*morphs into a star*) are stage directions and are dropped as well.
Everything else is joined with single spaces into the spoken body.
"""

import logging
import re

from emo_assistant.models import Toggle, Trailer
from emo_assistant.vocabulary import (
    CAMERAS,
    CHAINS,
    EMOTIONS,
    PRESETS,
    SHAPES,
    TOGGLE_FEATURES,
    UNDERTONES,
)

from .corrector import correct, validate

logger = logging.getLogger(__name__)

FALLBACK_BODY = "Here you go!"

_MORPH_IN_FEEL = re.compile(r"morph\s+to\s+([\w-]+)")


def parse_trailer(response: str) -> Trailer:
    """Split a reply into its spoken body and its trailing directives.

    Every category except FEEL and MEDITATION is validated immediately and
    dropped (with a warning) when it has no legal value. FEEL only checks
    the emotion before the first comma; an unknown emotion keeps the
    expression as written, gestures included.
    """
    body: list[str] = []
    trailer = Trailer(body=FALLBACK_BODY)

    for line in response.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue

        if stripped.startswith("FEEL:"):
            trailer.feel = _parse_feel(stripped[5:].strip()) or trailer.feel
        elif stripped.startswith("MORPH:"):
            trailer.shape = validate(stripped[6:], SHAPES) or trailer.shape
        elif stripped.startswith("MEDITATION:"):
            if "start" in stripped[11:].lower():
                trailer.meditation_start = True
        elif stripped.startswith("TOGGLE:"):
            toggle = _parse_toggle(stripped[7:])
            if toggle is not None:
                trailer.toggles.append(toggle)
        elif stripped.startswith("PRESET:"):
            trailer.preset = validate(stripped[7:], PRESETS) or trailer.preset
        elif stripped.startswith("UNDERTONE:"):
            trailer.undertone = validate(stripped[10:], UNDERTONES) or trailer.undertone
        elif stripped.startswith("CHAIN:"):
            trailer.chain = validate(stripped[6:], CHAINS) or trailer.chain
        elif stripped.startswith("CAMERA:"):
            trailer.camera = validate(stripped[7:], CAMERAS) or trailer.camera
        elif stripped.startswith("*") and stripped.endswith("*"):
            logger.debug("Dropping stage direction %r", stripped)
        else:
            body.append(stripped)

    # Fallback: "FEEL: excited, morph to star" names a shape without a MORPH line
    if trailer.shape is None and trailer.feel:
        match = _MORPH_IN_FEEL.search(trailer.feel.lower())
        if match:
            trailer.shape = validate(match.group(1), SHAPES)

    trailer.body = " ".join(body) or FALLBACK_BODY
    return trailer


def _parse_feel(expression: str) -> str | None:
    if not expression:
        return None
    emotion, sep, gestures = expression.partition(",")
    result = correct(emotion, EMOTIONS)
    if result.value not in EMOTIONS:
        logger.warning("FEEL emotion %r not in vocabulary, keeping expression as written", emotion.strip())
        return expression
    if result.was_corrected:
        logger.info("Auto-corrected emotion %r -> %r", emotion.strip(), result.value)
    if sep:
        return f"{result.value}, {gestures.strip()}"
    return result.value


def _parse_toggle(text: str) -> Toggle | None:
    parts = text.strip().lower().split()
    if len(parts) < 2:
        logger.warning("Malformed TOGGLE line %r, expected '<feature> <on|off>'", text.strip())
        return None
    feature = validate(parts[0], TOGGLE_FEATURES)
    if feature is None:
        return None
    return Toggle(feature=feature, enabled=parts[1] == "on")
