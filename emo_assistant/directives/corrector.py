"""Directive value validation with auto-correction.

Exact match → correction table → reject. The same two steps are applied to
every directive value, inline or trailing.
"""

import logging

from emo_assistant.models import Correction
from emo_assistant.vocabulary import Vocabulary

logger = logging.getLogger(__name__)


def correct(raw_value: str, vocabulary: Vocabulary) -> Correction:
    """Map a raw value onto the vocabulary.

    Returns the lowercased value unchanged when it is already canonical,
    the mapped canonical value (was_corrected=True) when the correction
    table knows it, and otherwise the lowercased input with
    was_corrected=False. Never raises; callers decide validity by
    checking membership of the returned value.
    """
    lower = raw_value.strip().lower()
    if lower in vocabulary.values:
        return Correction(value=lower, was_corrected=False)
    mapped = vocabulary.corrections.get(lower)
    if mapped is not None:
        return Correction(value=mapped, was_corrected=True)
    return Correction(value=lower, was_corrected=False)


def validate(raw_value: str, vocabulary: Vocabulary) -> str | None:
    """Return the canonical value for raw_value, or None if it is invalid."""
    result = correct(raw_value, vocabulary)
    if result.was_corrected:
        logger.info("Auto-corrected %s %r -> %r", vocabulary.name, raw_value, result.value)
    if result.value not in vocabulary.values:
        logger.warning(
            "Invalid %s %r (no correction available) - valid: %s",
            vocabulary.name, raw_value, ", ".join(vocabulary.sorted_values()),
        )
        return None
    return result.value
