"""Inline directive extraction.

Directive format: [TYPE:value] or [TYPE:value,modifier]

    [FEEL:joy,bounce]   set emotion to joy with a bounce gesture
    [MORPH:star]        morph to the star shape
    [CHAIN:burst]       play the burst gesture chain
    [PHASE:full]        set the moon phase

Markers are removed from the text. Each directive records its offset in the
*clean* text, since that is the text the narration engine speaks and paces
its progress reports against.
"""

import logging
import re

from emo_assistant.models import Directive

logger = logging.getLogger(__name__)

DIRECTIVE_PATTERN = re.compile(r"\[([A-Z]+):([^\],]+)(?:,([^\]]+))?\]")


class DirectiveExtractor:
    """Single-pass scanner that strips inline directives from reply text."""

    def __init__(self) -> None:
        self._directives: list[Directive] = []
        self._clean_text = ""

    def parse(self, raw_text: str) -> str:
        """Strip directives from raw_text and return the clean text.

        Replaces any previously parsed state.
        """
        directives: list[Directive] = []
        parts: list[str] = []
        length = 0
        last = 0

        for match in DIRECTIVE_PATTERN.finditer(raw_text):
            chunk = raw_text[last:match.start()]
            parts.append(chunk)
            length += len(chunk)

            category, value, modifier = match.groups()
            modifier = modifier.strip() if modifier else None
            directives.append(Directive(
                category=category,
                raw_value=value.strip(),
                modifier=modifier or None,
                offset=length,
            ))
            last = match.end()

        parts.append(raw_text[last:])

        self._directives = directives
        self._clean_text = "".join(parts)

        if directives:
            logger.info(
                "Parsed %d directives: %s",
                len(directives),
                ", ".join(_describe(d) for d in directives),
            )
        return self._clean_text

    @property
    def clean_text(self) -> str:
        return self._clean_text

    @property
    def directives(self) -> list[Directive]:
        """The parsed directives in ascending offset order (a copy)."""
        return list(self._directives)

    def has_directives(self) -> bool:
        return bool(self._directives)

    def reset(self) -> None:
        self._directives = []
        self._clean_text = ""


def _describe(directive: Directive) -> str:
    text = f"{directive.category}:{directive.raw_value}"
    if directive.modifier:
        text += f",{directive.modifier}"
    return f"{text} @{directive.offset}"
