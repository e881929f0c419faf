"""Directive protocol engine.

Two dialects reach the avatar from model replies:

  Trailing — whole lines at the end of a conversational reply, applied once
             before narration starts (parse_trailer):
               FEEL: joy, bounce
               MORPH: star

  Inline   — bracketed markers inside narrative text, replayed in step with
             the narration position (DirectiveExtractor + PlaybackSynchronizer):
               Once upon a time [FEEL:calm] a star [MORPH:star] fell.

Every value passes through correct() against its category's vocabulary
before DirectiveDispatcher hands it to the avatar.
"""

from .corrector import correct, validate  # noqa: F401
from .dispatcher import AvatarCapabilities, DirectiveDispatcher  # noqa: F401
from .extractor import DIRECTIVE_PATTERN, DirectiveExtractor  # noqa: F401
from .synchronizer import PlaybackSynchronizer  # noqa: F401
from .trailer import FALLBACK_BODY, parse_trailer  # noqa: F401
