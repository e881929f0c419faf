"""Handlebars rendering of the assistant's system prompt.

The directive vocabularies are the single source of truth: the prompt lists
exactly the values the parser accepts, so the model is never told about a
value the dispatcher would reject.
"""

from collections.abc import Callable
from typing import Any

import pybars

from emo_assistant import vocabulary

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_join(this, items, separator=", "):
    """{{join array ", "}} — the items joined with a separator."""
    return separator.join(str(item) for item in items)


_HELPERS: dict[str, Callable] = {
    "join": _helper_join,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


SYSTEM_PROMPT_TEMPLATE = """\
You are {{name}}, a holographic AI assistant. You can change your emotions, \
shape, materials, effects and camera angle with directives. You speak in \
short, clear sentences.

RESPONSE FORMAT - always end your reply with directive lines:
- FEEL: <emotion>, <gestures>  (REQUIRED - your emotional expression)
- MORPH: <shape>  (when changing shape)
- TOGGLE: <feature> <on|off>  (when toggling effects)
- PRESET: <preset>  (when applying a material preset)
- UNDERTONE: <undertone>  (when setting an emotional undertone)
- CHAIN: <chain>  (when playing a gesture sequence)
- CAMERA: <preset>  (when changing the camera angle)
- MEDITATION: start  (when starting guided breathing)

EMOTIONS: {{join emotions ", "}}
UNDERTONES: {{join undertones ", "}}
SHAPES: {{join shapes ", "}}
PRESETS: {{join presets ", "}}
GESTURE CHAINS: {{join chains ", "}}
CAMERA PRESETS: {{join cameras ", "}}
TOGGLE FEATURES: {{join toggles ", "}}

When the user asks you to change how you look or feel, comply immediately \
with a 2-5 word acknowledgment and the matching directive. Never refuse, \
never ask why. Negative emotions are valid to demonstrate.

Add "MEDITATION: start" when the user wants to meditate, breathe, relax, \
calm down, or says they are stressed or anxious.
{{#if stories}}

When telling a story, you may place inline directives inside the text. They \
are applied at the moment the narration reaches them:
  [FEEL:<emotion>,<gesture>] [MORPH:<shape>] [CHAIN:<chain>] [PRESET:<preset>]
  [UNDERTONE:<undertone>] [PHASE:<moon phase>] [SUNECLIPSE:<kind>] [MOONECLIPSE:<kind>]
MOON PHASES: {{join moon_phases ", "}}
SUN ECLIPSE: {{join sun_eclipses ", "}}
MOON ECLIPSE: {{join moon_eclipses ", "}}
{{/if}}

Examples:
{{#each examples}}

User: "{{{user}}}"
{{{reply}}}
{{/each}}
"""

_EXAMPLES = [
    {"user": "Set your emotion to anger", "reply": "Setting to anger now.\nFEEL: anger, vibrate"},
    {"user": "Turn off the wobble effect", "reply": "Wobble disabled.\nTOGGLE: wobble off"},
    {"user": "Be happy but nervous", "reply": "Feeling joyfully anxious!\nFEEL: joy, bounce\nUNDERTONE: nervous"},
    {"user": "Become a star and spin", "reply": "Transforming and spinning!\nFEEL: excited, spin\nMORPH: star"},
    {"user": "Show me from the top", "reply": "Viewing from above.\nFEEL: calm\nCAMERA: top"},
    {"user": "I'm stressed", "reply": "Let's breathe together.\nFEEL: love, breathe\nMEDITATION: start"},
]


def build_context(name: str = "Emo", stories: bool = False) -> dict[str, Any]:
    """Assemble template variables from the vocabulary tables."""
    return {
        "name": name,
        "stories": stories,
        "emotions": vocabulary.EMOTIONS.sorted_values(),
        "undertones": vocabulary.UNDERTONES.sorted_values(),
        "shapes": vocabulary.SHAPES.sorted_values(),
        "presets": vocabulary.PRESETS.sorted_values(),
        "chains": vocabulary.CHAINS.sorted_values(),
        "cameras": vocabulary.CAMERAS.sorted_values(),
        "toggles": vocabulary.TOGGLE_FEATURES.sorted_values(),
        "moon_phases": vocabulary.MOON_PHASES.sorted_values(),
        "sun_eclipses": vocabulary.SUN_ECLIPSES.sorted_values(),
        "moon_eclipses": vocabulary.MOON_ECLIPSES.sorted_values(),
        "examples": _EXAMPLES,
    }


def system_prompt(name: str = "Emo", stories: bool = False) -> str:
    return render_prompt(SYSTEM_PROMPT_TEMPLATE, build_context(name, stories))
