"""App configuration: defaults, an optional JSON file, and the environment.

Secrets never live in the JSON file. The API key (and optional overrides for
the backend URL, wire format and model) come from the environment, which
load_dotenv() fills from a .env file at the repo root.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from emo_assistant.models import Timings

ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = ROOT / "config.json"

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm": {
        "format": "anthropic",
        "url": "https://api.anthropic.com",
        "model": "claude-3-haiku-20240307",
        "max_tokens": 256,
        "timeout": 30,
    },
    "timings": {
        "idle_revert": 8.0,
        "screen_revert": 6.0,
        "processing_timeout": 3.0,
    },
    "narration": {"chars_per_second": 17.0},
    "meditation": {"pattern": "default", "max_cycles": 5},
    "screen": {"default_text": "Hold to speak"},
}

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "EMO_LLM_URL": ("llm", "url"),
    "EMO_LLM_FORMAT": ("llm", "format"),
    "EMO_MODEL": ("llm", "model"),
}


def get_config(path: Path | None = None) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values and env."""
    load_dotenv(ROOT / ".env")
    config = copy.deepcopy(_CONFIG_DEFAULTS)
    path = path or DEFAULT_CONFIG_PATH
    if path.is_file():
        stored = json.loads(path.read_text())
        _merge(config, stored)
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            config[section][key] = value
    config["llm"]["api_key"] = os.getenv("ANTHROPIC_API_KEY", "")
    return config


def update_config(fields: dict[str, Any], path: Path | None = None) -> dict[str, Any]:
    """Merge fields into the stored config and persist. Returns full config."""
    path = path or DEFAULT_CONFIG_PATH
    stored: dict[str, Any] = {}
    if path.is_file():
        stored = json.loads(path.read_text())
    _merge(stored, fields)
    stored.get("llm", {}).pop("api_key", None)
    path.write_text(json.dumps(stored, indent=2))
    return get_config(path)


def public_config(config: dict[str, Any]) -> dict[str, Any]:
    """A copy of config safe to return over the API (no secrets)."""
    public = copy.deepcopy(config)
    public["llm"].pop("api_key", None)
    return public


def timings_from_config(config: dict[str, Any]) -> Timings:
    return Timings(**config["timings"])


def _merge(target: dict[str, Any], updates: dict[str, Any]) -> None:
    """Merge known sections one level deep; unknown sections are ignored."""
    for section, values in updates.items():
        if section not in _CONFIG_DEFAULTS or not isinstance(values, dict):
            continue
        target.setdefault(section, {}).update(values)
