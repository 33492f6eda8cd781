# config.py
from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PROMPT = "pipesh $ "

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    prompt: str = DEFAULT_PROMPT
    debug: bool = False
    show_status: bool = True


def load_settings() -> Settings:
    """Read settings from PIPESH_* environment variables."""
    return Settings(
        prompt=os.environ.get("PIPESH_PROMPT", DEFAULT_PROMPT),
        debug=_flag("PIPESH_DEBUG", False),
        show_status=_flag("PIPESH_SHOW_STATUS", True),
    )
