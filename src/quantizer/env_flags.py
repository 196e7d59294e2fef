"""Environment variables read by the CLI."""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

CONFIG_ENV_VAR = "QUANTIZER_CONFIG"
DEBUG_ENV_VAR = "QUANTIZER_DEBUG"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def env_flag_enabled(value: Any) -> bool:
    """Return ``True`` when *value* represents an enabled environment flag."""
    if value is None:
        return False
    if isinstance(value, bytes):
        text = value.decode(errors="ignore")
    else:
        text = str(value)
    return text.strip().lower() in _TRUE_VALUES


def debug_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return whether ``QUANTIZER_DEBUG`` asks for debug logging."""

    env = os.environ if environ is None else environ
    return env_flag_enabled(env.get(DEBUG_ENV_VAR))


def config_override(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the config path named by ``QUANTIZER_CONFIG``, ignoring blank values."""

    env = os.environ if environ is None else environ
    value = env.get(CONFIG_ENV_VAR, "").strip()
    return value or None


__all__ = ["CONFIG_ENV_VAR", "DEBUG_ENV_VAR", "env_flag_enabled", "debug_enabled", "config_override"]
