"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import tomllib
from dataclasses import fields, is_dataclass
from typing import Any, Dict

from .datatypes import AppConfig, CLIConfig, DetectConfig, LoggingConfig, ScanConfig

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _sanitize_section(raw: dict[str, Any], name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls`` with cleaned booleans.

    Parameters:
        raw (dict[str, Any]): Raw TOML section data.
        name (str): Section name used when reporting validation errors.
        cls: Dataclass type used to construct the section object.

    Returns:
        Any: Instantiated dataclass populated with values from ``raw``.

    Raises:
        ConfigError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {
        name for name, field in cls_fields.items() if field.type in (bool, "bool")
    }
    nested_fields = {
        name: field.type
        for name, field in cls_fields.items()
        if is_dataclass(field.type)
    }
    for key, value in raw.items():
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in nested_fields:
            if not isinstance(value, dict):
                raise ConfigError(f"[{name}.{key}] must be a table")
            cleaned[key] = _sanitize_section(value, f"{name}.{key}", nested_fields[key])
        else:
            cleaned[key] = value
    try:
        return cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc


def _validate(app: AppConfig) -> None:
    """Check cross-field rules and normalise values in place."""

    distance = app.detect.distance
    if isinstance(distance, bool) or not isinstance(distance, int):
        raise ConfigError("detect.distance must be an integer")
    if distance < 0:
        raise ConfigError("detect.distance must be >= 0")

    template = app.scan.layer_name_template
    if not isinstance(template, str) or "{number}" not in template:
        raise ConfigError("scan.layer_name_template must be a string containing {number}")
    try:
        template.format(number=1)
    except (KeyError, IndexError, ValueError) as exc:
        raise ConfigError(f"scan.layer_name_template is not a valid template: {exc}") from exc

    wrappers = app.scan.wrapper_effect_names
    if not isinstance(wrappers, list) or not all(isinstance(name, str) and name for name in wrappers):
        raise ConfigError("scan.wrapper_effect_names must be a list of non-empty strings")

    level = str(app.logging.level).strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigError("logging.level must be one of DEBUG, INFO, WARNING, ERROR")
    app.logging.level = level


def config_from_mapping(raw: Dict[str, Any]) -> AppConfig:
    """Build a validated :class:`AppConfig` from an already-decoded TOML mapping."""

    known = {"detect", "scan", "cli", "logging"}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown)}")
    app = AppConfig(
        detect=_sanitize_section(raw.get("detect", {}), "detect", DetectConfig),
        scan=_sanitize_section(raw.get("scan", {}), "scan", ScanConfig),
        cli=_sanitize_section(raw.get("cli", {}), "cli", CLIConfig),
        logging=_sanitize_section(raw.get("logging", {}), "logging", LoggingConfig),
    )
    _validate(app)
    return app


def load_config(path: str) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    The file must be UTF-8 (a BOM is accepted). Missing sections fall back to
    their dataclass defaults.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ConfigError: If the file is not UTF-8, TOML parsing fails, or any validation rule is violated.
    """

    with open(path, "rb") as handle:
        raw_bytes = handle.read()
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc
    return config_from_mapping(raw)
