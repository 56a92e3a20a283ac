"""Configuration loading for pcancellable."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv

from pcancellable.errors import ConfigurationError

ENV_PREFIX = "PCANCELLABLE_"
CONFIG_PATH_ENV = f"{ENV_PREFIX}CONFIG"
DEFAULT_CONFIG_FILE = "pcancellable.yaml"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


@dataclass(slots=True)
class CancellableConfig:
    """Merged configuration from all sources.

    Priority: overrides > env vars > YAML config file > defaults
    """

    # Initial throw-on-cancel flag of every new node
    throw_on_cancel: bool = False

    # Logging
    debug: bool = False
    json_logs: bool = False


_active: CancellableConfig | None = None


def parse_bool(value: Any, *, key: str) -> bool:
    """Coerce a config value to bool, rejecting anything ambiguous."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid boolean for {key}: {value!r}", key=key)


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file, returning empty dict if not found."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed config file {path}: {exc}") from exc
    except OSError:
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    # Allow the settings to live under a top-level "pcancellable" key
    section = data.get("pcancellable", data)
    return section if isinstance(section, dict) else {}


def load_config(
    *,
    overrides: dict[str, Any] | None = None,
    config_path: str | Path | None = None,
    dotenv: bool = True,
) -> CancellableConfig:
    """Load configuration from all sources with proper priority.

    Priority: overrides > env vars > YAML config file > defaults

    With ``dotenv`` the nearest ``.env`` file is loaded into ``os.environ``
    first; only explicit calls should ask for that.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))
    config = CancellableConfig()

    # 1. YAML file
    path_value = config_path or os.environ.get(CONFIG_PATH_ENV)
    path = Path(path_value) if path_value else Path.cwd() / DEFAULT_CONFIG_FILE
    _apply_dict(config, load_yaml_config(path))

    # 2. Environment variables
    env_values: dict[str, Any] = {}
    for name in ("throw_on_cancel", "debug", "json_logs"):
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            env_values[name] = raw
    _apply_dict(config, env_values)

    # 3. Explicit overrides (highest priority)
    _apply_dict(config, overrides or {})

    return config


def get_config() -> CancellableConfig:
    """Return the process-wide config, loading it on first use.

    The lazy load reads env vars and the YAML file but never a ``.env`` file.
    """
    global _active
    if _active is None:
        _active = load_config(dotenv=False)
    return _active


def set_config(config: CancellableConfig | None = None, **changes: Any) -> CancellableConfig:
    """Install ``config`` (or the current one with ``changes``) as active.

    Passing nothing resets to a fresh load on next ``get_config()``.
    """
    global _active
    if config is None and not changes:
        _active = None
        return get_config()
    base = config if config is not None else get_config()
    if changes:
        updated = replace(base)
        _apply_dict(updated, changes)
        base = updated
    _active = base
    return base


def _apply_dict(config: CancellableConfig, data: dict[str, Any]) -> None:
    """Apply dictionary values to config, only for known fields."""
    field_map = {
        "throw_on_cancel": "throw_on_cancel",
        "debug": "debug",
        "json_logs": "json_logs",
        # Aliases
        "throwOnCancel": "throw_on_cancel",
        "jsonLogs": "json_logs",
    }
    for key, attr in field_map.items():
        if key in data and data[key] is not None:
            setattr(config, attr, parse_bool(data[key], key=attr))
