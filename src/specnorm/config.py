"""Configuration management with XDG paths and precedence resolution.

This module resolves the effective :class:`~specnorm.models.NormalizerConfig`
for a normalization run:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.specnorm/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **Global config** -- ``<config_dir>/config.json``.
* **Project config** -- ``./specnorm.json`` in the working directory.
* **Environment** -- ``SPECNORM_*`` variables (see :data:`ENV_VARIABLES`).
* **Precedence resolution** -- :func:`load_config` layers the sources above
  plus explicit overrides into the final configuration.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specnorm.exceptions import ConfigError
from specnorm.models import NormalizerConfig

logger = logging.getLogger(__name__)

_APP_NAME = "specnorm"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specnorm.json"

ENV_VARIABLES: dict[str, tuple[str, ...]] = {
    "SPECNORM_FETCH_TIMEOUT": ("fetch", "timeout"),
    "SPECNORM_FETCH_MAX_RETRIES": ("fetch", "max_retries"),
    "SPECNORM_MAX_DOCUMENTS": ("fetch", "max_documents"),
    "SPECNORM_CACHE_ENABLED": ("cache", "enabled"),
    "SPECNORM_CACHE_TTL": ("cache", "ttl_seconds"),
    "SPECNORM_CACHE_DIR": ("cache", "directory"),
    "SPECNORM_REJECT_GRAPHQL": ("reject_graphql",),
}
"""Environment variables and the config field each one sets."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/specnorm/`` (default ``~/.config/specnorm/``).
    On macOS/Windows: ``~/.specnorm/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return _fallback_base_dir()


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds fetched external documents.  Cached data can be safely deleted
    at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/specnorm/`` (default ``~/.cache/specnorm/``).
    On macOS/Windows: ``~/.specnorm/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Config sources ---


def _read_json(path: Path, label: str) -> Optional[dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} config at {path}: expected a JSON object")
    return data


def load_global_config() -> Optional[dict[str, Any]]:
    """Load ``<config_dir>/config.json``, or ``None`` if it does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    return _read_json(get_config_dir() / _CONFIG_FILENAME, "global")


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./specnorm.json``, or ``None`` if it does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    return _read_json(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project")


def env_overrides(environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """Collect ``SPECNORM_*`` variables into a nested config dict.

    Values stay strings; Pydantic coerces them (``"1"``/``"true"`` for
    booleans, numeric strings for numbers).
    """
    environ = dict(os.environ) if environ is None else environ
    overrides: dict[str, Any] = {}
    for var, field_path in ENV_VARIABLES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        target = overrides
        for key in field_path[:-1]:
            target = target.setdefault(key, {})
        target[field_path[-1]] = value
    return overrides


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def load_config(overrides: Optional[dict[str, Any]] = None) -> NormalizerConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. Explicit *overrides* (CLI flags, library callers)
        2. Environment variables (``SPECNORM_*``)
        3. Project config (``./specnorm.json``)
        4. User config (``~/.config/specnorm/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is unreadable or the merged result fails
            validation.
    """
    data: dict[str, Any] = {}
    for layer in (load_global_config(), load_project_config(), env_overrides(), overrides):
        if layer:
            data = _deep_merge(data, layer)

    try:
        config = NormalizerConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    logger.debug("Resolved configuration: %s", config.model_dump(mode="json"))
    return config
