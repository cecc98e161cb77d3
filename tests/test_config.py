"""Tests for specnorm.config -- XDG paths, config files, env vars, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from specnorm.config import (
    env_overrides,
    get_cache_dir,
    get_config_dir,
    load_config,
    load_global_config,
    load_project_config,
)
from specnorm.exceptions import ConfigError
from specnorm.exit_codes import EXIT_GENERIC_FAILURE
from specnorm.models import NormalizerConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write *data* as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specnorm.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "specnorm"
        assert not result.exists()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("specnorm.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "specnorm"

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("specnorm.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "specnorm"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specnorm.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".specnorm"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specnorm.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_cache_dir()
        assert result == tmp_path / ".specnorm" / "cache"
        assert result.is_dir()


# ---------------------------------------------------------------------------
# Config files
# ---------------------------------------------------------------------------


class TestConfigFiles:
    def test_missing_files_are_none(self, isolated_config: Path) -> None:
        assert load_global_config() is None
        assert load_project_config() is None

    def test_global_config(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "config" / "specnorm" / "config.json", {"fetch": {"timeout": 5}})
        assert load_global_config() == {"fetch": {"timeout": 5}}

    def test_project_config(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "specnorm.json", {"reject_graphql": True})
        assert load_project_config() == {"reject_graphql": True}

    def test_invalid_json_raises(self, isolated_config: Path) -> None:
        (isolated_config / "specnorm.json").write_text("{nope", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid project config") as exc_info:
            load_project_config()
        assert exc_info.value.exit_code == EXIT_GENERIC_FAILURE

    def test_non_object_raises(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "specnorm.json", [1, 2])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()


# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------


class TestEnvOverrides:
    def test_nested_fields(self) -> None:
        overrides = env_overrides(
            {
                "SPECNORM_FETCH_TIMEOUT": "2.5",
                "SPECNORM_CACHE_ENABLED": "true",
                "SPECNORM_REJECT_GRAPHQL": "1",
                "UNRELATED": "x",
            }
        )
        assert overrides == {
            "fetch": {"timeout": "2.5"},
            "cache": {"enabled": "true"},
            "reject_graphql": "1",
        }

    def test_empty_values_ignored(self) -> None:
        assert env_overrides({"SPECNORM_CACHE_DIR": ""}) == {}


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        assert load_config() == NormalizerConfig()

    def test_precedence(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(
            isolated_config / "config" / "specnorm" / "config.json",
            {"fetch": {"timeout": 1, "max_retries": 7, "max_documents": 3}},
        )
        _write_json(isolated_config / "specnorm.json", {"fetch": {"timeout": 2, "max_retries": 8}})
        monkeypatch.setenv("SPECNORM_FETCH_TIMEOUT", "3")

        config = load_config({"fetch": {"timeout": 4}})

        assert config.fetch.timeout == 4.0
        assert config.fetch.max_retries == 8
        assert config.fetch.max_documents == 3

    def test_env_coerced(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECNORM_CACHE_ENABLED", "true")
        monkeypatch.setenv("SPECNORM_CACHE_TTL", "60")

        config = load_config()

        assert config.cache.enabled is True
        assert config.cache.ttl_seconds == 60

    def test_invalid_value_raises(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECNORM_MAX_DOCUMENTS", "many")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config()
