"""Tests for settings, config.yaml loading and precedence."""

from pathlib import Path

import pytest
import yaml

from skir.config import (
    CONFIG_KEYS,
    Settings,
    _load_yaml_config,
    get_config_dir,
    get_config_path,
    get_settings,
    reload_settings,
    save_yaml_config,
)
from skir.core.errors import CacheDirectoryNotFound


class TestConfigLocation:
    def test_explicit_config_dir(self, config_dir):
        assert get_config_dir() == config_dir
        assert get_config_path() == config_dir / "config.yaml"

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv("SKIR_CONFIG_DIR")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

        assert get_config_path() == tmp_path / "xdg" / "skir" / "config.yaml"

    def test_home_fallback(self, monkeypatch, tmp_path):
        monkeypatch.delenv("SKIR_CONFIG_DIR")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert get_config_path() == tmp_path / ".config" / "skir" / "config.yaml"


class TestYamlConfig:
    def test_missing_file(self):
        assert _load_yaml_config() == {}

    def test_save_and_load_roundtrip(self, config_dir):
        path = save_yaml_config({"cache_dir": "/srv/skir", "git_timeout": 60.0})

        assert path == config_dir / "config.yaml"
        loaded = _load_yaml_config()
        assert loaded["cache_dir"] == "/srv/skir"
        assert loaded["git_timeout"] == 60.0

    def test_invalid_yaml_returns_empty(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("[ invalid yaml {{{")

        assert _load_yaml_config() == {}

    def test_non_dict_yaml_returns_empty(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("- just\n- a\n- list\n")

        assert _load_yaml_config() == {}

    def test_explicit_file(self, tmp_path):
        config_file = tmp_path / "other.yaml"
        config_file.write_text(yaml.safe_dump({"log_level": "DEBUG"}))

        assert _load_yaml_config(config_file) == {"log_level": "DEBUG"}

    def test_config_keys_are_settings_fields(self):
        assert CONFIG_KEYS <= set(Settings.model_fields)


class TestPrecedence:
    def test_defaults(self):
        settings = Settings()

        assert settings.status_display_seconds == 3.0
        assert settings.poll_interval == 0.1
        assert settings.git_timeout is None
        assert settings.link_targets == {}
        assert settings.log_level == "WARNING"

    def test_yaml_over_defaults(self, tmp_path):
        save_yaml_config({"cache_dir": str(tmp_path / "yaml-cache"), "status_display_seconds": 5})

        settings = Settings()

        assert settings.cache_dir == tmp_path / "yaml-cache"
        assert settings.status_display_seconds == 5.0

    def test_env_over_yaml(self, monkeypatch, tmp_path):
        save_yaml_config({"cache_dir": str(tmp_path / "yaml-cache")})
        monkeypatch.setenv("SKIR_CACHE_DIR", str(tmp_path / "env-cache"))

        assert Settings().cache_dir == tmp_path / "env-cache"

    def test_link_targets_from_yaml(self, tmp_path):
        save_yaml_config({"link_targets": {"cursor": str(tmp_path / "cursor")}})

        assert Settings().link_targets == {"cursor": tmp_path / "cursor"}

    def test_unknown_yaml_keys_ignored(self):
        save_yaml_config({"not_a_setting": 1})

        assert not hasattr(Settings(), "not_a_setting")


class TestDirectories:
    def test_default_cache_under_home(self, tmp_path):
        settings = Settings(home_dir=tmp_path)

        assert settings.home_directory() == tmp_path
        assert settings.repos_dir() == tmp_path / ".cache" / "skir" / "repos"

    def test_explicit_cache_dir(self, tmp_path):
        settings = Settings(cache_dir=tmp_path / "c")

        assert settings.repos_dir() == tmp_path / "c"

    def test_no_home(self, monkeypatch):
        def no_home():
            raise RuntimeError("Could not determine home directory.")

        monkeypatch.setattr(Path, "home", staticmethod(no_home))
        settings = Settings()

        assert settings.home_directory() is None
        with pytest.raises(CacheDirectoryNotFound):
            settings.repos_dir()


class TestGlobalSettings:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reload_settings(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("SKIR_LOG_LEVEL", "DEBUG")

        second = reload_settings()

        assert second is not first
        assert second.log_level == "DEBUG"
        assert get_settings() is second
