"""
Configuration management for skir.

Precedence: env vars (SKIR_*) > config.yaml > defaults

Config file: $SKIR_CONFIG_DIR/config.yaml, else $XDG_CONFIG_HOME/skir/config.yaml,
else ~/.config/skir/config.yaml
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from skir.core.errors import CacheDirectoryNotFound

logger = logging.getLogger(__name__)

ENV_PREFIX = "SKIR_"

# Known config keys that can be set via `skir config set`
CONFIG_KEYS = {
    "home_dir", "cache_dir", "status_display_seconds", "poll_interval",
    "git_timeout", "log_level", "log_file",
}


def get_config_dir() -> Path:
    """Resolve the directory holding config.yaml."""
    override = os.environ.get(f"{ENV_PREFIX}CONFIG_DIR", "")
    if override:
        return Path(override).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg).expanduser() / "skir"
    return Path.home() / ".config" / "skir"


def get_config_path() -> Path:
    """Get the config.yaml path."""
    return get_config_dir() / "config.yaml"


def _load_yaml_config(config_file: Optional[Path] = None) -> dict[str, Any]:
    """Load config.yaml. Missing or malformed files yield an empty dict."""
    config_file = config_file or get_config_path()
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"config.yaml is not a dict, ignoring: {config_file}")
            return {}
        return data
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Error loading config.yaml: {e}")
        return {}


def save_yaml_config(data: dict[str, Any], config_file: Optional[Path] = None) -> Path:
    """Write config values to config.yaml."""
    config_file = config_file or get_config_path()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return config_file


class Settings(BaseSettings):
    """skir configuration. Precedence: env vars > config.yaml > defaults."""

    # Paths
    home_dir: Optional[Path] = Field(
        default=None,
        description="Home directory used to derive defaults (defaults to the user's home)",
    )
    cache_dir: Optional[Path] = Field(
        default=None,
        description="Plugin cache root (defaults to <home>/.cache/skir/repos)",
    )
    link_targets: dict[str, Path] = Field(
        default_factory=dict,
        description="Link target directory overrides or additions, keyed by target name",
    )

    # Behaviour
    status_display_seconds: float = Field(
        default=3.0,
        description="How long finished status messages stay visible",
    )
    poll_interval: float = Field(
        default=0.1,
        description="Seconds between job polls while waiting on background work",
    )
    git_timeout: Optional[float] = Field(
        default=None,
        description="Timeout for git clone/pull in seconds (None waits indefinitely)",
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")

    model_config = {
        "env_prefix": ENV_PREFIX,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject config.yaml values as fallbacks below env vars."""
        if not isinstance(data, dict):
            data = {}

        try:
            yaml_config = _load_yaml_config()
        except RuntimeError:
            # No home directory to find the config file in
            yaml_config = {}

        for key, value in yaml_config.items():
            if key not in data or data[key] is None:
                env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
                if env_val is None:
                    data[key] = value

        return data

    def home_directory(self) -> Optional[Path]:
        """The configured or detected home directory, or None if unresolvable."""
        if self.home_dir:
            return self.home_dir.expanduser()
        try:
            return Path.home()
        except RuntimeError:
            return None

    def repos_dir(self) -> Path:
        """Plugin cache root.

        Raises:
            CacheDirectoryNotFound: If no cache_dir is set and home is unknown
        """
        if self.cache_dir:
            return self.cache_dir.expanduser()
        home = self.home_directory()
        if home is None:
            raise CacheDirectoryNotFound()
        return home / ".cache" / "skir" / "repos"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment and config file."""
    global _settings
    _settings = Settings()
    return _settings
