"""
Hierarchical configuration management.

Loads configuration from multiple sources with this precedence (highest wins):
    1. Environment variables (FITBRIDGE_SECTION__KEY)
    2. Config file (YAML or JSON)
    3. Built-in defaults

Usage:
    config = Config(config_file="~/.fitbridge/config.yaml")

    config.get("export.path")         # dot-notation access
    config.get("upload.chunk_size")   # 100 unless overridden

    settings = SyncSettings.from_config(config)
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .exceptions import ConfigurationError

_DEFAULT_ENV_PREFIX = "FITBRIDGE_"
_DEFAULT_DATA_DIR_NAME = ".fitbridge"

DEFAULT_CHUNK_SIZE = 100

FITNESS_WRITE_SCOPES = [
    "https://www.googleapis.com/auth/fitness.body.write",
    "https://www.googleapis.com/auth/fitness.activity.write",
    "https://www.googleapis.com/auth/fitness.sleep.write",
    "https://www.googleapis.com/auth/fitness.heart_rate.write",
    "https://www.googleapis.com/auth/fitness.location.write",
    "https://www.googleapis.com/auth/fitness.oxygen_saturation.write",
]


class Config:
    """
    Central configuration manager.

    Loads and merges configuration from defaults, a config file, and
    environment variables. Env vars use double-underscore to denote nesting:
    FITBRIDGE_UPLOAD__CHUNK_SIZE=50 -> config["upload"]["chunk_size"] = "50"
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to YAML or JSON configuration file.
            env_prefix: Prefix for environment variable overrides.
            data_dir: Base directory for tokens and logs. Defaults to ~/.fitbridge.
            defaults: Additional default values to merge.
        """
        self.config_file = os.path.expanduser(config_file) if config_file else None
        self.env_prefix = env_prefix or ""
        self._data_dir = data_dir or os.path.join("~", _DEFAULT_DATA_DIR_NAME)
        self._extra_defaults = defaults or {}
        self.config_data: dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from all sources."""
        self.config_data = self._get_default_config()

        if self._extra_defaults:
            self._update_dict(self.config_data, self._extra_defaults)

        if self.config_file and os.path.exists(self.config_file):
            file_config = self._load_file(self.config_file)
            self._update_dict(self.config_data, file_config)

        # Env vars override everything
        self._load_from_env()

    def _get_default_config(self) -> dict[str, Any]:
        data_dir = os.path.expanduser(self._data_dir)
        return {
            "paths": {
                "data_dir": data_dir,
                "log_dir": os.path.join(data_dir, "logs"),
            },
            "export": {
                "path": "",
            },
            "upload": {
                "chunk_size": DEFAULT_CHUNK_SIZE,
            },
            "google": {
                "client_secrets_path": os.path.join(data_dir, "client_secret.json"),
                "token_path": os.path.join(data_dir, "token.pkl"),
                "scopes": list(FITNESS_WRITE_SCOPES),
                "application_name": "AppleHealthSyncer",
            },
            "logging": {
                "level": "INFO",
                "file": "",
            },
        }

    @staticmethod
    def _load_file(path: str) -> dict[str, Any]:
        """Load a YAML or JSON config file."""
        ext = os.path.splitext(path)[1].lower()
        with open(path) as f:
            if ext in (".yaml", ".yml"):
                return yaml.safe_load(f) or {}
            elif ext == ".json":
                return json.load(f)
        return {}

    def _update_dict(self, target: dict, source: dict) -> None:
        """Recursively merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _load_from_env(self) -> None:
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(self.env_prefix):
                continue
            config_key = env_key[len(self.env_prefix) :].lower()
            key_parts = config_key.split("__")

            current = self.config_data
            for part in key_parts[:-1]:
                if part not in current or not isinstance(current[part], dict):
                    current[part] = {}
                current = current[part]
            current[key_parts[-1]] = env_value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "export.path", "google.token_path"
            default: Returned when key is not found.
        """
        parts = key_path.split(".")
        current = self.config_data
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate dicts."""
        parts = key_path.split(".")
        current = self.config_data
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def ensure_directories(self) -> None:
        """Create all configured directories if they don't exist."""
        for path_value in self.config_data.get("paths", {}).values():
            if isinstance(path_value, str):
                os.makedirs(os.path.expanduser(path_value), exist_ok=True)


@dataclass
class SyncSettings:
    """The fixed record a sync run receives at start."""

    export_path: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    scopes: list[str] = field(default_factory=lambda: list(FITNESS_WRITE_SCOPES))

    @classmethod
    def from_config(cls, config: Config) -> "SyncSettings":
        raw_chunk = config.get("upload.chunk_size", DEFAULT_CHUNK_SIZE)
        try:
            chunk_size = int(raw_chunk)
        except (TypeError, ValueError):
            raise ConfigurationError(f"upload.chunk_size must be an integer, got {raw_chunk!r}")
        if chunk_size <= 0:
            raise ConfigurationError(f"upload.chunk_size must be positive, got {chunk_size}")

        scopes = config.get("google.scopes") or list(FITNESS_WRITE_SCOPES)
        if isinstance(scopes, str):
            scopes = [s.strip() for s in scopes.split(",") if s.strip()]

        export_path = config.get("export.path", "") or ""
        return cls(export_path=os.path.expanduser(export_path), chunk_size=chunk_size, scopes=list(scopes))


# Module-level singleton
_config_instance: Config | None = None


def get_config(
    config_file: str | None = None,
    env_prefix: str = _DEFAULT_ENV_PREFIX,
    data_dir: str | None = None,
) -> Config:
    """Get or create the global Config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _config_instance


def reset_config() -> None:
    """Reset the global Config singleton (useful for testing)."""
    global _config_instance
    _config_instance = None
