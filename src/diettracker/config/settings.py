"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".diettracker"


def _default_db_path() -> Path:
    """Return the default database path."""
    return _default_config_dir() / "diettracker.db"


@dataclass
class StorageConfig:
    """Durable snapshot storage configuration."""

    path: Path = field(default_factory=_default_db_path)
    state_key: str = "diet-tracker-app-state-v1"


@dataclass
class MomentumConfig:
    """Momentum scorer defaults."""

    window_days: int = 5
    max_lookback_days: int = 60


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class Settings:
    """Main application settings."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    momentum: MomentumConfig = field(default_factory=MomentumConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.diettracker/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse storage config
        if "storage" in data:
            storage_data = data["storage"] or {}
            if "path" in storage_data:
                settings.storage.path = Path(storage_data["path"]).expanduser()
            if "state_key" in storage_data:
                settings.storage.state_key = str(storage_data["state_key"])

        # Parse momentum config
        if "momentum" in data:
            momentum_data = data["momentum"] or {}
            if "window_days" in momentum_data:
                settings.momentum.window_days = int(momentum_data["window_days"])
            if "max_lookback_days" in momentum_data:
                settings.momentum.max_lookback_days = int(
                    momentum_data["max_lookback_days"]
                )

        # Parse logging config
        if "logging" in data:
            logging_data = data["logging"] or {}
            if "level" in logging_data:
                settings.logging.level = str(logging_data["level"]).upper()

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.diettracker/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "storage": {
                "path": str(self.storage.path),
                "state_key": self.storage.state_key,
            },
            "momentum": {
                "window_days": self.momentum.window_days,
                "max_lookback_days": self.momentum.max_lookback_days,
            },
            "logging": {
                "level": self.logging.level,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load()
    return _settings
