"""Reporter configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: REPORTER_<SECTION>_<KEY> (uppercase).

These are process settings. The observer's own settings (authority contact,
safe-upload policy) are persisted by the PersistenceStore instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ApiConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class StorageConfig:
    backend: str = "file"  # "file" or "memory"
    base_dir: str = "data"
    media_dir: str = "data/media"
    reports_key: str = "reports"
    settings_key: str = "settings"


@dataclass
class SyncConfig:
    tick_seconds: float = 30.0
    ack_delay_seconds: float = 1.2
    auto_sync_on_reconnect: bool = True


@dataclass
class LocationConfig:
    fix_timeout_seconds: float = 15.0


@dataclass
class PrivacyConfig:
    default_blur_m: int = 500
    image_max_dimension: int = 1600
    message_max_description: int = 140


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    privacy: PrivacyConfig = field(default_factory=PrivacyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "REPORTER_API_HOST": lambda v: setattr(config.api, "host", v),
        "REPORTER_API_PORT": lambda v: setattr(config.api, "port", int(v)),
        "REPORTER_API_ENV": lambda v: setattr(config.api, "env", v),
        "REPORTER_STORAGE_BACKEND": lambda v: setattr(config.storage, "backend", v),
        "REPORTER_STORAGE_BASE_DIR": lambda v: setattr(config.storage, "base_dir", v),
        "REPORTER_STORAGE_MEDIA_DIR": lambda v: setattr(config.storage, "media_dir", v),
        "REPORTER_SYNC_TICK_SECONDS": lambda v: setattr(config.sync, "tick_seconds", float(v)),
        "REPORTER_SYNC_ACK_DELAY": lambda v: setattr(config.sync, "ack_delay_seconds", float(v)),
        "REPORTER_SYNC_AUTO_ON_RECONNECT": lambda v: setattr(config.sync, "auto_sync_on_reconnect", _parse_bool(v)),
        "REPORTER_LOCATION_FIX_TIMEOUT": lambda v: setattr(config.location, "fix_timeout_seconds", float(v)),
        "REPORTER_PRIVACY_DEFAULT_BLUR_M": lambda v: setattr(config.privacy, "default_blur_m", int(v)),
        "REPORTER_PRIVACY_IMAGE_MAX_DIM": lambda v: setattr(config.privacy, "image_max_dimension", int(v)),
        "REPORTER_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "REPORTER_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in ("api", "storage", "sync", "location", "privacy", "logging"):
            target = getattr(config, section)
            for k, v in (raw.get(section) or {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
