"""Tests for configuration loading."""

from __future__ import annotations

from reporter.config import AppConfig, load_config


def test_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config == AppConfig()
    assert config.sync.tick_seconds == 30.0
    assert config.sync.ack_delay_seconds == 1.2
    assert config.privacy.default_blur_m == 500


def test_yaml_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "storage:\n"
        "  backend: memory\n"
        "sync:\n"
        "  tick_seconds: 10\n"
        "  unknown_key: 1\n"
        "logging:\n"
        "  format: json\n"
    )
    config = load_config(path)
    assert config.storage.backend == "memory"
    assert config.sync.tick_seconds == 10
    assert not hasattr(config.sync, "unknown_key")
    assert config.logging.format == "json"


def test_env_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  port: 9000\n")
    monkeypatch.setenv("REPORTER_API_PORT", "9100")
    monkeypatch.setenv("REPORTER_SYNC_AUTO_ON_RECONNECT", "false")
    monkeypatch.setenv("REPORTER_LOCATION_FIX_TIMEOUT", "20")
    config = load_config(path)
    assert config.api.port == 9100
    assert config.sync.auto_sync_on_reconnect is False
    assert config.location.fix_timeout_seconds == 20.0
