from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest
from pydantic import ValidationError

from src.config import (
    AppSettings,
    CloudflareSettings,
    LoggingSettings,
    MonitoringSettings,
    env_any,
    load_settings,
)
from src.services.security_levels import SecurityLevel


def test_defaults_without_environment() -> None:
    with mock.patch.dict(os.environ, {}, clear=True):
        cfg = load_settings(env_file=None)
    assert cfg.monitoring == MonitoringSettings(
        cpu_threshold=80, high_cpu_duration=15, cooldown_period=60, monitoring_interval=5
    )
    assert cfg.cloudflare.default_security_level is SecurityLevel.MEDIUM
    assert cfg.cloudflare.request_timeout == 10.0
    assert cfg.cloudflare.retry_delay == 2.0
    assert cfg.telegram.retry_delay == 1.0
    assert cfg.logging.log_file_path == Path("./logs/monitor.log")
    assert cfg.health.enabled is False


def test_flat_legacy_names() -> None:
    env = {
        "CLOUDFLARE_API_TOKEN": "cf",
        "CLOUDFLARE_ZONE_ID": "zone",
        "CLOUDFLARE_DEFAULT_SECURITY_LEVEL": "high",
        "TELEGRAM_BOT_TOKEN": "bot",
        "TELEGRAM_CHAT_ID": "-100",
        "CPU_THRESHOLD": "90",
        "HIGH_CPU_DURATION": "30",
        "COOLDOWN_PERIOD": "120",
        "MONITORING_INTERVAL": "10",
        "LOG_LEVEL": "debug",
        "LOG_TO_FILE": "true",
        "LOG_FILE_PATH": "/var/log/guard.log",
        "LOG_FORMAT": "JSON",
    }
    with mock.patch.dict(os.environ, env, clear=True):
        cfg = load_settings(env_file=None)
    assert cfg.cloudflare.api_token == "cf"
    assert cfg.cloudflare.zone_id == "zone"
    assert cfg.cloudflare.default_security_level is SecurityLevel.HIGH
    assert cfg.telegram.chat_id == "-100"
    assert cfg.monitoring.cpu_threshold == 90
    assert cfg.monitoring.high_cpu_duration == 30
    assert cfg.monitoring.cooldown_period == 120
    assert cfg.monitoring.monitoring_interval == 10
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.log_to_file is True
    assert cfg.logging.log_file_path == Path("/var/log/guard.log")
    assert cfg.logging.format == "json"


def test_nested_names_win_over_flat() -> None:
    env = {"MONITORING__CPU_THRESHOLD": "70", "CPU_THRESHOLD": "90"}
    with mock.patch.dict(os.environ, env, clear=True):
        assert MonitoringSettings.from_env().cpu_threshold == 70


@pytest.mark.parametrize("raw", ["abc", "0", ""])
def test_invalid_or_zero_integers_fall_back(raw) -> None:
    with mock.patch.dict(os.environ, {"HIGH_CPU_DURATION": raw}, clear=True):
        assert MonitoringSettings.from_env().high_cpu_duration == 15


def test_threshold_out_of_range_rejected() -> None:
    with mock.patch.dict(os.environ, {"CPU_THRESHOLD": "150"}, clear=True):
        with pytest.raises(ValidationError):
            load_settings(env_file=None)


@pytest.mark.parametrize("level", ["under_attack", "panic"])
def test_bad_default_security_level_rejected(level) -> None:
    with mock.patch.dict(os.environ, {"CLOUDFLARE_DEFAULT_SECURITY_LEVEL": level}, clear=True):
        with pytest.raises(ValidationError):
            CloudflareSettings.from_env()


def test_logging_format_defaults_to_logfmt() -> None:
    with mock.patch.dict(os.environ, {"LOG_FORMAT": "xml"}, clear=True):
        assert LoggingSettings.from_env().format == "logfmt"


def test_env_file_values_do_not_override_environment(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("CPU_THRESHOLD=95\nCOOLDOWN_PERIOD=30\n", encoding="utf-8")
    with mock.patch.dict(os.environ, {"CPU_THRESHOLD": "85"}, clear=True):
        cfg = load_settings(env_file=str(env_file))
    assert cfg.monitoring.cpu_threshold == 85
    assert cfg.monitoring.cooldown_period == 30


def test_redacted_masks_credentials() -> None:
    cfg = AppSettings(
        cloudflare=CloudflareSettings(api_token="secret", zone_id="zone"),
        _env_file=None,
    )  # type: ignore[call-arg]
    snap = cfg.redacted()
    assert snap["cloudflare"]["api_token"] == "***"
    assert snap["cloudflare"]["zone_id"] == "zone"
    assert snap["telegram"]["bot_token"] == ""


def test_env_any_skips_empty_values() -> None:
    with mock.patch.dict(os.environ, {"A": "", "B": "b"}, clear=True):
        assert env_any("A", "B") == "b"
        assert env_any("C", default="d") == "d"
