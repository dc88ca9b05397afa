from __future__ import annotations

import logging
import os
from unittest import mock

import pytest

from src.boot.validate_env import seed_env_from_defaults, validate_critical_settings
from src.config import AppSettings, CloudflareSettings, TelegramSettings
from src.utils.errors import StartupError


def _settings(**overrides) -> AppSettings:
    cf = CloudflareSettings(
        api_token=overrides.get("api_token", "cf"), zone_id=overrides.get("zone_id", "zone")
    )
    tg = TelegramSettings(
        bot_token=overrides.get("bot_token", "bot"), chat_id=overrides.get("chat_id", "42")
    )
    return AppSettings(cloudflare=cf, telegram=tg, _env_file=None)  # type: ignore[call-arg]


def test_all_credentials_present(caplog) -> None:
    with caplog.at_level(logging.INFO):
        validate_critical_settings(_settings())
    assert "cloudflare_token=True" in caplog.text


def test_missing_credentials_are_listed() -> None:
    with pytest.raises(StartupError) as info:
        validate_critical_settings(_settings(api_token="", chat_id="  "))
    msg = str(info.value)
    assert msg.startswith("Missing required environment variables:")
    assert "CLOUDFLARE_API_TOKEN" in msg
    assert "TELEGRAM_CHAT_ID" in msg
    assert "CLOUDFLARE_ZONE_ID" not in msg


def test_seed_env_flattens_nested_keys(tmp_path) -> None:
    path = tmp_path / "defaults.yaml"
    path.write_text(
        "monitoring:\n  cpu_threshold: 90\n  cooldown_period: 45\nlog_level: DEBUG\n",
        encoding="utf-8",
    )
    with mock.patch.dict(os.environ, {"MONITORING__CPU_THRESHOLD": "70"}, clear=True):
        seed_env_from_defaults(str(path))
        assert os.environ["MONITORING__CPU_THRESHOLD"] == "70"
        assert os.environ["MONITORING__COOLDOWN_PERIOD"] == "45"
        assert os.environ["LOG_LEVEL"] == "DEBUG"


def test_seed_env_missing_file_is_noop(tmp_path) -> None:
    with mock.patch.dict(os.environ, {}, clear=True):
        seed_env_from_defaults(str(tmp_path / "absent.yaml"))
        assert dict(os.environ) == {}


def test_seed_env_ignores_bad_yaml(tmp_path, caplog) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("monitoring: [unclosed\n", encoding="utf-8")
    listy = tmp_path / "list.yaml"
    listy.write_text("- a\n- b\n", encoding="utf-8")
    with mock.patch.dict(os.environ, {}, clear=True):
        seed_env_from_defaults(str(bad))
        seed_env_from_defaults(str(listy))
        assert dict(os.environ) == {}
    assert "Failed loading" in caplog.text
    assert "top level must be a mapping" in caplog.text
