"""Global pytest fixtures and environment configuration."""

from __future__ import annotations

import os

import pytest

# Keep a developer's real .env / exported credentials from leaking into tests
# that build settings from the environment.
for _name in (
    "CLOUDFLARE_API_TOKEN",
    "CLOUDFLARE_ZONE_ID",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "CPU_THRESHOLD",
    "HIGH_CPU_DURATION",
    "COOLDOWN_PERIOD",
    "MONITORING_INTERVAL",
    "HEALTH__ENABLED",
):
    os.environ.pop(_name, None)


@pytest.fixture(autouse=True)
def _no_retry_sleep(monkeypatch):
    """Retries in API clients must not slow the suite down."""
    from src.utils import retry as retry_mod

    sleeps: list[float] = []
    monkeypatch.setattr(retry_mod.time, "sleep", lambda s: sleeps.append(s))
    return sleeps
