from __future__ import annotations

import re

from freezegun import freeze_time

from src.config import MonitoringSettings
from src.notifications.messages import MessageContext, NotificationKind, format_message
from src.services.security_levels import SecurityLevel

CTX = MessageContext(
    monitoring=MonitoringSettings(
        cpu_threshold=85, high_cpu_duration=20, cooldown_period=90, monitoring_interval=5
    ),
    default_security_level=SecurityLevel.ESSENTIALLY_OFF,
    server_name="edge-01",
)


@freeze_time("2024-05-01 12:30:45.123456")
def test_enabled_message() -> None:
    text = format_message(
        NotificationKind.UNDER_ATTACK_ENABLED, {"cpu_usage": 97, "duration": 21.04}, CTX
    )
    assert text.startswith("\U0001F6A8 *VPS UNDER ATTACK MODE ENABLED*")
    assert "*Server:* edge-01" in text
    assert "*CPU Usage:* 97%" in text
    assert "*Duration:* 21.0s" in text
    assert "*Threshold:* 85%" in text
    assert "*Time:* 2024-05-01T12:30:45.123Z" in text


def test_disabled_message_names_default_level() -> None:
    text = format_message("under_attack_disabled", {"cpu_usage": 12, "duration": 90}, CTX)
    assert "*Cooldown Period:* 90.0s" in text
    assert 'restored to "essentially off"' in text


def test_startup_message_reflects_remote_level() -> None:
    normal = format_message("startup", {"current_security_level": "medium"}, CTX)
    assert "*Status:* NORMAL" in normal
    assert "*Current Cloudflare Level:* medium" in normal
    assert "*Cooldown Period:* 90s" in normal

    attacked = format_message("startup", {"current_security_level": "under_attack"}, CTX)
    assert attacked.startswith("\U0001F6A8")
    assert "*Status:* UNDER ATTACK" in attacked
    assert "*Current Cloudflare Level:* under attack" in attacked


def test_error_and_status_messages() -> None:
    assert "*Error:* timeout" in format_message("error", {"error": "timeout"}, CTX)
    status = format_message("status_update", {"cpu_usage": 40, "status": "normal"}, CTX)
    assert "*Status:* normal" in status


def test_unknown_kind_falls_back_to_info() -> None:
    text = format_message("something_else", {"message": "hello"}, CTX)
    assert text.startswith("ℹ️ *VPS Monitor Notification*")
    assert "*Message:* hello" in text


def test_missing_duration_renders_placeholder() -> None:
    text = format_message("under_attack_enabled", {"cpu_usage": 90}, CTX)
    assert "*Duration:* -" in text


def _unescaped(text: str, ch: str) -> list[int]:
    return [m.start() for m in re.finditer(rf"(?<!\\){re.escape(ch)}", text)]


def test_error_text_is_markdown_escaped() -> None:
    err = (
        "Cloudflare API request failed after 3 attempts: HTTPSConnectionPool: "
        "/client/v4/zones/abc/settings/security_level"
    )
    text = format_message("error", {"error": err}, CTX)
    assert "settings/security\\_level" in text
    assert _unescaped(text, "_") == []


def test_server_name_is_markdown_escaped() -> None:
    ctx = MessageContext(
        monitoring=CTX.monitoring,
        default_security_level=SecurityLevel.MEDIUM,
        server_name="edge_01*`[eu",
    )
    text = format_message("under_attack_enabled", {"cpu_usage": 91, "duration": 15}, ctx)
    assert "*Server:* edge\\_01\\*\\`\\[eu" in text
    assert _unescaped(text, "_") == []
    assert _unescaped(text, "`") == []
