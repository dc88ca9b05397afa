"""Message templates for operator notifications (Telegram Markdown)."""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from src.config import MonitoringSettings
from src.services.security_levels import SecurityLevel


class NotificationKind(str, Enum):
    UNDER_ATTACK_ENABLED = "under_attack_enabled"
    UNDER_ATTACK_DISABLED = "under_attack_disabled"
    STATUS_UPDATE = "status_update"
    ERROR = "error"
    STARTUP = "startup"
    INFO = "info"


@dataclass(frozen=True)
class MessageContext:
    """Static facts rendered into every message."""

    monitoring: MonitoringSettings
    default_security_level: SecurityLevel
    server_name: str = field(default_factory=socket.gethostname)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _duration(value: Any) -> str:
    try:
        return f"{float(value):.1f}s"
    except (TypeError, ValueError):
        return "-"


_MD_SPECIAL = "_*`["


def _md(value: Any) -> str:
    """Escape legacy Telegram Markdown control characters in ``value``."""
    return "".join("\\" + ch if ch in _MD_SPECIAL else ch for ch in str(value))


def _label(level: Any) -> str:
    if level is None:
        return "unknown"
    if isinstance(level, SecurityLevel):
        return level.label
    return str(level).replace("_", " ")


def format_message(
    kind: NotificationKind | str, payload: Mapping[str, Any], ctx: MessageContext
) -> str:
    """Render ``payload`` for ``kind``; unknown kinds get the generic template."""

    try:
        kind = NotificationKind(kind)
    except ValueError:
        kind = NotificationKind.INFO
    ts = _timestamp()
    server = _md(ctx.server_name)
    mon = ctx.monitoring

    if kind is NotificationKind.UNDER_ATTACK_ENABLED:
        return (
            "\U0001F6A8 *VPS UNDER ATTACK MODE ENABLED* \U0001F6A8\n\n"
            f"*Server:* {server}\n"
            f"*CPU Usage:* {_md(payload.get('cpu_usage'))}%\n"
            f"*Duration:* {_duration(payload.get('duration'))}\n"
            f"*Threshold:* {mon.cpu_threshold}%\n"
            f"*Time:* {ts}\n\n"
            'Cloudflare security level set to "Under Attack" mode.'
        )

    if kind is NotificationKind.UNDER_ATTACK_DISABLED:
        return (
            "✅ *VPS UNDER ATTACK MODE DISABLED* ✅\n\n"
            f"*Server:* {server}\n"
            f"*CPU Usage:* {_md(payload.get('cpu_usage'))}%\n"
            f"*Cooldown Period:* {_duration(payload.get('duration'))}\n"
            f"*Time:* {ts}\n\n"
            f'Cloudflare security level restored to "{ctx.default_security_level.label}".'
        )

    if kind is NotificationKind.STATUS_UPDATE:
        return (
            "\U0001F4CA *VPS Status Update*\n\n"
            f"*Server:* {server}\n"
            f"*CPU Usage:* {_md(payload.get('cpu_usage'))}%\n"
            f"*Status:* {_md(payload.get('status'))}\n"
            f"*Time:* {ts}"
        )

    if kind is NotificationKind.ERROR:
        return (
            "❌ *VPS Monitor Error*\n\n"
            f"*Server:* {server}\n"
            f"*Error:* {_md(payload.get('error'))}\n"
            f"*Time:* {ts}"
        )

    if kind is NotificationKind.STARTUP:
        current = payload.get("current_security_level")
        attacked = current in (SecurityLevel.UNDER_ATTACK, SecurityLevel.UNDER_ATTACK.value)
        icon = "\U0001F6A8" if attacked else "✅"
        return (
            f"{icon} *VPS Monitor Started* {icon}\n\n"
            f"*Server:* {server}\n"
            f"*Current Cloudflare Level:* {_md(_label(current))}\n"
            f"*Status:* {'UNDER ATTACK' if attacked else 'NORMAL'}\n"
            f"*CPU Threshold:* {mon.cpu_threshold}%\n"
            f"*High CPU Duration:* {mon.high_cpu_duration}s\n"
            f"*Cooldown Period:* {mon.cooldown_period}s\n"
            f"*Default Security Level:* {ctx.default_security_level.label}\n"
            f"*Monitoring Interval:* {mon.monitoring_interval}s\n"
            f"*Time:* {ts}"
        )

    return (
        "ℹ️ *VPS Monitor Notification*\n\n"
        f"*Server:* {server}\n"
        f"*Message:* {_md(payload.get('message'))}\n"
        f"*Time:* {ts}"
    )


__all__ = ["NotificationKind", "MessageContext", "format_message"]
