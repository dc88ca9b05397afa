"""One-shot diagnostic: sample CPU, probe Cloudflare and Telegram, print config.

Usage::

    python -m src.scripts.check_connections [--env .env] [--notify]
"""

from __future__ import annotations

import argparse
import socket
from typing import Optional, Sequence

from pydantic import ValidationError

from src.config import AppSettings, load_settings
from src.monitors.sampler import CpuSampler
from src.notifications.messages import MessageContext
from src.notifications.telegram_notifier import TelegramNotifier
from src.services.cloudflare import CloudflareClient
from src.utils.errors import MonitorError


def _print_config(cfg: AppSettings) -> None:
    mon = cfg.monitoring
    print("Current Configuration:")
    print(f"   CPU Threshold: {mon.cpu_threshold}%")
    print(f"   High CPU Duration: {mon.high_cpu_duration}s")
    print(f"   Cooldown Period: {mon.cooldown_period}s")
    print(f"   Monitoring Interval: {mon.monitoring_interval}s")
    print(f"   Default Security Level: {cfg.cloudflare.default_security_level.value}")
    print(f"   Log Level: {cfg.logging.level}")
    print(f"   Log to File: {cfg.logging.log_to_file}\n")


def run_checks(
    cfg: AppSettings,
    *,
    sampler: Optional[CpuSampler] = None,
    cloudflare: Optional[CloudflareClient] = None,
    telegram: Optional[TelegramNotifier] = None,
    notify: bool = False,
) -> int:
    """Run every probe, print a report, return the process exit status."""

    print("Testing VPS CPU Monitor Connections...\n")

    print("1. Testing CPU Monitoring...")
    cpu_usage: Optional[int] = None
    try:
        cpu_usage = (sampler or CpuSampler()).current_load()
        print(f"   OK: {cpu_usage}% usage detected\n")
    except MonitorError as exc:
        print(f"   FAILED: {exc}\n")

    print("2. Testing Cloudflare API...")
    cf_ok = False
    try:
        cloudflare = cloudflare or CloudflareClient(cfg.cloudflare)
        cf_ok = cloudflare.test_connection()
        if cf_ok:
            print(f"   OK: connected (current level: {cloudflare.get().value})\n")
        else:
            print("   FAILED: connection failed\n")
    except (MonitorError, ValueError) as exc:
        cf_ok = False
        print(f"   FAILED: {exc}\n")

    print("3. Testing Telegram API...")
    tg_ok = False
    try:
        telegram = telegram or TelegramNotifier(
            cfg.telegram,
            MessageContext(
                monitoring=cfg.monitoring,
                default_security_level=cfg.cloudflare.default_security_level,
                server_name=socket.gethostname(),
            ),
        )
        tg_ok = telegram.test_connection()
        print("   OK: connected\n" if tg_ok else "   FAILED: connection failed\n")
    except ValueError as exc:
        print(f"   FAILED: {exc}\n")

    if notify and tg_ok and telegram is not None:
        print("4. Testing Telegram Notification...")
        try:
            telegram.send("status_update", {"cpu_usage": cpu_usage, "status": "test"})
            print("   OK: test message sent\n")
        except MonitorError as exc:
            print(f"   FAILED: {exc}\n")

    _print_config(cfg)

    if cf_ok and tg_ok:
        print("Ready to start monitoring!")
        return 0
    print("Some connections failed. Please check your configuration.")
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument("--env", default=".env", help="dotenv file to load first")
    ap.add_argument("--notify", action="store_true", help="also send a test status message")
    args = ap.parse_args(argv)

    try:
        cfg = load_settings(env_file=args.env)
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}")
        return 1
    return run_checks(cfg, notify=args.notify)


if __name__ == "__main__":
    raise SystemExit(main())
