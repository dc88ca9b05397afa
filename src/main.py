# Path: src/main.py
from __future__ import annotations

import logging
import os
import signal
import socket
import threading
from datetime import datetime, timezone

from dotenv import load_dotenv
from pydantic import ValidationError

from src.boot.validate_env import seed_env_from_defaults, validate_critical_settings
from src.config import AppSettings, LoggingSettings, load_settings
from src.monitors.orchestrator import AttackModeOrchestrator
from src.monitors.sampler import CpuSampler
from src.notifications.messages import MessageContext
from src.notifications.telegram_notifier import TelegramNotifier
from src.server import health
from src.server.logging_setup import log_event, setup_root_logger
from src.services.cloudflare import CloudflareClient
from src.utils.errors import StartupError

SHUTDOWN_GRACE_S = 30.0


def _prime_environment(env_file: str = ".env", defaults: str = "config/defaults.yaml") -> None:
    """Load ``.env``, then fill still-unset variables from the YAML defaults."""
    load_dotenv(env_file, override=False)
    seed_env_from_defaults(defaults)


def build_orchestrator(cfg: AppSettings) -> AttackModeOrchestrator:
    """Wire the real sampler and API clients into an orchestrator."""
    ctx = MessageContext(
        monitoring=cfg.monitoring,
        default_security_level=cfg.cloudflare.default_security_level,
        server_name=socket.gethostname(),
    )
    return AttackModeOrchestrator(
        sampler=CpuSampler(),
        security_client=CloudflareClient(cfg.cloudflare),
        notifier=TelegramNotifier(cfg.telegram, ctx),
        monitoring=cfg.monitoring,
        default_security_level=cfg.cloudflare.default_security_level,
        logger=logging.getLogger("monitor"),
    )


def _start_health_server(cfg: AppSettings, orchestrator: AttackModeOrchestrator) -> None:
    threading.Thread(
        target=health.run,
        kwargs={
            "callback": orchestrator.status,
            "host": cfg.health.host,
            "port": cfg.health.port,
        },
        name="health-server",
        daemon=True,
    ).start()


def _install_signal_handlers(stop: threading.Event) -> None:
    """Translate SIGINT/SIGTERM into a stop request for the main loop."""

    def _handler(signum, _frame):
        logging.getLogger("main").info("Received %s. Starting graceful shutdown...", signum)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handler)
        except (ValueError, OSError) as exc:
            logging.getLogger("main").warning(
                "Failed to set handler for %s: %s", sig, exc, exc_info=True
            )


def main(stop: threading.Event | None = None) -> int:
    _prime_environment()
    setup_root_logger(LoggingSettings.from_env())
    log = logging.getLogger("main")

    try:
        cfg = load_settings()
    except ValidationError as e:
        log.error("❌ Config validation failed: %s", e)
        return 1
    setup_root_logger(cfg.logging)

    log_event(
        "app.boot",
        "info",
        host=socket.gethostname(),
        pid=os.getpid(),
        started_at=datetime.now(timezone.utc).isoformat(),
        cpu_threshold=cfg.monitoring.cpu_threshold,
        high_cpu_duration=cfg.monitoring.high_cpu_duration,
        cooldown_period=cfg.monitoring.cooldown_period,
        monitoring_interval=cfg.monitoring.monitoring_interval,
    )

    try:
        validate_critical_settings(cfg)
    except StartupError as e:
        log.error("❌ Config validation failed: %s", e)
        return 1

    orchestrator = build_orchestrator(cfg)
    if stop is None:
        stop = threading.Event()
        _install_signal_handlers(stop)

    try:
        orchestrator.start()
    except StartupError as e:
        log.error("Failed to start application: %s", e)
        return 1

    if cfg.health.enabled:
        _start_health_server(cfg, orchestrator)

    log.info("VPS CPU Monitor Application started successfully")
    log.info("Press Ctrl+C to stop the application")

    while not stop.wait(timeout=1.0):
        pass

    orchestrator.shutdown(timeout=SHUTDOWN_GRACE_S)
    log.info("Application shutdown complete")
    return 0


def cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    cli()
