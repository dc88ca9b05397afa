"""Drive the detector on a fixed interval and apply its decisions.

:class:`AttackModeOrchestrator` owns one :class:`ThresholdDetector` and a
single worker thread. Each tick samples the CPU, feeds the detector and, on a
transition, flips the Cloudflare security level and notifies the operator.

Failure policy:

* Startup failures (connectivity probes, reading the current level) raise
  :class:`StartupError` and are fatal to the process.
* Anything that goes wrong inside a tick is logged and reported by a
  best-effort error notification; the loop keeps running.
* A failed remote write never rolls back the detector: local state stays the
  source of truth for hysteresis.
* Notification failures are logged and otherwise ignored.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional

from src.config import MonitoringSettings
from src.interfaces import Notifier, Sampler, SecurityLevelClient
from src.monitors.detector import Decision, DecisionKind, DetectorConfig, ThresholdDetector
from src.notifications.messages import NotificationKind
from src.services.security_levels import SecurityLevel
from src.utils.errors import InvalidArgument, RemoteApiError, StartupError

log = logging.getLogger(__name__)

IDLE_LOG_WINDOW_S = 300.0


class AttackModeOrchestrator:
    def __init__(
        self,
        *,
        sampler: Sampler,
        security_client: SecurityLevelClient,
        notifier: Notifier,
        monitoring: MonitoringSettings,
        default_security_level: SecurityLevel = SecurityLevel.MEDIUM,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._sampler = sampler
        self._security = security_client
        self._notifier = notifier
        self._monitoring = monitoring
        self._default_level = SecurityLevel.parse(default_security_level)
        self._clock = clock
        self._log = logger or log

        self.detector: Optional[ThresholdDetector] = None
        self.running = False
        self.last_action_at: Optional[float] = None

        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # startup
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Probe both APIs, seed the detector from Cloudflare, announce startup."""
        self._log.info("Initializing VPS Monitor...")

        if not self._security.test_connection():
            raise StartupError("Cloudflare API connection failed")
        if not self._notifier.test_connection():
            raise StartupError("Telegram API connection failed")

        try:
            current = self._security.get()
        except RemoteApiError as exc:
            raise StartupError(f"Could not read current security level: {exc}") from exc
        self._log.info("Current Cloudflare security level: %s", current.value)

        mon = self._monitoring
        self.detector = ThresholdDetector(
            DetectorConfig(
                high_threshold=mon.cpu_threshold,
                high_duration=float(mon.high_cpu_duration),
                normal_cooldown=float(mon.cooldown_period),
            )
        )
        self.detector.seed(current is SecurityLevel.UNDER_ATTACK)

        if not self._notify(
            NotificationKind.STARTUP, {"current_security_level": current.value}
        ):
            self._log.warning("Failed to send startup notification")
        self._log.info("VPS Monitor initialized successfully")

    def start(self) -> None:
        """Initialize and launch the polling worker thread.

        Raises :class:`StartupError` while a worker from a previous run is still
        finishing its last tick.
        """
        if self.running:
            self._log.warning("VPS Monitor is already running")
            return
        previous = self._worker
        if previous is not None and previous.is_alive():
            raise StartupError("previous monitoring worker is still finishing a tick")
        self.initialize()
        # each run gets its own stop token; an old worker keeps its set one
        self._stop = threading.Event()
        self.running = True
        self._worker = threading.Thread(
            target=self.run, args=(self._stop,), name="attack-mode-monitor", daemon=True
        )
        self._worker.start()
        self._log.info(
            "Starting VPS monitoring with %ss intervals", self._monitoring.monitoring_interval
        )

    # ------------------------------------------------------------------
    # loop
    # ------------------------------------------------------------------
    def run(self, stop: threading.Event) -> None:
        """Tick every ``monitoring_interval`` seconds until ``stop`` is set.

        The next wait only starts after the previous tick returned, so a slow
        tick (e.g. a retried API call) delays the schedule instead of
        overlapping it.
        """
        interval = float(self._monitoring.monitoring_interval)
        while not stop.wait(timeout=interval):
            self.tick()

    def tick(self) -> Optional[Decision]:
        """Run one sample → detect → dispatch cycle; never raises."""
        try:
            if self.detector is None:
                raise RuntimeError("orchestrator not initialized")
            usage = self._sampler.current_load()
            now = self._clock()
            self._log.debug("Current CPU usage: %s%%", usage)
            decision = self.detector.tick(usage, now)
            self._dispatch(decision, now)
            return decision
        except Exception as exc:
            self._log.error("Error in monitoring cycle: %s", exc, exc_info=True)
            self._notify_error(exc)
            return None

    def _dispatch(self, decision: Decision, now: float) -> None:
        if decision.kind is DecisionKind.ENTER:
            self._enable_under_attack(decision)
        elif decision.kind is DecisionKind.EXIT:
            self._disable_under_attack(decision)
        elif self.last_action_at is None or now - self.last_action_at > IDLE_LOG_WINDOW_S:
            self._log.info("VPS Status: %s, CPU: %s%%", decision.status, decision.usage)
            self.last_action_at = now

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def _enable_under_attack(self, decision: Decision) -> None:
        self._log.warning(
            "Enabling Under Attack mode - CPU: %s%%, Duration: %.1fs",
            decision.usage,
            decision.duration or 0.0,
        )
        try:
            current = self._security.get()
            if current is SecurityLevel.UNDER_ATTACK:
                self._log.info("Cloudflare already in Under Attack mode")
            else:
                self._security.set(SecurityLevel.UNDER_ATTACK)
                self._log.warning("Cloudflare Under Attack mode enabled")
        except (RemoteApiError, InvalidArgument) as exc:
            self._log.error("Failed to enable Under Attack mode: %s", exc)
            self._notify_error(exc)
            return

        self._notify(
            NotificationKind.UNDER_ATTACK_ENABLED,
            {"cpu_usage": decision.usage, "duration": decision.duration},
        )
        self.last_action_at = self._clock()
        self._log.info("Under Attack mode enabled successfully")

    def _disable_under_attack(self, decision: Decision) -> None:
        self._log.info(
            "Disabling Under Attack mode - CPU: %s%%, Normal CPU Cooldown: %.1fs",
            decision.usage,
            decision.duration or 0.0,
        )
        try:
            current = self._security.get()
            if current is not SecurityLevel.UNDER_ATTACK:
                self._log.info("Cloudflare not in Under Attack mode (level=%s)", current.value)
            else:
                self._security.set(self._default_level)
                self._log.info(
                    "Cloudflare Under Attack mode disabled, set to %s", self._default_level.value
                )
        except (RemoteApiError, InvalidArgument) as exc:
            self._log.error("Failed to disable Under Attack mode: %s", exc)
            self._notify_error(exc)
            return

        self._notify(
            NotificationKind.UNDER_ATTACK_DISABLED,
            {"cpu_usage": decision.usage, "duration": decision.duration},
        )
        self.last_action_at = self._clock()
        self._log.info("Under Attack mode disabled successfully")

    # ------------------------------------------------------------------
    # notifications
    # ------------------------------------------------------------------
    def _notify(self, kind: NotificationKind, payload: Mapping[str, Any]) -> bool:
        """Best-effort delivery; returns ``False`` instead of raising."""
        try:
            self._notifier.send(kind.value, payload)
        except Exception as exc:
            self._log.error("Failed to send %s notification: %s", kind.value, exc)
            return False
        return True

    def _notify_error(self, error: BaseException) -> None:
        self._notify(NotificationKind.ERROR, {"error": str(error)})

    # ------------------------------------------------------------------
    # shutdown / status
    # ------------------------------------------------------------------
    def shutdown(self, timeout: Optional[float] = 30.0) -> None:
        """Stop scheduling ticks; a tick already in flight runs to completion.

        Safe to call repeatedly: only the first call has any effect.
        """
        if not self.running:
            return
        self._log.info("Shutting down VPS Monitor...")
        self.running = False
        self._stop.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)
            if worker.is_alive():
                self._log.warning(
                    "Monitor tick still in flight after %.1fs; leaving it to finish", timeout
                )
            else:
                self._worker = None
        else:
            self._worker = None
        self._log.info("VPS Monitor shutdown complete")

    def status(self) -> Dict[str, Any]:
        mon = self._monitoring
        return {
            "is_running": self.running,
            "cpu_status": self.detector.snapshot() if self.detector else None,
            "last_action_at": self.last_action_at,
            "config": {
                "cpu_threshold": mon.cpu_threshold,
                "high_cpu_duration": mon.high_cpu_duration,
                "cooldown_period": mon.cooldown_period,
                "monitoring_interval": mon.monitoring_interval,
                "default_security_level": self._default_level.value,
            },
        }


__all__ = ["AttackModeOrchestrator", "IDLE_LOG_WINDOW_S"]
