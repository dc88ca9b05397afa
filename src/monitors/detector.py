"""Hysteresis detector deciding when to enter and leave Under Attack mode.

A single high CPU sample is not enough to flip the zone into its most
aggressive challenge mode: usage has to stay strictly above the threshold for
``high_duration`` seconds before an ``enter`` decision is emitted, and it has to
stay at or below the threshold for ``normal_cooldown`` seconds before the
matching ``exit``. Any sample on the other side of the threshold restarts the
running timer.

The detector never reads a clock or performs I/O; callers pass ``now`` in so
the whole state machine can be driven deterministically from tests.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


class DecisionKind(str, Enum):
    NONE = "none"
    ENTER = "enter"
    EXIT = "exit"


@dataclass(frozen=True)
class Decision:
    """Outcome of one detector tick.

    Attributes
    ----------
    kind:
        ``none``, ``enter`` or ``exit``.
    usage:
        CPU percentage of the sample that produced the decision.
    duration:
        Seconds spent above (``enter``) or below (``exit``) the threshold.
        ``None`` for ``none`` decisions.
    elevated:
        Detector posture after the tick.
    """

    kind: DecisionKind
    usage: int
    duration: Optional[float] = None
    elevated: bool = False

    @property
    def status(self) -> str:
        return "high" if self.elevated else "normal"


@dataclass(frozen=True)
class DetectorConfig:
    high_threshold: int
    high_duration: float
    normal_cooldown: float


@dataclass
class DetectorState:
    is_elevated: bool = False
    high_started_at: Optional[float] = None
    normal_started_at: Optional[float] = None
    last_usage: int = 0


class ThresholdDetector:
    def __init__(self, cfg: DetectorConfig, *, initially_elevated: bool = False) -> None:
        self._cfg = cfg
        self.state = DetectorState(is_elevated=initially_elevated)

    @property
    def config(self) -> DetectorConfig:
        return self._cfg

    @property
    def is_elevated(self) -> bool:
        return self.state.is_elevated

    def seed(self, is_elevated: bool) -> None:
        """Reset to a known posture, e.g. the one read from Cloudflare at boot."""
        self.state = DetectorState(is_elevated=is_elevated)
        if is_elevated:
            log.info("Initialized with Under Attack state (Cloudflare already in Under Attack mode)")
        else:
            log.info("Initialized with normal state")

    def tick(self, usage: int, now: float) -> Decision:
        st = self.state
        cfg = self._cfg

        if usage > cfg.high_threshold:
            if st.high_started_at is None:
                st.high_started_at = now
                log.info("High CPU detected: %s%%. Starting timer...", usage)
            if st.normal_started_at is not None:
                log.info("CPU high again during cooldown: %s%%. Cooldown reset.", usage)
                st.normal_started_at = None

            elapsed = now - st.high_started_at
            if elapsed >= cfg.high_duration and not st.is_elevated:
                # high_started_at stays set until the next normal sample
                st.is_elevated = True
                st.normal_started_at = None
                log.warning(
                    "CPU usage above %s%% for %ss. Triggering Under Attack mode.",
                    cfg.high_threshold,
                    cfg.high_duration,
                )
                return Decision(DecisionKind.ENTER, usage, elapsed, elevated=True)
        else:
            if st.high_started_at is not None:
                log.info("CPU usage returned to normal: %s%%", usage)
                st.high_started_at = None

            if st.is_elevated:
                if st.normal_started_at is None:
                    st.normal_started_at = now
                    log.info(
                        "CPU normal. Starting normal CPU cooldown period of %ss...",
                        cfg.normal_cooldown,
                    )

                elapsed = now - st.normal_started_at
                if elapsed >= cfg.normal_cooldown:
                    st.is_elevated = False
                    st.normal_started_at = None
                    log.info(
                        "Normal CPU cooldown period completed (%ss). Disabling Under Attack mode.",
                        cfg.normal_cooldown,
                    )
                    return Decision(DecisionKind.EXIT, usage, elapsed, elevated=False)

        # last_usage only tracks ticks without a transition
        st.last_usage = usage
        return Decision(DecisionKind.NONE, usage, elevated=st.is_elevated)

    def snapshot(self) -> Dict[str, Any]:
        return asdict(self.state)


__all__ = [
    "Decision",
    "DecisionKind",
    "DetectorConfig",
    "DetectorState",
    "ThresholdDetector",
]
