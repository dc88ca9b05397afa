"""CPU sampling, attack detection and the monitoring loop."""

from .detector import Decision, DecisionKind, DetectorConfig, ThresholdDetector
from .orchestrator import AttackModeOrchestrator

__all__ = [
    "AttackModeOrchestrator",
    "Decision",
    "DecisionKind",
    "DetectorConfig",
    "ThresholdDetector",
]
