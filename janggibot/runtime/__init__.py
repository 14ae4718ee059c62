"""Runtime anomaly detection and recovery."""

from janggibot.runtime.recovery import (
    AnomalyDetector,
    OverlayTemplate,
    RecoveryCoordinator,
    RecoveryPolicy,
    RecoveryResult,
)

__all__ = [
    "AnomalyDetector",
    "OverlayTemplate",
    "RecoveryCoordinator",
    "RecoveryPolicy",
    "RecoveryResult",
]
