"""Turn-loop orchestration core."""

from janggibot.core.budget import Deadline, TimeBudgetManager
from janggibot.core.errors import OrchestratorError, OrchestratorErrorKind
from janggibot.core.loop import ALLOWED_TRANSITIONS, TurnLoop, check_transition
from janggibot.core.metrics import MetricsCollector, SessionMetrics
from janggibot.core.session import Session, SessionResult
from janggibot.core.verification import (
    MismatchKind,
    VerificationOutcome,
    VerificationResult,
    Verifier,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Deadline",
    "MetricsCollector",
    "MismatchKind",
    "OrchestratorError",
    "OrchestratorErrorKind",
    "Session",
    "SessionMetrics",
    "SessionResult",
    "TimeBudgetManager",
    "TurnLoop",
    "VerificationOutcome",
    "VerificationResult",
    "Verifier",
    "check_transition",
]
