"""Post-action verification.

Compares a fresh observation with the board an ActionCommand expects.
Low-confidence observations are never accepted or rejected: they come back
INCONCLUSIVE so the loop re-captures instead of acting on bad perception.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, Field

from janggibot.models.actions import ActionCommand
from janggibot.models.board import BoardDiff, BoardState
from janggibot.models.observations import BoardObservation

logger = logging.getLogger(__name__)


class VerificationResult(StrEnum):
    """Top-level verification classes."""

    MATCH = "match"
    MISMATCH = "mismatch"
    INCONCLUSIVE = "inconclusive"


class MismatchKind(StrEnum):
    """Refinement of a mismatch."""

    NOT_APPLIED = "not_applied"
    DIVERGED = "diverged"


class VerificationOutcome(BaseModel):
    """Result of comparing an observation to an expected board."""

    result: VerificationResult
    mismatch: MismatchKind | None = Field(default=None)
    confidence: float = Field(..., ge=0.0, le=1.0)
    differences: list[BoardDiff] = Field(default_factory=list)
    observation_sequence: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @property
    def is_match(self) -> bool:
        """True for MATCH."""
        return self.result == VerificationResult.MATCH

    def describe(self) -> str:
        """Short human-readable form."""
        if self.result == VerificationResult.MISMATCH and self.mismatch is not None:
            return f"mismatch({self.mismatch.value}, {len(self.differences)} squares)"
        if self.result == VerificationResult.INCONCLUSIVE:
            return f"inconclusive(confidence={self.confidence:.2f})"
        return self.result.value


class StaleObservationError(ValueError):
    """An observation not newer than the last one verified was offered."""


class Verifier:
    """Classifies observations against expected post-move boards."""

    def __init__(self, confidence_threshold: float) -> None:
        """Initialize the verifier.

        Args:
            confidence_threshold: Minimum confidence (inclusive) required to
                accept or reject a move.
        """
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")
        self._threshold = confidence_threshold
        self._newest_sequence = -1

    @property
    def confidence_threshold(self) -> float:
        """Threshold below which results are inconclusive."""
        return self._threshold

    def verify(
        self,
        observation: BoardObservation,
        command: ActionCommand,
        previous_board: BoardState | None = None,
    ) -> VerificationOutcome:
        """Compare ``observation`` with ``command.expected_board``.

        Args:
            observation: Fresh observation captured after the action.
            command: The move command that was injected.
            previous_board: Confirmed board before the move, used to tell
                an input that never landed from a divergent board.

        Raises:
            StaleObservationError: If ``observation`` is not newer than the
                last one verified.
            ValueError: If the command carries no expected board.
        """
        if command.expected_board is None:
            raise ValueError("Command has no expected board to verify against")
        if observation.sequence <= self._newest_sequence:
            raise StaleObservationError(
                f"Observation {observation.sequence} is not newer than {self._newest_sequence}"
            )
        self._newest_sequence = observation.sequence

        if not observation.is_confident(self._threshold):
            logger.info(
                "[VERIFY] Inconclusive: confidence %.2f below %.2f",
                observation.confidence,
                self._threshold,
            )
            return VerificationOutcome(
                result=VerificationResult.INCONCLUSIVE,
                confidence=observation.confidence,
                observation_sequence=observation.sequence,
            )

        expected = command.expected_board
        if observation.board.same_placement(expected):
            return VerificationOutcome(
                result=VerificationResult.MATCH,
                confidence=observation.confidence,
                observation_sequence=observation.sequence,
            )

        diffs = expected.differences(observation.board)
        if previous_board is not None and observation.board.same_placement(previous_board):
            kind = MismatchKind.NOT_APPLIED
        else:
            kind = MismatchKind.DIVERGED
        logger.warning(
            "[VERIFY] Mismatch (%s) on %s",
            kind.value,
            ", ".join(d.square.algebraic for d in diffs),
        )
        return VerificationOutcome(
            result=VerificationResult.MISMATCH,
            mismatch=kind,
            confidence=observation.confidence,
            differences=diffs,
            observation_sequence=observation.sequence,
        )
