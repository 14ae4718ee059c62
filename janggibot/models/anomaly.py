"""Anomaly signals raised by the recovery subsystem."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class AnomalyKind(StrEnum):
    """Kinds of transient disturbance."""

    OVERLAY = "overlay"
    ANIMATION_IN_PROGRESS = "animation_in_progress"
    ALIGNMENT_DRIFT = "alignment_drift"
    UNKNOWN = "unknown"


class AnomalySignal(BaseModel):
    """A detected disturbance and its evidence.

    Evidence is whichever applies: the matched overlay template id, the
    frame-difference magnitude, or the anchor deviation in pixels.
    """

    kind: AnomalyKind
    template_id: str | None = Field(default=None)
    frame_difference: float | None = Field(default=None, ge=0.0)
    anchor_deviation: float | None = Field(default=None, ge=0.0)
    trigger: str | None = Field(default=None, description="What raised the signal")
    detail: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def evidence(self) -> dict[str, Any]:
        """Evidence fields that are set."""
        fields = {
            "template_id": self.template_id,
            "frame_difference": self.frame_difference,
            "anchor_deviation": self.anchor_deviation,
        }
        return {k: v for k, v in fields.items() if v is not None}
