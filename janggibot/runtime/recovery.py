"""Anomaly classification and corrective actions.

The detector explains a discrepancy or stall with a known transient cause;
the coordinator performs the matching corrective action. Retry accounting
belongs to the turn loop: every resolve() call is one charged retry there.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from PIL import Image

from janggibot.interfaces.controller import ControllerError
from janggibot.interfaces.vision import AlignmentLostError, VisionError
from janggibot.models.actions import ActionCommand, Point
from janggibot.models.anomaly import AnomalyKind, AnomalySignal
from janggibot.vision.frames import frame_difference, template_similarity

if TYPE_CHECKING:
    from janggibot.config.loader import OverlayTemplateConfig, RecoveryConfig
    from janggibot.interfaces.controller import DeviceController, Frame
    from janggibot.interfaces.vision import BoardRecognizer
    from janggibot.models.geometry import BoardGeometry
    from janggibot.models.observations import BoardObservation
    from janggibot.vision.capture import FrameCapture

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayTemplate:
    """Appearance and dismiss point of a known overlay."""

    id: str
    image: Image.Image
    region: tuple[int, int, int, int]
    dismiss: Point
    threshold: float = 0.9

    @classmethod
    def from_config(cls, config: OverlayTemplateConfig) -> OverlayTemplate:
        """Load a template image from disk."""
        with Image.open(config.image_path) as img:
            image = img.convert("RGB")
        return cls(
            id=config.id,
            image=image,
            region=config.region,
            dismiss=Point(x=config.dismiss_x, y=config.dismiss_y),
            threshold=config.threshold,
        )


@dataclass(frozen=True)
class RecoveryPolicy:
    """Thresholds and backoff for anomaly handling."""

    settle_threshold: float = 0.02
    settle_backoff_s: float = 0.1
    settle_backoff_factor: float = 2.0
    settle_max_attempts: int = 4
    drift_tolerance_px: float = 12.0

    @classmethod
    def from_config(cls, config: RecoveryConfig) -> RecoveryPolicy:
        """Build a policy from the recovery section of the configuration."""
        return cls(
            settle_threshold=config.settle_threshold,
            settle_backoff_s=config.settle_backoff_ms / 1000,
            settle_backoff_factor=config.settle_backoff_factor,
            settle_max_attempts=config.settle_max_attempts,
            drift_tolerance_px=config.drift_tolerance_px,
        )


class AnomalyDetector:
    """Classifies disturbances from frames, observations and errors."""

    def __init__(
        self,
        templates: Sequence[OverlayTemplate] = (),
        policy: RecoveryPolicy | None = None,
    ) -> None:
        self._templates = list(templates)
        self._policy = policy or RecoveryPolicy()

    @property
    def templates(self) -> list[OverlayTemplate]:
        """Known overlay templates."""
        return list(self._templates)

    def template(self, template_id: str) -> OverlayTemplate | None:
        """Look up a template by id."""
        for template in self._templates:
            if template.id == template_id:
                return template
        return None

    def detect_overlay(self, frame: Frame | None) -> AnomalySignal | None:
        """Return an OVERLAY signal if a known template is on screen."""
        if frame is None or frame.image is None:
            return None
        for template in self._templates:
            similarity = template_similarity(frame.image, template.image, template.region)
            if similarity >= template.threshold:
                logger.info(f"Overlay {template.id} matched (similarity={similarity:.3f})")
                return AnomalySignal(
                    kind=AnomalyKind.OVERLAY,
                    template_id=template.id,
                    detail={"similarity": round(similarity, 4)},
                )
        return None

    def detect_drift(
        self,
        observation: BoardObservation | None,
        geometry: BoardGeometry | None,
    ) -> AnomalySignal | None:
        """Return an ALIGNMENT_DRIFT signal if anchors left the calibrated grid."""
        if observation is None or geometry is None or not observation.anchors:
            return None
        deviation = geometry.anchor_deviation(observation.anchors)
        if deviation > self._policy.drift_tolerance_px:
            return AnomalySignal(kind=AnomalyKind.ALIGNMENT_DRIFT, anchor_deviation=deviation)
        return None

    def detect_animation(self, frames: Sequence[Frame]) -> AnomalySignal | None:
        """Return an ANIMATION_IN_PROGRESS signal if the last two frames still differ."""
        if len(frames) < 2 or frames[0].image is None or frames[1].image is None:
            return None
        magnitude = frame_difference(frames[1].image, frames[0].image)
        if magnitude > self._policy.settle_threshold:
            return AnomalySignal(
                kind=AnomalyKind.ANIMATION_IN_PROGRESS, frame_difference=magnitude
            )
        return None

    def classify(
        self,
        frames: Sequence[Frame],
        *,
        observation: BoardObservation | None = None,
        geometry: BoardGeometry | None = None,
        error: Exception | None = None,
        trigger: str | None = None,
    ) -> AnomalySignal:
        """Explain a disturbance.

        Args:
            frames: Recent frames, most recent first.
            observation: Latest observation, if recognition succeeded.
            geometry: Grid the controller is calibrated to.
            error: Collaborator error that triggered classification.
            trigger: Short label of what triggered classification.

        Returns:
            The first matching signal among overlay, drift and animation,
            else UNKNOWN.
        """
        signal: AnomalySignal | None = None
        if isinstance(error, AlignmentLostError):
            signal = AnomalySignal(kind=AnomalyKind.ALIGNMENT_DRIFT)
        if signal is None:
            signal = self.detect_overlay(frames[0] if frames else None)
        if signal is None:
            signal = self.detect_drift(observation, geometry)
        if signal is None:
            signal = self.detect_animation(frames)
        if signal is None:
            signal = AnomalySignal(kind=AnomalyKind.UNKNOWN)

        detail = dict(signal.detail)
        if error is not None:
            detail["error"] = f"{type(error).__name__}: {error}"
        return signal.model_copy(update={"trigger": trigger, "detail": detail})


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of one corrective action."""

    resolved: bool
    action: str
    command: ActionCommand | None = None
    detail: dict[str, Any] = field(default_factory=dict)


class RecoveryCoordinator:
    """Performs the corrective action for each anomaly kind."""

    def __init__(
        self,
        controller: DeviceController,
        recognizer: BoardRecognizer,
        capture: FrameCapture,
        detector: AnomalyDetector,
        policy: RecoveryPolicy | None = None,
        *,
        inject_timeout_s: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._controller = controller
        self._recognizer = recognizer
        self._capture = capture
        self._detector = detector
        self._policy = policy or RecoveryPolicy()
        self._inject_timeout_s = inject_timeout_s
        self._sleep = sleep

    def resolve(self, signal: AnomalySignal) -> RecoveryResult:
        """Attempt to clear the disturbance described by ``signal``."""
        logger.warning(
            "[RECOVERY] Resolving %s %s",
            signal.kind.value,
            signal.evidence or "",
        )
        if signal.kind == AnomalyKind.OVERLAY:
            return self._dismiss_overlay(signal)
        if signal.kind == AnomalyKind.ANIMATION_IN_PROGRESS:
            return self._wait_for_settle()
        if signal.kind == AnomalyKind.ALIGNMENT_DRIFT:
            return self._realign()
        return RecoveryResult(resolved=True, action="retry")

    def _dismiss_overlay(self, signal: AnomalySignal) -> RecoveryResult:
        template = self._detector.template(signal.template_id or "")
        if template is None:
            logger.error("[RECOVERY] No template registered for overlay %s", signal.template_id)
            return RecoveryResult(
                resolved=False, action="dismiss", detail={"reason": "unknown template"}
            )

        command = ActionCommand.dismiss(template.dismiss, template.id)
        try:
            self._controller.inject(command, self._inject_timeout_s)
        except ControllerError as e:
            logger.error("[RECOVERY] Dismiss tap failed: %s", e)
            return RecoveryResult(
                resolved=False, action="dismiss", command=command, detail={"error": str(e)}
            )
        return RecoveryResult(
            resolved=True,
            action="dismiss",
            command=command,
            detail={"template_id": template.id, "x": template.dismiss.x, "y": template.dismiss.y},
        )

    def _wait_for_settle(self) -> RecoveryResult:
        delay = self._policy.settle_backoff_s
        previous = self._capture.latest
        magnitude: float | None = None
        for attempt in range(1, self._policy.settle_max_attempts + 1):
            self._sleep(delay)
            try:
                frame = self._capture.capture()
            except ControllerError as e:
                return RecoveryResult(resolved=False, action="settle", detail={"error": str(e)})

            if previous is None or previous.image is None or frame.image is None:
                return RecoveryResult(
                    resolved=True, action="settle", detail={"attempts": attempt, "measured": False}
                )
            magnitude = frame_difference(previous.image, frame.image)
            if magnitude <= self._policy.settle_threshold:
                logger.info(f"[RECOVERY] Frames settled after {attempt} wait(s)")
                return RecoveryResult(
                    resolved=True,
                    action="settle",
                    detail={"attempts": attempt, "frame_difference": magnitude},
                )
            previous = frame
            delay *= self._policy.settle_backoff_factor

        logger.error(
            "[RECOVERY] Frames did not settle after %s waits", self._policy.settle_max_attempts
        )
        return RecoveryResult(
            resolved=False,
            action="settle",
            detail={"attempts": self._policy.settle_max_attempts, "frame_difference": magnitude},
        )

    def _realign(self) -> RecoveryResult:
        try:
            frame = self._capture.capture()
            geometry = self._recognizer.align(frame)
        except (ControllerError, VisionError) as e:
            logger.error("[RECOVERY] Re-alignment failed: %s", e)
            return RecoveryResult(resolved=False, action="realign", detail={"error": str(e)})
        self._controller.calibrate(geometry)
        anchors = [anchor.model_dump() for anchor in geometry.anchors]
        return RecoveryResult(resolved=True, action="realign", detail={"anchors": anchors})
