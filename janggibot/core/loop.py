"""Turn-loop state machine.

This module provides the TurnLoop class that drives one match:
- READY: observe the board and decide whose turn it is
- OUR_TURN_THINK / ACT / VERIFY: decide, inject and confirm our move
- OPP_TURN_WAIT: poll until the opponent's move shows up
- RECOVERY: resolve a transient anomaly, then retry the triggering step
- TERMINAL: WIN, LOSS, DRAW or ABORTED

Features:
- Device connect and engine warm-up before the first observation
- Explicit allowed-transition table
- Bounded per-turn retries; recovery never loops unbounded
- Session time charged for our own turns only
- Cancellation observed at every state boundary
- One ordered event per transition, published without blocking

Example:
    >>> loop = TurnLoop(controller, recognizer, engine, config)
    >>> result = loop.run()
    >>> result.outcome, result.turns
    (<TerminalOutcome.WIN: 'win'>, 12)
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from janggibot.config.loader import Config
from janggibot.controller.layout import start_flow_commands
from janggibot.core.budget import Clock, TimeBudgetManager
from janggibot.core.errors import OrchestratorError, OrchestratorErrorKind
from janggibot.core.metrics import MetricsCollector
from janggibot.core.session import Session, SessionResult
from janggibot.core.verification import (
    MismatchKind,
    StaleObservationError,
    VerificationResult,
    Verifier,
)
from janggibot.engine.runner import EngineRunner
from janggibot.events.log import EventLog
from janggibot.events.publisher import EventPublisher
from janggibot.events.sinks import LoggingEventSink, ReplayBuffer
from janggibot.interfaces.controller import ControllerError
from janggibot.interfaces.engine import EngineError, NoLegalActionError
from janggibot.interfaces.vision import CaptureUnusableError, VisionError
from janggibot.models.actions import CommandPurpose
from janggibot.models.anomaly import AnomalyKind, AnomalySignal
from janggibot.models.board import BoardState, PlayerSide
from janggibot.models.events import EventCause, TerminalOutcome, TurnState
from janggibot.models.observations import GameResult
from janggibot.runtime.recovery import (
    AnomalyDetector,
    OverlayTemplate,
    RecoveryCoordinator,
    RecoveryPolicy,
)
from janggibot.vision.capture import FrameCapture

if TYPE_CHECKING:
    from janggibot.interfaces.controller import DeviceController, Frame
    from janggibot.interfaces.engine import GameEngine
    from janggibot.interfaces.events import EventSink
    from janggibot.interfaces.vision import BoardRecognizer
    from janggibot.models.observations import BoardObservation

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[TurnState, frozenset[TurnState]] = {
    TurnState.READY: frozenset(
        {
            TurnState.OUR_TURN_THINK,
            TurnState.OPP_TURN_WAIT,
            TurnState.RECOVERY,
            TurnState.TERMINAL,
        }
    ),
    TurnState.OUR_TURN_THINK: frozenset({TurnState.OUR_TURN_ACT, TurnState.TERMINAL}),
    TurnState.OUR_TURN_ACT: frozenset(
        {TurnState.OUR_TURN_VERIFY, TurnState.RECOVERY, TurnState.TERMINAL}
    ),
    TurnState.OUR_TURN_VERIFY: frozenset(
        {TurnState.OPP_TURN_WAIT, TurnState.RECOVERY, TurnState.TERMINAL}
    ),
    TurnState.OPP_TURN_WAIT: frozenset(
        {TurnState.READY, TurnState.RECOVERY, TurnState.TERMINAL}
    ),
    # RECOVERY returns to the state that triggered it.
    TurnState.RECOVERY: frozenset(
        {
            TurnState.READY,
            TurnState.OUR_TURN_ACT,
            TurnState.OUR_TURN_VERIFY,
            TurnState.OPP_TURN_WAIT,
            TurnState.TERMINAL,
        }
    ),
    TurnState.TERMINAL: frozenset(),
}

_RESULT_OUTCOMES = {
    GameResult.WIN: TerminalOutcome.WIN,
    GameResult.LOSS: TerminalOutcome.LOSS,
    GameResult.DRAW: TerminalOutcome.DRAW,
}

_ABORT_CAUSES = {
    OrchestratorErrorKind.RETRIES_EXHAUSTED: EventCause.RETRIES_EXHAUSTED,
    OrchestratorErrorKind.ILLEGAL_TRANSITION: EventCause.ILLEGAL_TRANSITION,
    OrchestratorErrorKind.CANCELLED: EventCause.CANCELLED,
    OrchestratorErrorKind.TIMEOUT: EventCause.TIMEOUT,
    OrchestratorErrorKind.ENGINE_FAULT: EventCause.ENGINE_FAULT,
    OrchestratorErrorKind.COLLABORATOR_FAULT: EventCause.COLLABORATOR_FAULT,
    OrchestratorErrorKind.UNRESOLVED_ANOMALY: EventCause.UNRESOLVED_ANOMALY,
}


def check_transition(current: TurnState | None, target: TurnState) -> None:
    """Raise unless ``current -> target`` is in the transition table.

    Raises:
        OrchestratorError: ILLEGAL_TRANSITION for any other request.
    """
    if current is None:
        allowed = target == TurnState.READY
    else:
        allowed = target in ALLOWED_TRANSITIONS[current]
    if not allowed:
        source = current.value if current is not None else "start"
        raise OrchestratorError(
            OrchestratorErrorKind.ILLEGAL_TRANSITION,
            f"{source} -> {target.value} is not allowed",
        )


def build_detector(config: Config) -> AnomalyDetector:
    """Create an anomaly detector with the configured overlay templates."""
    templates = [OverlayTemplate.from_config(t) for t in config.recovery.overlays]
    return AnomalyDetector(templates, RecoveryPolicy.from_config(config.recovery))


class TurnLoop:
    """Drives one session from READY to TERMINAL.

    The loop is single-threaded: exactly one state is active and no two
    collaborator calls overlap. Only the engine runs on a worker thread,
    bounded by the per-move deadline.

    Attributes:
        session: Live session state.
        metrics: Metrics collector.
        events: Append-only event log.
        replay: Buffer of published events.
    """

    def __init__(
        self,
        controller: DeviceController,
        recognizer: BoardRecognizer,
        engine: GameEngine,
        config: Config | None = None,
        *,
        detector: AnomalyDetector | None = None,
        sinks: Sequence[EventSink] = (),
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        session_id: str | None = None,
        side_to_move: PlayerSide = PlayerSide.BLUE,
    ) -> None:
        """Initialize the loop.

        Args:
            controller: Device to capture from and inject into.
            recognizer: Turns frames into observations.
            engine: Chooses our moves.
            config: Immutable configuration snapshot. Uses defaults if None.
            detector: Anomaly detector. Built from ``config`` if None.
            sinks: Extra event sinks.
            clock: Monotonic clock in seconds.
            sleep: Sleep function used for polling and backoff.
            session_id: Session identifier. Generated if None.
            side_to_move: Side to move when the session starts.
        """
        self._config = config or Config()
        orch = self._config.orchestrator
        self._controller = controller
        self._recognizer = recognizer
        self._clock = clock
        self._sleep = sleep

        session_kwargs: dict[str, Any] = {}
        if session_id is not None:
            session_kwargs["session_id"] = session_id
        self._session = Session(
            our_side=self._config.match.our_side,
            side_to_move=side_to_move,
            **session_kwargs,
        )

        self._budget = TimeBudgetManager.from_config(self._config.time, clock=clock)
        self._verifier = Verifier(orch.confidence_threshold)
        self._capture = FrameCapture(
            controller,
            timeout_s=orch.capture_timeout_ms / 1000,
            buffer_size=orch.diagnostic_history,
        )
        self._detector = detector or build_detector(self._config)
        self._coordinator = RecoveryCoordinator(
            controller,
            recognizer,
            self._capture,
            self._detector,
            RecoveryPolicy.from_config(self._config.recovery),
            inject_timeout_s=orch.inject_timeout_ms / 1000,
            sleep=sleep,
        )
        self._runner = EngineRunner(engine, grace_s=self._config.time.engine_grace_ms / 1000)
        self._metrics = MetricsCollector()
        self._observations: deque[BoardObservation] = deque(maxlen=orch.diagnostic_history)

        self._replay = ReplayBuffer(self._config.events.replay_buffer_size)
        all_sinks: list[EventSink] = [self._replay]
        if self._config.events.log_events:
            all_sinks.append(LoggingEventSink())
        all_sinks.extend(sinks)
        self._publisher = EventPublisher(all_sinks, queue_size=self._config.events.queue_size)
        self._events = EventLog(self._session.session_id, on_emit=self._publisher.submit)

        self._cancelled = threading.Event()
        self._cancel_reason = ""
        self._error: OrchestratorError | None = None
        self._started = False
        # Sequence of the last frame captured before our injection.
        self._inject_mark = -1

        self._handlers: dict[TurnState, Callable[[], None]] = {
            TurnState.READY: self._step_ready,
            TurnState.OUR_TURN_THINK: self._step_think,
            TurnState.OUR_TURN_ACT: self._step_act,
            TurnState.OUR_TURN_VERIFY: self._step_verify,
            TurnState.OPP_TURN_WAIT: self._step_opponent_wait,
            TurnState.RECOVERY: self._step_recovery,
        }

        logger.debug(
            f"TurnLoop initialized: session={self._session.session_id}, "
            f"mode={self._budget.mode.value}, max_retries={orch.max_retries}"
        )

    @property
    def session(self) -> Session:
        """Live session state."""
        return self._session

    @property
    def metrics(self) -> MetricsCollector:
        """Get the metrics collector."""
        return self._metrics

    @property
    def events(self) -> EventLog:
        """Append-only event log."""
        return self._events

    @property
    def replay(self) -> ReplayBuffer:
        """Buffer of events delivered by the publisher."""
        return self._replay

    @property
    def budget(self) -> TimeBudgetManager:
        """Time budget manager of this session."""
        return self._budget

    def cancel(self, reason: str = "cancelled by operator") -> None:
        """Request cancellation; observed at the next state boundary. Thread-safe."""
        self._cancel_reason = reason
        self._cancelled.set()
        logger.info(f"Cancellation requested: {reason}")

    def run(self) -> SessionResult:
        """Run the session to TERMINAL.

        Returns:
            SessionResult with the outcome, turn count, metrics, events and,
            for ABORTED, the OrchestratorError with its diagnostic trail.

        Raises:
            RuntimeError: If the loop has already run.
        """
        if self._started:
            raise RuntimeError("TurnLoop.run() can only be called once")
        self._started = True

        self._metrics.start()
        self._publisher.start()
        session = self._session
        try:
            self._transition(
                TurnState.READY,
                EventCause.SESSION_STARTED,
                detail={
                    "our_side": session.our_side.value,
                    "formation": self._config.match.formation.value,
                    "mode": self._budget.mode.value,
                    "max_retries": self._config.orchestrator.max_retries,
                    "confidence_threshold": self._config.orchestrator.confidence_threshold,
                },
            )
            self._boot()

            while not session.finished:
                self._check_boundary()
                self._handlers[session.state]()  # type: ignore[index]

        except OrchestratorError as e:
            self._abort(e)
        except Exception as e:
            logger.exception(f"Unexpected collaborator fault: {e}")
            self._metrics.record_error(type(e).__name__)
            self._abort(
                OrchestratorError(OrchestratorErrorKind.COLLABORATOR_FAULT, str(e), cause=e)
            )
        finally:
            self._runner.close()
            self._publisher.stop()
            self._metrics.set_events_dropped(self._publisher.dropped)

        outcome = session.outcome or TerminalOutcome.ABORTED
        logger.info(
            f"Session {session.session_id} finished: {outcome.value} after {session.turn} turn(s)"
        )
        return SessionResult(
            session_id=session.session_id,
            outcome=outcome,
            turns=session.turn,
            metrics=self._metrics.get_metrics(),
            events=self._events.events,
            error=self._error,
        )

    # Transitions

    def _transition(
        self,
        target: TurnState,
        cause: EventCause,
        *,
        outcome: TerminalOutcome | None = None,
        anomaly: AnomalyKind | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        session = self._session
        check_transition(session.state, target)
        previous = session.state
        session.state = target
        self._events.emit(
            from_state=previous,
            to_state=target,
            cause=cause,
            turn=session.turn,
            retries=session.retries,
            outcome=outcome,
            anomaly=anomaly,
            detail=detail,
        )

    def _check_boundary(self) -> None:
        if self._cancelled.is_set():
            raise OrchestratorError(OrchestratorErrorKind.CANCELLED, self._cancel_reason)
        if self._budget.turn_in_progress and self._budget.exhausted():
            raise OrchestratorError(
                OrchestratorErrorKind.TIMEOUT, "session time budget exhausted mid-turn"
            )

    def _finish(
        self, outcome: TerminalOutcome, cause: EventCause, detail: dict[str, Any]
    ) -> None:
        elapsed = self._budget.charge_turn()
        if elapsed:
            self._metrics.record_charge(elapsed * 1000)
        self._session.pending_command = None
        self._session.outcome = outcome
        logger.info(f"Game over: {outcome.value} ({detail})")
        self._transition(TurnState.TERMINAL, cause, outcome=outcome, detail=detail)

    def _abort(self, error: OrchestratorError) -> None:
        session = self._session
        if session.finished:
            logger.error(f"Error after session end: {error}")
            return
        if session.state is None:
            logger.error(f"Session aborted before it started: {error}")
            session.outcome = TerminalOutcome.ABORTED
            self._error = error
            return

        logger.error(f"Session aborted from {session.state.value}: {error}")
        elapsed = self._budget.charge_turn()
        if elapsed:
            self._metrics.record_charge(elapsed * 1000)
        session.pending_command = None
        session.outcome = TerminalOutcome.ABORTED
        self._error = error
        self._transition(
            TurnState.TERMINAL,
            _ABORT_CAUSES[error.kind],
            outcome=TerminalOutcome.ABORTED,
            anomaly=error.anomaly.kind if error.anomaly else None,
            detail={"kind": error.kind.value, "reason": error.reason},
        )
        history = self._config.orchestrator.diagnostic_history
        error.attach_trail(
            self._events.tail(history),
            list(reversed(self._capture.get_buffer(history))),
            list(self._observations),
        )

    # Collaborator access

    def _observe(self) -> BoardObservation:
        """Capture a fresh frame and recognize it.

        Raises:
            ControllerError: If capture fails.
            VisionError: If recognition fails or the observation is stale.
        """
        frame = self._capture.capture()
        observation = self._recognizer.recognize(frame)
        if observation.sequence <= self._session.latest_sequence:
            raise CaptureUnusableError(
                f"Observation {observation.sequence} is not newer than "
                f"{self._session.latest_sequence}"
            )
        self._session.latest_sequence = observation.sequence
        self._observations.append(observation)
        return observation

    def _elapsed_ms(self, start: float) -> float:
        return (self._clock() - start) * 1000

    def _boot(self) -> None:
        """Connect the device, run the start flow and warm up the engine.

        Raises:
            OrchestratorError: COLLABORATOR_FAULT if any step fails.
        """
        orch = self._config.orchestrator
        try:
            self._controller.connect(orch.connect_timeout_ms / 1000)
        except ControllerError as e:
            self._metrics.record_error(type(e).__name__)
            raise OrchestratorError(
                OrchestratorErrorKind.COLLABORATOR_FAULT, f"device connect failed: {e}", cause=e
            ) from e

        if self._config.match.run_start_flow:
            self._run_start_flow()

        try:
            self._runner.engine.warm_up()
        except EngineError as e:
            self._metrics.record_error(type(e).__name__)
            raise OrchestratorError(
                OrchestratorErrorKind.COLLABORATOR_FAULT, f"engine warm-up failed: {e}", cause=e
            ) from e
        logger.info("[BOOT] Device connected and engine ready")

    def _run_start_flow(self) -> None:
        formation = self._config.match.formation
        timeout = self._config.orchestrator.inject_timeout_ms / 1000
        for command in start_flow_commands(formation):
            logger.info(f"[START] {command.description}")
            try:
                self._controller.inject(command, timeout)
            except ControllerError as e:
                self._metrics.record_error(type(e).__name__)
                raise OrchestratorError(
                    OrchestratorErrorKind.COLLABORATOR_FAULT,
                    f"start flow failed at '{command.description}': {e}",
                    cause=e,
                ) from e
            self._sleep(self._config.orchestrator.poll_interval_ms / 1000)

    # States

    def _step_ready(self) -> None:
        session = self._session
        threshold = self._verifier.confidence_threshold
        try:
            observation = self._observe()
        except (ControllerError, VisionError) as e:
            self._metrics.record_error(type(e).__name__)
            self._route_anomaly(TurnState.READY, trigger="observe", error=e)
            return

        if observation.game_result is not None:
            self._finish(
                _RESULT_OUTCOMES[observation.game_result],
                EventCause.GAME_OVER,
                {"result": observation.game_result.value, "sequence": observation.sequence},
            )
            return

        if not observation.is_confident(threshold):
            self._route_anomaly(
                TurnState.READY,
                trigger="low_confidence",
                observation=observation,
                cause=EventCause.INCONCLUSIVE,
                detail={"confidence": observation.confidence},
            )
            return

        session.confirm(observation)
        if session.our_turn:
            if self._budget.exhausted():
                raise OrchestratorError(
                    OrchestratorErrorKind.TIMEOUT, "session time budget exhausted"
                )
            self._transition(
                TurnState.OUR_TURN_THINK,
                EventCause.OUR_MOVE,
                detail={"fingerprint": session.fingerprint, "sequence": observation.sequence},
            )
        else:
            self._transition(
                TurnState.OPP_TURN_WAIT,
                EventCause.OPPONENT_MOVE,
                detail={"fingerprint": session.fingerprint, "sequence": observation.sequence},
            )

    def _step_think(self) -> None:
        session = self._session
        assert session.last_board is not None
        self._budget.begin_turn()
        deadline = self._budget.deadline()
        start = self._clock()
        try:
            command = self._runner.decide(session.last_board, session.our_side, deadline)
        except NoLegalActionError as e:
            self._metrics.record_phase("think", self._elapsed_ms(start))
            self._finish(e.outcome, EventCause.GAME_OVER, {"reason": str(e)})
            return
        except EngineError as e:
            self._metrics.record_error(type(e).__name__)
            raise OrchestratorError(OrchestratorErrorKind.ENGINE_FAULT, str(e), cause=e) from e

        think_ms = self._elapsed_ms(start)
        self._metrics.record_phase("think", think_ms)
        if command.purpose != CommandPurpose.MOVE or command.expected_board is None:
            raise OrchestratorError(
                OrchestratorErrorKind.ENGINE_FAULT,
                f"engine returned a non-move command: {command.description}",
            )

        session.pending_command = command
        self._transition(
            TurnState.OUR_TURN_ACT,
            EventCause.ENGINE_DECIDED,
            detail={
                "move": str(command.move),
                "think_ms": round(think_ms, 3),
                "deadline_ms": round(deadline.budget_s * 1000, 3),
            },
        )

    def _step_act(self) -> None:
        session = self._session
        command = session.pending_command
        if command is None:
            raise OrchestratorError(
                OrchestratorErrorKind.ILLEGAL_TRANSITION, "OUR_TURN_ACT without a pending command"
            )

        start = self._clock()
        try:
            frame = self._capture.capture()
        except ControllerError as e:
            self._metrics.record_error(type(e).__name__)
            self._route_anomaly(TurnState.OUR_TURN_ACT, trigger="pre_action_capture", error=e)
            return

        overlay = self._detector.detect_overlay(frame)
        if overlay is not None:
            self._route_anomaly(TurnState.OUR_TURN_ACT, trigger="pre_action", signal=overlay)
            return

        self._inject_mark = frame.sequence
        try:
            completion = self._controller.inject(
                command, self._config.orchestrator.inject_timeout_ms / 1000
            )
        except ControllerError as e:
            self._metrics.record_error(type(e).__name__)
            self._route_anomaly(TurnState.OUR_TURN_ACT, trigger="inject", error=e)
            return

        act_ms = self._elapsed_ms(start)
        self._metrics.record_phase("act", act_ms)
        self._transition(
            TurnState.OUR_TURN_VERIFY,
            EventCause.INJECTED,
            detail={
                "command": command.description,
                "inputs": len(command.inputs),
                "inject_ms": round(completion.duration_ms, 3),
            },
        )

    def _step_verify(self) -> None:
        session = self._session
        command = session.pending_command
        if command is None:
            raise OrchestratorError(
                OrchestratorErrorKind.ILLEGAL_TRANSITION,
                "OUR_TURN_VERIFY without a pending command",
            )

        start = self._clock()
        try:
            observation = self._observe()
            outcome = self._verifier.verify(observation, command, session.last_board)
        except (ControllerError, VisionError, StaleObservationError) as e:
            self._metrics.record_error(type(e).__name__)
            self._route_anomaly(
                TurnState.OUR_TURN_VERIFY,
                trigger="verify_capture",
                error=e,
                frames_after=self._inject_mark,
            )
            return
        self._metrics.record_phase("verify", self._elapsed_ms(start))

        if outcome.result == VerificationResult.MATCH:
            self._confirm_our_move(observation)
            return

        if outcome.result == VerificationResult.INCONCLUSIVE:
            self._route_anomaly(
                TurnState.OUR_TURN_VERIFY,
                trigger="inconclusive",
                observation=observation,
                frames_after=self._inject_mark,
                cause=EventCause.INCONCLUSIVE,
                detail={"verification": outcome.describe()},
            )
            return

        # An input that never landed is re-injected; anything else is re-verified.
        resume = (
            TurnState.OUR_TURN_ACT
            if outcome.mismatch == MismatchKind.NOT_APPLIED
            else TurnState.OUR_TURN_VERIFY
        )
        self._route_anomaly(
            resume,
            trigger="mismatch",
            observation=observation,
            charge_first=True,
            frames_after=self._inject_mark,
            cause=EventCause.MISMATCH,
            detail={
                "verification": outcome.describe(),
                "squares": [d.square.algebraic for d in outcome.differences],
            },
        )

    def _confirm_our_move(self, observation: BoardObservation) -> None:
        session = self._session
        command = session.pending_command
        assert command is not None

        elapsed = self._budget.charge_turn(completed=True)
        self._metrics.record_turn(elapsed * 1000)
        session.turn += 1
        session.side_to_move = session.side_to_move.opponent()
        session.confirm(observation)
        session.pending_command = None
        session.reset_retries()
        logger.info(
            f"[TURN {session.turn}] {command.description} confirmed, "
            f"charged {elapsed * 1000:.0f}ms, "
            f"session remaining {self._budget.session_remaining_s():.2f}s"
        )

        if self._budget.exhausted():
            raise OrchestratorError(
                OrchestratorErrorKind.TIMEOUT, "session time budget exhausted"
            )
        self._transition(
            TurnState.OPP_TURN_WAIT,
            EventCause.MATCH,
            detail={"move": str(command.move), "charged_ms": round(elapsed * 1000, 3)},
        )

    def _step_opponent_wait(self) -> None:
        session = self._session
        orch = self._config.orchestrator
        threshold = self._verifier.confidence_threshold
        started = self._clock()

        while True:
            if self._cancelled.is_set():
                raise OrchestratorError(OrchestratorErrorKind.CANCELLED, self._cancel_reason)

            try:
                observation = self._observe()
            except (ControllerError, VisionError) as e:
                self._metrics.record_error(type(e).__name__)
                self._route_anomaly(TurnState.OPP_TURN_WAIT, trigger="wait_capture", error=e)
                return

            if observation.game_result is not None:
                self._finish(
                    _RESULT_OUTCOMES[observation.game_result],
                    EventCause.GAME_OVER,
                    {"result": observation.game_result.value, "sequence": observation.sequence},
                )
                return

            changed = observation.fingerprint != session.fingerprint
            if changed and observation.is_confident(threshold):
                self._opponent_moved(observation, started)
                return

            waited = self._clock() - started
            if waited >= orch.opponent_stall_timeout_s:
                logger.warning(f"Opponent stalled for {waited:.1f}s")
                self._route_anomaly(
                    TurnState.OPP_TURN_WAIT,
                    trigger="stall",
                    observation=observation,
                    cause=EventCause.STALL,
                    detail={"waited_s": round(waited, 3)},
                )
                return

            self._sleep(orch.poll_interval_ms / 1000)

    def _opponent_moved(self, observation: BoardObservation, started: float) -> None:
        session = self._session
        diffs = session.last_board.differences(observation.board) if session.last_board else []
        move = BoardState.infer_move(diffs)
        session.side_to_move = session.side_to_move.opponent()
        session.reset_retries()
        logger.info(f"Opponent moved: {move or 'unrecognized change'}")
        self._transition(
            TurnState.READY,
            EventCause.BOARD_CHANGED,
            detail={
                "move": str(move) if move else None,
                "changed": len(diffs),
                "waited_ms": round(self._elapsed_ms(started), 3),
            },
        )

    def _step_recovery(self) -> None:
        session = self._session
        signal = session.pending_signal
        resume = session.resume_state
        if signal is None or resume is None:
            raise OrchestratorError(
                OrchestratorErrorKind.ILLEGAL_TRANSITION, "RECOVERY without a pending anomaly"
            )

        result = self._coordinator.resolve(signal)
        self._metrics.record_recovery(signal.kind.value, result.resolved)
        if not result.resolved:
            raise OrchestratorError(
                OrchestratorErrorKind.UNRESOLVED_ANOMALY,
                f"{signal.kind.value} not resolved by {result.action}",
                anomaly=signal,
            )

        session.pending_signal = None
        session.resume_state = None
        detail: dict[str, Any] = {"action": result.action, **result.detail}
        if result.command is not None:
            detail["command"] = result.command.description
        logger.info(f"[RECOVERY] {result.action} done, resuming {resume.value}")
        self._transition(resume, EventCause.RECOVERED, anomaly=signal.kind, detail=detail)

    # Anomaly routing

    def _route_anomaly(
        self,
        resume: TurnState,
        *,
        trigger: str,
        error: Exception | None = None,
        observation: BoardObservation | None = None,
        signal: AnomalySignal | None = None,
        charge_first: bool = False,
        frames_after: int | None = None,
        cause: EventCause = EventCause.ANOMALY,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Charge one retry and enter RECOVERY, or abort when exhausted.

        Stalls, collaborator errors, low-confidence observations and known
        anomalies enter RECOVERY while fewer than ``max_retries`` retries have
        been charged this turn. A verification mismatch (``charge_first``) is
        charged before the check, so with the default of one retry it aborts
        without recovering. The retry count never exceeds ``max_retries``.

        Args:
            frames_after: Classify only from frames newer than this sequence.
        """
        session = self._session
        max_retries = self._config.orchestrator.max_retries
        if observation is None and self._observations:
            observation = self._observations[-1]
        if signal is None:
            signal = self._detector.classify(
                self._recent_frames(frames_after),
                observation=observation,
                geometry=self._controller.geometry,
                error=error,
                trigger=trigger,
            )
        else:
            signal = signal.model_copy(update={"trigger": trigger})

        charged = session.retries + 1 if charge_first else session.retries
        if charged >= max_retries:
            session.retries = min(charged, max_retries)
            raise OrchestratorError(
                OrchestratorErrorKind.RETRIES_EXHAUSTED,
                f"{trigger} ({signal.kind.value}) after {session.retries} of "
                f"{max_retries} retries",
                anomaly=signal,
                cause=error,
            )
        session.retries += 1

        session.resume_state = resume
        session.pending_signal = signal
        logger.warning(
            "[RECOVERY] %s during %s: %s (retry %d/%d)",
            trigger,
            session.state.value if session.state else "-",
            signal.kind.value,
            session.retries,
            max_retries,
        )
        self._transition(
            TurnState.RECOVERY,
            cause,
            anomaly=signal.kind,
            detail={
                "trigger": trigger,
                "resume": resume.value,
                **signal.evidence,
                **signal.detail,
                **(detail or {}),
            },
        )

    def _recent_frames(self, after: int | None = None) -> list[Frame]:
        frames = self._capture.get_buffer(self._config.orchestrator.diagnostic_history)
        if after is None:
            return frames
        return [f for f in frames if f.sequence > after]
