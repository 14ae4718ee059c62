"""Screen layout of the match start dialogs."""

from __future__ import annotations

from enum import StrEnum

from janggibot.models.actions import ActionCommand, Point
from janggibot.models.board import Formation


class StartFlowStep(StrEnum):
    """Buttons tapped to start a match."""

    APPLY = "apply"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_OK = "confirm_ok"


START_FLOW_POINTS: dict[StartFlowStep, Point] = {
    StartFlowStep.APPLY: Point(x=550, y=1180),
    StartFlowStep.CONFIRM_YES: Point(x=280, y=710),
    StartFlowStep.CONFIRM_OK: Point(x=360, y=750),
}

FORMATION_POINTS: dict[Formation, Point] = {
    Formation.MASANG_MASANG: Point(x=280, y=560),
    Formation.SANGMA_SANGMA: Point(x=450, y=560),
    Formation.MASANG_SANGMA: Point(x=280, y=620),
    Formation.SANGMA_MASANG: Point(x=450, y=620),
}

FORMATION_CONFIRM = Point(x=450, y=680)


def start_flow_commands(formation: Formation) -> list[ActionCommand]:
    """Commands that open a match and pick ``formation``."""
    return [
        ActionCommand.taps(
            [START_FLOW_POINTS[step] for step in StartFlowStep],
            description="start match",
        ),
        ActionCommand.taps(
            [FORMATION_POINTS[formation], FORMATION_CONFIRM],
            description=f"select formation {formation.value}",
        ),
    ]
