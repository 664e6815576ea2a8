"""Core simulation modules."""

from arborscope.core.entities import EntityGroup
from arborscope.core.focus import FocusArbiter, Note
from arborscope.core.modes import FormationStateMachine
from arborscope.core.signals import ChaosController, RotationConditioner
from arborscope.core.state import (
    FrameClock,
    HandSample,
    PoseFrame,
    SimulationState,
    ViewFrame,
)

__all__ = [
    "EntityGroup",
    "FocusArbiter",
    "Note",
    "FormationStateMachine",
    "ChaosController",
    "RotationConditioner",
    "FrameClock",
    "HandSample",
    "PoseFrame",
    "SimulationState",
    "ViewFrame",
]
