"""
Shared simulation state and per-frame input snapshots.

Everything the frame pass reads from outside (clock, pose, viewer) arrives as
an immutable snapshot. Everything it mutates lives on one
:class:`SimulationState`, passed explicitly to each component.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

Vec3 = Tuple[float, float, float]


def is_finite_vec(value) -> bool:
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        return False
    return arr.shape == (3,) and bool(np.all(np.isfinite(arr)))


def is_finite_scalar(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True)
class HandSample:
    """One tracked hand, already mapped into world space."""
    position: Vec3
    is_pinching: bool = False
    is_open: bool = False
    # Normalized horizontal image coordinate of the wrist (0..1), if known
    screen_x: Optional[float] = None

    def is_valid(self) -> bool:
        if not is_finite_vec(self.position):
            return False
        return self.screen_x is None or is_finite_scalar(self.screen_x)


@dataclass(frozen=True)
class PoseFrame:
    """Most recent pose: a grab channel (left) and a control channel (right)."""
    left: Optional[HandSample] = None
    right: Optional[HandSample] = None

    def sanitized(self, previous: "PoseFrame") -> "PoseFrame":
        """Replace any numerically invalid hand with the previous frame's hand."""
        left = self.left if self.left is None or self.left.is_valid() else previous.left
        right = self.right if self.right is None or self.right.is_valid() else previous.right
        return PoseFrame(left=left, right=right)


ABSENT_POSE = PoseFrame()


@dataclass(frozen=True)
class FrameClock:
    """Elapsed time and per-frame delta supplied by the renderer."""
    elapsed: float
    delta: float

    def is_valid(self) -> bool:
        return (
            is_finite_scalar(self.elapsed)
            and is_finite_scalar(self.delta)
            and self.delta >= 0.0
        )


@dataclass(frozen=True)
class ViewFrame:
    """Viewer position and facing direction (world space)."""
    position: Vec3 = (0.0, 0.0, 30.0)
    direction: Vec3 = (0.0, 0.0, -1.0)

    def is_valid(self) -> bool:
        if not (is_finite_vec(self.position) and is_finite_vec(self.direction)):
            return False
        return float(np.linalg.norm(self.direction)) > 1e-9

    def point_ahead(self, distance: float) -> np.ndarray:
        d = np.asarray(self.direction, dtype=np.float64)
        d = d / np.linalg.norm(d)
        return np.asarray(self.position, dtype=np.float64) + d * distance


@dataclass
class ParentFrame:
    """A translated transform spinning about the world y axis."""
    offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    yaw: float = 0.0

    def _rotation(self) -> Rotation:
        return Rotation.from_euler("y", self.yaw)

    def to_world(self, local: np.ndarray) -> np.ndarray:
        return self._rotation().apply(local) + self.offset

    def to_local(self, world: np.ndarray) -> np.ndarray:
        return self._rotation().inv().apply(np.asarray(world) - self.offset)


@dataclass
class SimulationState:
    """
    Process-wide state shared by the engine components.

    ``chaos`` is written only by :class:`~arborscope.core.signals.ChaosController`,
    ``mode_index``/``armed`` only by
    :class:`~arborscope.core.modes.FormationStateMachine`, ``focused_note`` only
    by :class:`~arborscope.core.focus.FocusArbiter`.
    """
    chaos: float = 0.0
    rotation_rate: float = 0.1
    mode_index: int = 0
    armed: bool = False
    focused_note: Optional[int] = None
    time: float = 0.0
    frame_index: int = 0
    pose: PoseFrame = ABSENT_POSE
    viewer: ViewFrame = field(default_factory=ViewFrame)
