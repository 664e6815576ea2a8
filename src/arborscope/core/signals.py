"""
Control signal conditioning.

Turns the raw pose stream into the two smoothed scalars the scene runs on:
the chaos level (bounded rise/decay law, saturating in [0, 1]) and the
rotation rate (exponential smoothing toward a hand-position target).
"""

import logging
from typing import Optional

import numpy as np

from arborscope.config import ChaosParams, RotationParams
from arborscope.core.state import HandSample, PoseFrame, SimulationState, is_finite_scalar

logger = logging.getLogger(__name__)

# Horizontal world span of the hand mapping, used to recover screen_x
HAND_SPAN_X = 35.0


class ChaosController:
    """
    Owns the chaos level.

    Each frame the level moves toward a desired value (a target, or the
    current level plus a delta) by at most ``rise_step`` upward or
    ``decay_step`` downward, then clips to [0, 1]. Fast input therefore
    never produces a jump, and both ends are reached exactly.
    """

    def __init__(self, params: ChaosParams | None = None):
        self.params = params or ChaosParams()

    @staticmethod
    def target_from_pose(pose: PoseFrame) -> float:
        """Open right palm drives the field apart; anything else lets it settle."""
        if pose.right is not None and pose.right.is_open:
            return 1.0
        return 0.0

    def update(
        self,
        state: SimulationState,
        target: Optional[float] = None,
        delta: Optional[float] = None,
    ) -> float:
        """
        Advance ``state.chaos`` by one frame.

        Args:
            state: Shared simulation state (the only place chaos is written).
            target: Desired level in [0, 1].
            delta: Desired change relative to the current level. Used when
                ``target`` is None.

        Returns:
            The new chaos level.
        """
        current = state.chaos
        if target is not None:
            desired = target
        elif delta is not None:
            desired = current + delta if is_finite_scalar(delta) else delta
        else:
            desired = 0.0

        if not is_finite_scalar(desired):
            logger.debug("Rejected non-finite chaos input %r", desired)
            return current

        desired = float(np.clip(desired, 0.0, 1.0))
        step = desired - current
        step = min(step, self.params.rise_step)
        step = max(step, -self.params.decay_step)
        new = float(np.clip(current + step, 0.0, 1.0))

        if not is_finite_scalar(new):
            return current
        state.chaos = new
        return new


class RotationConditioner:
    """Smooths the right hand's horizontal offset into a rotation rate."""

    def __init__(self, params: RotationParams | None = None):
        self.params = params or RotationParams()

    def _screen_x(self, hand: HandSample) -> float:
        if hand.screen_x is not None:
            return float(hand.screen_x)
        # Inverse of the landmark -> world mapping (x = (0.5 - sx) * span)
        return 0.5 - float(hand.position[0]) / HAND_SPAN_X

    def target_rate(self, hand: Optional[HandSample]) -> float:
        p = self.params
        if hand is None:
            return p.idle_rate
        return p.idle_rate + (self._screen_x(hand) - p.neutral_x) * p.sensitivity

    def update(self, state: SimulationState, hand: Optional[HandSample]) -> float:
        target = self.target_rate(hand)
        if not is_finite_scalar(target):
            logger.debug("Rejected non-finite rotation target %r", target)
            return state.rotation_rate
        state.rotation_rate += (target - state.rotation_rate) * self.params.alpha
        return state.rotation_rate
