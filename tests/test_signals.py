"""Tests for chaos and rotation conditioning."""

import math

import numpy as np
import pytest

from arborscope.config import ChaosParams, RotationParams
from arborscope.core.signals import ChaosController, RotationConditioner
from arborscope.core.state import HandSample, PoseFrame, SimulationState


class TestChaosController:
    """Tests for the bounded chaos accumulation law."""

    def test_rise_is_rate_limited(self):
        """A full-scale target moves chaos by at most rise_step."""
        state = SimulationState()
        ChaosController().update(state, target=1.0)

        assert state.chaos == pytest.approx(0.025)

    def test_decay_is_rate_limited(self):
        state = SimulationState(chaos=1.0)
        ChaosController().update(state, target=0.0)

        assert state.chaos == pytest.approx(0.98)

    def test_saturates_exactly(self):
        """Sustained input reaches both ends exactly and stays there."""
        controller = ChaosController()
        state = SimulationState()

        for _ in range(100):
            controller.update(state, target=1.0)
        assert state.chaos == 1.0

        for _ in range(100):
            controller.update(state, target=0.0)
        assert state.chaos == 0.0

    def test_bounded_under_adversarial_deltas(self):
        """Huge and non-finite deltas never push chaos outside [0, 1]."""
        controller = ChaosController(ChaosParams(rise_step=0.5, decay_step=0.5))
        state = SimulationState()
        rng = np.random.default_rng(3)
        deltas = list(rng.normal(0, 1e6, size=500)) + [math.inf, -math.inf, math.nan, 1e308]

        for d in deltas:
            controller.update(state, delta=d)
            assert 0.0 <= state.chaos <= 1.0
            assert math.isfinite(state.chaos)

    def test_rejects_non_finite_target(self):
        """NaN input is dropped and the previous level kept."""
        state = SimulationState(chaos=0.4)
        controller = ChaosController()

        assert controller.update(state, target=math.nan) == 0.4
        assert controller.update(state, delta=math.inf) == 0.4
        assert state.chaos == 0.4

    def test_delta_mode_is_linear(self):
        state = SimulationState()
        controller = ChaosController()

        for _ in range(10):
            controller.update(state, delta=0.01)

        assert state.chaos == pytest.approx(0.1)

    def test_target_from_pose(self, open_palm, closed_hand):
        assert ChaosController.target_from_pose(open_palm) == 1.0
        assert ChaosController.target_from_pose(closed_hand) == 0.0
        assert ChaosController.target_from_pose(PoseFrame()) == 0.0

    def test_left_hand_open_does_not_drive_chaos(self):
        pose = PoseFrame(left=HandSample(position=(0, 0, 8), is_open=True))

        assert ChaosController.target_from_pose(pose) == 0.0


class TestRotationConditioner:
    """Tests for rotation rate smoothing."""

    def test_target_rate_linear_in_screen_x(self):
        rot = RotationConditioner()
        hand = HandSample(position=(0, 0, 8), screen_x=0.95)

        assert rot.target_rate(hand) == pytest.approx(0.1 + 0.2 * 1.5)

    def test_neutral_zone_is_idle(self):
        rot = RotationConditioner()
        hand = HandSample(position=(0, 0, 8), screen_x=0.75)

        assert rot.target_rate(hand) == pytest.approx(0.1)

    def test_screen_x_recovered_from_position(self):
        """Without screen_x the world x coordinate is mapped back."""
        rot = RotationConditioner()
        from_position = HandSample(position=((0.5 - 0.95) * 35, 0, 8))
        explicit = HandSample(position=(0, 0, 8), screen_x=0.95)

        assert rot.target_rate(from_position) == pytest.approx(rot.target_rate(explicit))

    def test_single_step_smoothing(self):
        """rate += (target - rate) * alpha."""
        state = SimulationState(rotation_rate=0.1)
        hand = HandSample(position=(0, 0, 8), screen_x=0.95)

        RotationConditioner().update(state, hand)

        assert state.rotation_rate == pytest.approx(0.1 + (0.4 - 0.1) * 0.05)

    def test_converges_to_idle_without_hand(self):
        state = SimulationState(rotation_rate=2.0)
        rot = RotationConditioner(RotationParams(alpha=0.2))

        for _ in range(200):
            rot.update(state, None)

        assert state.rotation_rate == pytest.approx(0.1, abs=1e-6)

    def test_non_finite_hand_ignored(self):
        state = SimulationState(rotation_rate=0.3)
        hand = HandSample(position=(0, 0, 8), screen_x=math.nan)

        RotationConditioner().update(state, hand)

        assert state.rotation_rate == 0.3
