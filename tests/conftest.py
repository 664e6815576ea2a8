"""Pytest configuration and shared fixtures."""

import math

import numpy as np
import pytest

from arborscope.config import EngineConfig, GroupSpec
from arborscope.core.state import FrameClock, HandSample, PoseFrame

TEST_FPS = 60
TEST_SEED = 1234


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible formations."""
    return np.random.default_rng(TEST_SEED)


@pytest.fixture
def small_config() -> EngineConfig:
    """
    A scaled-down scene with every group role represented.

    Returns:
        EngineConfig with a few hundred entities.
    """
    groups = (
        GroupSpec("gold", 60, follows_glyph=True, parent="inner", has_apex=True, base_scale=0.18),
        GroupSpec("red", 20, follows_glyph=True, parent="inner", radius_offset=0.5, base_scale=0.15),
        GroupSpec("green", 20, follows_glyph=True, parent="inner", radius_offset=0.5,
                  angle_offset=math.pi, base_scale=0.15),
        GroupSpec("canopy", 200, layout="diffuse", smoothing=0.2, ripple=0.05, base_scale=1.0),
        GroupSpec("ribbon", 50, layout="ribbon", explode_magnitude=20.0, base_scale=1.0),
    )
    return EngineConfig(groups=groups, seed=TEST_SEED)


def make_clock(frame: int, fps: int = TEST_FPS) -> FrameClock:
    """Clock for the given 1-based frame number."""
    return FrameClock(elapsed=frame / fps, delta=1.0 / fps)


@pytest.fixture
def clock_factory():
    return make_clock


@pytest.fixture
def open_palm() -> PoseFrame:
    """Right hand open at the neutral zone."""
    return PoseFrame(right=HandSample(position=(0.0, 0.0, 8.0), is_open=True, screen_x=0.75))


@pytest.fixture
def closed_hand() -> PoseFrame:
    """Right hand present but not open."""
    return PoseFrame(right=HandSample(position=(0.0, 0.0, 8.0), is_open=False, screen_x=0.75))


def landmarks(pinch: bool = False, extended: bool = True, wrist_x: float = 0.6) -> list[list[float]]:
    """
    Build 21 synthetic hand landmarks.

    Args:
        pinch: Put the thumb tip next to the index tip.
        extended: Put the index tip far from the wrist.
        wrist_x: Normalized wrist x coordinate.
    """
    lm = [[wrist_x, 0.8, 0.0] for _ in range(21)]
    index_tip = [wrist_x, 0.5 if extended else 0.75, 0.0]
    lm[8] = index_tip
    if pinch:
        lm[4] = [index_tip[0] + 0.02, index_tip[1], 0.0]
    else:
        lm[4] = [index_tip[0] + 0.2, index_tip[1] + 0.1, 0.0]
    return lm


@pytest.fixture
def landmark_factory():
    return landmarks
