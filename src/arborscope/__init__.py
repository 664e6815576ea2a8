"""Gesture-driven formation engine for deformable particle fields."""

from arborscope.config import EngineConfig, profile_config
from arborscope.core.state import FrameClock, HandSample, PoseFrame, ViewFrame
from arborscope.engine import FrameSnapshot, SceneEngine
from arborscope.io.exporter import StateExporter
from arborscope.io.pose import LatestPoseBuffer

__version__ = "0.1.0"
__all__ = [
    "EngineConfig",
    "profile_config",
    "FrameClock",
    "HandSample",
    "PoseFrame",
    "ViewFrame",
    "FrameSnapshot",
    "SceneEngine",
    "StateExporter",
    "LatestPoseBuffer",
]
