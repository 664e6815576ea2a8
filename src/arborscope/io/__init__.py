"""Pose input and manifest output."""

from arborscope.io.pose import LatestPoseBuffer, hand_from_landmarks, load_gesture_script

__all__ = ["LatestPoseBuffer", "hand_from_landmarks", "load_gesture_script"]
