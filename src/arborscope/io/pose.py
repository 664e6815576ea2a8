"""
Pose stream boundary.

Converts hand landmarks into :class:`HandSample` records, holds the most
recent pose for the frame pass, and loads scripted gesture sequences.

The pose estimator runs at its own cadence (usually on a capture thread);
the frame pass never waits on it and simply reads whatever sample is newest.
"""

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from arborscope.core.state import ABSENT_POSE, HandSample, PoseFrame, ViewFrame

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8

# Landmark (normalized image) -> world mapping
WORLD_SPAN_X = 35.0
WORLD_SPAN_Y = 25.0
WORLD_DEPTH = 8.0

PINCH_DISTANCE = 0.08
OPEN_EXTENSION = 0.15


def hand_from_landmarks(landmarks: Sequence[Sequence[float]]) -> HandSample:
    """
    Build a hand sample from 21 normalized (x, y, z) landmarks.

    The index fingertip is the pointer; thumb-to-index distance decides the
    pinch; index-to-wrist extension decides the open palm.
    """
    lm = np.asarray(landmarks, dtype=np.float64)
    if lm.ndim != 2 or lm.shape[0] <= INDEX_TIP or lm.shape[1] < 2:
        raise ValueError(f"Expected 21 hand landmarks, got shape {lm.shape}")
    if lm.shape[1] == 2:
        lm = np.hstack([lm, np.zeros((lm.shape[0], 1))])

    index_tip = lm[INDEX_TIP, :3]
    thumb_tip = lm[THUMB_TIP, :3]
    wrist = lm[WRIST, :3]

    position = (
        float((0.5 - index_tip[0]) * WORLD_SPAN_X),
        float((0.5 - index_tip[1]) * WORLD_SPAN_Y),
        WORLD_DEPTH,
    )
    is_pinching = bool(np.linalg.norm(thumb_tip - index_tip) < PINCH_DISTANCE)
    is_open = bool(np.linalg.norm(index_tip - wrist) > OPEN_EXTENSION) and not is_pinching
    return HandSample(
        position=position,
        is_pinching=is_pinching,
        is_open=is_open,
        screen_x=float(wrist[0]),
    )


def pose_from_detections(
    labels: Sequence[str],
    landmarks_list: Sequence[Sequence[Sequence[float]]],
) -> PoseFrame:
    """Pair handedness labels ("Left"/"Right") with their landmark sets."""
    hands: Dict[str, HandSample] = {}
    for label, landmarks in zip(labels, landmarks_list):
        key = label.strip().lower()
        if key not in ("left", "right"):
            logger.debug("Ignoring hand with label %r", label)
            continue
        hands[key] = hand_from_landmarks(landmarks)
    return PoseFrame(left=hands.get("left"), right=hands.get("right"))


class LatestPoseBuffer:
    """
    Single-slot mailbox between the pose producer and the frame pass.

    ``publish`` overwrites the slot; ``snapshot`` returns the newest pose
    without blocking on the producer. After ``close`` (stream ended or
    failed) every snapshot is absent, so the scene falls back to idle motion.
    """

    def __init__(self, max_age: float | None = None, clock=time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self._lock = threading.Lock()
        self._pose: PoseFrame = ABSENT_POSE
        self._stamp: float | None = None
        self._closed = False

    def publish(self, pose: PoseFrame):
        with self._lock:
            if self._closed:
                return
            self._pose = pose
            self._stamp = self._clock()

    def close(self):
        with self._lock:
            self._closed = True
            self._pose = ABSENT_POSE
        logger.info("Pose stream closed; scene continues with idle motion")

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> PoseFrame:
        with self._lock:
            if self._closed or self._stamp is None:
                return ABSENT_POSE
            if self.max_age is not None and self._clock() - self._stamp > self.max_age:
                return ABSENT_POSE
            return self._pose


def _hand_from_dict(data: Optional[Dict[str, Any]]) -> Optional[HandSample]:
    if data is None:
        return None
    if "landmarks" in data:
        return hand_from_landmarks(data["landmarks"])
    position = data.get("position")
    if position is None or len(position) != 3:
        raise ValueError(f"Hand entry needs a 3-element 'position': {data!r}")
    return HandSample(
        position=tuple(float(v) for v in position),
        is_pinching=bool(data.get("is_pinching", False)),
        is_open=bool(data.get("is_open", False)),
        screen_x=data.get("screen_x"),
    )


def parse_script_frame(data: Dict[str, Any]) -> Dict[str, Any]:
    """Turn one JSON script frame into keyword inputs for ``SceneEngine.run``."""
    hands = data.get("hands") or {}
    frame: Dict[str, Any] = {
        "pose": PoseFrame(
            left=_hand_from_dict(hands.get("left")),
            right=_hand_from_dict(hands.get("right")),
        )
    }
    viewer = data.get("viewer")
    if viewer is not None:
        frame["viewer"] = ViewFrame(
            position=tuple(viewer.get("position", (0.0, 0.0, 30.0))),
            direction=tuple(viewer.get("direction", (0.0, 0.0, -1.0))),
        )
    for key in ("chaos_target", "chaos_delta"):
        if key in data:
            frame[key] = data[key]
    return frame


def load_gesture_script(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a gesture script.

    Format::

        {"fps": 60, "frames": [{"hands": {"left": {...}, "right": {...}}}, ...]}

    Each hand is either ``{"position": [x, y, z], "is_pinching": bool,
    "is_open": bool, "screen_x": float}`` or ``{"landmarks": [[x, y, z], ...]}``.

    Returns:
        Dict with ``fps`` and parsed ``frames``.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Gesture script not found: {path}")
    with open(path) as f:
        data = json.load(f)
    return parse_script(data)


def parse_script(data: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(data, dict) or not isinstance(data.get("frames"), list):
        raise ValueError("Gesture script must be an object with a 'frames' list")
    frames: List[Dict[str, Any]] = [parse_script_frame(fr) for fr in data["frames"]]
    return {"fps": int(data.get("fps", 60)), "frames": frames}


def iter_buffer(buffer: LatestPoseBuffer, n_frames: int) -> Iterable[Dict[str, Any]]:
    """Frame inputs that poll a live buffer once per frame."""
    for _ in range(n_frames):
        yield {"pose": buffer.snapshot()}
