"""Tests for the pose stream boundary."""

import json
import threading

import numpy as np
import pytest

from arborscope.core.state import HandSample, PoseFrame
from arborscope.io.pose import (
    LatestPoseBuffer,
    hand_from_landmarks,
    iter_buffer,
    load_gesture_script,
    parse_script,
    pose_from_detections,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestLandmarks:
    """Tests for landmark -> hand sample mapping."""

    def test_pinch_detected(self, landmark_factory):
        hand = hand_from_landmarks(landmark_factory(pinch=True))

        assert hand.is_pinching
        assert not hand.is_open

    def test_open_palm_detected(self, landmark_factory):
        hand = hand_from_landmarks(landmark_factory(pinch=False, extended=True))

        assert hand.is_open
        assert not hand.is_pinching

    def test_curled_hand_is_neither(self, landmark_factory):
        hand = hand_from_landmarks(landmark_factory(pinch=False, extended=False))

        assert not hand.is_open
        assert not hand.is_pinching

    def test_world_mapping(self, landmark_factory):
        """Index tip (0.6, 0.5) maps to x = -3.5, y = 0, z = 8."""
        hand = hand_from_landmarks(landmark_factory(wrist_x=0.6))

        assert hand.position == pytest.approx((-3.5, 0.0, 8.0))
        assert hand.screen_x == pytest.approx(0.6)

    def test_two_column_landmarks(self, landmark_factory):
        lm = [row[:2] for row in landmark_factory(pinch=True)]

        assert hand_from_landmarks(lm).is_pinching

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            hand_from_landmarks([[0.5, 0.5, 0.0]] * 3)

    def test_pose_from_detections(self, landmark_factory):
        pose = pose_from_detections(
            ["Left", "Right", "Unknown"],
            [landmark_factory(pinch=True), landmark_factory(), landmark_factory()],
        )

        assert pose.left.is_pinching
        assert pose.right.is_open


class TestLatestPoseBuffer:
    """Tests for the single-slot pose mailbox."""

    def test_empty_buffer_is_absent(self):
        assert LatestPoseBuffer().snapshot() == PoseFrame()

    def test_latest_wins(self):
        buffer = LatestPoseBuffer()
        first = PoseFrame(right=HandSample(position=(1, 0, 8)))
        second = PoseFrame(right=HandSample(position=(2, 0, 8)))

        buffer.publish(first)
        buffer.publish(second)

        assert buffer.snapshot() is second

    def test_closed_buffer_is_absent(self):
        buffer = LatestPoseBuffer()
        buffer.publish(PoseFrame(left=HandSample(position=(0, 0, 8), is_pinching=True)))

        buffer.close()
        buffer.publish(PoseFrame(left=HandSample(position=(0, 0, 8))))

        assert buffer.closed
        assert buffer.snapshot() == PoseFrame()

    def test_stale_sample_is_absent(self):
        clock = FakeClock()
        buffer = LatestPoseBuffer(max_age=0.5, clock=clock)
        pose = PoseFrame(right=HandSample(position=(0, 0, 8), is_open=True))
        buffer.publish(pose)

        clock.now = 0.4
        assert buffer.snapshot() is pose
        clock.now = 0.6
        assert buffer.snapshot() == PoseFrame()

    def test_concurrent_publish(self):
        """A producer thread never leaves the reader with a torn sample."""
        buffer = LatestPoseBuffer()
        stop = threading.Event()

        def produce():
            i = 0
            while not stop.is_set():
                x = float(i % 100)
                buffer.publish(PoseFrame(left=HandSample(position=(x, x, x))))
                i += 1

        worker = threading.Thread(target=produce)
        worker.start()
        try:
            for _ in range(2000):
                left = buffer.snapshot().left
                if left is not None:
                    assert left.position[0] == left.position[1] == left.position[2]
        finally:
            stop.set()
            worker.join()

    def test_iter_buffer(self):
        buffer = LatestPoseBuffer()
        frames = list(iter_buffer(buffer, 3))

        assert len(frames) == 3
        assert all(f["pose"] == PoseFrame() for f in frames)


class TestGestureScript:
    """Tests for gesture script loading."""

    def test_parse_hands(self, landmark_factory):
        script = parse_script({
            "fps": 30,
            "frames": [
                {"hands": {"right": {"position": [1, 2, 8], "is_open": True, "screen_x": 0.9}}},
                {"hands": {"left": {"landmarks": landmark_factory(pinch=True)}}},
                {},
                {"chaos_delta": 0.1, "viewer": {"position": [0, 0, 20]}},
            ],
        })

        assert script["fps"] == 30
        frames = script["frames"]
        assert frames[0]["pose"].right.is_open
        assert frames[0]["pose"].right.screen_x == 0.9
        assert frames[1]["pose"].left.is_pinching
        assert frames[2]["pose"] == PoseFrame()
        assert frames[3]["chaos_delta"] == 0.1
        assert frames[3]["viewer"].position == (0, 0, 20)

    def test_missing_frames_key(self):
        with pytest.raises(ValueError):
            parse_script({"fps": 60})

    def test_bad_hand_entry(self):
        with pytest.raises(ValueError):
            parse_script({"frames": [{"hands": {"left": {"position": [1, 2]}}}]})

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "script.json"
        path.write_text(json.dumps({"frames": [{"hands": {}}] * 5}))

        script = load_gesture_script(path)

        assert script["fps"] == 60
        assert len(script["frames"]) == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_gesture_script(tmp_path / "nope.json")


def test_finite_positions_from_landmarks(landmark_factory):
    hand = hand_from_landmarks(np.asarray(landmark_factory(), dtype=np.float32))

    assert hand.is_valid()
