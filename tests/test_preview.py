"""Tests for the point-splat preview renderer."""

import numpy as np
import pytest
from PIL import Image

from arborscope.core.state import HandSample, PoseFrame, ViewFrame
from arborscope.engine import SceneEngine
from arborscope.preview import PreviewConfig, PreviewRenderer


@pytest.fixture
def renderer():
    return PreviewRenderer(PreviewConfig(width=160, height=120))


@pytest.fixture
def snapshot(small_config, clock_factory):
    return SceneEngine(small_config).step(clock_factory(1))


class TestPreviewRenderer:
    def test_frame_shape(self, renderer, snapshot):
        frame = renderer.render(snapshot)

        assert frame.shape == (120, 160)
        assert frame.dtype == np.uint8
        assert frame.max() > 0

    def test_project_center(self, renderer):
        """A point straight ahead lands in the middle of the frame."""
        cols, rows, z, visible = renderer.project(np.array([[0.0, 0.0, 0.0]]), ViewFrame())

        assert visible[0]
        assert cols[0] == pytest.approx(80)
        assert rows[0] == pytest.approx(60)
        assert z[0] == pytest.approx(30)

    def test_behind_viewer_hidden(self, renderer):
        _, _, _, visible = renderer.project(np.array([[0.0, 0.0, 40.0]]), ViewFrame())

        assert not visible[0]

    def test_looking_away_is_dark(self, renderer, snapshot):
        away = ViewFrame(position=(0.0, 0.0, 30.0), direction=(0.0, 0.0, 1.0))

        assert renderer.render(snapshot, away).max() == 0

    def test_focused_note_drawn_filled(self, small_config, clock_factory, renderer):
        engine = SceneEngine(small_config, note_texts=["only"])
        target = engine.snapshot().notes[0].position
        pinch = PoseFrame(left=HandSample(position=tuple(target), is_pinching=True))
        for i in range(120):
            snap = engine.step(clock_factory(i + 1), pose=pinch)

        frame = renderer.render(snap)

        assert snap.focused_note == 0
        assert frame[60, 80] == 255

    def test_save_png(self, renderer, snapshot, tmp_path):
        path = renderer.save(renderer.render(snapshot), tmp_path / "frame.png")

        with Image.open(path) as img:
            assert img.size == (160, 120)
