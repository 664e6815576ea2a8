"""
Point-splat preview renderer.

A minimal stand-in for the real rendering collaborator: projects each
group's rendered positions through a pinhole camera at the viewer frame,
accumulates them into a float field, softens with a gaussian, and tone-maps
to a grayscale frame. Notes are drawn as outlined squares.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, ImageDraw
from scipy.ndimage import gaussian_filter

from arborscope.core.focus import FOCUSED
from arborscope.core.state import ViewFrame
from arborscope.engine import FrameSnapshot


@dataclass
class PreviewConfig:
    width: int = 640
    height: int = 480
    fov_deg: float = 50.0
    near: float = 0.1
    splat_sigma: float = 1.0
    gain: float = 0.6
    note_size: float = 1.5


class PreviewRenderer:
    """Renders :class:`FrameSnapshot` objects to uint8 (H, W) frames."""

    def __init__(self, config: PreviewConfig | None = None):
        self.cfg = config or PreviewConfig()

    def _basis(self, viewer: ViewFrame):
        forward = np.asarray(viewer.direction, dtype=np.float64)
        forward = forward / np.linalg.norm(forward)
        up = np.array([0.0, 1.0, 0.0])
        if abs(np.dot(forward, up)) > 0.999:
            up = np.array([0.0, 0.0, 1.0])
        right = np.cross(forward, up)
        right /= np.linalg.norm(right)
        true_up = np.cross(right, forward)
        return forward, right, true_up

    def project(self, points: np.ndarray, viewer: ViewFrame):
        """
        Project world points to pixel coordinates.

        Returns:
            (cols, rows, depth, visible) arrays.
        """
        cfg = self.cfg
        forward, right, up = self._basis(viewer)
        rel = np.asarray(points, dtype=np.float64).reshape(-1, 3) - np.asarray(viewer.position)
        z = rel @ forward
        visible = z > cfg.near
        safe_z = np.where(visible, z, 1.0)

        focal = (cfg.height / 2) / math.tan(math.radians(cfg.fov_deg) / 2)
        cols = cfg.width / 2 + (rel @ right) / safe_z * focal
        rows = cfg.height / 2 - (rel @ up) / safe_z * focal
        visible &= (cols >= 0) & (cols < cfg.width) & (rows >= 0) & (rows < cfg.height)
        return cols, rows, z, visible

    def render(self, snapshot: FrameSnapshot, viewer: ViewFrame | None = None) -> np.ndarray:
        cfg = self.cfg
        viewer = viewer or snapshot.viewer
        field = np.zeros((cfg.height, cfg.width), dtype=np.float32)

        for name, pos in snapshot.positions.items():
            if len(pos) == 0:
                continue
            cols, rows, _, visible = self.project(pos, viewer)
            weights = snapshot.scales[name][visible].astype(np.float32)
            np.add.at(
                field,
                (rows[visible].astype(int), cols[visible].astype(int)),
                weights,
            )

        if cfg.splat_sigma > 0:
            field = gaussian_filter(field, sigma=cfg.splat_sigma)
        value = 1.0 - np.exp(-field * cfg.gain * 10.0)
        frame = (np.clip(value, 0, 1) * 255).astype(np.uint8)

        if snapshot.notes:
            frame = self._draw_notes(frame, snapshot, viewer)
        return frame

    def _draw_notes(self, frame: np.ndarray, snapshot: FrameSnapshot, viewer: ViewFrame) -> np.ndarray:
        cfg = self.cfg
        img = Image.fromarray(frame)
        draw = ImageDraw.Draw(img)
        points = np.array([n.position for n in snapshot.notes])
        cols, rows, z, visible = self.project(points, viewer)
        focal = (cfg.height / 2) / math.tan(math.radians(cfg.fov_deg) / 2)
        for note, c, r, depth, vis in zip(snapshot.notes, cols, rows, z, visible):
            if not vis:
                continue
            half = max(1.0, cfg.note_size / 2 / depth * focal)
            fill = 255 if note.state == FOCUSED else None
            draw.rectangle([c - half, r - half, c + half, r + half], outline=255, fill=fill)
        return np.array(img)

    def save(self, frame: np.ndarray, path: Union[str, Path]) -> Path:
        path = Path(path)
        Image.fromarray(frame).save(path)
        return path
