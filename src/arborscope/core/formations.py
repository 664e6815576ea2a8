"""
Formation generators.

Pure functions returning (count, 3) float arrays of target positions:
- TREE: conical spiral (diffuse random fill or golden-angle ornament layout)
- GLYPH: point cloud sampled from a rasterized character
- RIBBON: parametric helix wrapping the cone
- SCATTER: thick spherical shell, the shared "exploded" target
"""

import logging
import math
from functools import lru_cache

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from arborscope.config import GlyphParams, TREE_HEIGHT, TREE_RADIUS

logger = logging.getLogger(__name__)

TREE = "TREE"
GLYPH = "GLYPH"
RIBBON = "RIBBON"
SCATTER = "SCATTER"


def golden_angle() -> float:
    """pi * (3 - sqrt(5)), about 137.5 degrees."""
    return math.pi * (3.0 - math.sqrt(5.0))


def tree_position(
    h: np.ndarray,
    theta: np.ndarray,
    radius_offset: float = 0.0,
    height: float = TREE_HEIGHT,
    radius: float = TREE_RADIUS,
) -> np.ndarray:
    """
    Map height ratios and azimuths onto the cone surface.

    Args:
        h: Height ratio in [0, 1] (0 = base, 1 = apex).
        theta: Azimuth in radians.
        radius_offset: Added to the base radius before tapering.

    Returns:
        (N, 3) positions.
    """
    h = np.asarray(h, dtype=np.float64)
    theta = np.asarray(theta, dtype=np.float64)
    y = -height / 2 + h * height
    r = (1.0 - h) * (radius + radius_offset)
    return np.stack([r * np.cos(theta), y, r * np.sin(theta)], axis=-1)


def ornament_layout(
    count: int,
    angle_offset: float = 0.0,
    has_apex: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Deterministic even layout: returns (h, theta) per entity.

    ``h = 1 - sqrt(1 - (i + 0.5) / count)`` spreads entities evenly over the
    cone's surface area, and golden-angle azimuths never repeat. With
    ``has_apex`` the last entity is pinned to the top.
    """
    i = np.arange(count, dtype=np.float64)
    h = 1.0 - np.sqrt(1.0 - (i + 0.5) / count)
    theta = i * golden_angle() + angle_offset
    if has_apex and count > 0:
        h[-1] = 1.0
        theta[-1] = 0.0
    return h, theta


def tree_formation(
    count: int,
    rng: np.random.Generator,
    layout: str = "ornament",
    radius_offset: float = 0.0,
    angle_offset: float = 0.0,
    has_apex: bool = False,
    height: float = TREE_HEIGHT,
    radius: float = TREE_RADIUS,
) -> np.ndarray:
    """TREE targets for a whole group."""
    if layout == "diffuse":
        # Density bias toward the top keeps the narrow tip from looking sparse
        h = np.power(rng.random(count), 0.8)
        theta = rng.random(count) * 2 * math.pi
    else:
        h, theta = ornament_layout(count, angle_offset, has_apex)
    return tree_position(h, theta, radius_offset, height, radius)


def ribbon_formation(
    count: int,
    turns: float = 3.0,
    outer_radius: float = 10.0,
    inner_radius: float = 2.0,
    height: float = TREE_HEIGHT + 4.0,
) -> np.ndarray:
    """Helix climbing the cone while tightening from outer to inner radius."""
    if count <= 0:
        return np.zeros((0, 3))
    if count == 1:
        t = np.zeros(1)
    else:
        t = np.arange(count, dtype=np.float64) / (count - 1)
    angle = t * turns * 2 * math.pi
    y = -height / 2 + t * height
    r = outer_radius + (inner_radius - outer_radius) * t
    return np.stack([r * np.cos(angle), y, r * np.sin(angle)], axis=-1)


def spherical_to_cartesian(radius, polar, azimuth) -> np.ndarray:
    """y-up spherical coordinates (polar measured from +y, azimuth from +z)."""
    radius = np.asarray(radius, dtype=np.float64)
    polar = np.asarray(polar, dtype=np.float64)
    azimuth = np.asarray(azimuth, dtype=np.float64)
    sin_p = np.sin(polar)
    return np.stack(
        [radius * sin_p * np.sin(azimuth), radius * np.cos(polar), radius * sin_p * np.cos(azimuth)],
        axis=-1,
    )


def scatter_positions(
    count: int,
    rng: np.random.Generator,
    band: tuple[float, float] = (15.0, 35.0),
) -> np.ndarray:
    """Uniform directions on the sphere, radius drawn from ``band``."""
    r_min, r_max = band
    r = r_min + rng.random(count) * (r_max - r_min)
    polar = np.arccos(2 * rng.random(count) - 1)
    azimuth = rng.random(count) * 2 * math.pi
    return spherical_to_cartesian(r, polar, azimuth)


def random_unit_vectors(count: int, rng: np.random.Generator) -> np.ndarray:
    """Random unit directions; zero-length draws are replaced by +y."""
    v = rng.random((count, 3)) - 0.5
    norms = np.linalg.norm(v, axis=1, keepdims=True)
    out = np.divide(v, norms, out=np.zeros_like(v), where=norms > 1e-12)
    out[norms[:, 0] <= 1e-12] = (0.0, 1.0, 0.0)
    return out


@lru_cache(maxsize=64)
def _rasterize(
    char: str,
    canvas_size: int,
    font_size: int,
    threshold: int,
    font_path: str | None,
) -> np.ndarray:
    if not char:
        return np.zeros((0, 2))

    try:
        if font_path:
            font = ImageFont.truetype(font_path, font_size)
        else:
            font = ImageFont.load_default(size=font_size)
    except OSError as e:
        logger.warning("Could not load font %r (%s); glyph %r degenerates", font_path, e, char)
        return np.zeros((0, 2))

    img = Image.new("L", (canvas_size, canvas_size), 0)
    draw = ImageDraw.Draw(img)
    left, top, right, bottom = draw.textbbox((0, 0), char, font=font)
    x = (canvas_size - (right - left)) / 2 - left
    y = (canvas_size - (bottom - top)) / 2 - top
    draw.text((x, y), char, fill=255, font=font)

    pixels = np.asarray(img)
    rows, cols = np.nonzero(pixels > threshold)
    if len(rows) == 0:
        logger.warning("Glyph %r has no lit pixels; its formation collapses to the origin", char)
        return np.zeros((0, 2))

    points = np.stack([cols / canvas_size - 0.5, 0.5 - rows / canvas_size], axis=-1)
    points.setflags(write=False)
    return points


def glyph_points(char: str, params: GlyphParams | None = None) -> np.ndarray:
    """Lit pixels of ``char`` as (P, 2) coordinates in the centered unit square."""
    params = params or GlyphParams()
    return _rasterize(
        char,
        params.canvas_size,
        params.font_size,
        params.threshold,
        params.font_path,
    )


def glyph_formation(
    char: str,
    count: int,
    rng: np.random.Generator,
    params: GlyphParams | None = None,
) -> np.ndarray:
    """
    GLYPH targets: each entity samples a lit pixel with replacement.

    A glyph without lit pixels yields ``count`` origin points instead of
    raising, so the group still has a finite (degenerate) target.
    """
    params = params or GlyphParams()
    points = glyph_points(char, params)
    positions = np.zeros((count, 3))
    if len(points) == 0 or count == 0:
        return positions

    idx = rng.integers(0, len(points), size=count)
    positions[:, 0] = points[idx, 0] * params.scale
    positions[:, 1] = points[idx, 1] * params.scale
    positions[:, 2] = (rng.random(count) - 0.5) * 2 * params.depth_jitter
    return positions
