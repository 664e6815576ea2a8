"""
Engine configuration.

All tunable constants live here as dataclasses so a scene can be described,
scaled and overridden from JSON without touching the simulation code.
"""

import json
import math
from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from typing import Any, Dict, Tuple, Union

TREE_HEIGHT = 16.0
TREE_RADIUS = 6.0


@dataclass
class GroupSpec:
    """One entity group: its formation rule and motion constants."""
    name: str
    count: int
    layout: str = "ornament"  # "ornament", "diffuse", "ribbon"
    follows_glyph: bool = False
    parent: str = "outer"  # "inner", "outer"
    radius_offset: float = 0.0
    angle_offset: float = 0.0
    has_apex: bool = False
    base_scale: float = 0.5
    apex_scale: float = 0.8
    explode_magnitude: float = 12.0
    smoothing: float = 0.08
    ripple: float = 0.0


@dataclass
class ChaosParams:
    """Bounded chaos accumulation law (per-frame steps)."""
    rise_step: float = 0.025
    decay_step: float = 0.02


@dataclass
class RotationParams:
    """Right-hand rotation conditioning."""
    idle_rate: float = 0.1
    neutral_x: float = 0.75
    sensitivity: float = 1.5
    alpha: float = 0.05
    base_spin: float = 0.02
    inner_return: float = 0.95


@dataclass
class ModeParams:
    """Formation sequence and hysteresis thresholds."""
    high_threshold: float = 0.8
    low_threshold: float = 0.1
    glyphs: Tuple[str, ...] = ("N", "O", "E", "L")
    interleave_tree: bool = False
    face_viewer_below: float = 0.5


@dataclass
class GlyphParams:
    """Glyph rasterization parameters."""
    canvas_size: int = 128
    font_size: int = 90
    threshold: int = 150
    scale: float = 15.0
    depth_jitter: float = 0.25
    font_path: str | None = None


@dataclass
class FocusParams:
    """Note layout and grab arbitration."""
    note_count: int = 10
    anchor_radius: float = 7.5
    anchor_radius_jitter: float = 1.0
    anchor_lift: float = 0.2
    polar_start: float = -0.3
    scatter_radius: float = 10.0
    scatter_radius_jitter: float = 4.0
    scatter_influence: float = 0.3
    capture_radius: float = 4.0
    view_distance: float = 8.0
    focused_smoothing: float = 0.2
    attached_smoothing: float = 0.1
    tie_break: str = "first"  # "first", "nearest"


@dataclass
class EngineConfig:
    """Complete scene description for :class:`arborscope.engine.SceneEngine`."""
    groups: Tuple[GroupSpec, ...] = field(default_factory=lambda: default_groups())
    chaos: ChaosParams = field(default_factory=ChaosParams)
    rotation: RotationParams = field(default_factory=RotationParams)
    modes: ModeParams = field(default_factory=ModeParams)
    glyph: GlyphParams = field(default_factory=GlyphParams)
    focus: FocusParams = field(default_factory=FocusParams)

    tree_height: float = TREE_HEIGHT
    tree_radius: float = TREE_RADIUS
    parent_offset: Tuple[float, float, float] = (0.0, -5.0, 0.0)
    scatter_band: Tuple[float, float] = (15.0, 35.0)
    ribbon_turns: float = 3.0
    ribbon_radii: Tuple[float, float] = (10.0, 2.0)
    ribbon_overhang: float = 4.0
    fps: int = 60
    seed: int | None = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Build a config from plain JSON-style data, rejecting unknown keys."""
        data = dict(data)
        kwargs: Dict[str, Any] = {}
        nested = {
            "chaos": ChaosParams,
            "rotation": RotationParams,
            "modes": ModeParams,
            "glyph": GlyphParams,
            "focus": FocusParams,
        }
        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key not in known:
                raise ValueError(f"Unknown config key: {key!r}")
            if key == "groups":
                kwargs[key] = tuple(_build(GroupSpec, g) for g in value)
            elif key in nested:
                kwargs[key] = _build(nested[key], value)
            elif isinstance(value, list):
                kwargs[key] = tuple(value)
            else:
                kwargs[key] = value
        return cls(**kwargs)


def _build(kind, data: Dict[str, Any]):
    known = {f.name for f in fields(kind)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {kind.__name__} keys: {sorted(unknown)}")
    values = {k: tuple(v) if isinstance(v, list) else v for k, v in data.items()}
    return kind(**values)


def default_groups() -> Tuple[GroupSpec, ...]:
    """The standard tree: three ornament groups, canopy and ribbon."""
    return (
        GroupSpec("gold", 1500, follows_glyph=True, parent="inner",
                  has_apex=True, base_scale=0.18),
        GroupSpec("red", 400, follows_glyph=True, parent="inner",
                  radius_offset=0.5, base_scale=0.15),
        GroupSpec("green", 400, follows_glyph=True, parent="inner",
                  radius_offset=0.5, angle_offset=math.pi, base_scale=0.15),
        GroupSpec("canopy", 20000, layout="diffuse", smoothing=0.2,
                  ripple=0.05, base_scale=1.0),
        GroupSpec("ribbon", 2000, layout="ribbon", explode_magnitude=20.0,
                  base_scale=1.0),
    )


# Entity-count multipliers per profile
PROFILES = {
    "low": 0.1,
    "medium": 0.5,
    "high": 1.0,
}


def scaled(config: EngineConfig, factor: float) -> EngineConfig:
    """Return a copy of ``config`` with every group's count scaled by ``factor``."""
    groups = tuple(
        replace(g, count=max(1, int(round(g.count * factor)))) for g in config.groups
    )
    return replace(config, groups=groups)


def profile_config(profile: str = "high", seed: int | None = None) -> EngineConfig:
    if profile not in PROFILES:
        raise ValueError(f"Unknown profile {profile!r}; choose from {sorted(PROFILES)}")
    return scaled(EngineConfig(seed=seed), PROFILES[profile])


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Load an :class:`EngineConfig` from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be an object: {path}")
    return EngineConfig.from_dict(data)


def to_dict(config: Any) -> Any:
    """Plain-data view of a config, suitable for manifest metadata."""
    if is_dataclass(config):
        return {f.name: to_dict(getattr(config, f.name)) for f in fields(config)}
    if isinstance(config, (tuple, list)):
        return [to_dict(v) for v in config]
    return config
