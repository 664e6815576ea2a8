"""
Entity groups and the per-frame blend kernel.

Each group keeps its entities as contiguous numpy arrays (home, scatter,
rendered, explode direction, scale), built once at construction and indexed
by entity position. The kernel is vectorized over the whole group.
"""

import logging
import math

import numpy as np

from arborscope.config import EngineConfig, GroupSpec
from arborscope.core.formations import (
    GLYPH,
    glyph_formation,
    random_unit_vectors,
    ribbon_formation,
    scatter_positions,
    tree_formation,
)
from arborscope.core.modes import FormationSpec

logger = logging.getLogger(__name__)


class EntityGroup:
    """
    A set of entities sharing one formation rule and one visual role.

    ``scatter`` and ``explode_dir`` are frozen at construction; ``home`` is
    replaced wholesale by :meth:`set_formation`; ``rendered`` is filtered
    every frame by :meth:`blend`.
    """

    def __init__(self, spec: GroupSpec, config: EngineConfig, rng: np.random.Generator):
        self.spec = spec
        self.config = config
        self.rng = rng
        self.count = spec.count

        self.scatter = scatter_positions(self.count, rng, config.scatter_band)
        self.explode_dir = random_unit_vectors(self.count, rng)

        self.base_scale = np.full(self.count, spec.base_scale)
        if spec.has_apex and self.count > 0:
            self.base_scale[-1] = spec.apex_scale

        self._tree = self._home_for_layout()
        self.home = self._tree
        self.formation_label = "RIBBON" if spec.layout == "ribbon" else "TREE"
        self.rendered = self.home.copy()
        self.scale = self.base_scale.copy()

    def _home_for_layout(self) -> np.ndarray:
        spec, cfg = self.spec, self.config
        if spec.layout == "ribbon":
            outer, inner = cfg.ribbon_radii
            return ribbon_formation(
                self.count,
                turns=cfg.ribbon_turns,
                outer_radius=outer,
                inner_radius=inner,
                height=cfg.tree_height + cfg.ribbon_overhang,
            )
        return tree_formation(
            self.count,
            self.rng,
            layout=spec.layout,
            radius_offset=spec.radius_offset,
            angle_offset=spec.angle_offset,
            has_apex=spec.has_apex,
            height=cfg.tree_height,
            radius=cfg.tree_radius,
        )

    @property
    def name(self) -> str:
        return self.spec.name

    def set_formation(self, formation: FormationSpec):
        """
        Recompute every home position for ``formation``.

        The new array is fully built before it replaces ``self.home``, so no
        reader ever sees a half-updated group. Groups that do not follow the
        glyph sequence ignore the call.
        """
        if not self.spec.follows_glyph:
            return
        if formation.kind == GLYPH:
            new_home = glyph_formation(formation.char or "", self.count, self.rng, self.config.glyph)
        else:
            new_home = self._tree
        self.home = new_home
        self.formation_label = formation.label

    def blend(self, chaos: float, time: float = 0.0) -> np.ndarray:
        """
        One kernel evaluation for the whole group.

        target = lerp(home, scatter, chaos) + explode_dir * sin(chaos*pi) * magnitude,
        then rendered is low-pass filtered toward target.
        """
        spec = self.spec
        target = self.home + (self.scatter - self.home) * chaos
        explode = math.sin(chaos * math.pi)
        if explode > 0.0:
            target += self.explode_dir * (explode * spec.explode_magnitude)
        if spec.ripple > 0.0:
            target[:, 1] += np.sin(time + target[:, 0]) * spec.ripple * (1.0 - chaos)

        self.rendered += (target - self.rendered) * spec.smoothing
        self.scale = self.base_scale * (1.0 + chaos * 0.1)
        return self.rendered

    def centroid(self) -> np.ndarray:
        if self.count == 0:
            return np.zeros(3)
        return self.rendered.mean(axis=0)

    def extent(self) -> float:
        """Largest distance of any rendered entity from the group centroid."""
        if self.count == 0:
            return 0.0
        return float(np.max(np.linalg.norm(self.rendered - self.centroid(), axis=1)))


def build_groups(config: EngineConfig, rng: np.random.Generator) -> list[EntityGroup]:
    groups = [EntityGroup(spec, config, rng) for spec in config.groups]
    logger.debug(
        "Built %d groups (%d entities)", len(groups), sum(g.count for g in groups)
    )
    return groups
