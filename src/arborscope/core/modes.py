"""
Formation state machine.

Cycles the "home" formation forward one step per full chaos excursion,
using a hysteresis latch so lingering near the high threshold never
advances more than once.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from arborscope.config import ModeParams
from arborscope.core.formations import GLYPH, TREE
from arborscope.core.state import SimulationState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormationSpec:
    """One entry of the home sequence."""
    kind: str
    char: Optional[str] = None

    @property
    def label(self) -> str:
        if self.kind == GLYPH:
            return f"{GLYPH}({self.char})"
        return self.kind


def build_sequence(glyphs: Sequence[str], interleave_tree: bool = False) -> List[FormationSpec]:
    """
    TREE, GLYPH_0 .. GLYPH_{m-1}; or TREE, GLYPH_0, TREE, GLYPH_1, ... when
    ``interleave_tree`` is set.
    """
    tree = FormationSpec(TREE)
    if not glyphs:
        return [tree]
    if interleave_tree:
        seq: List[FormationSpec] = []
        for ch in glyphs:
            seq.extend([tree, FormationSpec(GLYPH, ch)])
        return seq
    return [tree] + [FormationSpec(GLYPH, ch) for ch in glyphs]


class FormationStateMachine:
    """Owns ``state.mode_index`` and ``state.armed``."""

    def __init__(self, params: ModeParams | None = None):
        self.params = params or ModeParams()
        if self.params.low_threshold >= self.params.high_threshold:
            raise ValueError("low_threshold must be below high_threshold")
        self.sequence = build_sequence(self.params.glyphs, self.params.interleave_tree)

    def current(self, state: SimulationState) -> FormationSpec:
        return self.sequence[state.mode_index % len(self.sequence)]

    def update(self, state: SimulationState) -> bool:
        """
        Apply the hysteresis rule for this frame.

        Returns:
            True when the mode advanced (callers must recompute glyph homes
            before the next blend).
        """
        chaos = state.chaos
        advanced = False
        if chaos > self.params.high_threshold and not state.armed:
            state.mode_index = (state.mode_index + 1) % len(self.sequence)
            state.armed = True
            advanced = True
            logger.info("Formation advanced to %s (k=%d)", self.current(state).label, state.mode_index)
        if chaos < self.params.low_threshold:
            state.armed = False
        return advanced
