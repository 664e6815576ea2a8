"""
Note entities and focus/grab arbitration.

At most one note is focused at a time. The grab channel (left hand) claims a
note by pinching within the capture radius; the holder keeps it for as long
as the pinch lasts, and loses it the moment the pinch opens or the hand
disappears.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from arborscope.config import FocusParams
from arborscope.core.formations import spherical_to_cartesian
from arborscope.core.state import HandSample, ParentFrame, SimulationState, ViewFrame

logger = logging.getLogger(__name__)

ATTACHED = "ATTACHED"
FOCUSED = "FOCUSED"

TIE_BREAKS = ("first", "nearest")


@dataclass
class Note:
    """A user-editable note hung on the tree (positions in parent-local space)."""
    id: int
    text: str
    anchor: np.ndarray
    scatter: np.ndarray
    rendered: Optional[np.ndarray] = None
    state: str = ATTACHED

    def __post_init__(self):
        if self.rendered is None:
            self.rendered = self.anchor.copy()


def note_anchor_params(
    count: int,
    rng: np.random.Generator,
    params: FocusParams | None = None,
) -> np.ndarray:
    """
    Even spherical layout for ``count`` notes: (count, 3) rows of
    (radius, polar, azimuth).

    Polar angles sweep from ``arccos(polar_start)`` to 0 so the lower part of
    the sphere (hidden by the trunk) stays empty.
    """
    params = params or FocusParams()
    i = np.arange(count, dtype=np.float64)
    progress = params.polar_start + (1.0 - params.polar_start) * i / max(count - 1, 1)
    polar = np.arccos(np.clip(progress, -1.0, 1.0))
    azimuth = math.sqrt(count * math.pi) * polar * 5
    radius = params.anchor_radius + rng.random(count) * params.anchor_radius_jitter + params.anchor_lift
    return np.stack([radius, polar, azimuth], axis=-1)


def build_notes(
    rng: np.random.Generator,
    params: FocusParams | None = None,
    texts: Optional[Sequence[str]] = None,
) -> List[Note]:
    params = params or FocusParams()
    count = params.note_count if texts is None else len(texts)
    anchors = note_anchor_params(count, rng, params)
    anchor_xyz = spherical_to_cartesian(anchors[:, 0], anchors[:, 1], anchors[:, 2])

    r = params.scatter_radius + rng.random(count) * params.scatter_radius_jitter
    polar = np.arccos(2 * rng.random(count) - 1)
    azimuth = rng.random(count) * 2 * math.pi
    scatter_xyz = spherical_to_cartesian(r, polar, azimuth)

    notes = []
    for i in range(count):
        text = texts[i] if texts is not None else f"Wish {i + 1}"
        notes.append(Note(id=i, text=text, anchor=anchor_xyz[i], scatter=scatter_xyz[i]))
    return notes


class FocusArbiter:
    """
    Owns ``state.focused_note`` and each note's ``state``.

    Notes are visited in list order every frame. With ``tie_break="first"``
    the first qualifying note wins; with ``"nearest"`` the qualifying note
    closest to the grab position wins (ties fall back to list order).
    """

    def __init__(self, notes: List[Note], params: FocusParams | None = None):
        self.params = params or FocusParams()
        if self.params.tie_break not in TIE_BREAKS:
            raise ValueError(f"tie_break must be one of {TIE_BREAKS}, got {self.params.tie_break!r}")
        self.notes = notes
        self._by_id = {n.id: n for n in notes}

    def note(self, note_id: int) -> Note:
        return self._by_id[note_id]

    def set_text(self, note_id: int, text: str):
        """External editors write note text through here."""
        self.note(note_id).text = text

    def _release(self, state: SimulationState):
        if state.focused_note is not None:
            logger.debug("Note %d released", state.focused_note)
            self._by_id[state.focused_note].state = ATTACHED
        state.focused_note = None

    def _acquire(self, state: SimulationState, note: Note):
        state.focused_note = note.id
        note.state = FOCUSED
        logger.debug("Note %d focused", note.id)

    def arbitrate(
        self,
        state: SimulationState,
        grab: Optional[HandSample],
        parent: ParentFrame,
    ) -> Optional[int]:
        """
        Resolve focus for this frame.

        Returns:
            The focused note id, or None.
        """
        if grab is None or not grab.is_pinching:
            self._release(state)
            return None

        if state.focused_note is not None:
            # Holder keeps focus regardless of distance while pinching
            return state.focused_note

        if not self.notes:
            return None

        grab_pos = np.asarray(grab.position, dtype=np.float64)
        local = np.stack([n.rendered for n in self.notes])
        world = parent.to_world(local)
        distances = np.linalg.norm(world - grab_pos, axis=1)
        qualifying = np.flatnonzero(distances < self.params.capture_radius)
        if len(qualifying) == 0:
            return None

        if self.params.tie_break == "nearest":
            winner = qualifying[np.argmin(distances[qualifying])]
        else:
            winner = qualifying[0]
        self._acquire(state, self.notes[int(winner)])
        return state.focused_note

    def move(
        self,
        state: SimulationState,
        viewer: ViewFrame,
        parent: ParentFrame,
    ):
        """Drive every note toward its state's target."""
        p = self.params
        view_target = None
        for note in self.notes:
            if note.state == FOCUSED:
                if view_target is None:
                    view_target = parent.to_local(viewer.point_ahead(p.view_distance))
                note.rendered = note.rendered + (view_target - note.rendered) * p.focused_smoothing
            else:
                target = note.anchor + (note.scatter - note.anchor) * (state.chaos * p.scatter_influence)
                note.rendered = note.rendered + (target - note.rendered) * p.attached_smoothing

    def focused_count(self) -> int:
        return sum(1 for n in self.notes if n.state == FOCUSED)
