"""
Scene engine.

Orchestrates one frame pass: read the pose/clock/viewer snapshot, condition
the control signals, advance the chaos level and formation mode, spin the
parent frames, blend every entity group, then arbitrate and move the notes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from arborscope.config import EngineConfig
from arborscope.core.entities import EntityGroup, build_groups
from arborscope.core.focus import FocusArbiter, build_notes
from arborscope.core.formations import GLYPH
from arborscope.core.modes import FormationStateMachine
from arborscope.core.signals import ChaosController, RotationConditioner
from arborscope.core.state import (
    ABSENT_POSE,
    FrameClock,
    ParentFrame,
    PoseFrame,
    SimulationState,
    ViewFrame,
)

logger = logging.getLogger(__name__)


@dataclass
class NoteView:
    id: int
    text: str
    state: str
    position: np.ndarray


@dataclass
class FrameSnapshot:
    """Everything the rendering collaborator reads after a frame pass."""
    frame_index: int
    time: float
    chaos: float
    rotation_rate: float
    mode_index: int
    mode_label: str
    focused_note: Optional[int]
    inner_yaw: float
    outer_yaw: float
    # World-space rendered positions and scales per group
    positions: Dict[str, np.ndarray] = field(default_factory=dict)
    scales: Dict[str, np.ndarray] = field(default_factory=dict)
    notes: List[NoteView] = field(default_factory=list)
    viewer: ViewFrame = field(default_factory=ViewFrame)


class SceneEngine:
    """
    The formation & interaction state engine.

    All mutable state lives on ``self.state`` and the groups/notes; nothing
    is touched outside :meth:`step`.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        note_texts: Optional[Sequence[str]] = None,
    ):
        self.cfg = config or EngineConfig()
        self._note_texts = note_texts
        self.reset()

    def reset(self):
        """Rebuild every group and note from the config (fresh random state)."""
        cfg = self.cfg
        self.rng = np.random.default_rng(cfg.seed)
        self.state = SimulationState(rotation_rate=cfg.rotation.idle_rate)

        self.chaos = ChaosController(cfg.chaos)
        self.rotation = RotationConditioner(cfg.rotation)
        self.modes = FormationStateMachine(cfg.modes)

        self.groups: List[EntityGroup] = build_groups(cfg, self.rng)
        self._groups_by_name = {g.name: g for g in self.groups}
        self.arbiter = FocusArbiter(build_notes(self.rng, cfg.focus, self._note_texts), cfg.focus)

        offset = np.asarray(cfg.parent_offset, dtype=np.float64)
        self.inner = ParentFrame(offset=offset.copy())
        self.outer = ParentFrame(offset=offset.copy())

        # Align glyph-following groups with the starting mode
        start = self.modes.current(self.state)
        for g in self.groups:
            g.set_formation(start)

    def group(self, name: str) -> EntityGroup:
        return self._groups_by_name[name]

    def parent_of(self, group: EntityGroup) -> ParentFrame:
        return self.inner if group.spec.parent == "inner" else self.outer

    def step(
        self,
        clock: FrameClock,
        pose: Optional[PoseFrame] = None,
        viewer: Optional[ViewFrame] = None,
        chaos_target: Optional[float] = None,
        chaos_delta: Optional[float] = None,
    ) -> FrameSnapshot:
        """
        Run one frame pass.

        Args:
            clock: Elapsed time and delta for this frame. An invalid clock
                skips the pass and leaves all state untouched.
            pose: Most recent pose sample; None means no hands.
            viewer: Current viewer frame; None or invalid keeps the last one.
            chaos_target: Explicit chaos target; overrides the pose mapping.
            chaos_delta: Explicit chaos delta, used when no target is given.

        Returns:
            The post-frame snapshot.
        """
        state = self.state
        if not clock.is_valid():
            logger.debug("Skipping frame with invalid clock %r", clock)
            return self.snapshot()

        state.pose = (pose or ABSENT_POSE).sanitized(state.pose)
        if viewer is not None:
            if viewer.is_valid():
                state.viewer = viewer
            else:
                logger.debug("Ignoring invalid viewer frame %r", viewer)
        state.time = clock.elapsed
        state.frame_index += 1
        dt = clock.delta

        # 1. Control signals
        self.rotation.update(state, state.pose.right)
        if chaos_target is None and chaos_delta is None:
            chaos_target = self.chaos.target_from_pose(state.pose)
        self.chaos.update(state, target=chaos_target, delta=chaos_delta)

        # 2. Discrete mode, homes recomputed before any blend
        if self.modes.update(state):
            formation = self.modes.current(state)
            for g in self.groups:
                g.set_formation(formation)

        # 3. Parent spin
        self._spin(dt)

        # 4. Blend kernel
        for g in self.groups:
            g.blend(state.chaos, state.time)

        # 5. Focus
        self.arbiter.arbitrate(state, state.pose.left, self.outer)
        self.arbiter.move(state, state.viewer, self.outer)

        return self.snapshot()

    def _spin(self, dt: float):
        state, rot = self.state, self.cfg.rotation
        spin = state.rotation_rate * dt + rot.base_spin * dt
        self.outer.yaw += spin

        facing_viewer = (
            self.modes.current(state).kind == GLYPH
            and state.chaos < self.cfg.modes.face_viewer_below
        )
        if facing_viewer:
            self.inner.yaw *= rot.inner_return
        else:
            self.inner.yaw += spin

    def world_positions(self, name: str) -> np.ndarray:
        group = self.group(name)
        return self.parent_of(group).to_world(group.rendered)

    def snapshot(self) -> FrameSnapshot:
        state = self.state
        notes = [
            NoteView(n.id, n.text, n.state, self.outer.to_world(n.rendered))
            for n in self.arbiter.notes
        ]
        return FrameSnapshot(
            frame_index=state.frame_index,
            time=state.time,
            chaos=state.chaos,
            rotation_rate=state.rotation_rate,
            mode_index=state.mode_index,
            mode_label=self.modes.current(state).label,
            focused_note=state.focused_note,
            inner_yaw=self.inner.yaw,
            outer_yaw=self.outer.yaw,
            positions={g.name: self.world_positions(g.name) for g in self.groups},
            scales={g.name: g.scale.copy() for g in self.groups},
            notes=notes,
            viewer=state.viewer,
        )

    def run(
        self,
        frames: Iterable[Dict[str, Any]],
        fps: int | None = None,
        progress_callback: callable = None,
    ) -> Iterator[FrameSnapshot]:
        """
        Drive the engine from a gesture script's frame list.

        Each frame dict may carry ``pose`` (a :class:`PoseFrame`), ``viewer``,
        ``chaos_target`` and ``chaos_delta``; missing pose means no hands.
        """
        fps = fps or self.cfg.fps
        dt = 1.0 / fps
        total = len(frames) if hasattr(frames, "__len__") else 0
        elapsed = self.state.time
        for i, frame in enumerate(frames):
            elapsed += dt
            yield self.step(
                FrameClock(elapsed=elapsed, delta=dt),
                pose=frame.get("pose"),
                viewer=frame.get("viewer"),
                chaos_target=frame.get("chaos_target"),
                chaos_delta=frame.get("chaos_delta"),
            )
            if progress_callback:
                progress_callback(i + 1, total)
