"""
State manifest serialization.

Exports per-frame engine snapshots to a JSON manifest (scalars, mode, focus,
per-group summaries, note states) and full rendered positions to a NumPy
archive for offline renderers.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import numpy as np

from arborscope.engine import FrameSnapshot


@dataclass
class ManifestMetadata:
    """Metadata header for the state manifest."""

    fps: int
    n_frames: int
    groups: List[str]
    n_notes: int
    version: str = "1.0"
    schema_version: str = "1.0"


class StateExporter:
    """
    Exports frame snapshots to manifest format.

    Each frame carries the control scalars, the formation mode, the focus
    owner, a centroid/extent summary per group and every note's state.
    """

    def __init__(self, precision: int = 4):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        """Round to configured precision."""
        return round(float(value), self.precision)

    def _vec(self, v: np.ndarray) -> List[float]:
        return [self._round(x) for x in v]

    def build_frame(self, snap: FrameSnapshot) -> dict[str, Any]:
        """Summarize one snapshot as a manifest frame."""
        groups = {}
        for name, pos in snap.positions.items():
            if len(pos):
                centroid = pos.mean(axis=0)
                extent = float(np.max(np.linalg.norm(pos - centroid, axis=1)))
            else:
                centroid = np.zeros(3)
                extent = 0.0
            groups[name] = {
                "centroid": self._vec(centroid),
                "extent": self._round(extent),
            }

        return {
            "frame_index": snap.frame_index,
            "time": self._round(snap.time),
            "chaos": self._round(snap.chaos),
            "rotation_rate": self._round(snap.rotation_rate),
            "mode_index": snap.mode_index,
            "mode": snap.mode_label,
            "focused_note": snap.focused_note,
            "inner_yaw": self._round(snap.inner_yaw),
            "outer_yaw": self._round(snap.outer_yaw),
            "groups": groups,
            "notes": [
                {
                    "id": n.id,
                    "state": n.state,
                    "text": n.text,
                    "position": self._vec(n.position),
                }
                for n in snap.notes
            ],
        }

    def build_manifest(self, snapshots: Iterable[FrameSnapshot], fps: int) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            snapshots: Frame snapshots in order.
            fps: Frame rate the snapshots were produced at.

        Returns:
            Complete manifest dictionary ready for serialization.
        """
        frames = [self.build_frame(s) for s in snapshots]
        return self.assemble(frames, fps)

    def assemble(self, frames: List[dict[str, Any]], fps: int) -> dict[str, Any]:
        """Wrap already-built frame dicts with the metadata header."""
        first = frames[0] if frames else {"groups": {}, "notes": []}
        metadata = ManifestMetadata(
            fps=fps,
            n_frames=len(frames),
            groups=sorted(first["groups"]),
            n_notes=len(first["notes"]),
        )
        return {
            "metadata": {
                "fps": metadata.fps,
                "n_frames": metadata.n_frames,
                "groups": metadata.groups,
                "n_notes": metadata.n_notes,
                "version": metadata.version,
                "schema_version": metadata.schema_version,
            },
            "frames": frames,
        }

    def export_json(
        self,
        snapshots: Iterable[FrameSnapshot],
        fps: int,
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """Export manifest to a JSON file and return its path."""
        return self.write_json(self.build_manifest(snapshots, fps), output_path, indent)

    def write_json(
        self,
        manifest: dict[str, Any],
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent, ensure_ascii=False)

        return output_path

    def export_numpy(
        self,
        snapshot: FrameSnapshot,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export one snapshot's full world-space positions as a .npz archive.

        Keys are ``<group>`` (N, 3) positions, ``<group>_scale`` (N,) and
        ``notes`` (n_notes, 3).
        """
        output_path = Path(output_path)
        arrays: Dict[str, np.ndarray] = {}
        for name, pos in snapshot.positions.items():
            arrays[name] = pos.astype(np.float32)
            arrays[f"{name}_scale"] = snapshot.scales[name].astype(np.float32)
        arrays["notes"] = np.array([n.position for n in snapshot.notes], dtype=np.float32).reshape(-1, 3)
        np.savez_compressed(output_path, chaos=snapshot.chaos, mode_index=snapshot.mode_index, **arrays)
        return output_path
