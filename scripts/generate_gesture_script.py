#!/usr/bin/env python3
"""Generate a demo gesture script exercising scatter, rotation and note grabs."""

from __future__ import annotations

import json
import math
from pathlib import Path

FPS = 60


def _right(screen_x: float, is_open: bool) -> dict:
    return {
        "position": [round((0.5 - screen_x) * 35, 3), 0.0, 8.0],
        "is_open": is_open,
        "is_pinching": False,
        "screen_x": round(screen_x, 4),
    }


def _left(x: float, y: float, pinching: bool) -> dict:
    return {"position": [round(x, 3), round(y, 3), 8.0], "is_pinching": pinching}


def scatter_cycles(cycles: int = 4) -> list[dict]:
    """Open palm until the field bursts, then close it until it settles."""
    frames: list[dict] = []
    for _ in range(cycles):
        frames += [{"hands": {"right": _right(0.75, True)}} for _ in range(60)]
        frames += [{"hands": {"right": _right(0.75, False)}} for _ in range(90)]
    return frames


def rotation_sweep(seconds: float = 4.0) -> list[dict]:
    """Drift the right wrist around the neutral zone."""
    n = int(seconds * FPS)
    return [
        {"hands": {"right": _right(0.75 + 0.2 * math.sin(i / n * 2 * math.pi), False)}}
        for i in range(n)
    ]


def grab_sweep(seconds: float = 5.0) -> list[dict]:
    """Pinch while circling the tree, release, then drop the hand."""
    n = int(seconds * FPS)
    frames = []
    for i in range(n):
        a = i / n * 2 * math.pi
        frames.append({"hands": {"left": _left(8 * math.cos(a), -2 + 4 * math.sin(a), True)}})
    frames += [{"hands": {"left": _left(0.0, 0.0, False)}} for _ in range(30)]
    frames += [{"hands": {}} for _ in range(30)]
    return frames


def main() -> None:
    output = Path("examples/demo_gestures.json")
    frames = scatter_cycles() + rotation_sweep() + grab_sweep()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps({"fps": FPS, "frames": frames}), encoding="utf-8")
    print(f"Wrote {len(frames)} frames to {output}")


if __name__ == "__main__":
    main()
