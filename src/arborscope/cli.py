"""
CLI entry point for scripted engine runs.

Usage:
    arborscope-sim <gesture_script.json> [options]
    python -m arborscope <gesture_script.json> [options]
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from arborscope.config import PROFILES, load_config, profile_config, scaled
from arborscope.engine import SceneEngine
from arborscope.io.exporter import StateExporter
from arborscope.io.pose import load_gesture_script
from arborscope.preview import PreviewConfig, PreviewRenderer


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arborscope-sim",
        description="Run the formation engine against a scripted gesture sequence",
    )
    parser.add_argument("script", type=Path, help="Gesture script (JSON)")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output manifest path (default: <script>_state.json)",
    )
    parser.add_argument(
        "-p", "--profile", type=str, default="medium",
        choices=sorted(PROFILES),
        help="Entity-count profile (default: medium)",
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON config overrides")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--fps", type=int, default=None, help="Frames per second (overrides script)")
    parser.add_argument("--max-frames", type=int, default=None, help="Limit the run to N frames")

    # Preview
    parser.add_argument("--frames-dir", type=Path, default=None, help="Write preview PNGs here")
    parser.add_argument("--width", type=int, default=640, help="Preview width")
    parser.add_argument("--height", type=int, default=480, help="Preview height")
    parser.add_argument("--every", type=int, default=1, help="Write every Nth preview frame")

    parser.add_argument("--positions", type=Path, default=None,
                        help="Write the final frame's full positions (.npz)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v, -vv)")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if not args.script.exists():
        print(f"Error: Gesture script not found: {args.script}", file=sys.stderr)
        sys.exit(1)

    try:
        script = load_gesture_script(args.script)
        if args.config is not None:
            config = scaled(load_config(args.config), PROFILES[args.profile])
            if args.seed is not None:
                config = replace(config, seed=args.seed)
        else:
            config = profile_config(args.profile, seed=args.seed)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    fps = args.fps or script["fps"]
    frames = script["frames"]
    if args.max_frames is not None:
        frames = frames[: args.max_frames]

    output = args.output
    if output is None:
        output = args.script.with_name(f"{args.script.stem}_state.json")

    print(f"Building scene: profile={args.profile}")
    t0 = time.time()
    engine = SceneEngine(config)
    for g in engine.groups:
        print(f"  {g.name}: {g.count} entities")
    print(f"  notes: {len(engine.arbiter.notes)}")
    print(f"  Setup took {time.time() - t0:.1f}s")

    renderer = None
    if args.frames_dir is not None:
        args.frames_dir.mkdir(parents=True, exist_ok=True)
        renderer = PreviewRenderer(PreviewConfig(width=args.width, height=args.height))

    print(f"\nSimulating {len(frames)} frames @ {fps}fps")
    t1 = time.time()
    exporter = StateExporter()
    manifest_frames = []
    last = None
    for snap in engine.run(frames, fps=fps, progress_callback=_progress_bar):
        last = snap
        manifest_frames.append(exporter.build_frame(snap))
        if renderer is not None and (snap.frame_index - 1) % max(args.every, 1) == 0:
            frame = renderer.render(snap)
            renderer.save(frame, args.frames_dir / f"frame_{snap.frame_index:05d}.png")

    exporter.write_json(exporter.assemble(manifest_frames, fps), output)
    if args.positions is not None and last is not None:
        exporter.export_numpy(last, args.positions)
        print(f"  Positions: {args.positions}")

    elapsed = time.time() - t1
    print(f"\nDone! {len(manifest_frames)} frames in {elapsed:.1f}s ({len(manifest_frames) / max(elapsed, 0.01):.1f} fps)")
    if last is not None:
        print(f"  Final mode: {last.mode_label}  chaos={last.chaos:.3f}  focus={last.focused_note}")
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
