#!/usr/bin/env python
# TrainScope CLI Histogram Export Script

"""
Command-line export of a histogram log.

Reads histogram rows ({step, histogramData}) from a JSON file, puts every
step on the shared grid, and writes either one PNG snapshot or a GIF of
all steps.

Usage:
    python scripts/export_histogram.py --input rows.json --output out.gif
    python scripts/export_histogram.py --input rows.json --output out.png --step 200
    python scripts/export_histogram.py --input rows.json --output out.gif --config configs/default.yaml
"""

import sys
import json
import argparse
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trainscope.core.errors import ExportError, PayloadError
from trainscope.core.exporter import export_animation, export_snapshot
from trainscope.core.models import decode_histogram_rows
from trainscope.core.normalizer import normalize_frames
from trainscope.core.renderer import HistogramRenderer
from trainscope.utils import config
from trainscope.utils.logging import setup_logging


def progress_bar(fraction: float, width: int = 40) -> str:
    """Generate a progress bar string."""
    fraction = max(0.0, min(1.0, fraction))
    filled = int(width * fraction)
    bar = "█" * filled + "░" * (width - filled)
    return f"[{bar}] {fraction*100:.1f}%"


def export_histogram(input_path: str, output_path: str, step: int = None,
                     width: int = None, height: int = None, theme: str = None) -> bool:
    """
    Export a histogram log to PNG (one step) or GIF (all steps).

    Args:
        input_path: JSON file with a list of histogram rows.
        output_path: Destination; ".gif" writes an animation.
        step: Step to snapshot (default: last step).
        width: Raster width in pixels.
        height: Raster height in pixels.
        theme: "light" or "dark".

    Returns:
        True if successful.
    """
    print("=" * 60)
    print("TrainScope Histogram Export")
    print("=" * 60)
    print(f"Input:  {input_path}")
    print(f"Output: {output_path}")
    print("=" * 60)

    with open(input_path, "r", encoding="utf-8") as f:
        rows = json.load(f)

    try:
        frames = decode_histogram_rows(rows)
    except PayloadError as e:
        print(f"Error: malformed histogram rows: {e}")
        return False

    normalized = normalize_frames(frames)
    if normalized.is_empty:
        print("No histogram data to export")
        return False

    print(f"Steps:  {len(normalized)} ({normalized.steps[0]} .. {normalized.steps[-1]})")
    print(f"Grid:   [{normalized.grid.min:g}, {normalized.grid.max:g}] x {normalized.grid.count} bins")

    renderer = HistogramRenderer(width, height, theme)
    output = Path(output_path)

    try:
        if output.suffix.lower() == ".gif":
            def on_progress(fraction):
                print(f"\r{progress_bar(fraction)}", end="", flush=True)

            data = export_animation(
                len(normalized),
                lambda i: renderer.render_set_index(normalized, i),
                on_progress=on_progress,
            )
            print()  # Newline after progress bar
        else:
            steps = normalized.steps
            index = steps.index(step) if step in steps else len(steps) - 1
            if step is not None and step not in steps:
                print(f"Step {step} not found, using last step {steps[index]}")
            data = export_snapshot(renderer.render_set_index(normalized, index),
                                   output.suffix or ".png")
    except ExportError as e:
        print(f"\nError: {e}")
        return False

    output.write_bytes(data)
    print(f"\n✓ Wrote {len(data)} bytes to {output}")
    return True


def main():
    parser = argparse.ArgumentParser(description="TrainScope Histogram Export CLI")
    parser.add_argument("--input", "-i", required=True, help="JSON file of histogram rows")
    parser.add_argument("--output", "-o", required=True, help="Output .png or .gif")
    parser.add_argument("--step", "-s", type=int, default=None,
                        help="Step to snapshot (default: last)")
    parser.add_argument("--width", type=int, default=None, help="Raster width")
    parser.add_argument("--height", type=int, default=None, help="Raster height")
    parser.add_argument("--theme", choices=["light", "dark"], default=None)
    parser.add_argument("--config", "-c", default=None, help="YAML config overrides")

    args = parser.parse_args()
    setup_logging()

    if not Path(args.input).exists():
        print(f"Error: Input file not found: {args.input}")
        return 1

    if args.config:
        config.load_config(args.config)

    success = export_histogram(
        input_path=args.input,
        output_path=args.output,
        step=args.step,
        width=args.width,
        height=args.height,
        theme=args.theme,
    )
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
