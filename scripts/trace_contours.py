#!/usr/bin/env python3
"""Trace line-art frames into strip streams, and inspect/render them.

Commands:
    generate INPUT OUTPUT   image → strip frame, or frame directory → stream
    render   INPUT OUTPUT   strip stream → one PNG per frame
                            (--legacy: .seg file → one PNG)
    dump     INPUT          per-frame strip/point summary

Tuning flags (generate) override the YAML config:
    --lcd  line cutoff distance        --lca  line cutoff angle (cosine)
    --lld  long line distance          --ccd  cluster cutoff distance
    --oca  optimization cutoff angle   --threshold  grey threshold

Exit status:
    0  success
    1  configuration or input error
    2  one or more frames failed

Usage:
    python scripts/trace_contours.py generate frames/ out/player_strips.db --rescale 255 191
    python scripts/trace_contours.py generate frames/images12.png out/images12.db --intermediate
    python scripts/trace_contours.py render out/player_strips.db out/preview/ --size 256 192
    python scripts/trace_contours.py dump out/player_strips.db
"""

import argparse
import io
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from contour_strips import batch
from contour_strips.codec.strips import coordinate_codec, iter_frames
from contour_strips.errors import ConfigError, ContourError
from contour_strips.utils import fs, validators
from contour_strips.utils.geometry import polyline_length
from contour_strips.utils.logging_config import install_excepthook, setup_logging

logger = logging.getLogger("trace_contours")

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FRAME_FAILED = 2

DEFAULT_RENDER_SIZE = (960, 720)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Luminance-edge contour tracing to compact strip streams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file")
    parser.add_argument("--json-logs", action="store_true", help="JSON lines instead of text")

    sub = parser.add_subparsers(dest="command", required=True)

    # generate
    gen = sub.add_parser("generate", help="Trace an image or a directory of frames")
    gen.add_argument("input", type=Path, help="Image file or frame directory")
    gen.add_argument("output", type=Path, help="Strip stream (or .seg with --legacy)")
    gen.add_argument("--config", type=Path, default=None, help="contour.v1 YAML config")
    gen.add_argument("--optimize", dest="optimize", action="store_const", const=True, default=None,
                     help="Merge collinear segments")
    gen.add_argument("--no-optimize", dest="optimize", action="store_const", const=False,
                     help="Keep traced segments as is")
    gen.add_argument("--lcd", type=float, default=None, help="Line cutoff distance (px)")
    gen.add_argument("--lca", type=float, default=None, help="Line cutoff angle (cosine)")
    gen.add_argument("--lld", type=float, default=None, help="Long line distance (px)")
    gen.add_argument("--ccd", type=float, default=None, help="Cluster cutoff distance (px)")
    gen.add_argument("--oca", type=float, default=None, help="Optimization cutoff angle (cosine)")
    gen.add_argument("--threshold", type=int, default=None, help="Grey threshold (0-255)")
    gen.add_argument("--coord-bits", type=int, default=None, help="Coordinate width: 8 or 16")
    gen.add_argument("--rescale", type=int, nargs=2, metavar=("W", "H"), default=None,
                     help="Rescale segments into a W×H grid before encoding")
    gen.add_argument("--on-error", choices=batch.ON_ERROR_MODES, default="skip",
                     help="Frame failure policy for directories (default: skip)")
    gen.add_argument("--intermediate", action="store_true",
                     help="Save contour and segment previews next to the output")
    gen.add_argument("--list-vectors", action="store_true", help="Print traced segments")
    gen.add_argument("--legacy", action="store_true", help="Write a legacy .seg file (single image)")

    # render
    ren = sub.add_parser("render", help="Render a strip stream or .seg file to PNG")
    ren.add_argument("input", type=Path, help="Strip stream or .seg file")
    ren.add_argument("output", type=Path, help="Output directory (PNG file with --legacy)")
    ren.add_argument("--size", type=int, nargs=2, metavar=("W", "H"), default=DEFAULT_RENDER_SIZE,
                     help="Canvas size (default: 960 720)")
    ren.add_argument("--coord-bits", type=int, default=8, help="Coordinate width: 8 or 16")
    ren.add_argument("--legacy", action="store_true", help="Input is a legacy .seg file")

    # dump
    dmp = sub.add_parser("dump", help="Print a per-frame summary of a strip stream")
    dmp.add_argument("input", type=Path, help="Strip stream")
    dmp.add_argument("--coord-bits", type=int, default=8, help="Coordinate width: 8 or 16")

    return parser


def _load_config(args: argparse.Namespace) -> validators.ContourConfigV1:
    cfg = validators.load_contour_config(args.config) if args.config else validators.default_config()
    return validators.with_overrides(
        cfg,
        optimize=args.optimize,
        line_cutoff_distance=args.lcd,
        line_cutoff_angle=args.lca,
        long_line_distance=args.lld,
        cluster_cutoff_distance=args.ccd,
        optimization_cutoff_angle=args.oca,
        grey_threshold=args.threshold,
        coordinate_width=args.coord_bits,
        rescale={"width": args.rescale[0], "height": args.rescale[1]} if args.rescale else None,
    )


def cmd_generate(args: argparse.Namespace) -> int:
    cfg = _load_config(args)
    logger.debug(f"Config: {validators.config_to_dict(cfg)}")

    if args.input.is_dir():
        if args.legacy:
            raise ConfigError("--legacy output is only supported for a single image")
        frames = batch.list_frames(args.input)
        if not frames:
            raise ConfigError(f"No image files found in {args.input}")
        report = batch.generate_stream(
            frames,
            args.output,
            cfg,
            on_error=args.on_error,
            intermediate_dir=args.output.parent if args.intermediate else None,
        )
        return EXIT_FRAME_FAILED if report.failed else EXIT_OK

    if not args.input.exists():
        raise ConfigError(f"Input not found: {args.input}")

    try:
        result, data = batch.trace_image(args.input, cfg)
    except (ContourError, RuntimeError) as e:
        logger.error(f"Frame {args.input.name} failed: {e}")
        return EXIT_FRAME_FAILED

    if args.list_vectors:
        for seg in result.segments:
            print(f"({seg.start.x},{seg.start.y}) -> ({seg.end.x},{seg.end.y})")
    if args.intermediate:
        batch.save_intermediate(result, args.output.parent, args.input.stem)

    if args.legacy:
        batch.write_legacy_segments(result, args.output)
    else:
        fs.atomic_write_bytes(args.output, data)
    logger.info(f"Wrote {args.output}")
    return EXIT_OK


def cmd_render(args: argparse.Namespace) -> int:
    size = tuple(args.size)
    if args.legacy:
        batch.render_legacy(args.input, args.output, size)
    else:
        batch.render_stream(args.input, args.output, size, coordinate_codec(args.coord_bits))
    return EXIT_OK


def cmd_dump(args: argparse.Namespace) -> int:
    codec = coordinate_codec(args.coord_bits)
    data = fs.read_bytes(args.input)
    frames = 0
    for n, strips in enumerate(iter_frames(io.BytesIO(data), codec)):
        points = sum(len(s) for s in strips)
        length = sum(polyline_length(s.points) for s in strips)
        print(f"frame {n}: strips={len(strips)} points={points} length={length:.1f}")
        frames += 1
    print(f"total: frames={frames} bytes={len(data)}")
    return EXIT_OK


COMMANDS = {
    "generate": cmd_generate,
    "render": cmd_render,
    "dump": cmd_dump,
}


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit status."""
    args = _build_parser().parse_args(argv)

    try:
        setup_logging(log_level=args.log_level, log_file=args.log_file, json=args.json_logs)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    install_excepthook()

    try:
        return COMMANDS[args.command](args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_CONFIG
    except ContourError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_FRAME_FAILED


if __name__ == "__main__":
    sys.exit(main())
