"""Command-line entry point for sprite-sheet-to-GIF rendering."""

import argparse
import logging
import sys
from pathlib import Path

from spritesheet2gif.core import COLUMN_MAJOR, ROW_MAJOR, ALIGN_BOTTOM, ALIGN_CENTER, CropMargins, SpriteConfig
from spritesheet2gif.core import compositor, config_updates, image_loader
from spritesheet2gif.core.errors import InvalidImageError, ProcessingError, ValidationError
from spritesheet2gif.core.grid_estimator import GeminiGridEstimator
from spritesheet2gif.main import configure_logging
from spritesheet2gif.utils import file_tools, validators

logger = logging.getLogger(__name__)

GRID_FIELDS = ("rows", "cols", "total_frames")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sprite2gif",
        description="Convert a sprite sheet grid into an animated GIF.",
    )
    parser.add_argument("input", type=Path, help="Path to source sprite sheet")
    parser.add_argument("output", type=Path, nargs="?", help="Destination GIF path (default: next to input)")
    parser.add_argument("--rows", type=int, help="Grid rows (default: 4)")
    parser.add_argument("--cols", type=int, help="Grid columns (default: 4)")
    parser.add_argument("--total-frames", type=int, help="Only use the first N frames (default: rows*cols)")
    parser.add_argument(
        "--exclude",
        default="",
        help="Zero-based frame indices to skip, e.g. '0,3,5-7'",
    )
    parser.add_argument(
        "--read-order",
        choices=[ROW_MAJOR, COLUMN_MAJOR],
        default=ROW_MAJOR,
        help="Direction frames are read from the grid (default: row-major)",
    )
    parser.add_argument(
        "--crop",
        type=float,
        nargs=4,
        metavar=("TOP", "BOTTOM", "LEFT", "RIGHT"),
        default=(0, 0, 0, 0),
        help="Margins trimmed from every cell (px)",
    )
    parser.add_argument("--scale", type=float, default=1.0, help="Upscale factor for output frames (default: 1)")
    parser.add_argument("--fps", type=float, default=12.0, help="Playback frames per second (default: 12)")
    parser.add_argument("--transparent", help="Background color to key out, e.g. '#ffffff'")
    parser.add_argument(
        "--tolerance",
        type=float,
        default=10.0,
        help="Key tolerance as a percentage of the maximum RGB distance (default: 10)",
    )
    parser.add_argument(
        "--no-flood-fill",
        action="store_true",
        help="Key every matching pixel instead of only regions connected to the frame edge",
    )
    parser.add_argument("--auto-align", action="store_true", help="Re-center the subject of every frame")
    parser.add_argument(
        "--align-mode",
        choices=[ALIGN_CENTER, ALIGN_BOTTOM],
        default=ALIGN_CENTER,
        help="Vertical alignment used by --auto-align (default: center)",
    )
    parser.add_argument("--align-margin", type=int, default=2, help="Padding added around aligned content (px)")
    parser.add_argument("--max-1024", action="store_true", help="Cap the longest output side at 1024px")
    parser.add_argument(
        "--estimate-grid",
        action="store_true",
        help="Ask Gemini for rows/cols/total frames; explicit flags take precedence",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the frame plan without writing a GIF",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> SpriteConfig:
    top, bottom, left, right = args.crop
    return config_updates.config_from_options(
        rows=args.rows,
        cols=args.cols,
        total_frames=args.total_frames,
        excluded_frames=validators.parse_frame_list(args.exclude),
        read_order=args.read_order,
        crop=CropMargins(top=top, bottom=bottom, left=left, right=right),
        scale=args.scale,
        fps=args.fps,
        transparent=args.transparent,
        tolerance=args.tolerance,
        use_flood_fill=not args.no_flood_fill,
        auto_align=args.auto_align,
        align_mode=args.align_mode,
        align_margin=args.align_margin,
        max_resolution_1024=args.max_1024,
    )


def _print_plan(image, plan: compositor.RenderPlan) -> None:
    sheet = image_loader.image_dimensions(image)
    geometry = plan.geometry
    print(f"Sheet: {sheet.width}x{sheet.height}")
    print(f"Frames: {len(plan.sequence)} -> {[c.original_index for c in plan.sequence]}")
    print(f"Cell: {geometry.cell_width:g}x{geometry.cell_height:g}, cropped: {geometry.cropped_width:g}x{geometry.cropped_height:g}")
    print(f"Logical: {geometry.logical_width}x{geometry.logical_height}, output: {geometry.output_width}x{geometry.output_height}")
    print(f"Delay: {plan.delay_ms}ms")
    for warning in plan.warnings:
        print(f"Warning: {warning}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = config_from_args(args)
        image = image_loader.load_sprite_sheet(args.input)

        if args.estimate_grid:
            explicit = {name for name in GRID_FIELDS if getattr(args, name) is not None}
            estimate = GeminiGridEstimator().estimate(image)
            config = config_updates.apply_grid_estimate(config, estimate, locked=explicit)

        if args.dry_run:
            _print_plan(image, compositor.plan_render(image, config))
            return 0

        outcome = compositor.render_gif(image, config)
        output = args.output or file_tools.default_output_path(args.input)
        file_tools.write_bytes(output, outcome.data)
    except (InvalidImageError, ValidationError, ProcessingError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Wrote {outcome.frame_count} frames ({outcome.width}x{outcome.height}) to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
