"""
Command Line Interface
======================

Render an HTML file set directory or a single HTML file to an image.

Usage:
    cardto-image card_dir/ -o card.png --scale 2
    cardto-image card.html -o card.jpg --format jpg --quality 85
"""

from typing import List, Optional
import argparse
import asyncio
import sys

from cardto_image import __version__
from cardto_image.config.logging import get_logger
from cardto_image.core.converter import create_converter
from cardto_image.core.options import SUPPORTED_FORMATS
from cardto_image.models.schemas import ConversionOptions, ProgressEvent

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cardto-image",
        description="Render a card's HTML file set to a PNG or JPEG image.",
    )
    parser.add_argument("source", help="Directory containing index.html, or an HTML file")
    parser.add_argument("-o", "--output", required=True, help="Output image path")
    parser.add_argument("-f", "--format", choices=SUPPORTED_FORMATS, help="Image format")
    parser.add_argument("-q", "--quality", type=int, help="JPEG quality (1-100)")
    parser.add_argument("-s", "--scale", type=float, help="Device pixel ratio (0-4]")
    parser.add_argument("--width", type=int, help="Viewport width in CSS pixels")
    parser.add_argument("--height", type=int, help="Viewport height in CSS pixels")
    parser.add_argument("--background-color", help="Fallback page background color")
    parser.add_argument(
        "--transparent", action="store_true", default=None, help="Transparent background (PNG)"
    )
    parser.add_argument("--wait-time", type=int, help="Settle delay after load in milliseconds")
    parser.add_argument("--theme-id", help="Theme passed to the HTML generator")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def options_from_args(args: argparse.Namespace) -> ConversionOptions:
    """Build conversion options from parsed arguments, leaving unset flags unset."""
    values = {
        "format": args.format,
        "quality": args.quality,
        "scale": args.scale,
        "width": args.width,
        "height": args.height,
        "background_color": args.background_color,
        "transparent": args.transparent,
        "wait_time": args.wait_time,
        "output_path": args.output,
        "theme_id": args.theme_id,
        "on_progress": log_progress,
    }
    return ConversionOptions(**{key: value for key, value in values.items() if value is not None})


def log_progress(event: ProgressEvent) -> None:
    """Log progress events."""
    logger.info(
        "Progress",
        task_id=event.task_id,
        status=event.status.value,
        percent=event.percent,
        step=event.current_step,
    )


async def run(args: argparse.Namespace) -> int:
    """Run a single conversion and return the process exit code."""
    converter = create_converter()
    result = await converter.convert(args.source, options_from_args(args))

    if not result.success:
        error = result.error
        print(f"Conversion failed [{error.code}]: {error.message}", file=sys.stderr)
        return 1

    print(f"{result.output_path} ({result.width}x{result.height}, {result.duration} ms)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.output.strip():
        parser.error("output path must not be empty")
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
