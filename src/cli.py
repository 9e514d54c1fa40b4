#!/usr/bin/env python
"""
Command-line interface for the ergscan workout screen parser.

Usage:
    python src/cli.py --input <capture.json> [<capture.json> ...] --output <output_dir> [options]

Examples:
    # Parse one capture
    python src/cli.py --input capture_1.json --output ./output

    # Merge several captures of the same screen, in order
    python src/cli.py --input capture_1.json capture_2.json --output ./output --format all

    # Raw recognizer coordinates, with the parser debug log
    python src/cli.py --input captures/ --output ./output --raw --debug
"""

import sys
from pathlib import Path

# Add src directory to path for imports when running as script
_src_dir = Path(__file__).parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import argparse
import logging
import time

from version import __version__

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("ergscan")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="ergscan - Parse PM5 workout summary captures into structured tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Parse a capture and export all formats:
    python -m src.cli --input capture.json --output ./output --format all

  Merge captures in order until the table is complete:
    python -m src.cli --input c1.json c2.json c3.json --output ./output

  Captures in recognizer coordinates (bottom-left origin, full frame):
    python -m src.cli --input captures/ --output ./output --raw
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        nargs="+",
        help="Detection JSON file(s) or folder(s); merged in the order given"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=None,
        choices=["json", "markdown", "csv", "all"],
        help="Output format(s) (default: json markdown)"
    )

    parser.add_argument(
        "--raw",
        action="store_true",
        help="Detections are in recognizer coordinates; map them into the guide"
    )

    parser.add_argument(
        "--row-tolerance",
        type=float,
        default=None,
        help="Vertical row grouping tolerance as a fraction of guide height (default: 0.03)"
    )

    parser.add_argument(
        "--max-captures",
        type=int,
        default=None,
        help="Stop merging after this many captures (default: 3)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (writes the parser debug log)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def check_dependencies():
    """Check if required dependencies are available."""
    missing = []

    try:
        import numpy
    except ImportError:
        missing.append("numpy")

    try:
        import rapidfuzz
    except ImportError:
        missing.append("rapidfuzz")

    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install -e .")
        return False

    return True


def build_mapper(capture, raw: bool, config):
    """Box mapper for one capture, or None when already in guide space."""
    from utils.layout import BoundingBox, GuideRegion, flip_portrait, region_mapper

    mapper = None
    if raw:
        region = capture.guide or GuideRegion(BoundingBox(0.0, 0.0, 1.0, 1.0))
        mapper = region_mapper(region, config.guide.bounds_tolerance)

    if capture.portrait and config.guide.portrait_flip:
        inner = mapper

        def _portrait(bbox):
            flipped = flip_portrait(bbox)
            return inner(flipped) if inner else flipped

        mapper = _portrait

    return mapper


def run_pipeline(args) -> int:
    """Parse and merge the captures, then export the accumulated table."""
    from utils.io import collect_capture_files, load_capture, ensure_dir
    from utils.session import CaptureSession
    from utils.export import TableExporter
    from config import get_config

    start_time = time.time()

    config = get_config()
    if args.row_tolerance is not None:
        config.grouping.row_tolerance = args.row_tolerance
    if args.max_captures is not None:
        config.capture.max_captures = max(1, args.max_captures)
    if args.debug:
        config.debug_mode = True
        config.export.write_debug_log = True

    output_dir = Path(args.output)
    ensure_dir(output_dir)

    files = collect_capture_files(args.input)
    if not files:
        logger.error("No capture files to process")
        return 1

    logger.info(f"Processing {len(files)} capture(s)")

    session = CaptureSession.from_config(config)
    used = []
    for path in files:
        if session.is_locked:
            logger.info(f"Session locked; skipping {path.name}")
            continue
        capture = load_capture(path)
        session.add_capture(capture.detections, build_mapper(capture, args.raw, config))
        used.append(str(path))

    table = session.accumulated
    if table is None:
        logger.error("Nothing was parsed")
        return 1

    formats = args.format or config.export.output_formats
    exporter = TableExporter(output_dir, "table")
    debug_log = session.debug_log if config.export.write_debug_log else None
    export_results = exporter.export(table, formats, debug_log=debug_log, source_files=used)

    for fmt, path in export_results.items():
        logger.info(f"Exported {fmt}: {path}")

    elapsed = time.time() - start_time
    missing = session.missing()

    if not args.quiet:
        print("\n" + "="*60)
        print("WORKOUT PARSE COMPLETE")
        print("="*60)
        print(f"Captures used: {len(used)} of {len(files)}")
        print(f"Output: {output_dir}")
        print(f"Processing time: {elapsed:.2f}s")
        print()
        print(table.summary())
        print()
        print(f"Progress: {session.progress:.0%}")
        print(f"Complete: {'yes' if not missing else 'no'}")
        if missing:
            print(f"Missing: {', '.join(missing)}")
        print("="*60)

    return 0


def main():
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    # Check dependencies
    if not check_dependencies():
        sys.exit(1)

    # Run pipeline
    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
