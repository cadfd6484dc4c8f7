"""
gesichtool command-line entry point.

Responsibility:
    Parse command-line arguments, configure logging, build the
    configuration record and run the batch.

Usage:
    gesichtool portrait.jpg -o faces/                  # dlib HOG (default)
    gesichtool --opencv a.jpg b.jpg -o faces/          # OpenCV Haar cascade
    gesichtool --opencv --min-size 128x128 -n 5 *.jpg -o faces/
    gesichtool --size 256x256 -o faces/ face.jpg

Exit codes:
    0  success, including --help and batches with unreadable images
    1  argument error or fatal runtime error
"""

import argparse
import logging
import sys
import time
from typing import Any, Dict, List, Optional

import yaml

from gesichtool.config import load_config
from gesichtool.geometry import parse_size
from gesichtool.runner import BatchRunner

logger = logging.getLogger(__name__)

_VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ArgumentParseError(Exception):
    """Raised for malformed or missing command-line input."""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message: str):
        raise ArgumentParseError(message)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class _ConsoleFormatter(logging.Formatter):
    """Formats records as '<level>: <message>' with a lower-case level."""

    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = record.levelname.lower()
        return super().format(record)


class _ProgressFormatter(logging.Formatter):
    """Plain messages for progress lines; debug records carry timestamp and origin."""

    def __init__(self) -> None:
        super().__init__("%(message)s")
        self._debug = logging.Formatter(_VERBOSE_FORMAT, datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno < logging.INFO:
            return self._debug.format(record)
        return super().format(record)


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def configure_logging(verbose: bool = False) -> None:
    """Route package logs: progress to stdout, warnings and errors to stderr.

    Safe to call more than once; previously installed console handlers
    are replaced.
    """
    package_logger = logging.getLogger("gesichtool")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_gesichtool_console", False):
            package_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_BelowWarning())
    stdout_handler.setFormatter(_ProgressFormatter())

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(_ConsoleFormatter("%(levelname)s: %(message)s"))

    for handler in (stdout_handler, stderr_handler):
        handler._gesichtool_console = True
        package_logger.addHandler(handler)

    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _size_arg(token: str):
    try:
        return parse_size(token)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Return the gesichtool argument parser."""
    parser = _ArgumentParser(
        prog="gesichtool",
        usage="%(prog)s [OPTIONS] IMAGE... -o OUTDIR",
        description="Extract every face found in the input images into "
                    "separate, fixed-size JPEG files named face{III}-{FFF}.jpg.",
    )

    parser.add_argument(
        "images",
        nargs="*",
        metavar="IMAGE",
        help="Input image files.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=None,
        help="Print a 'processing <path>' line per image and enable debug logging.",
    )
    parser.add_argument(
        "-o", "--output",
        metavar="DIR",
        help="Output directory for the face crops (required, created if missing).",
    )

    backend = parser.add_mutually_exclusive_group()
    backend.add_argument(
        "--dlib",
        dest="mode",
        action="store_const",
        const="dlib",
        help="Use the dlib HOG frontal face detector (default).",
    )
    backend.add_argument(
        "--opencv",
        dest="mode",
        action="store_const",
        const="opencv",
        help="Use the OpenCV Haar cascade detector.",
    )

    parser.add_argument(
        "-n", "--min-neighbors",
        type=int,
        metavar="INT",
        help="OpenCV only: neighbors required to accept a face (default: 3).",
    )
    parser.add_argument(
        "--min-size",
        type=_size_arg,
        metavar="WxH",
        help="OpenCV only: minimum face size (default: 512x512, the output "
             "size, so small faces are not upscaled).",
    )
    parser.add_argument(
        "--max-size",
        type=_size_arg,
        metavar="WxH",
        help="OpenCV only: maximum face size (default: unlimited).",
    )
    parser.add_argument(
        "--size",
        type=_size_arg,
        metavar="WxH",
        help="Size of the written face images (default: 512x512).",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        metavar="INT",
        help="Maximum number of images processed at once (default: CPU count).",
    )
    parser.add_argument(
        "--quality",
        type=int,
        metavar="INT",
        help="JPEG quality of the written images, 1-100 (default: 95).",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML configuration file. Command-line options take precedence.",
    )

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Options and image paths may be given in any order.

    Raises:
        ArgumentParseError: On unknown flags or malformed values.
    """
    return build_parser().parse_intermixed_args(argv)


def _overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Turn the options given on the command line into config overrides."""
    sections = {
        "detection": {
            "mode": args.mode,
            "min_neighbors": args.min_neighbors,
            "min_size": args.min_size,
            "max_size": args.max_size,
        },
        "input": {"paths": args.images or None},
        "output": {
            "directory": args.output,
            "size": args.size,
            "jpeg_quality": args.quality,
        },
        "run": {"jobs": args.jobs, "verbose": args.verbose},
    }
    return {
        section: {k: v for k, v in values.items() if v is not None}
        for section, values in sections.items()
    }


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Run gesichtool and return the process exit code."""
    configure_logging(verbose=False)

    # 1. Parse arguments and load configuration (CLI > ENV > YAML > Defaults)
    try:
        args = parse_args(argv)
        config = load_config(args.config, overrides=_overrides_from_args(args))
    except (ArgumentParseError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error("%s", e)
        return 1

    configure_logging(verbose=config.run.verbose)

    # 2. Run the batch
    start_time = time.perf_counter()
    try:
        summary = BatchRunner(config).run()
    except KeyboardInterrupt:
        logger.error("interrupted")
        return 1
    except (FileNotFoundError, RuntimeError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1
    except Exception as e:
        logger.exception("unexpected error: %s", e)
        return 1

    elapsed = time.perf_counter() - start_time
    logger.info(
        "Processing finished. Images: %d (unreadable: %d). Faces written: %d. Elapsed: %.2fs.",
        summary.images_total, summary.images_failed, summary.faces_written, elapsed,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
