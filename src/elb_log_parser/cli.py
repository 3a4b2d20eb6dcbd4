"""
Command-line interface for elb-log-parser.

Usage:
    # Parse every *.log.gz under a directory of ALB logs
    elb-log-parser path/to/alb-logs/

    # Classic Load Balancer logs, tolerating malformed lines
    elb-log-parser -t classic-lb --skip-parse-errors path/to/elb-logs/

    # Read uncompressed lines from stdin
    zcat some.log.gz | elb-log-parser -

Exit status:
    0   success (including skipped lines with --skip-parse-errors)
    1   invalid log line, invalid UTF-8, or an I/O error
    2   usage or configuration error
    3   internal pipeline failure
    130 interrupted
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import COLOR_MODES, DIALECTS, get_settings
from .exceptions import (
    ConfigurationError,
    ElbLogParserError,
    GrammarMismatch,
    ThreadFault,
)
from .pipeline import PipelineController, setup_logging
from .reporting import Reporter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_FAULT = 3
EXIT_INTERRUPTED = 130


def positive_int(value: str) -> int:
    """argparse type for a strictly positive integer."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elb-log-parser",
        description="Convert AWS load balancer access logs to JSON lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # ALB logs (*.log.gz) under a directory
  elb-log-parser path/to/alb-logs/

  # Classic Load Balancer logs (*.log), skipping malformed lines
  elb-log-parser -t classic-lb --skip-parse-errors path/to/elb-logs/

  # Uncompressed lines from stdin
  zcat some.log.gz | elb-log-parser -
        """,
    )
    parser.add_argument(
        "path",
        help='Directory (or single file) containing load balancer logs. Use "-" for stdin.',
    )
    parser.add_argument(
        "-t",
        "--type",
        choices=DIALECTS,
        default=None,
        help="Type of load balancer (default: alb)",
    )
    parser.add_argument(
        "--skip-parse-errors",
        action="store_true",
        default=None,
        help="Report malformed lines and keep going instead of stopping",
    )
    parser.add_argument(
        "-j",
        "--workers",
        type=positive_int,
        default=None,
        help="Number of worker threads (default: number of CPUs)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML settings file (default: elb-log-parser.yaml if present)",
    )
    parser.add_argument(
        "--color",
        choices=COLOR_MODES,
        default=None,
        help="Colour diagnostics (default: auto)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        settings = (
            get_settings(str(args.config) if args.config else None)
            .with_overrides(
                dialect=args.type,
                skip_parse_errors=args.skip_parse_errors,
                workers=args.workers,
                color=args.color,
            )
            .ensure_valid()
        )
    except ConfigurationError as e:
        parser.error(str(e))

    logger.debug(f"Settings: {settings.to_dict()}")

    reporter = Reporter.from_settings(settings)
    controller = PipelineController(settings.dialect, settings, reporter)

    try:
        if args.path == "-":
            result = controller.run_stream(sys.stdin.buffer, sys.stdout.buffer)
        else:
            result = controller.run_directory(args.path, sys.stdout.buffer)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except GrammarMismatch:
        # Already reported with its diagnostic
        return EXIT_FAILURE
    except ThreadFault as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exception(e.original)
        return EXIT_FAULT
    except (ElbLogParserError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    logger.info(
        f"Parsed {result.records_emitted:,} records from "
        f"{result.files_processed:,} files in {result.duration_seconds:.2f}s "
        f"({result.lines_skipped:,} lines skipped)"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
