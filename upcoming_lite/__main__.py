"""Command-line entry for upcoming_lite.

Reads an ICS file and prints its upcoming occurrences as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from upcoming_lite.calendar.lite_parser import LiteICSParser
from upcoming_lite.calendar.lite_upcoming import LiteUpcomingSelector
from upcoming_lite.config_loader import load_config
from upcoming_lite.lite_logging import configure_lite_logging

logger = logging.getLogger("upcoming_lite")


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the upcoming_lite CLI."""
    parser = argparse.ArgumentParser(
        prog="upcoming_lite",
        description="List upcoming occurrences from an iCalendar file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m upcoming_lite calendar.ics
  python -m upcoming_lite calendar.ics --limit 5 --weeks-ahead 4
        """,
    )
    parser.add_argument("ics_file", metavar="FILE", help="Path to the .ics file")
    parser.add_argument("--limit", type=int, metavar="N", help="Maximum occurrences (default: 10)")
    parser.add_argument(
        "--weeks-ahead", type=int, metavar="N", help="Expansion window in weeks (default: 12)"
    )
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON configuration file")
    parser.add_argument("--env-file", metavar="PATH", help=".env file with UPCOMING_LITE_* values")
    parser.add_argument("--log-level", metavar="LEVEL", help="Logging level (default: INFO)")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the upcoming_lite CLI and return the process exit code."""
    args = _create_parser().parse_args(argv)

    try:
        cfg = load_config(args.config, args.env_file)
    except (OSError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_lite_logging(args.log_level or cfg.log_level)

    try:
        ics_content = Path(args.ics_file).read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.ics_file, exc)
        return 1

    result = LiteICSParser(cfg).parse_ics_content(ics_content)
    occurrences = LiteUpcomingSelector(cfg).get_upcoming_events(
        result.events,
        limit=args.limit if args.limit is not None else cfg.limit,
        weeks_ahead=args.weeks_ahead if args.weeks_ahead is not None else cfg.weeks_ahead,
        calendar_timezone=result.calendar_timezone,
    )

    print(json.dumps([occurrence.model_dump(mode="json") for occurrence in occurrences], indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
