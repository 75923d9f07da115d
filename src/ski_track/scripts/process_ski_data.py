#!/usr/bin/env python3
"""
Process Ski Data Script

Loads a ski tracker export (CSV or GSD), classifies every point as STOP, SKI
or LIFT, and writes element/run CSVs plus a GeoJSON of the session.

Usage:
    ski-track SkiData/2024-02-03.gsd
    ski-track day1.csv --dedup --window 30 -o out/
"""

import argparse
import logging
import pathlib
import sys

import pandera.errors
import rich.console
import rich.logging

from ski_track.classification import SkiModeClassifier
from ski_track.config import config
from ski_track.errors import SkiTrackError
from ski_track.export import write_exports
from ski_track.loader import DataLoader, LoaderState, LoggingListener
from ski_track.parsers import PARSER_FORMATS, open_parser
from ski_track.utils import get_session_summary_text

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    log_format = "\\[[bold]%(name)s[/bold]] %(message)s"
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format,
        datefmt="[%X]",
        handlers=[
            rich.logging.RichHandler(
                console=rich.console.Console(color_system="auto"),
                show_level=True,
                show_path=False,
                enable_link_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                markup=True,
            )
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Classify and summarise a ski tracker export")
    parser.add_argument("input", type=pathlib.Path, help="CSV or GSD file")
    parser.add_argument(
        "--format", choices=PARSER_FORMATS, help="Input format (default: from suffix)"
    )
    parser.add_argument("--start", type=int, default=0, help="Records to skip")
    parser.add_argument("--max", type=int, default=None, help="Maximum records to load")
    parser.add_argument(
        "--dedup",
        action="store_true",
        default=config.REMOVE_DUPLICATES,
        help="Drop points that do not advance in time",
    )
    parser.add_argument(
        "--no-bypass-headers",
        action="store_true",
        help="GSD: read from the top instead of seeking the first [TP] block",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=config.WINDOW_CAPACITY,
        help="Lookahead window capacity",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=pathlib.Path,
        default=config.DIR.OUTPUT,
        help="Output directory",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def process_file(args: argparse.Namespace) -> bool:
    with open_parser(
        args.input,
        args.format,
        bypass_headers=False if args.no_bypass_headers else None,
    ) as data_parser:
        loader = DataLoader(
            data_parser,
            SkiModeClassifier(),
            start=args.start,
            max_records=args.max,
            listener=LoggingListener(),
            window_capacity=args.window,
            remove_duplicates=args.dedup,
        )
        data = loader.load()

    if data is None:
        if loader.state == LoaderState.CANCELLED:
            logger.warning("Processing of %s was cancelled", args.input)
        else:
            logger.error("Processing of %s failed (%s)", args.input, loader.state)
        return False

    write_exports(data, args.output, args.input.stem)

    summary = get_session_summary_text(data)
    if summary:
        logger.info(summary)
    logger.info(
        f"{data.size} elements in {data.track_count} runs and {data.block_count} rides"
    )
    return True


def main():
    args = build_parser().parse_args()

    setup_logging(args.verbose)

    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)

    try:
        ok = process_file(args)
    except (SkiTrackError, OSError, pandera.errors.SchemaError) as exc:
        logger.error(f"Error: {exc}")
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
