"""CLI entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from sondeanalysis.config import load_settings, settings_path_from_env
from sondeanalysis.pipeline import fill_batch, load_batch, sort_by_valid_time
from sondeanalysis.report import format_analysis

logger = logging.getLogger(__name__)


def _settings(args: argparse.Namespace):
    path = args.config or settings_path_from_env()
    try:
        return load_settings(path)
    except (OSError, ValueError) as exc:
        print(f"Error: cannot load settings from {path}: {exc}")
        sys.exit(1)


def run_analyze(args: argparse.Namespace) -> None:
    """Fill every sounding in the input file and print or save the results."""
    settings = _settings(args)
    try:
        analyses = load_batch(args.file)
    except (OSError, ValidationError) as exc:
        print(f"Error: cannot read {args.file}: {exc}")
        sys.exit(1)

    logger.info("Loaded %d soundings from %s", len(analyses), args.file)
    filled = fill_batch(
        analyses,
        settings=settings,
        max_workers=args.workers,
        use_processes=not args.threads,
    )
    filled = sort_by_valid_time(filled)

    if args.output:
        out = Path(args.output)
        out.write_text(
            "[" + ",\n".join(a.model_dump_json() for a in filled) + "]\n"
        )
        logger.info("Wrote %d analyses to %s", len(filled), out)
    else:
        for anal in filled:
            print(format_analysis(anal))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="sondeanalysis",
        description="Convective, kinematic and fire-weather analysis of soundings",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # analyze subcommand
    analyze_parser = subparsers.add_parser(
        "analyze", help="Analyze a JSON file of soundings"
    )
    analyze_parser.add_argument("file", help="JSON list of {profile, provider_analysis}")
    analyze_parser.add_argument(
        "--config", help="Settings YAML (or set SONDEANALYSIS_CONFIG env var)"
    )
    analyze_parser.add_argument(
        "--workers", type=int, default=None, help="Worker count (default: settings or CPU count)"
    )
    analyze_parser.add_argument(
        "--threads", action="store_true", help="Use threads instead of processes"
    )
    analyze_parser.add_argument(
        "--output", help="Write the analyses as JSON here instead of printing a summary"
    )

    # settings subcommand
    settings_parser = subparsers.add_parser("settings", help="Print the effective settings")
    settings_parser.add_argument(
        "--config", help="Settings YAML (or set SONDEANALYSIS_CONFIG env var)"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.command == "settings":
        for key, value in _settings(args).model_dump().items():
            print(f"  {key}: {value}")
    elif args.command == "analyze":
        run_analyze(args)
