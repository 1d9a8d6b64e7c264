# episode_linker/cli.py

"""
Command-line entry point.

Run:
    python -m episode_linker link [--input data.csv] [--output output.csv]
    python -m episode_linker crawl --input clips.csv --output data.csv

``link`` resolves each row's show on the configured streaming site and appends
one row per record to the output CSV. ``crawl`` builds that input CSV from a
list of source page URLs.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from playwright.async_api import Error as PlaywrightError

from .config import (
    DEFAULT_INPUT_FILE,
    DEFAULT_OUTPUT_FILE,
    RetryPolicy,
    get_configuration,
    logger,
    validate_configuration,
)
from .errors import ConfigurationError
from .services.pipeline import run_linker
from .services.source_crawler import DEFAULT_TITLE_SELECTOR, run_crawler
from .ui.console import print_summary, prompt_for_paths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="episode-linker",
        description="Match scraped show/episode records to streaming catalog URLs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    link = subparsers.add_parser("link", help="Resolve show and episode URLs")
    link.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    link.add_argument("--config", help="Path to config.ini (default: ./config.ini)")
    link.add_argument("--input", help="Input CSV with Title/Show/URL columns")
    link.add_argument("--output", help="Output CSV to append to")
    link.add_argument("--matches", help="CSV of known item,url matches")
    link.add_argument("--site", help="YAML site profile")
    link.add_argument("--workers", type=int, help="Number of parallel pages")
    link.add_argument(
        "--min-confidence", type=float, help="Similarity floor for a show match"
    )
    link.add_argument(
        "--headed", action="store_true", help="Show the browser window"
    )
    link.add_argument(
        "--save-matches",
        action="store_true",
        help="Write newly found matches back to the matches file",
    )
    link.add_argument(
        "--interactive",
        action="store_true",
        help="Prompt for the input and output file names",
    )
    link.add_argument(
        "--no-progress", action="store_true", help="Disable the progress bar"
    )

    crawl = subparsers.add_parser(
        "crawl", help="Extract titles and season/episode numbers from source pages"
    )
    crawl.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    crawl.add_argument("--input", required=True, help="CSV with a URL column")
    crawl.add_argument("--output", default=DEFAULT_INPUT_FILE, help="CSV to write")
    crawl.add_argument("--workers", type=int, default=10, help="Parallel pages")
    crawl.add_argument(
        "--title-selector",
        default=DEFAULT_TITLE_SELECTOR,
        help="CSS selector of the show title element",
    )
    crawl.add_argument("--max-attempts", type=int, default=3)
    crawl.add_argument("--headed", action="store_true")
    crawl.add_argument("--no-progress", action="store_true")
    return parser


def _apply_link_overrides(args: argparse.Namespace):
    settings = get_configuration(args.config)
    if args.input:
        settings.input_file = args.input
    if args.output:
        settings.output_file = args.output
    if args.matches:
        settings.matches_file = args.matches
    if args.site:
        settings.site_config = args.site
    if args.workers is not None:
        settings.workers = args.workers
    if args.min_confidence is not None:
        settings.min_confidence = args.min_confidence
    if args.headed:
        settings.headless = False
    if args.interactive:
        settings.input_file, settings.output_file = prompt_for_paths(
            settings.input_file or DEFAULT_INPUT_FILE,
            settings.output_file or DEFAULT_OUTPUT_FILE,
        )
    validate_configuration(settings)
    return settings


async def _run_link(args: argparse.Namespace) -> int:
    settings = _apply_link_overrides(args)
    stats = await run_linker(
        settings,
        persist_matches=args.save_matches,
        show_progress=not args.no_progress,
    )
    print_summary(stats, settings.output_file)
    return 0


async def _run_crawl(args: argparse.Namespace) -> int:
    if args.workers < 1 or args.max_attempts < 1:
        raise ConfigurationError("--workers and --max-attempts must be at least 1")
    await run_crawler(
        args.input,
        args.output,
        retry=RetryPolicy(max_attempts=args.max_attempts),
        workers=args.workers,
        headless=not args.headed,
        show_progress=not args.no_progress,
        title_selector=args.title_selector,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    handler = _run_link if args.command == "link" else _run_crawl
    try:
        return asyncio.run(handler(args))
    except (ConfigurationError, FileNotFoundError, OSError) as e:
        logger.critical(f"{e}")
        return 1
    except PlaywrightError as e:
        logger.critical(f"Could not start the browser: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
