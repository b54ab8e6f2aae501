"""Command-line entry point: ingest the configured sources once and print the timeline."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from site_news_scraper.pipeline import IngestionResult, run_pipeline
from site_news_scraper.storage import items_to_frame, write_frame


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract articles from the configured sites")
    parser.add_argument("--config", type=Path, default=None, help="YAML config (http, strategies, ...)")
    parser.add_argument("--sources", type=Path, required=True, help="YAML file listing sources")
    parser.add_argument("--output", type=Path, help="Write items to .csv, .jsonl or .parquet")
    parser.add_argument("--deadline", type=float, default=None, help="Give up on slow sources after N seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def print_result(result: IngestionResult) -> None:
    s = result.summary
    print(f"Succeeded: {s.succeeded} | Failed: {s.failed} | Items: {s.total_items}")
    for sid, failure in s.failures.items():
        print(f"  ! {sid} [{failure.kind.value}] {failure.reason}")
    for it in result.items:
        print(f"{it.published_at:%Y-%m-%d %H:%M} [{it.source}] {it.title}\n    {it.url}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    result = asyncio.run(
        run_pipeline(
            str(args.config) if args.config else None,
            str(args.sources),
            deadline=args.deadline,
        )
    )
    print_result(result)
    if args.output:
        write_frame(args.output, items_to_frame(result.items))
        print(f"Output: {args.output}")
    return 0 if result.summary.succeeded or not result.summary.failed else 1


if __name__ == "__main__":
    raise SystemExit(main())
