"""Batch job: fetch calendar feeds and write events.json."""
import argparse
import dataclasses
import logging
import sys
import time
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from dateutil import tz as dateutil_tz

from config import Settings, load_settings
from log_setup import setup_logging
from processor.event_processor import EventProcessor
from processor.models import RunSummary
from processor.pipeline import CUTOFF_POLICIES, EventPipeline
from scraper.feed_fetcher import FeedFetcher
from storage.json_writer import JsonEventWriter

EXIT_OK = 0
EXIT_NO_FEEDS = 2
EXIT_ALL_FEEDS_FAILED = 3
EXIT_FAILURE = 4

logger = logging.getLogger(__name__)


def resolve_feed_urls(cli_urls: Sequence[str], settings: Settings) -> List[str]:
    """Pick feed URLs: command line first, then FEED_URLS, then the fallback list."""
    urls = [url.strip() for url in cli_urls if url.strip()]
    if urls:
        return urls
    return list(settings.feed_urls)


def run_batch(
    urls: List[str],
    settings: Settings,
    now: Optional[datetime] = None,
) -> Tuple[int, Optional[RunSummary]]:
    """
    Run fetch, normalize, merge and write once.

    Args:
        urls: Feed URLs to fetch
        settings: Runtime settings
        now: Current time (default: now in the configured zone)

    Returns:
        Tuple of (exit code, RunSummary or None if nothing was written)
    """
    start_time = time.time()

    if not urls:
        logger.error("No feed URLs configured; pass URLs as arguments or set FEED_URLS")
        return EXIT_NO_FEEDS, None

    zone = dateutil_tz.gettz(settings.timezone)
    if zone is None:
        logger.error(f"Unknown timezone {settings.timezone!r}")
        return EXIT_FAILURE, None
    now = now or datetime.now(zone)

    logger.info(
        "Batch run started",
        extra={
            'feeds': len(urls),
            'output_file': settings.output_file,
            'max_events': settings.max_events,
            'cutoff_policy': settings.cutoff_policy
        }
    )

    try:
        fetcher = FeedFetcher(
            timeout=settings.timeout_seconds,
            max_retries=settings.fetch_retries
        )
        processor = EventProcessor(timezone=zone)
        pipeline = EventPipeline(
            max_events=settings.max_events,
            cutoff_policy=settings.cutoff_policy,
            default_duration=timedelta(hours=settings.default_duration_hours),
            timezone=zone
        )
        writer = JsonEventWriter(settings.output_file)

        fetch_result = fetcher.fetch_all(urls)
        if fetch_result.all_failed:
            logger.error(
                "Every feed failed; leaving the previous output in place",
                extra={'failures': [f.error for f in fetch_result.failures]}
            )
            return EXIT_ALL_FEEDS_FAILED, None

        normalized = processor.process_events(fetch_result.entries)
        batch = pipeline.run(normalized, now=now)
        written = writer.write(batch)

    except Exception as e:
        logger.error(
            f"Batch run failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return EXIT_FAILURE, None

    summary = RunSummary(
        feeds_requested=len(urls),
        feeds_failed=len(fetch_result.failures),
        raw_entries=len(fetch_result.entries),
        normalized=len(normalized),
        written=written,
        output_file=settings.output_file,
        duration_seconds=round(time.time() - start_time, 2),
        errors=[failure.error for failure in fetch_result.failures]
    )
    logger.info(
        "Batch run completed",
        extra={
            'feeds_failed': summary.feeds_failed,
            'raw_entries': summary.raw_entries,
            'normalized': summary.normalized,
            'written': summary.written,
            'duration_seconds': summary.duration_seconds
        }
    )
    return EXIT_OK, summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch ICS/RSS calendar feeds and write a capped events.json."
    )
    parser.add_argument("urls", nargs="*", help="Feed URLs (overrides FEED_URLS)")
    parser.add_argument("--output", help="Output JSON path")
    parser.add_argument("--max-events", type=int, help="Maximum number of events to write")
    parser.add_argument("--cutoff", choices=CUTOFF_POLICIES, help="Past-event cutoff policy")
    parser.add_argument("--timezone", help="IANA zone for floating and all-day times")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE

    overrides = {
        'output_file': args.output,
        'max_events': args.max_events,
        'cutoff_policy': args.cutoff,
        'timezone': args.timezone,
        'log_level': args.log_level,
    }
    settings = dataclasses.replace(
        settings,
        **{key: value for key, value in overrides.items() if value is not None}
    )

    setup_logging(settings.log_level)
    exit_code, _summary = run_batch(resolve_feed_urls(args.urls, settings), settings)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
