"""Signage display: render events.json as a rotating HTML page."""
import argparse
import logging
import sys
from datetime import datetime, timedelta
from typing import Optional, Sequence

from dateutil import tz as dateutil_tz

from config import Settings, load_settings
from display.renderer import DisplayRenderer
from log_setup import setup_logging
from storage.json_writer import atomic_write_text

logger = logging.getLogger(__name__)


def write_html(path: str, html: str) -> None:
    """Replace the HTML file in one step so the browser never reads half of it."""
    atomic_write_text(path, html, prefix='.display-', suffix='.html.tmp')


def build_renderer(settings: Settings, events_url: str) -> DisplayRenderer:
    zone = dateutil_tz.gettz(settings.timezone)
    if zone is None:
        raise ValueError(f"Unknown timezone {settings.timezone!r}")
    return DisplayRenderer(
        events_url=events_url,
        timezone=zone,
        events_per_page=settings.events_per_page,
        max_events=settings.display_max_events,
        page_duration=timedelta(seconds=settings.page_duration_seconds),
        refresh_every=timedelta(minutes=settings.refresh_every_minutes),
        hard_reload_at_midnight=settings.hard_reload_at_midnight,
        screen_lines=settings.screen_lines,
        screen_columns=settings.screen_columns,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Render events.json for a signage screen.")
    parser.add_argument("--events-url", help="URL or path of events.json")
    parser.add_argument("--output", help="HTML file to keep up to date")
    parser.add_argument("--once", action="store_true", help="Render a single frame and exit")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(settings.log_level)
    events_url = args.events_url or settings.events_url
    output = args.output or settings.display_output

    try:
        renderer = build_renderer(settings, events_url)
    except ValueError as e:
        logger.error(f"Invalid display configuration: {e}")
        return 2

    def sink(html: str) -> None:
        write_html(output, html)
        logger.debug(f"Rendered display to {output}")

    if args.once:
        renderer.start(datetime.now(renderer.timezone))
        sink(renderer.render())
        return 0

    try:
        renderer.run(sink)
    except KeyboardInterrupt:
        logger.info("Display stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
