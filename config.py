"""Runtime settings, read from environment variables."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

# Used when neither the command line nor FEED_URLS names a feed.
DEFAULT_FEED_URLS = (
    "https://www.romeoville.org/RSSFeed.aspx?ModID=58&CID=All-calendar.xml",
)


def _split_urls(value: str) -> Tuple[str, ...]:
    return tuple(url.strip() for url in value.split(",") if url.strip())


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Settings for the batch job and the display."""
    feed_urls: Tuple[str, ...] = DEFAULT_FEED_URLS
    output_file: str = "events.json"
    max_events: int = 20
    cutoff_policy: str = "start_of_day"
    default_duration_hours: float = 2.0
    timezone: str = "America/Chicago"
    timeout_seconds: int = 30
    fetch_retries: int = 3
    log_level: str = "INFO"

    events_url: str = "events.json"
    events_per_page: int = 5
    display_max_events: int = 20
    page_duration_seconds: float = 12.0
    refresh_every_minutes: float = 60.0
    hard_reload_at_midnight: bool = True
    display_output: str = "display.html"
    screen_lines: int = 30
    screen_columns: int = 60


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Settings with defaults for anything not set

    Raises:
        ValueError: If a numeric variable does not parse
    """
    env = os.environ if environ is None else environ

    feed_urls = DEFAULT_FEED_URLS
    if "FEED_URLS" in env:
        feed_urls = _split_urls(env["FEED_URLS"])

    return Settings(
        feed_urls=feed_urls,
        output_file=env.get("OUTPUT_FILE", "events.json"),
        max_events=int(env.get("MAX_EVENTS", "20")),
        cutoff_policy=env.get("CUTOFF_POLICY", "start_of_day").strip().lower(),
        default_duration_hours=float(env.get("DEFAULT_DURATION_HOURS", "2")),
        timezone=env.get("TIMEZONE", "America/Chicago"),
        timeout_seconds=int(env.get("TIMEOUT_SECONDS", "30")),
        fetch_retries=int(env.get("FETCH_RETRIES", "3")),
        log_level=env.get("LOG_LEVEL", "INFO"),
        events_url=env.get("EVENTS_URL", "events.json"),
        events_per_page=int(env.get("EVENTS_PER_PAGE", "5")),
        display_max_events=int(env.get("DISPLAY_MAX_EVENTS", "20")),
        page_duration_seconds=float(env.get("PAGE_DURATION_SECONDS", "12")),
        refresh_every_minutes=float(env.get("REFRESH_EVERY_MINUTES", "60")),
        hard_reload_at_midnight=_flag(env.get("HARD_RELOAD_AT_MIDNIGHT", "true")),
        display_output=env.get("DISPLAY_OUTPUT", "display.html"),
        screen_lines=int(env.get("SCREEN_LINES", "30")),
        screen_columns=int(env.get("SCREEN_COLUMNS", "60")),
    )
