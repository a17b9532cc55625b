"""RSS calendar feed parsing.

Municipal CMS calendars publish RSS items whose summary carries the event
details as labelled free text::

    Event date: October 18, 2026
    Event Time: 07:00 PM - 09:00 PM
    Location: Village Hall, 1050 W Romeoville Rd

Dates without a time become all-day entries.
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

import feedparser
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from processor.models import RawCalendarEntry

logger = logging.getLogger(__name__)

DATE_FIELD = re.compile(r"Event dates?:\s*([^\n<]+)", re.IGNORECASE)
TIME_FIELD = re.compile(r"Event times?:\s*([^\n<]+)", re.IGNORECASE)
LOCATION_FIELD = re.compile(r"Location:\s*([^\n<]+)", re.IGNORECASE)
RANGE_SEPARATOR = re.compile(r"\s+[-–—]\s+|\s+to\s+", re.IGNORECASE)


def _summary_text(entry) -> str:
    html = entry.get("summary") or entry.get("description") or ""
    if not html and entry.get("content"):
        html = entry["content"][0].get("value", "")
    return BeautifulSoup(html, "html.parser").get_text("\n")


def _match(pattern, text: str) -> Optional[str]:
    found = pattern.search(text)
    if not found:
        return None
    return found.group(1).strip() or None


def _split_range(text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    if not text:
        return None, None
    parts = RANGE_SEPARATOR.split(text, maxsplit=1)
    first = parts[0].strip() or None
    second = parts[1].strip() if len(parts) > 1 else None
    return first, second or None


def parse_date(text: Optional[str]) -> Optional[date]:
    """Parse a free-text date, retrying without commas."""
    if not text:
        return None
    for candidate in (text, text.replace(",", "")):
        try:
            return date_parser.parse(candidate).date()
        except (ValueError, OverflowError):
            continue
    return None


def parse_time(day: date, text: Optional[str]) -> Optional[datetime]:
    """Combine a date with a free-text time such as "7:00 PM"."""
    if not text:
        return None
    try:
        parsed = date_parser.parse(text, default=datetime.combine(day, datetime.min.time()))
    except (ValueError, OverflowError):
        return None
    return datetime.combine(day, parsed.time())


def entry_from_item(item, source_url: str = None) -> RawCalendarEntry:
    """Build a raw entry from a single feedparser item."""
    text = _summary_text(item)

    first_date_text, last_date_text = _split_range(_match(DATE_FIELD, text))
    first_day = parse_date(first_date_text)
    last_day = parse_date(last_date_text) or first_day
    start_time_text, end_time_text = _split_range(_match(TIME_FIELD, text))

    start = None
    end = None
    if first_day:
        start = parse_time(first_day, start_time_text)
        if start is not None:
            end = parse_time(last_day, end_time_text)
        else:
            start = first_day
            # exclusive, matching ICS all-day DTEND
            end = last_day + timedelta(days=1)

    return RawCalendarEntry(
        kind="item",
        title=item.get("title"),
        start=start,
        end=end,
        location=_match(LOCATION_FIELD, text),
        link=item.get("link"),
        source_url=source_url,
    )


def parse_rss(content: bytes, source_url: str = None) -> List[RawCalendarEntry]:
    """
    Parse an RSS payload into raw entries.

    Raises:
        ValueError: If feedparser could not find a feed in the payload
    """
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        raise ValueError(f"Unparseable RSS feed: {feed.get('bozo_exception')}")

    entries = [entry_from_item(item, source_url) for item in feed.entries]
    logger.info(f"Parsed {len(entries)} items from RSS feed {source_url}")
    return entries
