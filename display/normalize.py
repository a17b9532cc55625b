"""Defensive normalization of events.json records for the display.

The display accepts both the current schema (``title``, ``start``, ``end``,
``location``, ``allDay``) and the older RSS-era one (``title``, ``date``,
``time``, ``location``, ``link``), where date and time are display strings.
"""
import logging
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, List, Optional

from dateutil import parser as date_parser

from display.models import DisplayEvent

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=2)
CLOCK_TIME = re.compile(r"(\d{1,2}:\d{2}\s*[AP]M)", re.IGNORECASE)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_date_safe(value: Any, tz: tzinfo) -> Optional[datetime]:
    """Parse anything date-like into an aware datetime, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = _as_text(value)
        if text is None:
            return None
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def normalize_display_event(raw: Any, tz: tzinfo) -> DisplayEvent:
    """
    Turn one record from events.json into a DisplayEvent.

    Never raises: unusable fields fall back to placeholders.
    """
    if not isinstance(raw, dict):
        raw = {}

    start = parse_date_safe(raw.get('start'), tz)
    end = parse_date_safe(raw.get('end'), tz)
    all_day = raw.get('allDay') is True
    legacy_date = _as_text(raw.get('date'))
    legacy_time = _as_text(raw.get('time'))

    if start is None and legacy_date:
        clock = CLOCK_TIME.search(legacy_time or '')
        if clock:
            start = parse_date_safe(f"{legacy_date} {clock.group(1)}", tz)
        else:
            start = parse_date_safe(legacy_date, tz)
            all_day = start is not None

    if start is not None and end is None:
        if all_day:
            local = start.astimezone(tz)
            end = datetime.combine(local.date() + timedelta(days=1), time.min, tzinfo=tz)
        else:
            end = start + DEFAULT_DURATION

    return DisplayEvent(
        title=_as_text(raw.get('title')) or 'Untitled Event',
        location=_as_text(raw.get('location')) or 'TBA',
        start=start,
        end=end,
        all_day=all_day,
        display_date=legacy_date,
        display_time=legacy_time,
    )


def start_of_day(now: datetime, tz: tzinfo) -> datetime:
    local = now.astimezone(tz)
    return datetime.combine(local.date(), time.min, tzinfo=tz)


def filter_upcoming(events: List[DisplayEvent], now: datetime, tz: tzinfo) -> List[DisplayEvent]:
    """Keep events that have not ended before today began; keep undated ones."""
    cutoff = start_of_day(now, tz)
    kept = []
    for event in events:
        if event.end is not None:
            # all-day ends are the exclusive midnight after the last day
            running = event.end > cutoff if event.all_day else event.end >= cutoff
            if running:
                kept.append(event)
        elif event.start is not None:
            if event.start >= cutoff:
                kept.append(event)
        else:
            kept.append(event)
    return kept


def sort_by_start(events: List[DisplayEvent]) -> List[DisplayEvent]:
    """Sort ascending by start; undated events go last."""
    return sorted(
        events,
        key=lambda event: (event.start is None, event.start.timestamp() if event.start else 0)
    )


def chunk(items: List[Any], size: int) -> List[List[Any]]:
    if size < 1:
        raise ValueError("page size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


def prepare_events(raw_events: List[Any], now: datetime, tz: tzinfo, max_events: int) -> List[DisplayEvent]:
    """Normalize, filter, sort and cap records loaded from events.json."""
    normalized = [normalize_display_event(raw, tz) for raw in raw_events]
    upcoming = sort_by_start(filter_upcoming(normalized, now, tz))
    logger.debug(f"{len(upcoming)} of {len(normalized)} loaded events are upcoming")
    return upcoming[:max_events]
