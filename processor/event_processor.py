"""Event processor for validating and normalizing calendar entries."""
import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional

from dateutil import tz as dateutil_tz

from processor.location import clean_location, strip_markup
from processor.models import (
    UNTITLED,
    AllDaySpan,
    EventSpan,
    NormalizedEvent,
    RawCalendarEntry,
    TimedSpan,
)

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor for turning raw feed entries into NormalizedEvents."""

    MAX_TITLE_LENGTH = 200
    EVENT_KINDS = frozenset({"VEVENT", "item"})

    def __init__(self, timezone: Optional[tzinfo] = None):
        """
        Initialize the processor.

        Args:
            timezone: Zone used for floating times and all-day dates
                (default: the machine's local zone)
        """
        self.timezone = timezone or dateutil_tz.tzlocal()

    def process_events(self, raw_entries: List[RawCalendarEntry]) -> List[NormalizedEvent]:
        """
        Normalize raw calendar entries, discarding the ones that are unusable.

        Args:
            raw_entries: Entries from every fetched feed, in feed order

        Returns:
            List of NormalizedEvent objects, in input order
        """
        processed_events = []

        for entry in raw_entries:
            try:
                event = self.normalize_entry(entry)
            except (TypeError, ValueError, OverflowError) as e:
                logger.warning(f"Failed to normalize entry '{entry.title}': {e}")
                continue
            if event:
                processed_events.append(event)

        logger.info(
            f"Normalized {len(processed_events)} events out of "
            f"{len(raw_entries)} raw entries"
        )
        return processed_events

    def normalize_entry(self, entry: RawCalendarEntry) -> Optional[NormalizedEvent]:
        """
        Normalize a single entry.

        Args:
            entry: Raw entry from a feed parser

        Returns:
            NormalizedEvent, or None if the entry is not a dated event
        """
        if entry.kind not in self.EVENT_KINDS:
            logger.debug(f"Skipping non-event component {entry.kind}")
            return None

        span = self._build_span(entry.start, entry.end)
        if span is None:
            logger.debug(f"Skipping entry without usable start: {entry.title!r}")
            return None

        title = strip_markup(entry.title)[:self.MAX_TITLE_LENGTH] or UNTITLED

        return NormalizedEvent(
            title=title,
            when=span,
            location=clean_location(entry.location),
            tz=self.timezone,
            link=(entry.link or "").strip() or None,
        )

    def _build_span(self, start, end) -> Optional[EventSpan]:
        """
        Build the timed or all-day span for an entry.

        Only values that are already date-like are accepted. A start that is
        not date-like drops the entry; an end that is not date-like, or that
        precedes the start, is left absent.
        """
        if isinstance(start, datetime):
            start_dt = self._localize(start)
            end_dt = None
            if isinstance(end, datetime):
                end_dt = self._localize(end)
            elif isinstance(end, date):
                end_dt = self._localize(datetime.combine(end, datetime.min.time()))
            if end_dt is not None and end_dt < start_dt:
                end_dt = None
            return TimedSpan(start=start_dt, end=end_dt)

        if isinstance(start, date):
            last_day = start
            if isinstance(end, datetime):
                last_day = end.date()
            elif isinstance(end, date):
                # DTEND of an all-day VEVENT is exclusive
                last_day = end - timedelta(days=1)
            return AllDaySpan(first_day=start, last_day=max(start, last_day))

        return None

    def _localize(self, value: datetime) -> datetime:
        """Attach the configured zone to floating datetimes."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.timezone)
        return value
