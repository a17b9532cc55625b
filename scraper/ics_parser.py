"""iCalendar feed parsing."""
import logging
from typing import List

from icalendar import Calendar

from processor.models import RawCalendarEntry

logger = logging.getLogger(__name__)


def _decoded(component, name):
    prop = component.get(name)
    if prop is None:
        return None
    return getattr(prop, "dt", prop)


def _text(component, name):
    value = component.get(name)
    if value is None:
        return None
    return str(value)


def parse_ics(content: bytes, source_url: str = None) -> List[RawCalendarEntry]:
    """
    Parse an iCalendar payload into raw entries.

    Every component is reported with its type so the processor can skip
    VTODO, VJOURNAL and friends. Timezone definitions and the calendar
    itself are not reported.

    Args:
        content: Raw ICS bytes
        source_url: Feed URL, recorded on each entry

    Returns:
        List of RawCalendarEntry objects

    Raises:
        ValueError: If the payload is not valid iCalendar data
    """
    calendar = Calendar.from_ical(content)
    entries = []

    for component in calendar.walk():
        if component.name in ("VCALENDAR", "VTIMEZONE", "STANDARD", "DAYLIGHT", "VALARM"):
            continue
        entries.append(
            RawCalendarEntry(
                kind=component.name,
                title=_text(component, "SUMMARY"),
                start=_decoded(component, "DTSTART"),
                end=_decoded(component, "DTEND"),
                location=_text(component, "LOCATION"),
                link=_text(component, "URL"),
                source_url=source_url,
            )
        )

    logger.info(f"Parsed {len(entries)} components from ICS feed {source_url}")
    return entries
