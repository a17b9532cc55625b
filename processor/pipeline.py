"""Merge, filter, sort and cap normalized events."""
import logging
from datetime import datetime, timedelta, tzinfo
from typing import List, Optional, Tuple

from processor.models import NormalizedEvent

logger = logging.getLogger(__name__)

CUTOFF_START_OF_DAY = "start_of_day"
CUTOFF_NOW = "now"
CUTOFF_POLICIES = (CUTOFF_START_OF_DAY, CUTOFF_NOW)


def dedupe_events(events: List[NormalizedEvent]) -> List[NormalizedEvent]:
    """Keep the first event for each (title, start instant) pair."""
    seen = set()
    unique = []
    for event in events:
        key = dedupe_key(event)
        if key in seen:
            logger.debug(f"Dropping duplicate event {event.title!r} at {event.start.isoformat()}")
            continue
        seen.add(key)
        unique.append(event)
    return unique


def dedupe_key(event: NormalizedEvent) -> Tuple[str, float]:
    return event.title, event.start.timestamp()


def compute_cutoff(now: datetime, policy: str, tz: tzinfo) -> datetime:
    """
    Compute the instant an event must still be running at to be kept.

    Args:
        now: Current time (aware)
        policy: "start_of_day" for local midnight today, "now" for now
        tz: Zone that defines "today"

    Returns:
        Aware cutoff datetime
    """
    if policy == CUTOFF_NOW:
        return now
    if policy == CUTOFF_START_OF_DAY:
        local = now.astimezone(tz)
        return datetime.combine(local.date(), datetime.min.time(), tzinfo=tz)
    raise ValueError(f"Unknown cutoff policy: {policy!r}")


class EventPipeline:
    """Turns the union of every feed's events into the published batch."""

    def __init__(
        self,
        max_events: int = 20,
        cutoff_policy: str = CUTOFF_START_OF_DAY,
        default_duration: timedelta = timedelta(hours=2),
        timezone: Optional[tzinfo] = None,
    ):
        if max_events < 0:
            raise ValueError("max_events must not be negative")
        if cutoff_policy not in CUTOFF_POLICIES:
            raise ValueError(f"Unknown cutoff policy: {cutoff_policy!r}")
        self.max_events = max_events
        self.cutoff_policy = cutoff_policy
        self.default_duration = default_duration
        self.timezone = timezone

    def run(self, events: List[NormalizedEvent], now: datetime) -> List[NormalizedEvent]:
        """
        Dedupe, drop ended events, sort by start and cap.

        Args:
            events: Normalized events from all feeds, in feed order
            now: Current time (aware)

        Returns:
            The batch to publish
        """
        unique = dedupe_events(events)

        tz = self.timezone or now.tzinfo
        cutoff = compute_cutoff(now, self.cutoff_policy, tz)
        upcoming = [
            event for event in unique
            if event.is_running_at(cutoff, self.default_duration)
        ]

        upcoming.sort(key=lambda event: event.start)
        batch = upcoming[:self.max_events]

        logger.info(
            f"Pipeline kept {len(batch)} events "
            f"(input={len(events)} unique={len(unique)} upcoming={len(upcoming)} "
            f"cutoff={cutoff.isoformat()})"
        )
        return batch
