"""Data models for event processing."""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, List, Optional, Union


UNTITLED = "Untitled Event"
UNKNOWN_LOCATION = "TBA"


@dataclass
class RawCalendarEntry:
    """Raw entry as produced by a feed parser."""
    kind: str
    title: Optional[str]
    start: Any
    end: Any
    location: Optional[str]
    link: Optional[str] = None
    source_url: Optional[str] = None


@dataclass(frozen=True)
class TimedSpan:
    """Event with a concrete start instant and optional end instant."""
    start: datetime
    end: Optional[datetime] = None

    def start_instant(self, tz: tzinfo) -> datetime:
        return self.start

    def end_instant(self, tz: tzinfo) -> Optional[datetime]:
        return self.end

    def effective_end(self, tz: tzinfo, default_duration: timedelta) -> datetime:
        return self.end if self.end is not None else self.start + default_duration

    def is_running_at(self, cutoff: datetime, tz: tzinfo, default_duration: timedelta) -> bool:
        return self.effective_end(tz, default_duration) >= cutoff


@dataclass(frozen=True)
class AllDaySpan:
    """Event covering whole local days, first_day through last_day inclusive."""
    first_day: date
    last_day: date

    def start_instant(self, tz: tzinfo) -> datetime:
        return datetime.combine(self.first_day, time.min, tzinfo=tz)

    def end_instant(self, tz: tzinfo) -> datetime:
        return datetime.combine(self.last_day + timedelta(days=1), time.min, tzinfo=tz)

    def effective_end(self, tz: tzinfo, default_duration: timedelta) -> datetime:
        return self.end_instant(tz)

    def is_running_at(self, cutoff: datetime, tz: tzinfo, default_duration: timedelta) -> bool:
        # end_instant is exclusive: midnight after last_day is not part of the event
        return self.end_instant(tz) > cutoff


EventSpan = Union[TimedSpan, AllDaySpan]


@dataclass(frozen=True)
class NormalizedEvent:
    """Validated and normalized event."""
    title: str
    when: EventSpan
    location: str
    tz: tzinfo
    link: Optional[str] = None

    @property
    def all_day(self) -> bool:
        return isinstance(self.when, AllDaySpan)

    @property
    def start(self) -> datetime:
        return self.when.start_instant(self.tz)

    @property
    def end(self) -> Optional[datetime]:
        return self.when.end_instant(self.tz)

    def effective_end(self, default_duration: timedelta) -> datetime:
        return self.when.effective_end(self.tz, default_duration)

    def is_running_at(self, cutoff: datetime, default_duration: timedelta) -> bool:
        """Whether the event is still running at cutoff."""
        return self.when.is_running_at(cutoff, self.tz, default_duration)


@dataclass
class FeedFailure:
    """A feed that could not be fetched or parsed."""
    url: str
    error: str
    error_type: str


@dataclass
class FetchResult:
    """Result of fetching every configured feed."""
    entries: List[RawCalendarEntry] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    failures: List[FeedFailure] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.failures) and not self.succeeded


@dataclass
class RunSummary:
    """Statistics for one batch run."""
    feeds_requested: int
    feeds_failed: int
    raw_entries: int
    normalized: int
    written: int
    output_file: str
    duration_seconds: float
    errors: List[str] = field(default_factory=list)
