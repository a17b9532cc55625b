"""Paginated, auto-rotating signage display."""
import logging
import time as time_module
from datetime import datetime, time, timedelta, tzinfo
from typing import Any, Callable, List, Optional

from display.fit import fit_page
from display.formatting import render_document, render_empty_page, render_page, rotation_css
from display.loader import DisplayLoadError, load_events
from display.models import RendererState
from display.normalize import chunk, prepare_events

logger = logging.getLogger(__name__)

RELOAD_DELAY = timedelta(seconds=2)


def next_midnight_reload(now: datetime, tz: tzinfo) -> datetime:
    """Instant shortly after the next local midnight."""
    tomorrow = now.astimezone(tz).date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=tz) + RELOAD_DELAY


class DisplayRenderer:
    """
    Owns the display's RendererState and advances it on timer ticks.

    Timers are instants stored in the state; ``tick`` fires whichever are
    due and ``next_wakeup`` tells the loop how long to sleep. Only one load
    or page change runs at a time because everything happens on the
    caller's thread.
    """

    def __init__(
        self,
        events_url: str,
        timezone: tzinfo,
        events_per_page: int = 5,
        max_events: int = 20,
        page_duration: timedelta = timedelta(seconds=12),
        refresh_every: timedelta = timedelta(minutes=60),
        transition: timedelta = timedelta(milliseconds=800),
        hard_reload_at_midnight: bool = True,
        screen_lines: int = 30,
        screen_columns: int = 60,
        loader: Callable[[str], List[Any]] = load_events,
    ):
        if events_per_page < 1:
            raise ValueError("events_per_page must be at least 1")
        self.events_url = events_url
        self.timezone = timezone
        self.events_per_page = events_per_page
        self.max_events = max_events
        self.page_duration = page_duration
        self.refresh_every = refresh_every
        self.transition = transition
        self.hard_reload_at_midnight = hard_reload_at_midnight
        self.screen_lines = screen_lines
        self.screen_columns = screen_columns
        self.loader = loader
        self.state = RendererState()

    def start(self, now: datetime) -> None:
        """Load the first batch and arm the refresh and midnight timers."""
        self.load_and_render(now)
        self.state.next_refresh = now + self.refresh_every
        if self.hard_reload_at_midnight:
            self.state.reload_at = next_midnight_reload(now, self.timezone)

    def load_and_render(self, now: datetime) -> None:
        """
        Reload events.json and rebuild the pages.

        Load failures are reported through the status line and a fallback
        page; they never propagate.
        """
        state = self.state
        try:
            raw_events = self.loader(self.events_url)
        except DisplayLoadError as e:
            logger.error(f"Load error: {e}", extra={'events_url': self.events_url})
            state.pages = []
            state.failed = True
            state.status = 'Failed to load events.'
            self._reset_rotation()
            return

        events = prepare_events(raw_events, now, self.timezone, self.max_events)
        state.pages = chunk(events, self.events_per_page)
        state.failed = False
        self._reset_rotation()
        if len(state.pages) > 1:
            state.next_rotation = now + self.page_duration

        count = len(events)
        local = now.astimezone(self.timezone)
        state.status = (
            f"{count} upcoming event{'' if count == 1 else 's'} • "
            f"updated {local.hour % 12 or 12}:{local:%M:%S %p}"
        )
        logger.info(f"Loaded {count} upcoming events into {len(state.pages)} pages")

    def _reset_rotation(self) -> None:
        self.state.current_page = 0
        self.state.previous_page = None
        self.state.transition_started = None
        self.state.next_rotation = None

    def advance_page(self, now: datetime) -> None:
        """Show the next page and mark the outgoing one as leaving."""
        state = self.state
        if len(state.pages) <= 1:
            state.next_rotation = None
            return
        state.previous_page = state.current_page
        state.current_page = (state.current_page + 1) % len(state.pages)
        state.transition_started = now
        state.next_rotation = now + self.page_duration

    def full_reload(self, now: datetime) -> None:
        """Throw away all state and start over, as a page reload would."""
        logger.info("Performing scheduled midnight reload")
        self.state = RendererState()
        self.start(now)

    def tick(self, now: datetime) -> bool:
        """
        Fire every timer that is due.

        Returns:
            True if anything visible may have changed
        """
        state = self.state
        if state.reload_at is not None and now >= state.reload_at:
            self.full_reload(now)
            return True

        changed = False
        if state.next_refresh is not None and now >= state.next_refresh:
            self.load_and_render(now)
            state.next_refresh = now + self.refresh_every
            changed = True

        if state.transition_started is not None and now >= state.transition_started + self.transition:
            state.previous_page = None
            state.transition_started = None
            changed = True

        if state.next_rotation is not None and now >= state.next_rotation:
            self.advance_page(now)
            changed = True

        return changed

    def next_wakeup(self) -> Optional[datetime]:
        state = self.state
        pending = [state.next_rotation, state.next_refresh, state.reload_at]
        if state.transition_started is not None:
            pending.append(state.transition_started + self.transition)
        pending = [instant for instant in pending if instant is not None]
        return min(pending) if pending else None

    def render(self) -> str:
        """
        Render the whole display as an HTML document.

        Page rotation is carried by CSS keyframes inside the document, with
        the current page first in the cycle. The meta refresh only picks up
        new data.
        """
        state = self.state
        refresh = max(1, int(self.refresh_every.total_seconds()))
        if not state.pages:
            return render_document(render_empty_page(), state.status, refresh)

        count = len(state.pages)
        seconds = self.page_duration.total_seconds()
        rotation = rotation_css(count, seconds, self.transition.total_seconds())
        parts = []
        for index, page in enumerate(state.pages):
            if index == state.current_page:
                classes = ['active']
            elif index == state.previous_page:
                classes = ['leaving']
            else:
                classes = []
            fit = fit_page(page, self.timezone, self.screen_lines, self.screen_columns)
            delay = ((index - state.current_page) % count) * seconds if rotation else None
            parts.append(render_page(page, self.timezone, classes, fit, delay))
        return render_document(''.join(parts), state.status, refresh, rotation)

    def run(
        self,
        sink: Callable[[str], None],
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], None] = time_module.sleep,
        until: Optional[datetime] = None,
    ) -> None:
        """
        Drive the display until ``until`` (or forever).

        Args:
            sink: Receives the HTML document whenever it changes
            clock: Returns the current aware time
            sleep: Blocks for the given number of seconds
            until: Stop once the clock reaches this instant
        """
        clock = clock or (lambda: datetime.now(self.timezone))
        now = clock()
        self.start(now)
        last_html = self.render()
        sink(last_html)

        while until is None or now < until:
            wakeup = self.next_wakeup()
            if wakeup is None:
                wakeup = now + self.refresh_every
            if until is not None:
                wakeup = min(wakeup, until)
            sleep(max(0.0, (wakeup - now).total_seconds()))
            now = clock()
            if self.tick(now):
                html = self.render()
                if html != last_html:
                    sink(html)
                    last_html = html
