"""Text and HTML formatting for the display."""
from datetime import datetime, tzinfo
from html import escape
from typing import List, Optional

from display.models import DisplayEvent, FitResult


def format_date(value: datetime, tz: tzinfo) -> str:
    """Format as e.g. "Sun, Oct 18, 2026" in the display zone."""
    local = value.astimezone(tz)
    return f"{local:%a, %b} {local.day}, {local.year}"


def format_clock(value: datetime, tz: tzinfo) -> str:
    """Format as e.g. "7:05 PM" in the display zone."""
    local = value.astimezone(tz)
    return f"{local.hour % 12 or 12}:{local:%M %p}"


def format_event_date(event: DisplayEvent, tz: tzinfo) -> str:
    if event.display_date:
        return event.display_date
    if event.start:
        return format_date(event.start, tz)
    return 'TBA'


def format_event_time(event: DisplayEvent, tz: tzinfo) -> str:
    if event.display_time:
        return event.display_time
    if event.all_day:
        return 'All day'
    if event.start:
        start = format_clock(event.start, tz)
        if event.end:
            return f"{start} – {format_clock(event.end, tz)}"
        return start
    return 'TBA'


def render_event(event: DisplayEvent, tz: tzinfo) -> str:
    return (
        '<div class="event">'
        f'<div class="event-title">{escape(event.title)}</div>'
        f'<div class="event-detail">Date: {escape(format_event_date(event, tz))}</div>'
        f'<div class="event-detail">Time: {escape(format_event_time(event, tz))}</div>'
        f'<div class="event-detail">Location: {escape(event.location or "TBA")}</div>'
        '</div>'
    )


def render_page(events: List[DisplayEvent], tz: tzinfo, classes: List[str],
                fit: Optional[FitResult] = None, delay: Optional[float] = None) -> str:
    classes = ['page'] + list(classes)
    styles = []
    if fit is not None:
        classes.extend(fit.classes)
        if fit.scale is not None:
            styles.append(f"transform: scale({fit.scale:.3f})")
    if delay is not None:
        styles.append(f"animation-delay: {delay:.3f}s")
    style = f' style="{"; ".join(styles)}"' if styles else ''
    body = ''.join(render_event(event, tz) for event in events)
    return f'<div class="{" ".join(classes)}"{style}>{body}</div>'


def render_empty_page() -> str:
    return (
        '<div class="page active"><div class="event">'
        '<div class="event-title">No upcoming events found.</div>'
        '</div></div>'
    )


def rotation_css(page_count: int, page_duration: float, transition: float) -> str:
    """
    Keyframes that show each page in turn for page_duration seconds.

    Every page runs the same animation over one full cycle and is offset by
    its animation-delay, so the browser keeps rotating between rewrites of
    the document. Returns an empty string when there is nothing to rotate.
    """
    if page_count < 2 or page_duration <= 0:
        return ''
    cycle = page_count * page_duration
    fade = min(transition, page_duration / 2)
    shown = 100 * fade / cycle
    held = 100 * page_duration / cycle
    gone = 100 * (page_duration + fade) / cycle
    return (
        '@keyframes page-cycle {\n'
        '  0% { opacity: 0; }\n'
        f'  {shown:.3f}% {{ opacity: 1; }}\n'
        f'  {held:.3f}% {{ opacity: 1; }}\n'
        f'  {gone:.3f}% {{ opacity: 0; }}\n'
        '  100% { opacity: 0; }\n'
        '}\n'
        '#pages.rotating .page {\n'
        '  transition: none;\n'
        '  transform: none;\n'
        f'  animation: page-cycle {cycle:.3f}s linear infinite both;\n'
        '}\n'
    )


def render_document(pages_html: str, status: str, refresh_seconds: int, rotation: str = '') -> str:
    style = f'<style>\n{rotation}</style>\n' if rotation else ''
    pages_class = ' class="rotating"' if rotation else ''
    return (
        '<!DOCTYPE html>\n'
        '<html lang="en">\n<head>\n'
        '<meta charset="utf-8">\n'
        f'<meta http-equiv="refresh" content="{refresh_seconds}">\n'
        '<title>Upcoming Events</title>\n'
        '<link rel="stylesheet" href="style.css">\n'
        f'{style}'
        '</head>\n<body>\n'
        f'<div id="pages"{pages_class}>{pages_html}</div>\n'
        f'<div id="status">{escape(status)}</div>\n'
        '</body>\n</html>\n'
    )
