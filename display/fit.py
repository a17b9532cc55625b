"""Fit-to-screen estimation for a display page.

There is no layout engine to measure against, so page height is estimated
in text lines: each field is wrapped to the screen width, titles count as
wider text than detail lines, and each event adds a gap line. The shrink
steps mirror the stylesheet's ``tight`` and ``tighter`` classes.
"""
import math
from datetime import tzinfo
from typing import List, Tuple

from display.formatting import format_event_date, format_event_time
from display.models import DisplayEvent, FitResult

TITLE_WIDTH = 1.5
# (class added, font size relative to normal)
STEPS: List[Tuple[str, float]] = [
    ('tight', 0.85),
    ('tighter', 0.75),
]
MIN_SCALE = 0.7


def _wrapped_lines(text: str, columns: float) -> int:
    return max(1, math.ceil(len(text) / max(columns, 1)))


def estimate_lines(events: List[DisplayEvent], tz: tzinfo, columns: int, font: float = 1.0) -> float:
    """Estimate the height of a page, in normal-size lines."""
    usable = columns / font
    total = 0
    for event in events:
        details = [
            f"Date: {format_event_date(event, tz)}",
            f"Time: {format_event_time(event, tz)}",
            f"Location: {event.location}",
        ]
        total += _wrapped_lines(event.title, usable / TITLE_WIDTH) * TITLE_WIDTH
        total += sum(_wrapped_lines(line, usable) for line in details)
        total += 1
    return total * font


def fit_page(events: List[DisplayEvent], tz: tzinfo, lines: int, columns: int) -> FitResult:
    """
    Choose the shrink classes, and as a last resort a scale factor.

    The scale never goes below MIN_SCALE and never widens the page.
    """
    if estimate_lines(events, tz, columns) <= lines:
        return FitResult()

    classes = []
    height = 0.0
    for name, font in STEPS:
        classes.append(name)
        height = estimate_lines(events, tz, columns, font)
        if height <= lines:
            return FitResult(classes=tuple(classes))

    scale = min(1.0, max(MIN_SCALE, lines / height)) if height > 0 else 1.0
    return FitResult(classes=tuple(classes) + ('scaled',), scale=scale)
