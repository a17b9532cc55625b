"""Data models for the signage display."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class DisplayEvent:
    """Event as shown on screen."""
    title: str
    location: str
    start: Optional[datetime]
    end: Optional[datetime]
    all_day: bool = False
    display_date: Optional[str] = None
    display_time: Optional[str] = None


@dataclass(frozen=True)
class FitResult:
    """How a page has to be shrunk to fit the screen."""
    classes: Tuple[str, ...] = ()
    scale: Optional[float] = None


@dataclass
class RendererState:
    """Everything the display owns between timer ticks."""
    pages: List[List[DisplayEvent]] = field(default_factory=list)
    current_page: int = 0
    previous_page: Optional[int] = None
    transition_started: Optional[datetime] = None
    status: str = ""
    failed: bool = False
    next_rotation: Optional[datetime] = None
    next_refresh: Optional[datetime] = None
    reload_at: Optional[datetime] = None
