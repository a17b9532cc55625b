"""Heuristic cleanup of free-text venue strings.

Municipal calendars put the venue, street address, city, state and postal
code into a single LOCATION field, e.g.
``Village Hall - 1050 W Romeoville Rd, Romeoville, IL 60446``. A signage
screen only has room for the venue name, so ``clean_location`` trims the
string down by running an ordered table of rules. Add new rules to
``TRIM_RULES`` rather than branching in ``clean_location``.
"""
import re
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup

from processor.models import UNKNOWN_LOCATION

DASH_SEPARATOR = re.compile(r"\s[-–—]\s")
DASH_ONLY = re.compile(r"^[-–—\s]*$")

# Trailing "City, ST 12345" style suffixes, most specific first.
SUFFIX_PATTERNS = [
    re.compile(r",?\s*Romeoville\s*,?\s*IL\s*(\d{5}(-\d{4})?)?$", re.IGNORECASE),
    re.compile(r",\s*[a-z][a-z .'-]*,?\s+[a-z]{2}\s+\d{5}(-\d{4})?$", re.IGNORECASE),
    re.compile(r"\s+[a-z]+\s+[a-z]{2}\s+\d{5}(-\d{4})?$", re.IGNORECASE),
]

ICS_ESCAPES = [
    ("\\n", " "),
    ("\\N", " "),
    ("\\,", ","),
    ("\\;", ";"),
    ("\\\\", "\\"),
]


def strip_markup(text: Optional[str]) -> str:
    """Remove HTML tags and ICS escapes and collapse whitespace."""
    if not text:
        return ""
    text = str(text)
    if "<" in text or "&" in text:
        text = BeautifulSoup(text, "html.parser").get_text()
    for escaped, plain in ICS_ESCAPES:
        text = text.replace(escaped, plain)
    return re.sub(r"\s+", " ", text).strip()


def _before_dash(text: str) -> Optional[str]:
    match = DASH_SEPARATOR.search(text)
    if match:
        return text[:match.start()]
    return None


def _before_comma(text: str) -> Optional[str]:
    if "," in text:
        return text.split(",", 1)[0]
    return None


def _strip_address_suffix(text: str) -> Optional[str]:
    # suffixes can be stacked, so keep going until none matches
    current = text
    matched = True
    while matched and current:
        matched = False
        for pattern in SUFFIX_PATTERNS:
            trimmed = pattern.sub("", current).strip()
            if trimmed != current:
                current = trimmed
                matched = True
                break
    return current if current != text else None


# Each rule returns the trimmed string, or None when it does not apply.
# A rule in an exclusive group is skipped once an earlier rule in the same
# group has applied.
Rule = Tuple[str, Optional[str], Callable[[str], Optional[str]]]

TRIM_RULES: List[Rule] = [
    ("dash", "separator", _before_dash),
    ("comma", "separator", _before_comma),
    ("address-suffix", None, _strip_address_suffix),
]


def clean_location(raw: Optional[str]) -> str:
    """Trim a raw LOCATION value down to a venue name, or "TBA"."""
    text = strip_markup(raw)
    applied_groups = set()

    for _name, group, rule in TRIM_RULES:
        if group is not None and group in applied_groups:
            continue
        trimmed = rule(text)
        if trimmed is None:
            continue
        text = trimmed.strip()
        if group is not None:
            applied_groups.add(group)

    if DASH_ONLY.match(text):
        return UNKNOWN_LOCATION
    return text
