"""Loading events.json for the display."""
import json
import logging
import time
from typing import Any, List
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

logger = logging.getLogger(__name__)


class DisplayLoadError(Exception):
    """events.json could not be fetched or decoded."""


def with_cache_bust(url: str, stamp: int = None) -> str:
    """Add or replace the "_" query parameter so caches are bypassed."""
    stamp = int(time.time() * 1000) if stamp is None else stamp
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != '_']
    query.append(('_', str(stamp)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def is_remote(source: str) -> bool:
    return urlsplit(source).scheme in ('http', 'https')


def load_events(source: str, timeout: int = 30) -> List[Any]:
    """
    Load the raw event list from a URL or a local file.

    Args:
        source: http(s) URL or filesystem path of events.json
        timeout: HTTP timeout in seconds

    Returns:
        The decoded list, or an empty list when the JSON is not an array

    Raises:
        DisplayLoadError: If the source cannot be read or is not JSON
    """
    try:
        if is_remote(source):
            response = requests.get(
                with_cache_bust(source),
                headers={'Cache-Control': 'no-store'},
                timeout=timeout
            )
            response.raise_for_status()
            data = response.json()
        else:
            with open(source, encoding='utf-8') as handle:
                data = json.load(handle)
    except (requests.RequestException, OSError, ValueError) as e:
        raise DisplayLoadError(f"Could not load {source}: {e}") from e

    if not isinstance(data, list):
        logger.warning(f"{source} does not contain a JSON array; treating it as empty")
        return []
    return data
