"""JSON file output for the events batch."""
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from processor.models import UNKNOWN_LOCATION, NormalizedEvent

logger = logging.getLogger(__name__)


def _default_file_mode() -> int:
    # os.umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def atomic_write_text(path: str, text: str, prefix: str = '.tmp-', suffix: str = '.tmp') -> None:
    """
    Replace path with text in one step so a reader never sees a partial file.

    The file gets the permissions a plain open() would give it; mkstemp
    alone would leave it readable by the owner only.

    Raises:
        OSError: If the file cannot be written
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=prefix, suffix=suffix)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as handle:
            handle.write(text)
        os.chmod(tmp_path, _default_file_mode())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """Format an aware datetime as a UTC instant with millisecond precision."""
    if value is None:
        return None
    utc = value.astimezone(timezone.utc)
    return utc.strftime('%Y-%m-%dT%H:%M:%S.') + f"{utc.microsecond // 1000:03d}Z"


def event_to_dict(event: NormalizedEvent, omit_unknown_location: bool = True) -> Dict[str, Any]:
    """
    Convert a NormalizedEvent into its published JSON object.

    Args:
        event: Event to serialize
        omit_unknown_location: Leave out "location" when it is the sentinel

    Returns:
        Dictionary with title, start, end and the optional fields
    """
    item: Dict[str, Any] = {
        'title': event.title,
        'start': isoformat_utc(event.start),
        'end': isoformat_utc(event.end),
    }
    if event.location and not (omit_unknown_location and event.location == UNKNOWN_LOCATION):
        item['location'] = event.location
    if event.all_day:
        item['allDay'] = True
    if event.link:
        item['link'] = event.link
    return item


class JsonEventWriter:
    """Writes the events batch to a fixed path."""

    def __init__(self, output_file: str, omit_unknown_location: bool = True):
        """
        Initialize the writer.

        Args:
            output_file: Path of the JSON file to overwrite on each run
            omit_unknown_location: Leave out "location" for unknown venues
        """
        self.output_file = output_file
        self.omit_unknown_location = omit_unknown_location

    def write(self, events: List[NormalizedEvent]) -> int:
        """
        Serialize events and replace the output file.

        The data goes to a temporary file beside the target first, so a
        reader never sees a half-written file.

        Args:
            events: Final batch, already sorted and capped

        Returns:
            Number of events written

        Raises:
            OSError: If the file cannot be written
        """
        payload = [
            event_to_dict(event, self.omit_unknown_location) for event in events
        ]

        text = json.dumps(payload, ensure_ascii=False, indent=2) + '\n'
        atomic_write_text(self.output_file, text, prefix='.events-', suffix='.json.tmp')

        logger.info(f"Wrote {len(payload)} events to {self.output_file}")
        return len(payload)
