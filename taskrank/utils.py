"""Utility functions for task identity and date handling"""

import hashlib
import re
from datetime import date, datetime
from typing import Any, Optional

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_SLASH_DATE = re.compile(r"^(\d{4})/(\d{2})/(\d{2})$")
_US_DATE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def calculate_task_id(source_path: str, line_number: int, text: str) -> str:
    """
    Calculate a stable identifier for a task within one query.

    Args:
        source_path: Note path the task was found in
        line_number: Line of the checklist item
        text: Task text (guards against line shifts between index refreshes)

    Returns:
        Hexadecimal hash string (16 characters)

    Examples:
        >>> len(calculate_task_id("Work/Inbox.md", 12, "Fix login bug"))
        16
    """
    content = f"{source_path}\x00{line_number}\x00{text}".encode("utf-8")
    return hashlib.sha256(content).hexdigest()[:16]


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a date value coming from the indexing collaborator.

    Accepts date/datetime objects and strings in YYYY-MM-DD (optionally
    followed by a time), YYYY/MM/DD or MM/DD/YYYY form. Anything else,
    including impossible calendar dates, is treated as absent.

    Examples:
        >>> parse_date("2025-03-01")
        datetime.date(2025, 3, 1)
        >>> parse_date("2025-03-01 14:30")
        datetime.date(2025, 3, 1)
        >>> parse_date("next tuesday") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        match = _ISO_DATE.match(text) or _SLASH_DATE.match(text)
        if match:
            year, month, day = (int(g) for g in match.groups())
            return date(year, month, day)
        match = _US_DATE.match(text)
        if match:
            month, day, year = (int(g) for g in match.groups())
            return date(year, month, day)
    except ValueError:
        # e.g. 2025-02-30
        return None
    return None
