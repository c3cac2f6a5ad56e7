from __future__ import annotations

from datetime import date, datetime
from typing import Any


def coerce_date(value: Any) -> Any:
    """Accept the backend's date shapes: ``YYYY-MM-DD``, ISO timestamps and blanks."""
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if "T" in text:
            text = text.split("T", 1)[0]
        return text
    return value
