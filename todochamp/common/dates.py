from __future__ import annotations

import datetime as _dt

CREATED_AT_DISPLAY_FORMAT = "%d %b %Y, %H:%M"


def created_at_from_epoch(seconds: float) -> str:
    """Serialize a store clock reading as ISO-8601 in UTC."""
    return _dt.datetime.fromtimestamp(seconds, _dt.UTC).isoformat()


def convert_date_format(raw: str) -> str:
    """Render a stored ``createdAt`` value for display.

    Empty input stays empty; values that are not ISO-8601 are returned as-is so
    documents written by other clients still show something.
    """
    if not raw:
        return ""
    try:
        parsed = _dt.datetime.fromisoformat(raw)
    except ValueError:
        return raw
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_dt.UTC)
    return parsed.astimezone(_dt.UTC).strftime(CREATED_AT_DISPLAY_FORMAT)


__all__ = [
    "CREATED_AT_DISPLAY_FORMAT",
    "convert_date_format",
    "created_at_from_epoch",
]
