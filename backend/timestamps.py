"""
Timestamp handling shared by the entity model and the query builder.

Two representations are in play:
- `publishedAt` is stored as a canonical UTC string
  (`2024-01-01T00:00:00.000000Z`). A fixed-width format keeps Cosmos DB's
  string comparison in chronological order.
- `data.ts` inside the payload is epoch seconds.

Parsing goes through Pydantic's datetime validator, the same one that
parses request models, so every entry point accepts the same formats.
Naive values are interpreted as UTC.
"""

import re
from datetime import datetime, timezone
from pydantic import TypeAdapter

_DATETIME = TypeAdapter(datetime)

# Pydantic also takes bare numbers as unix time; require a calendar date.
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")

STORE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Raises `ValueError` if the value is empty or not a recognised date-time.
    """

    if not value or not value.strip():
        raise ValueError("empty timestamp")
    value = value.strip()
    if not ISO_DATE.match(value):
        raise ValueError(f"not an ISO-8601 date-time: {value!r}")
    try:
        parsed = _DATETIME.validate_python(value)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        # OverflowError: offset pushes the instant outside year 1..9999
        raise ValueError(f"unrecognised timestamp: {value!r}") from e


def to_store_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(STORE_FORMAT)


def to_epoch_seconds(value: str | datetime) -> int:
    """Seconds since 1970-01-01T00:00:00Z.

    >>> to_epoch_seconds("2024-01-01T00:00:00Z")
    1704067200
    """

    dt = parse_timestamp(value) if isinstance(value, str) else value
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
