"""
Query construction for the events container.

Turns optional filter and time-range parameters into one Cosmos DB SQL query.
Every filter/range value is passed as a bound parameter (`@deviceId`,
`@start`, ...). The only identifier ever spliced into query text is the
projection field name, and it must pass `check_field_name()` first.

Three modes:
- attribute filter: equality on deviceId / userId / event, or a document
  count when no filter is given
- time range: `publishedAt` between two canonical UTC strings
- field projection: one `data` field plus `data.ts`, filtered on `data.ts`
  in epoch seconds
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from errors import InvalidRangeError, MissingDeviceIdError, UnsafeFieldNameError
from timestamps import parse_timestamp, to_epoch_seconds, to_store_timestamp, utc_now

COUNT_QUERY = "SELECT VALUE COUNT(1) FROM c"

RANGE_ERROR = "Invalid startDate or endDate format. Use ISO-8601, e.g. 2024-01-01T00:00:00Z."

FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Cosmos DB SQL keywords; not usable as a bare alias.
RESERVED_WORDS = frozenset(
    w.upper()
    for w in (
        "and", "array", "as", "asc", "between", "by", "case", "cast", "convert",
        "cross", "desc", "distinct", "else", "end", "escape", "exists", "false",
        "for", "from", "group", "having", "in", "inner", "insert", "into", "is",
        "join", "left", "like", "limit", "not", "null", "offset", "on", "or",
        "order", "outer", "over", "right", "select", "set", "then", "top",
        "true", "udf", "undefined", "update", "value", "when", "where", "with",
    )
)


@dataclass(frozen=True)
class StoreQuery:
    """Query text plus its bound parameters, in the SDK's parameter format."""

    text: str
    parameters: List[Dict[str, Any]] = field(default_factory=list)

    def params(self) -> Dict[str, Any]:
        return {p["name"]: p["value"] for p in self.parameters}


def _present(value: Optional[str]) -> bool:
    return bool(value)


def check_field_name(name: Optional[str]) -> str:
    """Return `name` if it is safe to use as a projected identifier."""

    if not name or not FIELD_NAME.match(name) or name.upper() in RESERVED_WORDS:
        raise UnsafeFieldNameError(
            f"Invalid field name {name!r}. Use letters, digits and underscores only."
        )
    return name


class EventQueryBuilder:
    """Builds `StoreQuery` objects for the events container.

    `clock` returns the current UTC time and is only used to default a
    range whose bounds were not both supplied. Tests pass a fixed clock.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        default_range: timedelta = timedelta(hours=1),
    ):
        self.clock = clock
        self.default_range = default_range

    def attribute_filter(
        self,
        device_id: Optional[str] = None,
        user_id: Optional[str] = None,
        event_name: Optional[str] = None,
    ) -> StoreQuery:
        """Equality filters ANDed in fixed order: device, user, event name.

        Empty strings are treated as absent. With no filter at all the
        query counts the documents in the container instead.
        """

        clauses = [
            ("c.deviceId", "@deviceId", device_id),
            ("c.userId", "@userId", user_id),
            ("c.event", "@eventName", event_name),
        ]
        active = [(path, name, value) for path, name, value in clauses if _present(value)]
        if not active:
            return StoreQuery(COUNT_QUERY)

        text = "SELECT * FROM c WHERE 1=1"
        parameters = []
        for path, name, value in active:
            text += f" AND {path} = {name}"
            parameters.append({"name": name, "value": value})
        return StoreQuery(text, parameters)

    def resolve_range(
        self, start: Optional[str], end: Optional[str]
    ) -> Tuple[datetime, datetime]:
        """Effective `[start, end]` for a range query.

        Any bound that was supplied must parse, otherwise `InvalidRangeError`.
        If both parse they are used as given; if either is missing the range
        defaults to the last `default_range` up to now.
        """

        parsed_start = self._parse_bound(start)
        parsed_end = self._parse_bound(end)
        if parsed_start is not None and parsed_end is not None:
            return parsed_start, parsed_end

        now = self.clock()
        return now - self.default_range, now

    def time_range(
        self,
        device_id: Optional[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> StoreQuery:
        device_id = self._require_device(device_id)
        range_start, range_end = self.resolve_range(start, end)
        return StoreQuery(
            "SELECT * FROM c WHERE c.deviceId = @deviceId"
            " AND c.publishedAt >= @start AND c.publishedAt <= @end",
            [
                {"name": "@deviceId", "value": device_id},
                {"name": "@start", "value": to_store_timestamp(range_start)},
                {"name": "@end", "value": to_store_timestamp(range_end)},
            ],
        )

    def field_projection(
        self,
        device_id: Optional[str],
        field_name: Optional[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> StoreQuery:
        """Project `data.<field_name>` and `data.ts` where `data.ts` is in range.

        Bounds are compared as epoch seconds, inclusive on both ends.
        """

        device_id = self._require_device(device_id)
        name = check_field_name(field_name)
        range_start, range_end = self.resolve_range(start, end)

        if name == "ts":
            projection = "c.data.ts AS ts"
        else:
            projection = f'c.data["{name}"] AS {name}, c.data.ts AS ts'

        return StoreQuery(
            f"SELECT {projection} FROM c WHERE c.deviceId = @deviceId"
            " AND c.data.ts >= @start AND c.data.ts <= @end",
            [
                {"name": "@deviceId", "value": device_id},
                {"name": "@start", "value": to_epoch_seconds(range_start)},
                {"name": "@end", "value": to_epoch_seconds(range_end)},
            ],
        )

    @staticmethod
    def _parse_bound(value: Optional[str]) -> Optional[datetime]:
        if value is None or value == "":
            return None
        try:
            return parse_timestamp(value)
        except ValueError as e:
            raise InvalidRangeError(RANGE_ERROR) from e

    @staticmethod
    def _require_device(device_id: Optional[str]) -> str:
        if not device_id:
            raise MissingDeviceIdError("deviceId is required.")
        return device_id
