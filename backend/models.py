"""
Pydantic models used across the backend.

Two shapes live here:
- `EventIn` is the wire shape posted by the Particle webhook. Field names
  follow the webhook exactly (`EventId`, `DeviceId`, `userid`, ...) and
  `Data` is itself a JSON-encoded string.
- `Event` is the stored document. It is frozen; there is no update path.

`normalize()` turns the first into the second. It is a pure function: all
I/O happens later in the service/repository layers.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from errors import (
    InvalidJsonError,
    InvalidTimestampError,
    MissingDataError,
    MissingDeviceIdError,
)
from timestamps import parse_timestamp, to_store_timestamp


class EventIn(BaseModel):
    """Input shape for an event sent by the webhook.

    Every field is optional at this level so that a missing value surfaces
    as one of our own validation errors from `normalize()` instead of a
    generic schema error.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_id: Optional[str] = Field(default=None, alias="EventId")
    event: Optional[str] = Field(default=None, alias="Event")
    device_id: Optional[str] = Field(default=None, alias="DeviceId")
    published_at: Optional[str] = Field(default=None, alias="PublishedAt")
    data: Optional[str] = Field(default=None, alias="Data")
    user_id: Optional[str] = Field(default=None, alias="userid")
    product_id: Optional[str] = Field(default=None, alias="ProductId")
    fw_version: Optional[str] = Field(default=None, alias="FwVersion")


class Event(BaseModel):
    """One stored telemetry event.

    Serialized with camelCase keys (`deviceId`, `publishedAt`, ...) via
    `to_document()`. `deviceId` is the container's partition key.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, alias_generator=to_camel
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_id: Optional[str] = None
    event: Optional[str] = None
    device_id: str
    user_id: Optional[str] = None
    product_id: Optional[str] = None
    fw_version: Optional[str] = None
    published_at: datetime
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_serializer("published_at")
    def _serialize_published_at(self, value: datetime) -> str:
        return to_store_timestamp(value)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Event":
        # Cosmos adds system properties (_rid, _etag, _ts, ...); drop them.
        return cls.model_validate({k: v for k, v in doc.items() if not k.startswith("_")})


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def parse_data(raw: Optional[str]) -> Dict[str, Any]:
    """Decode the `Data` string into a string-keyed mapping."""

    if not raw:
        raise MissingDataError("Data is required.")
    try:
        decoded = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidJsonError("Data field is not valid JSON.") from e
    if not isinstance(decoded, dict):
        raise InvalidJsonError("Data field is not valid JSON.")
    return decoded


def normalize(payload: EventIn) -> Event:
    """Validate `payload` and build a new `Event` with a fresh id.

    Raises (all `ValidationError` subclasses):
    - `MissingDataError` if `Data` is empty or absent
    - `InvalidJsonError` if `Data` is not a JSON object
    - `InvalidTimestampError` if `PublishedAt` is absent or unparseable
    - `MissingDeviceIdError` if `DeviceId` is empty or absent
    """

    data = parse_data(payload.data)

    if not payload.published_at:
        raise InvalidTimestampError("PublishedAt is required.")
    try:
        published_at = parse_timestamp(payload.published_at)
    except ValueError as e:
        raise InvalidTimestampError("PublishedAt is not a valid date-time.") from e

    if not payload.device_id or not payload.device_id.strip():
        raise MissingDeviceIdError("DeviceId is required.")

    return Event(
        event_id=payload.event_id,
        event=payload.event,
        device_id=payload.device_id,
        user_id=payload.user_id,
        product_id=payload.product_id,
        fw_version=payload.fw_version,
        published_at=published_at,
        data=data,
    )
