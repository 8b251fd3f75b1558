"""
Unit tests for the event entity model.

Covers `normalize()` validation order, field mapping from the webhook wire
names, timestamp normalization and the stored document layout.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from errors import (
    InvalidJsonError,
    InvalidTimestampError,
    MissingDataError,
    MissingDeviceIdError,
    ValidationError,
)
from models import Event, EventIn, normalize


class TestNormalize:
    """Tests for normalize()."""

    def test_maps_every_wire_field(self, sample_payload):
        event = normalize(EventIn(**sample_payload))

        assert event.event_id == "evt-001"
        assert event.event == "power"
        assert event.device_id == "dev1"
        assert event.user_id == "user-42"
        assert event.product_id == "prod-7"
        assert event.fw_version == "1.2.0"
        assert event.published_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert event.data == {"pC": 1.5, "dID": "dev1", "pV": 3.3, "ts": 1704067200}

    def test_assigns_fresh_id_each_time(self, sample_payload):
        first = normalize(EventIn(**sample_payload))
        second = normalize(EventIn(**sample_payload))

        assert first.id
        assert second.id
        assert first.id != second.id

    def test_optional_fields_may_be_absent(self):
        event = normalize(EventIn(DeviceId="dev1", PublishedAt="2024-01-01T00:00:00", Data='{"pV": 3.3}'))

        assert event.event_id is None
        assert event.user_id is None
        assert event.data == {"pV": 3.3}

    def test_naive_timestamp_is_utc(self):
        event = normalize(EventIn(DeviceId="dev1", PublishedAt="2024-01-01T00:00:00", Data='{"a": 1}'))

        assert event.published_at.tzinfo is not None
        assert event.published_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_offset_timestamp_converted_to_utc(self):
        event = normalize(EventIn(DeviceId="dev1", PublishedAt="2024-01-01T02:00:00+02:00", Data='{"a": 1}'))

        assert event.published_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_nested_data_is_kept(self):
        event = normalize(EventIn(
            DeviceId="dev1",
            PublishedAt="2024-01-01T00:00:00Z",
            Data='{"cells": [3.1, 3.2], "meta": {"ok": true, "note": null}}',
        ))

        assert event.data == {"cells": [3.1, 3.2], "meta": {"ok": True, "note": None}}

    @pytest.mark.parametrize("data", [None, ""])
    def test_missing_data(self, data):
        with pytest.raises(MissingDataError, match="Data is required."):
            normalize(EventIn(DeviceId="dev1", PublishedAt="2024-01-01T00:00:00Z", Data=data))

    @pytest.mark.parametrize("data", ["{not json", "[1, 2]", "42", '"text"', '{"v": NaN}'])
    def test_invalid_json(self, data):
        with pytest.raises(InvalidJsonError, match="not valid JSON"):
            normalize(EventIn(DeviceId="dev1", PublishedAt="2024-01-01T00:00:00Z", Data=data))

    def test_data_checked_before_device(self):
        with pytest.raises(MissingDataError):
            normalize(EventIn(PublishedAt="2024-01-01T00:00:00Z"))

    @pytest.mark.parametrize("published_at", [
        None, "", "yesterday", "2024-13-45T99:00:00",
        "42", "1704067200", "1.5",
        "0001-01-01T00:00:00+01:00", "9999-12-31T23:59:59-01:00",
    ])
    def test_invalid_published_at(self, published_at):
        with pytest.raises(InvalidTimestampError):
            normalize(EventIn(DeviceId="dev1", PublishedAt=published_at, Data='{"a": 1}'))

    @pytest.mark.parametrize("device_id", [None, "", "   "])
    def test_missing_device_id(self, device_id):
        with pytest.raises(MissingDeviceIdError, match="DeviceId is required."):
            normalize(EventIn(DeviceId=device_id, PublishedAt="2024-01-01T00:00:00Z", Data='{"a": 1}'))

    def test_all_failures_are_validation_errors(self):
        with pytest.raises(ValidationError):
            normalize(EventIn())


class TestEventDocument:
    """Tests for the stored document shape."""

    def test_document_uses_camel_case_keys(self, sample_payload):
        doc = normalize(EventIn(**sample_payload)).to_document()

        assert set(doc) == {
            "id", "eventId", "event", "deviceId", "userId",
            "productId", "fwVersion", "publishedAt", "data",
        }
        assert doc["deviceId"] == "dev1"
        assert doc["publishedAt"] == "2024-01-01T00:00:00.000000Z"

    def test_from_document_drops_system_properties(self, sample_payload):
        event = normalize(EventIn(**sample_payload))
        doc = {**event.to_document(), "_rid": "x", "_etag": "y", "_ts": 1}

        assert Event.from_document(doc) == event

    def test_event_is_immutable(self, sample_payload):
        event = normalize(EventIn(**sample_payload))

        with pytest.raises(PydanticValidationError):
            event.device_id = "other"

    def test_wire_model_ignores_unknown_fields(self):
        payload = EventIn.model_validate({"DeviceId": "dev1", "coreid": "abc"})

        assert payload.device_id == "dev1"
