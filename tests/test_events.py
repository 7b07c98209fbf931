#!/usr/bin/env python3
"""Tests for event decoding.

Tests cover:
    - Decoding each payload family from the stream envelope
    - labelsChanged payloads and their envelope timestamp
    - Unknown event types
    - Malformed known events
"""
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.events import (
    EVENT_MODELS,
    AvailableConnection,
    ConnectionStatusEvent,
    ConnectionType,
    DeviceEvent,
    EventType,
    LabelsChangedEvent,
    NetworkStatusEvent,
    ObjectPresentEvent,
    TemperatureEvent,
    TransmissionMode,
    UnknownEvent,
    decode_event,
    resource_id,
)
from src.dtcloud.api.exceptions import UnknownError

UPDATE_TIME = "2021-03-04T10:12:30.143Z"


def envelope(event_type, data, timestamp=UPDATE_TIME):
    return {
        "eventId": "c0md3pm0p7bet3vico8g",
        "targetName": "projects/proj1/devices/dev1",
        "eventType": event_type,
        "data": data,
        "timestamp": timestamp,
    }


# ============================================
# Known Events
# ============================================

class TestDecodeKnownEvents:
    """Test decode_event() for known event types."""

    def test_every_event_type_has_a_model(self):
        assert set(EVENT_MODELS) == set(EventType)

    def test_temperature(self):
        event = decode_event(envelope("temperature", {
            "temperature": {
                "value": 24.9,
                "updateTime": UPDATE_TIME,
                "samples": [{"value": 24.9, "sampleTime": UPDATE_TIME}],
            },
        }))

        assert isinstance(event, DeviceEvent)
        assert event.event_type is EventType.TEMPERATURE
        assert event.device_id == "dev1"
        assert event.target_name == "projects/proj1/devices/dev1"
        assert event.event_id == "c0md3pm0p7bet3vico8g"
        assert isinstance(event.payload, TemperatureEvent)
        assert event.payload.value == 24.9
        assert event.payload.timestamp == datetime(2021, 3, 4, 10, 12, 30, 143000, tzinfo=timezone.utc)
        assert event.payload.samples[0].value == 24.9

    def test_object_present(self):
        event = decode_event(envelope("objectPresent", {
            "objectPresent": {"state": "PRESENT", "updateTime": UPDATE_TIME},
        }))
        assert isinstance(event.payload, ObjectPresentEvent)
        assert event.payload.object_present

    def test_network_status(self):
        event = decode_event(envelope("networkStatus", {
            "networkStatus": {
                "signalStrength": 45,
                "rssi": -83,
                "updateTime": UPDATE_TIME,
                "cloudConnectors": [{"id": "ccon1", "signalStrength": 45, "rssi": -83}],
                "transmissionMode": "LOW_POWER_STANDARD_MODE",
            },
        }))
        payload = event.payload
        assert isinstance(payload, NetworkStatusEvent)
        assert payload.signal_strength == 45
        assert payload.cloud_connectors[0].id == "ccon1"
        assert payload.transmission_mode is TransmissionMode.STANDARD

    def test_connection_status_drops_unknown_connections(self):
        event = decode_event(envelope("connectionStatus", {
            "connectionStatus": {
                "connection": "ETHERNET",
                "available": ["ETHERNET", "SATELLITE", "CELLULAR"],
                "updateTime": UPDATE_TIME,
            },
        }))
        assert isinstance(event.payload, ConnectionStatusEvent)
        assert event.payload.connection is ConnectionType.ETHERNET
        assert event.payload.available == [AvailableConnection.ETHERNET, AvailableConnection.CELLULAR]

    def test_labels_changed_uses_envelope_timestamp(self):
        """labelsChanged data is the payload itself and has no time of its own."""
        event = decode_event(envelope("labelsChanged", {
            "added": {"room": "3"},
            "modified": {"name": "Fridge"},
            "removed": ["old"],
        }))
        payload = event.payload
        assert isinstance(payload, LabelsChangedEvent)
        assert payload.added == {"room": "3"}
        assert payload.modified == {"name": "Fridge"}
        assert payload.removed == ["old"]
        assert payload.timestamp == event.timestamp


# ============================================
# Unknown and Malformed Events
# ============================================

class TestDecodeUnknownEvents:
    """Test events decode_event() cannot turn into a DeviceEvent."""

    def test_unknown_type(self):
        event = decode_event(envelope("futureSensorEvent", {"futureSensorEvent": {}}))
        assert isinstance(event, UnknownEvent)
        assert event.raw_type == "futureSensorEvent"
        assert event.device_id == "dev1"

    def test_missing_payload(self):
        with pytest.raises(UnknownError):
            decode_event(envelope("touch", {}))

    def test_malformed_payload(self):
        with pytest.raises(UnknownError) as exc:
            decode_event(envelope("temperature", {"temperature": {"value": "hot"}}))
        assert exc.value.details["event_id"] == "c0md3pm0p7bet3vico8g"

    def test_not_an_object(self):
        with pytest.raises(UnknownError):
            decode_event(["touch"])


class TestResourceId:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("projects/p/devices/d", "d"),
            ("organizations/o/", "o"),
            ("plain", "plain"),
        ],
    )
    def test_resource_id(self, name, expected):
        assert resource_id(name) == expected
