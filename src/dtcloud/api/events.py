#!/usr/bin/env python3
"""Device event payloads received on the event stream.

Every telemetry event arrives in the same envelope:

    {
        "eventId": "bjehn6sdqhnsvqk55r8g",
        "targetName": "projects/<project>/devices/<device>",
        "eventType": "temperature",
        "data": {"temperature": {"value": 24.9, "updateTime": "..."}},
        "timestamp": "2019-05-16T08:15:48.326Z"
    }

``decode_event`` picks the payload model from EVENT_MODELS by ``eventType``.
An event type missing from the table decodes to UnknownEvent so new server
event types never break a running stream.

Author: DT Cloud Client Team
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import UnknownError


class EventType(str, Enum):
    """All event types a device or cloud connector can emit."""

    # Sensor events
    TOUCH = "touch"
    TEMPERATURE = "temperature"
    OBJECT_PRESENT = "objectPresent"
    HUMIDITY = "humidity"
    OBJECT_PRESENT_COUNT = "objectPresentCount"
    TOUCH_COUNT = "touchCount"
    WATER_PRESENT = "waterPresent"

    # Sensor status
    NETWORK_STATUS = "networkStatus"
    BATTERY_STATUS = "batteryStatus"
    LABELS_CHANGED = "labelsChanged"

    # Cloud connector status
    CONNECTION_STATUS = "connectionStatus"
    ETHERNET_STATUS = "ethernetStatus"
    CELLULAR_STATUS = "cellularStatus"


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============================================
# Sensor Events
# ============================================

class TouchEvent(_Payload):
    timestamp: datetime = Field(alias="updateTime")


class TemperatureSample(_Payload):
    value: float
    sample_time: datetime = Field(alias="sampleTime")


class TemperatureEvent(_Payload):
    """Temperature in Celsius. ``samples`` holds readings batched since the last event."""

    value: float
    timestamp: datetime = Field(alias="updateTime")
    samples: list[TemperatureSample] = Field(default_factory=list)


class PresenceState(str, Enum):
    PRESENT = "PRESENT"
    NOT_PRESENT = "NOT_PRESENT"


class ObjectPresentEvent(_Payload):
    state: PresenceState
    timestamp: datetime = Field(alias="updateTime")

    @property
    def object_present(self) -> bool:
        return self.state is PresenceState.PRESENT


class HumidityEvent(_Payload):
    temperature: float
    relative_humidity: float = Field(alias="relativeHumidity")
    timestamp: datetime = Field(alias="updateTime")


class ObjectPresentCountEvent(_Payload):
    total: int
    timestamp: datetime = Field(alias="updateTime")


class TouchCountEvent(_Payload):
    total: int
    timestamp: datetime = Field(alias="updateTime")


class WaterPresentEvent(_Payload):
    state: PresenceState
    timestamp: datetime = Field(alias="updateTime")

    @property
    def water_present(self) -> bool:
        return self.state is PresenceState.PRESENT


# ============================================
# Sensor Status Events
# ============================================

class TransmissionMode(str, Enum):
    STANDARD = "LOW_POWER_STANDARD_MODE"
    BOOST = "HIGH_POWER_BOOST_MODE"


class CloudConnectorSignal(_Payload):
    """A cloud connector that heard the sensor."""

    id: str
    signal_strength: int = Field(alias="signalStrength")
    rssi: int


class NetworkStatusEvent(_Payload):
    signal_strength: int = Field(alias="signalStrength")
    rssi: int
    timestamp: datetime = Field(alias="updateTime")
    cloud_connectors: list[CloudConnectorSignal] = Field(default_factory=list, alias="cloudConnectors")
    transmission_mode: Optional[TransmissionMode] = Field(default=None, alias="transmissionMode")


class BatteryStatusEvent(_Payload):
    percentage: int
    timestamp: datetime = Field(alias="updateTime")


class LabelsChangedEvent(_Payload):
    """Labels added, modified or removed on a device.

    The payload has no time of its own; decode_event fills ``timestamp``
    from the envelope.
    """

    added: dict[str, str] = Field(default_factory=dict)
    modified: dict[str, str] = Field(default_factory=dict)
    removed: list[str] = Field(default_factory=list)
    timestamp: Optional[datetime] = None


# ============================================
# Cloud Connector Events
# ============================================

class ConnectionType(str, Enum):
    OFFLINE = "OFFLINE"
    ETHERNET = "ETHERNET"
    CELLULAR = "CELLULAR"


class AvailableConnection(str, Enum):
    ETHERNET = "ETHERNET"
    CELLULAR = "CELLULAR"


class ConnectionStatusEvent(_Payload):
    connection: ConnectionType
    available: list[AvailableConnection] = Field(default_factory=list)
    timestamp: datetime = Field(alias="updateTime")

    @field_validator("available", mode="before")
    @classmethod
    def _drop_unknown_connections(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        known = {member.value for member in AvailableConnection}
        return [item for item in value if item in known]


class StatusErrorMessage(_Payload):
    code: str
    message: str


class EthernetStatusEvent(_Payload):
    mac_address: str = Field(alias="macAddress")
    ip_address: str = Field(alias="ipAddress")
    errors: list[StatusErrorMessage] = Field(default_factory=list)
    timestamp: datetime = Field(alias="updateTime")


class CellularStatusEvent(_Payload):
    signal_strength: int = Field(alias="signalStrength")
    errors: list[StatusErrorMessage] = Field(default_factory=list)
    timestamp: datetime = Field(alias="updateTime")


EventPayload = Union[
    TouchEvent,
    TemperatureEvent,
    ObjectPresentEvent,
    HumidityEvent,
    ObjectPresentCountEvent,
    TouchCountEvent,
    WaterPresentEvent,
    NetworkStatusEvent,
    BatteryStatusEvent,
    LabelsChangedEvent,
    ConnectionStatusEvent,
    EthernetStatusEvent,
    CellularStatusEvent,
]

EVENT_MODELS: dict[EventType, type[_Payload]] = {
    EventType.TOUCH: TouchEvent,
    EventType.TEMPERATURE: TemperatureEvent,
    EventType.OBJECT_PRESENT: ObjectPresentEvent,
    EventType.HUMIDITY: HumidityEvent,
    EventType.OBJECT_PRESENT_COUNT: ObjectPresentCountEvent,
    EventType.TOUCH_COUNT: TouchCountEvent,
    EventType.WATER_PRESENT: WaterPresentEvent,
    EventType.NETWORK_STATUS: NetworkStatusEvent,
    EventType.BATTERY_STATUS: BatteryStatusEvent,
    EventType.LABELS_CHANGED: LabelsChangedEvent,
    EventType.CONNECTION_STATUS: ConnectionStatusEvent,
    EventType.ETHERNET_STATUS: EthernetStatusEvent,
    EventType.CELLULAR_STATUS: CellularStatusEvent,
}


# ============================================
# Envelope
# ============================================

def resource_id(name: str) -> str:
    """Last path component of a resource name ("projects/p/devices/d" -> "d")."""
    return name.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class DeviceEvent:
    """A decoded telemetry event.

    Attributes:
        event_type: Which payload model ``payload`` is
        device_id: Device (or cloud connector) that emitted the event
        payload: The decoded payload model
        event_id: Server-assigned event id
        target_name: Full resource name of the device
        timestamp: Envelope timestamp, when present
    """
    event_type: EventType
    device_id: str
    payload: EventPayload
    event_id: Optional[str] = None
    target_name: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class UnknownEvent:
    """An event whose type this client does not know; kept for logging only."""
    raw_type: str
    device_id: Optional[str] = None
    raw: Optional[dict] = None


class _Envelope(_Payload):
    event_id: Optional[str] = Field(default=None, alias="eventId")
    target_name: str = Field(alias="targetName")
    event_type: str = Field(alias="eventType")
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None


def decode_event(raw: Any) -> Union[DeviceEvent, UnknownEvent]:
    """Decode one event envelope.

    Raises:
        UnknownError: If a known event type carries a malformed payload
    """
    if not isinstance(raw, dict):
        raise UnknownError("Event is not a JSON object")

    event_type_str = raw.get("eventType")
    try:
        event_type = EventType(event_type_str)
    except ValueError:
        target = raw.get("targetName")
        return UnknownEvent(
            raw_type=str(event_type_str),
            device_id=resource_id(target) if isinstance(target, str) else None,
            raw=raw,
        )

    try:
        envelope = _Envelope.model_validate(raw)
        if event_type is EventType.LABELS_CHANGED:
            # Labels changes put their fields directly under "data"
            body = dict(envelope.data)
            body.setdefault("timestamp", envelope.timestamp)
        else:
            body = envelope.data.get(event_type.value)
            if body is None:
                raise UnknownError(
                    f"Event data is missing the {event_type.value!r} payload",
                    details={"event_id": envelope.event_id},
                )
        payload = EVENT_MODELS[event_type].model_validate(body)
    except ValidationError as e:
        raise UnknownError(
            f"Malformed {event_type.value} event",
            details={"event_id": raw.get("eventId"), "errors": e.error_count()},
            cause=e,
        )

    return DeviceEvent(
        event_type=event_type,
        device_id=resource_id(envelope.target_name),
        payload=payload,
        event_id=envelope.event_id,
        target_name=envelope.target_name,
        timestamp=envelope.timestamp,
    )
