"""Pydantic models for DT Cloud REST resources.

Field names are snake_case; the wire format is camelCase. Resource
identifiers are derived from the ``name`` resource path
(``projects/<project>/devices/<device>``).
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .events import (
    BatteryStatusEvent,
    CellularStatusEvent,
    ConnectionStatusEvent,
    EthernetStatusEvent,
    HumidityEvent,
    NetworkStatusEvent,
    ObjectPresentCountEvent,
    ObjectPresentEvent,
    TemperatureEvent,
    TouchCountEvent,
    TouchEvent,
    WaterPresentEvent,
    resource_id,
)


class Resource(BaseModel):
    """Base for resources identified by a ``name`` path."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str

    @property
    def id(self) -> str:
        return resource_id(self.name)

    def _path_segment(self, collection: str) -> Optional[str]:
        parts = self.name.split("/")
        for index, part in enumerate(parts[:-1]):
            if part == collection:
                return parts[index + 1]
        return None


# ============================================
# Organizations & Projects
# ============================================

class Organization(Resource):
    display_name: str = ""


class Project(Resource):
    display_name: str = ""
    inventory: bool = False
    organization: str = ""
    organization_display_name: str = ""
    sensor_count: int = 0
    cloud_connector_count: int = 0

    @property
    def organization_id(self) -> str:
        return resource_id(self.organization) if self.organization else ""


# ============================================
# Devices
# ============================================

class DeviceType(str, Enum):
    TEMPERATURE = "temperature"
    TOUCH = "touch"
    PROXIMITY = "proximity"
    HUMIDITY = "humidity"
    TOUCH_COUNTER = "touchCounter"
    PROXIMITY_COUNTER = "proximityCounter"
    WATER_DETECTOR = "waterDetector"
    CLOUD_CONNECTOR = "ccon"


class ReportedEvents(BaseModel):
    """Latest event of each type a device has reported."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    touch: Optional[TouchEvent] = None
    temperature: Optional[TemperatureEvent] = None
    object_present: Optional[ObjectPresentEvent] = None
    humidity: Optional[HumidityEvent] = None
    object_present_count: Optional[ObjectPresentCountEvent] = None
    touch_count: Optional[TouchCountEvent] = None
    water_present: Optional[WaterPresentEvent] = None
    network_status: Optional[NetworkStatusEvent] = None
    battery_status: Optional[BatteryStatusEvent] = None
    connection_status: Optional[ConnectionStatusEvent] = None
    ethernet_status: Optional[EthernetStatusEvent] = None
    cellular_status: Optional[CellularStatusEvent] = None


class Device(Resource):
    type: str = ""
    product_number: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)
    reported: ReportedEvents = Field(default_factory=ReportedEvents)

    @property
    def project_id(self) -> Optional[str]:
        return self._path_segment("projects")

    @property
    def display_name(self) -> str:
        return self.labels.get("name", "")

    @property
    def device_type(self) -> Optional[DeviceType]:
        """Known device type, or None for types this client does not know."""
        try:
            return DeviceType(self.type)
        except ValueError:
            return None


# ============================================
# Data Connectors
# ============================================

class DataConnectorStatus(str, Enum):
    ACTIVE = "ACTIVE"
    USER_DISABLED = "USER_DISABLED"
    SYSTEM_DISABLED = "SYSTEM_DISABLED"


class HTTPConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    signature_secret: str = ""
    headers: dict[str, str] = Field(default_factory=dict)


class DataConnector(Resource):
    display_name: str = ""
    type: str = "HTTP_PUSH"
    status: str = DataConnectorStatus.ACTIVE.value
    events: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    http_config: Optional[HTTPConfig] = None

    @property
    def project_id(self) -> Optional[str]:
        return self._path_segment("projects")

    @property
    def is_active(self) -> bool:
        return self.status == DataConnectorStatus.ACTIVE.value


class DataConnectorMetrics(BaseModel):
    """Push statistics for the past 3 hours."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success_count: int = 0
    error_count: int = 0
    latency99p: float = 0.0

    @field_validator("latency99p", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        # Durations arrive as strings like "0.21s"
        if isinstance(value, str):
            return float(value.rstrip("s") or 0)
        return value


# ============================================
# Service Accounts
# ============================================

class ServiceAccount(Resource):
    email: str = ""
    display_name: str = ""
    enable_basic_auth: bool = False
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    @property
    def project_id(self) -> Optional[str]:
        return self._path_segment("projects")


class ServiceAccountKey(Resource):
    create_time: Optional[datetime] = None

    @property
    def service_account_id(self) -> Optional[str]:
        return self._path_segment("serviceaccounts")


class ServiceAccountKeySecret(BaseModel):
    """A newly created key; the secret is only returned this once."""

    key: ServiceAccountKey
    secret: str


# ============================================
# Members, Roles & Permissions
# ============================================

class MemberStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


class AccountType(str, Enum):
    USER = "USER"
    SERVICE_ACCOUNT = "SERVICE_ACCOUNT"


class Member(Resource):
    display_name: str = ""
    roles: list[str] = Field(default_factory=list)
    status: Optional[str] = None
    email: str = ""
    account_type: Optional[str] = None
    create_time: Optional[datetime] = None

    @property
    def project_id(self) -> Optional[str]:
        return self._path_segment("projects")

    @property
    def organization_id(self) -> Optional[str]:
        return self._path_segment("organizations")


class Role(Resource):
    display_name: str = ""
    description: str = ""
