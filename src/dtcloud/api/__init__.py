"""DT Cloud API modules.

This package provides an async client for the DT Cloud REST API and its
Server-Sent Events device stream.

Classes:
    DTCloud: Facade bundling the executor, resource APIs and event streams
    RequestExecutor: HTTP executor with auth, 429 retry and error classification
    Paginator: Token-based pagination over list endpoints
    DeviceEventStream: Typed device event subscription with optional reconnect
    SSEFrameParser: Incremental text/event-stream parser

    OrganizationAPI, ProjectAPI, DeviceAPI, DataConnectorAPI,
    ServiceAccountAPI, MemberAPI, RoleAPI, PermissionAPI, EmulatorAPI:
        Resource wrappers

Authentication:
    BasicAuthProvider: Service account key id + secret
    StaticTokenProvider: A pre-issued bearer token

Exceptions:
    DTError: Base exception; ``error_type`` names the category
    ServerUnavailableError, BadRequestError, UnauthorizedError,
    ForbiddenError, NotFoundError, ConflictError, TooManyRequestsError,
    InternalServerError, ServiceUnavailableError, GatewayTimeoutError,
    UnknownError, ConfigurationError

Resilience:
    RetryScheme: Backoff policy interface
    ExponentialBackoffScheme: Stepped backoff used for stream reconnects
"""
from .auth import (
    AccessToken,
    BasicAuthProvider,
    CredentialProvider,
    ServiceAccountCredentials,
    StaticTokenProvider,
)
from .classifier import (
    classify_response,
    classify_stream_error,
    classify_transport_error,
)
from .client import EMPTY_RESPONSE, RequestExecutor
from .cloud import DTCloud
from .config import DEFAULT_BASE_URL, DEFAULT_EMULATOR_BASE_URL, ClientConfig
from .data_connectors import DataConnectorAPI
from .devices import ANY_PROJECT, DeviceAPI
from .emulator import EmulatorAPI
from .events import (
    BatteryStatusEvent,
    CellularStatusEvent,
    ConnectionStatusEvent,
    DeviceEvent,
    EthernetStatusEvent,
    EventType,
    HumidityEvent,
    LabelsChangedEvent,
    NetworkStatusEvent,
    ObjectPresentCountEvent,
    ObjectPresentEvent,
    TemperatureEvent,
    TouchCountEvent,
    TouchEvent,
    UnknownEvent,
    WaterPresentEvent,
    decode_event,
)
from .exceptions import (
    BadRequestError,
    ConfigurationError,
    ConflictError,
    DTError,
    ErrorType,
    ForbiddenError,
    GatewayTimeoutError,
    InternalServerError,
    NotFoundError,
    ServerUnavailableError,
    ServiceUnavailableError,
    TooManyRequestsError,
    UnauthorizedError,
    UnknownError,
)
from .models import (
    DataConnector,
    DataConnectorMetrics,
    DataConnectorStatus,
    Device,
    DeviceType,
    Member,
    Organization,
    Project,
    Role,
    ServiceAccount,
    ServiceAccountKey,
    ServiceAccountKeySecret,
)
from .organizations import MemberAPI, OrganizationAPI, PermissionAPI, RoleAPI
from .pagination import PagedResult, PaginationConfig, Paginator
from .projects import ProjectAPI
from .request import HTTPMethod, Request
from .resilience import ExponentialBackoffScheme, RetryScheme
from .service_accounts import ServiceAccountAPI
from .sse import SSEFrame, SSEFrameParser
from .stream import DeviceEventStream, StreamState, stream_request

__all__ = [
    # Facade
    "DTCloud",
    # Auth
    "AccessToken",
    "CredentialProvider",
    "BasicAuthProvider",
    "StaticTokenProvider",
    "ServiceAccountCredentials",
    # Config
    "ClientConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_EMULATOR_BASE_URL",
    # Requests
    "HTTPMethod",
    "Request",
    "RequestExecutor",
    "EMPTY_RESPONSE",
    # Pagination
    "Paginator",
    "PaginationConfig",
    "PagedResult",
    # Exceptions
    "ErrorType",
    "DTError",
    "ServerUnavailableError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "TooManyRequestsError",
    "InternalServerError",
    "ServiceUnavailableError",
    "GatewayTimeoutError",
    "UnknownError",
    "ConfigurationError",
    # Error classification
    "classify_response",
    "classify_stream_error",
    "classify_transport_error",
    # Resilience
    "RetryScheme",
    "ExponentialBackoffScheme",
    # Event stream
    "SSEFrame",
    "SSEFrameParser",
    "DeviceEventStream",
    "StreamState",
    "stream_request",
    # Events
    "EventType",
    "DeviceEvent",
    "UnknownEvent",
    "decode_event",
    "TouchEvent",
    "TemperatureEvent",
    "ObjectPresentEvent",
    "HumidityEvent",
    "ObjectPresentCountEvent",
    "TouchCountEvent",
    "WaterPresentEvent",
    "NetworkStatusEvent",
    "BatteryStatusEvent",
    "LabelsChangedEvent",
    "ConnectionStatusEvent",
    "EthernetStatusEvent",
    "CellularStatusEvent",
    # Resources
    "Organization",
    "Project",
    "Device",
    "DeviceType",
    "DataConnector",
    "DataConnectorMetrics",
    "DataConnectorStatus",
    "ServiceAccount",
    "ServiceAccountKey",
    "ServiceAccountKeySecret",
    "Member",
    "Role",
    # Resource APIs
    "OrganizationAPI",
    "ProjectAPI",
    "DeviceAPI",
    "ANY_PROJECT",
    "DataConnectorAPI",
    "ServiceAccountAPI",
    "MemberAPI",
    "RoleAPI",
    "PermissionAPI",
    "EmulatorAPI",
]
