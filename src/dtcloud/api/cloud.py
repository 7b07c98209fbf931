#!/usr/bin/env python3
"""DT Cloud client facade.

Wires one RequestExecutor to every resource API so applications only deal
with a single object:

    async with DTCloud.from_env() as dt:
        for project in await dt.projects.list():
            devices = await dt.devices.list(project.id)

        stream = dt.subscribe_to_devices("my-project", event_types=[EventType.TEMPERATURE])
        stream.on(EventType.TEMPERATURE, lambda event: print(event.payload.value))

Streams opened through the facade are closed when the facade exits.

Author: DT Cloud Client Team
"""
import logging
from typing import Iterable, Mapping, Optional, Union

import aiohttp

from .auth import BasicAuthProvider, CredentialProvider, ServiceAccountCredentials
from .client import RequestExecutor
from .config import ClientConfig
from .data_connectors import DataConnectorAPI
from .devices import DeviceAPI
from .emulator import EmulatorAPI
from .events import EventType
from .organizations import MemberAPI, OrganizationAPI, PermissionAPI, RoleAPI
from .projects import ProjectAPI
from .resilience import RetryScheme
from .service_accounts import ServiceAccountAPI
from .stream import DeviceEventStream, stream_request

logger = logging.getLogger(__name__)


class DTCloud:
    """Entry point bundling the executor, resource APIs and event streams.

    Attributes:
        executor: Shared RequestExecutor
        organizations, projects, devices, data_connectors, service_accounts,
        members, roles, permissions, emulator: Resource APIs
    """

    def __init__(
        self,
        credentials: Optional[CredentialProvider],
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config or ClientConfig()
        self.config.apply_logging()
        self.executor = RequestExecutor(credentials, self.config, session=session)

        self.organizations = OrganizationAPI(self.executor)
        self.projects = ProjectAPI(self.executor)
        self.devices = DeviceAPI(self.executor)
        self.data_connectors = DataConnectorAPI(self.executor)
        self.service_accounts = ServiceAccountAPI(self.executor)
        self.members = MemberAPI(self.executor)
        self.roles = RoleAPI(self.executor)
        self.permissions = PermissionAPI(self.executor)
        self.emulator = EmulatorAPI(self.executor)

        self._streams: list[DeviceEventStream] = []

    @classmethod
    def from_env(cls, **config_overrides) -> "DTCloud":
        """Build a client from DT_* environment variables.

        Uses basic auth with DT_SERVICE_ACCOUNT_KEY_ID / DT_SERVICE_ACCOUNT_SECRET.

        Raises:
            ConfigurationError: If credentials are missing or a setting is invalid
        """
        config = ClientConfig.from_env(**config_overrides)
        account = ServiceAccountCredentials.from_env()
        logger.debug(f"Using service account {account.key_id}")
        return cls(BasicAuthProvider(account), config)

    @property
    def credentials(self) -> Optional[CredentialProvider]:
        return self.executor.credentials

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "DTCloud":
        await self.executor.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close all streams opened through this client, then the HTTP session."""
        streams, self._streams = self._streams, []
        for stream in streams:
            stream.close()
        for stream in streams:
            await stream.wait_closed()
        await self.executor.close()

    # ----------------------------------------
    # Event Streams
    # ----------------------------------------

    def subscribe_to_devices(
        self,
        project_id: str,
        device_ids: Optional[Iterable[str]] = None,
        device_types: Optional[Iterable[str]] = None,
        label_filters: Optional[Union[Mapping[str, str], Iterable[str]]] = None,
        product_numbers: Optional[Iterable[str]] = None,
        event_types: Optional[Iterable[Union[EventType, str]]] = None,
        reconnect: bool = False,
        retry_scheme: Optional[RetryScheme] = None,
    ) -> DeviceEventStream:
        """Open an event stream for devices in a project.

        Must be called from a running event loop; handlers can be registered
        on the returned stream right away.
        """
        request = stream_request(
            project_id,
            device_ids=device_ids,
            device_types=device_types,
            label_filters=label_filters,
            product_numbers=product_numbers,
            event_types=event_types,
        )
        stream = DeviceEventStream(self.executor, request, reconnect=reconnect, retry_scheme=retry_scheme)
        self._streams = [s for s in self._streams if not s.closed]
        self._streams.append(stream)
        return stream.start()

    def subscribe_to_device(
        self,
        project_id: str,
        device_id: str,
        event_types: Optional[Iterable[Union[EventType, str]]] = None,
        reconnect: bool = False,
    ) -> DeviceEventStream:
        """Open an event stream for a single device."""
        return self.subscribe_to_devices(
            project_id,
            device_ids=[device_id],
            event_types=event_types,
            reconnect=reconnect,
        )
