#!/usr/bin/env python3
"""Data Connectors: forward device events to an external HTTP endpoint.

Only the HTTP_PUSH type exists. Updates send only the fields that were given
and list them in ``update_mask``.

Example:
    connectors = DataConnectorAPI(executor)
    dc = await connectors.create(
        "project1",
        "To my service",
        url="https://example.com/dt-events",
        signature_secret="s3cret",
        event_types=[EventType.TEMPERATURE, EventType.TOUCH],
        labels=["name"],
    )
    metrics = await connectors.metrics("project1", dc.id)

Author: DT Cloud Client Team
"""
import logging
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .events import EventType
from .models import DataConnector, DataConnectorMetrics, DataConnectorStatus
from .organizations import project_parent
from .pagination import PagedResult, PaginationConfig
from .request import HTTPMethod, Request
from .resource import ResourceAPI

logger = logging.getLogger(__name__)


class _MetricsResponse(BaseModel):
    metrics: DataConnectorMetrics = Field(default_factory=DataConnectorMetrics)


def _event_names(event_types: Iterable[Union[EventType, str]]) -> list[str]:
    return [t.value if isinstance(t, EventType) else t for t in event_types]


class DataConnectorAPI(ResourceAPI):
    PAGING_KEY = "dataConnectors"

    @staticmethod
    def _endpoint(project_id: str, data_connector_id: Optional[str] = None) -> str:
        endpoint = f"{project_parent(project_id)}/dataconnectors"
        return f"{endpoint}/{data_connector_id}" if data_connector_id else endpoint

    async def list(self, project_id: str, config: Optional[PaginationConfig] = None) -> list[DataConnector]:
        return await self._list(self._endpoint(project_id), self.PAGING_KEY, DataConnector, config=config)

    async def page(
        self,
        project_id: str,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        return await self._page(self._endpoint(project_id), self.PAGING_KEY, DataConnector, page_size, page_token)

    async def get(self, project_id: str, data_connector_id: str) -> DataConnector:
        return await self.executor.get(self._endpoint(project_id, data_connector_id), model=DataConnector)

    async def create(
        self,
        project_id: str,
        display_name: str,
        url: str,
        event_types: Iterable[Union[EventType, str]],
        signature_secret: str = "",
        headers: Optional[Mapping[str, str]] = None,
        labels: Optional[Iterable[str]] = None,
        active: bool = True,
    ) -> DataConnector:
        """Create an HTTP push Data Connector.

        Args:
            project_id: Project to create it in
            display_name: Display name of the connector
            url: Endpoint events are pushed to
            event_types: Event types to forward
            signature_secret: Secret used to sign each push (JWT)
            headers: Extra headers sent with each push
            labels: Device labels included with each event ("name" for display names)
            active: Start ACTIVE, or USER_DISABLED when False
        """
        payload = {
            "displayName": display_name,
            "type": "HTTP_PUSH",
            "status": (DataConnectorStatus.ACTIVE if active else DataConnectorStatus.USER_DISABLED).value,
            "events": _event_names(event_types),
            "labels": list(labels or []),
            "httpConfig": {
                "url": url,
                "signatureSecret": signature_secret,
                "headers": dict(headers or {}),
            },
        }
        connector = await self.executor.post(self._endpoint(project_id), payload, model=DataConnector)
        logger.info(f"Created data connector {connector.id} in {project_id}")
        return connector

    async def update(
        self,
        project_id: str,
        data_connector_id: str,
        display_name: Optional[str] = None,
        url: Optional[str] = None,
        signature_secret: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        event_types: Optional[Iterable[Union[EventType, str]]] = None,
        labels: Optional[Iterable[str]] = None,
        active: Optional[bool] = None,
    ) -> DataConnector:
        """Update the given fields; fields left as None are not touched."""
        patch: dict[str, Any] = {}
        if display_name is not None:
            patch["displayName"] = display_name

        http_config: dict[str, Any] = {}
        if url is not None:
            http_config["url"] = url
        if signature_secret is not None:
            http_config["signatureSecret"] = signature_secret
        if headers is not None:
            http_config["headers"] = dict(headers)
        if http_config:
            patch["httpConfig"] = http_config

        if active is not None:
            patch["status"] = (DataConnectorStatus.ACTIVE if active else DataConnectorStatus.USER_DISABLED).value
        if event_types is not None:
            patch["events"] = _event_names(event_types)
        if labels is not None:
            patch["labels"] = list(labels)

        return await self._patch_masked(self._endpoint(project_id, data_connector_id), patch, DataConnector)

    async def delete(self, project_id: str, data_connector_id: str) -> None:
        await self.executor.delete(self._endpoint(project_id, data_connector_id))

    async def metrics(self, project_id: str, data_connector_id: str) -> DataConnectorMetrics:
        """Push success/error counts and 99th percentile latency for the past 3 hours."""
        response = await self.executor.get(
            f"{self._endpoint(project_id, data_connector_id)}:metrics",
            model=_MetricsResponse,
        )
        return response.metrics

    async def sync(self, project_id: str, data_connector_id: str) -> None:
        """Re-send the latest event of every device through the connector."""
        await self.executor.send(
            Request(HTTPMethod.POST, f"{self._endpoint(project_id, data_connector_id)}:sync")
        )
