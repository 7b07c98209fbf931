#!/usr/bin/env python3
"""Service accounts and their keys.

A service account authenticates with a key id and secret. The secret is only
returned when the key is created (ServiceAccountKeySecret), so store it then.
A service account can hold at most 10 keys.

Author: DT Cloud Client Team
"""
import logging
from typing import Any, Optional

from .models import ServiceAccount, ServiceAccountKey, ServiceAccountKeySecret
from .organizations import project_parent
from .pagination import PagedResult, PaginationConfig
from .request import HTTPMethod, Request
from .resource import ResourceAPI

logger = logging.getLogger(__name__)


class ServiceAccountAPI(ResourceAPI):
    PAGING_KEY = "serviceAccounts"
    KEYS_PAGING_KEY = "keys"

    @staticmethod
    def _endpoint(project_id: str, service_account_id: Optional[str] = None) -> str:
        endpoint = f"{project_parent(project_id)}/serviceaccounts"
        return f"{endpoint}/{service_account_id}" if service_account_id else endpoint

    async def list(self, project_id: str, config: Optional[PaginationConfig] = None) -> list[ServiceAccount]:
        return await self._list(self._endpoint(project_id), self.PAGING_KEY, ServiceAccount, config=config)

    async def page(
        self,
        project_id: str,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        return await self._page(self._endpoint(project_id), self.PAGING_KEY, ServiceAccount, page_size, page_token)

    async def get(self, project_id: str, service_account_id: str) -> ServiceAccount:
        return await self.executor.get(self._endpoint(project_id, service_account_id), model=ServiceAccount)

    async def create(
        self,
        project_id: str,
        display_name: str,
        basic_auth_enabled: bool = False,
    ) -> ServiceAccount:
        payload = {"displayName": display_name, "enableBasicAuth": basic_auth_enabled}
        account = await self.executor.post(self._endpoint(project_id), payload, model=ServiceAccount)
        logger.info(f"Created service account {account.id} in {project_id}")
        return account

    async def update(
        self,
        project_id: str,
        service_account_id: str,
        display_name: Optional[str] = None,
        basic_auth_enabled: Optional[bool] = None,
    ) -> ServiceAccount:
        patch: dict[str, Any] = {}
        if display_name is not None:
            patch["displayName"] = display_name
        if basic_auth_enabled is not None:
            patch["enableBasicAuth"] = basic_auth_enabled
        return await self._patch_masked(self._endpoint(project_id, service_account_id), patch, ServiceAccount)

    async def delete(self, project_id: str, service_account_id: str) -> None:
        await self.executor.delete(self._endpoint(project_id, service_account_id))

    # ----------------------------------------
    # Keys
    # ----------------------------------------

    async def keys(self, project_id: str, service_account_id: str) -> "list[ServiceAccountKey]":
        return await self._list(
            f"{self._endpoint(project_id, service_account_id)}/keys",
            self.KEYS_PAGING_KEY,
            ServiceAccountKey,
        )

    async def get_key(self, project_id: str, service_account_id: str, key_id: str) -> ServiceAccountKey:
        return await self.executor.get(
            f"{self._endpoint(project_id, service_account_id)}/keys/{key_id}",
            model=ServiceAccountKey,
        )

    async def create_key(self, project_id: str, service_account_id: str) -> ServiceAccountKeySecret:
        """Create a key; the returned secret cannot be fetched again."""
        request = Request(HTTPMethod.POST, f"{self._endpoint(project_id, service_account_id)}/keys")
        created = await self.executor.send(request, ServiceAccountKeySecret)
        logger.info(f"Created key {created.key.id} for service account {service_account_id}")
        return created

    async def delete_key(self, project_id: str, service_account_id: str, key_id: str) -> None:
        await self.executor.delete(f"{self._endpoint(project_id, service_account_id)}/keys/{key_id}")
