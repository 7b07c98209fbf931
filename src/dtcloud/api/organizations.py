#!/usr/bin/env python3
"""Organizations, members, roles and permissions.

Members and permissions exist both on organizations and on projects; the
``parent`` argument selects which, e.g. ``organizations/<id>`` or
``projects/<id>`` (see org_parent / project_parent).

Example:
    async with RequestExecutor(provider) as executor:
        orgs = await OrganizationAPI(executor).list()
        members = await MemberAPI(executor).list(org_parent(orgs[0].id))

Author: DT Cloud Client Team
"""
import logging
from typing import Iterable, Optional

from .models import Member, Organization, Role
from .pagination import PagedResult, PaginationConfig
from .request import HTTPMethod, Request
from .resource import ResourceAPI

logger = logging.getLogger(__name__)


def org_parent(organization_id: str) -> str:
    return f"organizations/{organization_id}"


def project_parent(project_id: str) -> str:
    return f"projects/{project_id}"


class OrganizationAPI(ResourceAPI):
    """Organizations the authenticated account can access."""

    ENDPOINT = "organizations"
    PAGING_KEY = "organizations"

    async def list(self, config: Optional[PaginationConfig] = None) -> list[Organization]:
        return await self._list(self.ENDPOINT, self.PAGING_KEY, Organization, config=config)

    async def page(self, page_size: Optional[int] = None, page_token: Optional[str] = None) -> PagedResult:
        return await self._page(self.ENDPOINT, self.PAGING_KEY, Organization, page_size, page_token)

    async def get(self, organization_id: str) -> Organization:
        return await self.executor.get(org_parent(organization_id), model=Organization)


class MemberAPI(ResourceAPI):
    """Members of an organization or project."""

    PAGING_KEY = "members"

    async def list(self, parent: str, config: Optional[PaginationConfig] = None) -> list[Member]:
        return await self._list(f"{parent}/members", self.PAGING_KEY, Member, config=config)

    async def page(
        self,
        parent: str,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        return await self._page(f"{parent}/members", self.PAGING_KEY, Member, page_size, page_token)

    async def get(self, parent: str, member_id: str) -> Member:
        return await self.executor.get(f"{parent}/members/{member_id}", model=Member)

    async def invite(self, parent: str, email: str, roles: Iterable[str]) -> Member:
        """Invite an email address with the given roles (e.g. "roles/project.user").

        Existing accounts are accepted immediately; others get an invite email
        and stay PENDING until they accept.
        """
        payload = {"email": email, "roles": list(roles)}
        logger.info(f"Inviting member to {parent} with roles {payload['roles']}")
        return await self.executor.post(f"{parent}/members", payload, model=Member)

    async def delete(self, parent: str, member_id: str) -> None:
        await self.executor.delete(f"{parent}/members/{member_id}")

    async def invite_url(self, parent: str, member_id: str) -> str:
        """Invite URL of a PENDING member."""
        data = await self.executor.send(
            Request(HTTPMethod.GET, f"{parent}/members/{member_id}:getInviteUrl")
        )
        return data.get("inviteUrl", "") if isinstance(data, dict) else ""


class RoleAPI(ResourceAPI):
    ENDPOINT = "roles"
    PAGING_KEY = "roles"

    async def list(self) -> list[Role]:
        return await self._list(self.ENDPOINT, self.PAGING_KEY, Role)

    async def get(self, role_id: str) -> Role:
        return await self.executor.get(f"roles/{role_id}", model=Role)


class PermissionAPI(ResourceAPI):
    """Permissions the authenticated account holds on an organization or project."""

    PAGING_KEY = "permissions"

    async def list(self, parent: str) -> list[str]:
        return await self._list(f"{parent}/permissions", self.PAGING_KEY, str)
