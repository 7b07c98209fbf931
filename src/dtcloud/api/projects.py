#!/usr/bin/env python3
"""Projects.

Example:
    projects = ProjectAPI(executor)
    inventory = [p for p in await projects.list(organization_id="org1") if p.inventory]
    new = await projects.create("org1", "Warehouse sensors")
    await projects.update_display_name(new.id, "Warehouse (north)")

Author: DT Cloud Client Team
"""
import logging
from typing import Optional

from .models import Project
from .organizations import org_parent, project_parent
from .pagination import PagedResult, PaginationConfig
from .resource import ResourceAPI

logger = logging.getLogger(__name__)


class ProjectAPI(ResourceAPI):
    ENDPOINT = "projects"
    PAGING_KEY = "projects"

    def _filters(self, organization_id: Optional[str], query: Optional[str]) -> dict:
        return {
            "organization": org_parent(organization_id) if organization_id else None,
            "query": query,
        }

    async def list(
        self,
        organization_id: Optional[str] = None,
        query: Optional[str] = None,
        config: Optional[PaginationConfig] = None,
    ) -> list[Project]:
        """All projects, optionally limited to one organization or a keyword search."""
        return await self._list(
            self.ENDPOINT,
            self.PAGING_KEY,
            Project,
            params=self._filters(organization_id, query),
            config=config,
        )

    async def page(
        self,
        organization_id: Optional[str] = None,
        query: Optional[str] = None,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        return await self._page(
            self.ENDPOINT,
            self.PAGING_KEY,
            Project,
            page_size,
            page_token,
            params=self._filters(organization_id, query),
        )

    async def get(self, project_id: str) -> Project:
        return await self.executor.get(project_parent(project_id), model=Project)

    async def create(self, organization_id: str, display_name: str) -> Project:
        payload = {"displayName": display_name, "organization": org_parent(organization_id)}
        project = await self.executor.post(self.ENDPOINT, payload, model=Project)
        logger.info(f"Created project {project.id} in organization {organization_id}")
        return project

    async def update_display_name(self, project_id: str, display_name: str) -> Project:
        return await self.executor.patch(
            project_parent(project_id),
            {"displayName": display_name},
            model=Project,
        )

    async def delete(self, project_id: str) -> None:
        """Delete an empty project (one without devices or cloud connectors)."""
        await self.executor.delete(project_parent(project_id))
        logger.info(f"Deleted project {project_id}")
