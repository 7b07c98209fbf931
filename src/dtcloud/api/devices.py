#!/usr/bin/env python3
"""Devices and device labels.

Labels are the only writable part of a device. The display name is the
``name`` label, so renaming a device is a label update.

Example:
    devices = DeviceAPI(executor)
    for device in await devices.list("project1"):
        print(device.id, device.display_name, device.reported.temperature)

    await devices.set_label("project1", "dev1", "room", "3.14")
    await devices.transfer(["dev1", "dev2"], from_project_id="project1", to_project_id="project2")

Author: DT Cloud Client Team
"""
import logging
from typing import Iterable, Mapping, Optional

from .models import Device
from .organizations import project_parent
from .pagination import PagedResult, PaginationConfig
from .request import HTTPMethod, Request
from .resource import ResourceAPI

logger = logging.getLogger(__name__)

# Project placeholder for looking up a device without knowing its project
ANY_PROJECT = "-"


def device_name(project_id: str, device_id: str) -> str:
    return f"projects/{project_id}/devices/{device_id}"


class DeviceAPI(ResourceAPI):
    PAGING_KEY = "devices"

    async def get(self, device_id: str, project_id: Optional[str] = None) -> Device:
        """Look up a device; without project_id all accessible projects are searched."""
        return await self.executor.get(device_name(project_id or ANY_PROJECT, device_id), model=Device)

    async def list(self, project_id: str, config: Optional[PaginationConfig] = None) -> list[Device]:
        return await self._list(f"{project_parent(project_id)}/devices", self.PAGING_KEY, Device, config=config)

    async def page(
        self,
        project_id: str,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        return await self._page(f"{project_parent(project_id)}/devices", self.PAGING_KEY, Device, page_size, page_token)

    async def batch_update_labels(
        self,
        project_id: str,
        device_ids: Iterable[str],
        labels_to_set: Optional[Mapping[str, str]] = None,
        labels_to_remove: Optional[Iterable[str]] = None,
    ) -> None:
        """Upsert and/or remove labels on several devices in one call."""
        payload = {
            "devices": [device_name(project_id, device_id) for device_id in device_ids],
            "addLabels": dict(labels_to_set or {}),
            "removeLabels": list(labels_to_remove or []),
        }
        request = Request.json(HTTPMethod.POST, f"{project_parent(project_id)}/devices:batchUpdate", payload)
        await self.executor.send(request)
        logger.debug(f"Updated labels on {len(payload['devices'])} devices in {project_id}")

    async def set_label(self, project_id: str, device_id: str, key: str, value: str) -> None:
        await self.batch_update_labels(project_id, [device_id], labels_to_set={key: value})

    async def remove_label(self, project_id: str, device_id: str, key: str) -> None:
        """Remove a label; succeeds if the label did not exist."""
        await self.batch_update_labels(project_id, [device_id], labels_to_remove=[key])

    async def update_display_name(self, project_id: str, device_id: str, display_name: str) -> None:
        await self.set_label(project_id, device_id, "name", display_name)

    async def transfer(
        self,
        device_ids: Iterable[str],
        from_project_id: str,
        to_project_id: str,
    ) -> None:
        """Move devices to another project (requires admin rights in the target)."""
        payload = {"devices": [device_name(from_project_id, device_id) for device_id in device_ids]}
        request = Request.json(HTTPMethod.POST, f"{project_parent(to_project_id)}/devices:transfer", payload)
        await self.executor.send(request)
        logger.info(
            f"Transferred {len(payload['devices'])} devices from {from_project_id} to {to_project_id}"
        )
