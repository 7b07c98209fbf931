#!/usr/bin/env python3
"""Device emulator.

Emulated devices live in a normal project and show up in device lists and
event streams, but are created and driven through the emulator API
(ClientConfig.emulator_base_url). Useful for integration tests without
physical sensors.

Example:
    emulator = EmulatorAPI(executor)
    device = await emulator.create_emulated_device("project1", DeviceType.TEMPERATURE, "Fake fridge")
    await emulator.publish_event(
        "project1",
        device.id,
        TemperatureEvent(value=4.5, timestamp=datetime.now(timezone.utc)),
    )
    await emulator.delete_emulated_device("project1", device.id)

Author: DT Cloud Client Team
"""
import logging
from typing import Mapping, Optional, Union

from .events import EVENT_MODELS, EventPayload, LabelsChangedEvent
from .exceptions import BadRequestError
from .models import Device, DeviceType
from .resource import ResourceAPI

logger = logging.getLogger(__name__)

# Payload class -> event type, for building the publish body
_EVENT_TYPES = {model: event_type for event_type, model in EVENT_MODELS.items()}


def publish_body(event: EventPayload) -> dict:
    """Publish body for an event payload: ``{"<eventType>": {...}}``.

    Raises:
        BadRequestError: For labelsChanged (labels are changed through the
            devices API) and for objects that are not event payloads
    """
    if isinstance(event, LabelsChangedEvent):
        raise BadRequestError("LabelsChangedEvent cannot be published")

    event_type = _EVENT_TYPES.get(type(event))
    if event_type is None:
        raise BadRequestError(f"{type(event).__name__} is not a publishable event")

    return {event_type.value: event.model_dump(by_alias=True, mode="json", exclude_none=True)}


class EmulatorAPI(ResourceAPI):
    """Create, delete and drive emulated devices."""

    @property
    def base_url(self) -> str:
        return self.executor.config.emulator_base_url

    async def create_emulated_device(
        self,
        project_id: str,
        device_type: Union[DeviceType, str],
        display_name: str,
        labels: Optional[Mapping[str, str]] = None,
    ) -> Device:
        """Create an emulated device; ``display_name`` is stored as the "name" label."""
        try:
            device_type = DeviceType(device_type)
        except ValueError:
            raise BadRequestError(f"Device type {device_type!r} can't be used as an emulated device")

        payload = {
            "type": device_type.value,
            "labels": {**dict(labels or {}), "name": display_name},
        }
        device = await self.executor.post(
            f"projects/{project_id}/devices",
            payload,
            model=Device,
            base_url=self.base_url,
        )
        logger.info(f"Created emulated {device_type.value} device {device.id} in {project_id}")
        return device

    async def delete_emulated_device(self, project_id: str, device_id: str) -> None:
        await self.executor.delete(f"projects/{project_id}/devices/{device_id}", base_url=self.base_url)
        logger.info(f"Deleted emulated device {device_id} from {project_id}")

    async def publish_event(self, project_id: str, device_id: str, event: EventPayload) -> None:
        """Publish an event as if the emulated device had sent it.

        Not every event type fits every device type; a temperature sensor
        cannot publish an EthernetStatusEvent, and the server rejects it.
        """
        body = publish_body(event)
        await self.executor.post(
            f"projects/{project_id}/devices/{device_id}:publish",
            body,
            base_url=self.base_url,
        )
        logger.debug(f"Published {next(iter(body))} event to emulated device {device_id}")

