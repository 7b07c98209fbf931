#!/usr/bin/env python3
"""Device Event Stream for the DT Cloud API.

Opens a long-lived GET on ``projects/{project}/devices:stream`` and turns the
Server-Sent Events it receives into typed DeviceEvent callbacks.

Lifecycle:
    CONNECTING -> OPEN -> CLOSED

    - CLOSED is terminal; subscribe again for a new stream
    - close() is synchronous and idempotent, and no handler runs after it returns
    - Error frames pushed by the server go to on_error handlers; the stream stays open
    - Losing the connection closes the stream and reports ServerUnavailableError,
      unless the stream was created with reconnect=True

Features:
    - Per event type handler registry (also usable as a decorator)
    - Unknown event types are dropped (new server events never break clients)
    - Optional reconnect with ExponentialBackoffScheme, reset on every event
    - Subscription filters: device ids, device types, labels, product numbers, event types

Usage:
    stream = DeviceEventStream.subscribe(executor, "my-project")

    @stream.on(EventType.TEMPERATURE)
    def on_temperature(event):
        print(event.device_id, event.payload.value)

    stream.on_error(lambda error: print(f"stream error: {error}"))
    ...
    stream.close()

Author: DT Cloud Client Team
"""
import asyncio
import json
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional, Union

import aiohttp

from .classifier import classify_stream_error, classify_transport_error
from .events import DeviceEvent, EventType, UnknownEvent, decode_event
from .exceptions import DTError, ServerUnavailableError, UnknownError
from .request import HTTPMethod, Request
from .resilience import ExponentialBackoffScheme, RetryScheme
from .sse import SSEFrame, SSEFrameParser

if TYPE_CHECKING:
    from .client import RequestExecutor

logger = logging.getLogger(__name__)

EventHandler = Callable[[DeviceEvent], Any]
ErrorHandler = Callable[[DTError], Any]


class StreamState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


def stream_request(
    project_id: str,
    device_ids: Optional[Iterable[str]] = None,
    device_types: Optional[Iterable[str]] = None,
    label_filters: Optional[Union[Mapping[str, str], Iterable[str]]] = None,
    product_numbers: Optional[Iterable[str]] = None,
    event_types: Optional[Iterable[Union[EventType, str]]] = None,
    base_url: Optional[str] = None,
) -> Request:
    """Build the devices:stream request with the given filters.

    ``label_filters`` takes either ``{"key": "value"}`` or ``["key=value"]``.
    """
    request = Request(HTTPMethod.GET, f"projects/{project_id}/devices:stream", base_url=base_url)
    request.set_header("Accept", "text/event-stream")
    request.set_header("Cache-Control", "no-cache")

    if device_ids:
        request.set_param("device_ids", list(device_ids))
    if device_types:
        request.set_param("device_types", list(device_types))
    if label_filters:
        if isinstance(label_filters, Mapping):
            label_filters = [f"{key}={value}" for key, value in label_filters.items()]
        request.set_param("label_filters", list(label_filters))
    if product_numbers:
        request.set_param("product_numbers", list(product_numbers))
    if event_types:
        request.set_param(
            "event_types",
            [t.value if isinstance(t, EventType) else t for t in event_types],
        )
    return request


class DeviceEventStream:
    """A subscription to device events.

    Attributes:
        executor: RequestExecutor used to open the connection
        request: The devices:stream request
        reconnect: Reconnect after recoverable connection loss
        state: Current StreamState
    """

    def __init__(
        self,
        executor: "RequestExecutor",
        request: Request,
        reconnect: bool = False,
        retry_scheme: Optional[RetryScheme] = None,
    ):
        self.executor = executor
        self.request = request
        self.reconnect = reconnect
        self.state = StreamState.CONNECTING

        self._retry_scheme = retry_scheme or ExponentialBackoffScheme()
        self._parser = SSEFrameParser()
        self._handlers: dict[EventType, list[EventHandler]] = {}
        self._event_handlers: list[EventHandler] = []
        self._error_handlers: list[ErrorHandler] = []
        self._task: Optional[asyncio.Task] = None
        self._closed_event = asyncio.Event()

    @classmethod
    def subscribe(
        cls,
        executor: "RequestExecutor",
        project_id: str,
        device_ids: Optional[Iterable[str]] = None,
        device_types: Optional[Iterable[str]] = None,
        label_filters: Optional[Union[Mapping[str, str], Iterable[str]]] = None,
        product_numbers: Optional[Iterable[str]] = None,
        event_types: Optional[Iterable[Union[EventType, str]]] = None,
        reconnect: bool = False,
    ) -> "DeviceEventStream":
        """Create and start a stream for a project (must be called inside a running loop)."""
        request = stream_request(
            project_id,
            device_ids=device_ids,
            device_types=device_types,
            label_filters=label_filters,
            product_numbers=product_numbers,
            event_types=event_types,
        )
        stream = cls(executor, request, reconnect=reconnect)
        stream.start()
        return stream

    # ----------------------------------------
    # Handler Registration
    # ----------------------------------------

    def on(self, event_type: EventType, handler: Optional[EventHandler] = None):
        """Register a handler for one event type.

        Can be called directly, ``stream.on(EventType.TOUCH, handler)``, or
        used as a decorator, ``@stream.on(EventType.TOUCH)``.
        """
        event_type = EventType(event_type)

        def register(func: EventHandler) -> EventHandler:
            if not self.closed:
                self._handlers.setdefault(event_type, []).append(func)
            return func

        if handler is not None:
            return register(handler)
        return register

    def on_event(self, handler: EventHandler) -> EventHandler:
        """Register a handler called for every known event."""
        if not self.closed:
            self._event_handlers.append(handler)
        return handler

    def on_error(self, handler: ErrorHandler) -> ErrorHandler:
        """Register a handler for stream errors."""
        if not self.closed:
            self._error_handlers.append(handler)
        return handler

    # ----------------------------------------
    # Lifecycle
    # ----------------------------------------

    @property
    def closed(self) -> bool:
        return self.state is StreamState.CLOSED

    def start(self) -> "DeviceEventStream":
        """Start the connection task on the running event loop."""
        if self._task is None and not self.closed:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    def close(self) -> None:
        """Stop the stream. Safe to call more than once."""
        if self.closed:
            return

        self.state = StreamState.CLOSED
        self._handlers.clear()
        self._event_handlers.clear()
        self._error_handlers.clear()

        task = self._task
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()

        self._closed_event.set()
        logger.info(f"Event stream closed ({self.request.endpoint})")

    async def wait_closed(self) -> None:
        """Wait until the stream is closed and its task has finished."""
        await self._closed_event.wait()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def __aenter__(self) -> "DeviceEventStream":
        return self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
        await self.wait_closed()

    # ----------------------------------------
    # Frame Handling
    # ----------------------------------------

    def feed(self, chunk: Union[bytes, str]) -> None:
        """Parse a chunk of stream bytes and dispatch the completed frames."""
        if self.closed:
            return
        for frame in self._parser.feed(chunk):
            if self.closed:
                return
            self._handle_frame(frame)

    def _handle_frame(self, frame: SSEFrame) -> None:
        if frame.data is None:
            return

        try:
            message = json.loads(frame.data)
        except ValueError as e:
            self._emit_error(UnknownError("Invalid JSON in stream frame", cause=e))
            return

        if not isinstance(message, dict):
            self._emit_error(UnknownError("Unexpected stream frame format"))
            return

        if "error" in message:
            error = classify_stream_error(message["error"])
            if error is not None:
                logger.warning(f"Stream error frame: {error}")
                self._emit_error(error)
            return

        result = message.get("result")
        raw_event = result.get("event") if isinstance(result, dict) else None
        if raw_event is None:
            logger.debug(f"Ignoring stream frame without event: {frame.data[:200]!r}")
            return

        try:
            event = decode_event(raw_event)
        except DTError as e:
            logger.warning(f"Failed to decode stream event: {e}")
            self._emit_error(e)
            return

        if isinstance(event, UnknownEvent):
            logger.debug(f"Dropping unknown event type {event.raw_type!r}")
            return

        self._retry_scheme.reset()
        self._dispatch(event)

    def _dispatch(self, event: DeviceEvent) -> None:
        for handler in list(self._handlers.get(event.event_type, ())):
            if self.closed:
                return
            self._call(handler, event)
        for handler in list(self._event_handlers):
            if self.closed:
                return
            self._call(handler, event)

    def _emit_error(self, error: DTError) -> None:
        for handler in list(self._error_handlers):
            if self.closed:
                return
            self._call(handler, error)

    @staticmethod
    def _call(handler: Callable[[Any], Any], arg: Any) -> None:
        try:
            handler(arg)
        except Exception:
            logger.exception(f"Stream handler {handler!r} raised")

    # ----------------------------------------
    # Connection
    # ----------------------------------------

    async def _run(self) -> None:
        while not self.closed:
            try:
                error = await self._connect_and_read()
            except Exception as e:
                if self.closed:
                    return
                logger.error(f"Event stream failed unexpectedly: {e}")
                self._emit_error(UnknownError(f"Event stream failed: {e}", cause=e))
                self.close()
                return
            if self.closed:
                return

            if not self.reconnect or not error.recoverable:
                self._emit_error(error)
                self.close()
                return

            delay = self._retry_scheme.next_backoff()
            if delay is None:
                self._emit_error(error)
                self.close()
                return

            self._emit_error(error)
            self.state = StreamState.CONNECTING
            logger.warning(f"Event stream lost ({error.message}), reconnecting in {delay}s")
            await asyncio.sleep(delay)

    async def _connect_and_read(self) -> DTError:
        """Hold one connection open; return the error that ended it."""
        self._parser = SSEFrameParser()
        try:
            response = await self.executor.open_stream(self.request)
        except DTError as e:
            return e

        try:
            if self.closed:
                return ServerUnavailableError("Event stream closed")
            self.state = StreamState.OPEN
            logger.info(f"Event stream open ({self.request.endpoint})")

            async for chunk in response.content.iter_any():
                self.feed(chunk)
                if self.closed:
                    return ServerUnavailableError("Event stream closed")

            for frame in self._parser.flush():
                if self.closed:
                    break
                self._handle_frame(frame)
            return ServerUnavailableError("Event stream ended by server")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return classify_transport_error(e, str(response.url))
        finally:
            response.close()
