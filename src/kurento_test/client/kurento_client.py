"""
Kurento Media Server client.

Wraps JsonRpcClient with the media server's object model: create, invoke,
release, and event subscriptions. One server-side subscription is kept per
(object, event type); any number of local listeners share it.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from kurento_test.client.jsonrpc import JsonRpcClient
from kurento_test.client.media_objects import (
    EventListener,
    MediaElement,
    MediaObject,
    MediaPipeline,
)
from kurento_test.client.models import parse_event

logger = logging.getLogger(__name__)

ElementT = TypeVar("ElementT", bound=MediaElement)


@dataclass(frozen=True, eq=False)
class ListenerSubscription:
    """Handle returned by add_event_listener, used to remove the listener."""

    object_id: str
    event_type: str
    listener: Callable


class KurentoClient:
    """Entry point to a media server.

    Usage:
        with KurentoClient.create("ws://localhost:8888/kurento") as client:
            pipeline = client.create_media_pipeline()
            ...
            pipeline.release()
    """

    def __init__(self, rpc: JsonRpcClient) -> None:
        self._rpc = rpc
        self._lock = threading.Lock()
        self._listeners: dict[tuple[str, str], list[ListenerSubscription]] = defaultdict(list)
        self._server_subscriptions: dict[tuple[str, str], str] = {}
        self._element_pipelines: dict[str, str] = {}
        self._rpc.add_notification_handler("onEvent", self._on_event)

    @classmethod
    def create(cls, uri: str, request_timeout: float = 30.0) -> KurentoClient:
        """Connect to the media server at uri.

        Raises:
            KurentoConnectionError: If the server cannot be reached
        """
        rpc = JsonRpcClient(uri, request_timeout=request_timeout)
        rpc.connect()
        return cls(rpc)

    @property
    def uri(self) -> str:
        return self._rpc.uri

    @property
    def session_id(self) -> str | None:
        return self._rpc.session_id

    def close(self) -> None:
        self._rpc.close()
        with self._lock:
            self._listeners.clear()
            self._server_subscriptions.clear()
            self._element_pipelines.clear()

    def __enter__(self) -> KurentoClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def ping(self, interval_ms: int = 240000) -> bool:
        """Keepalive; the server drops sessions idle for longer than interval_ms."""
        result = self._rpc.send_request("ping", {"interval": interval_ms})
        return isinstance(result, dict) and result.get("value") == "pong"

    def create_media_pipeline(self) -> MediaPipeline:
        result = self._rpc.send_request(
            "create",
            {"type": MediaPipeline.remote_type, "constructorParams": {}, "properties": {}},
        )
        pipeline = MediaPipeline(self, result["value"])
        logger.info(f"Created {pipeline!r}")
        return pipeline

    def create_element(
        self,
        element_cls: type[ElementT],
        pipeline: MediaPipeline,
        constructor_params: dict[str, Any],
        properties: dict[str, Any] | None = None,
    ) -> ElementT:
        """Create an element of element_cls inside pipeline."""
        result = self._rpc.send_request(
            "create",
            {
                "type": element_cls.remote_type,
                "constructorParams": constructor_params,
                "properties": properties or {},
            },
        )
        element = element_cls(self, result["value"], pipeline)
        with self._lock:
            self._element_pipelines[element.id] = pipeline.id
        logger.debug(f"Created {element!r} in {pipeline!r}")
        return element

    def invoke(self, object_id: str, operation: str, params: dict[str, Any] | None = None) -> Any:
        """Invoke an operation and return its "value" (None for void operations)."""
        result = self._rpc.send_request(
            "invoke",
            {"object": object_id, "operation": operation, "operationParams": params or {}},
        )
        return result.get("value") if isinstance(result, dict) else None

    def release(self, media_object: MediaObject) -> None:
        """Release an object; releasing a pipeline also drops its elements' listeners."""
        self._rpc.send_request("release", {"object": media_object.id})
        with self._lock:
            released = {media_object.id}
            released.update(
                element_id
                for element_id, pipeline_id in self._element_pipelines.items()
                if pipeline_id == media_object.id
            )
            for object_id in released:
                self._element_pipelines.pop(object_id, None)
            for key in [k for k in self._server_subscriptions if k[0] in released]:
                self._listeners.pop(key, None)
                self._server_subscriptions.pop(key, None)
        logger.info(f"Released {media_object!r}")

    def subscribe(
        self,
        media_object: MediaObject,
        event_type: str,
        listener: EventListener,
    ) -> ListenerSubscription:
        """Register listener for event_type events raised by media_object."""
        key = (media_object.id, event_type)
        subscription = ListenerSubscription(media_object.id, event_type, listener)

        with self._lock:
            self._listeners[key].append(subscription)
            needs_server_subscription = key not in self._server_subscriptions

        if needs_server_subscription:
            try:
                result = self._rpc.send_request(
                    "subscribe", {"object": media_object.id, "type": event_type}
                )
            except Exception:
                with self._lock:
                    self._listeners[key].remove(subscription)
                raise
            with self._lock:
                self._server_subscriptions[key] = result["value"]

        logger.debug(f"Listening to {event_type} on {media_object!r}")
        return subscription

    def unsubscribe(self, subscription: ListenerSubscription) -> None:
        key = (subscription.object_id, subscription.event_type)
        with self._lock:
            listeners = self._listeners.get(key, [])
            if subscription in listeners:
                listeners.remove(subscription)
            server_id = None
            if not listeners:
                self._listeners.pop(key, None)
                server_id = self._server_subscriptions.pop(key, None)

        if server_id is not None:
            self._rpc.send_request(
                "unsubscribe",
                {"object": subscription.object_id, "subscription": server_id},
            )

    def _on_event(self, params: dict[str, Any]) -> None:
        value = params.get("value") or {}
        object_id = value.get("object")
        event_type = value.get("type")
        data = value.get("data") or {}
        if object_id is None or event_type is None:
            logger.warning(f"Ignoring malformed event: {params}")
            return

        with self._lock:
            listeners = list(self._listeners.get((object_id, event_type), []))
        if not listeners:
            return

        event = parse_event(event_type, data)
        logger.debug(f"Event {event_type} from {object_id}")
        for subscription in listeners:
            subscription.listener(event)
