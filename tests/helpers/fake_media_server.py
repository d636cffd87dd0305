"""In-process fake media server for unit tests.

Speaks enough of the Kurento JSON-RPC protocol over a real WebSocket to
exercise the client: objects are created and released, subscriptions are
tracked, and a few operations raise the events a real server would
(EndOfStream after play, IceCandidateFound after gatherCandidates).

Usage:
    with FakeMediaServer() as server:
        client = KurentoClient.create(server.uri)
        ...
        assert server.requests_for("release")
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from typing import Any

from websockets.exceptions import ConnectionClosed
from websockets.sync.server import ServerConnection, serve

logger = logging.getLogger(__name__)

SESSION_ID = "fake-session-0001"
SDP_ANSWER = "v=0\r\no=- 0 0 IN IP4 127.0.0.1\r\ns=fake-answer\r\n"
ICE_CANDIDATE = {
    "__module__": "kurento",
    "__type__": "IceCandidate",
    "candidate": "candidate:1 1 UDP 2013266431 127.0.0.1 40000 typ host",
    "sdpMid": "0",
    "sdpMLineIndex": 0,
}
OBJECT_NOT_FOUND = 40101


class FakeMediaServer:
    """Threaded WebSocket server answering Kurento requests."""

    def __init__(self, host: str = "127.0.0.1") -> None:
        self.host = host
        self.requests: list[dict[str, Any]] = []
        self.objects: dict[str, str] = {}
        self.subscriptions: dict[str, tuple[str, str]] = {}
        self.invoke_results: dict[str, Any] = {}
        self.silent_methods: set[str] = set()
        self._errors: dict[str, tuple[int, str]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._connections: list[ServerConnection] = []
        self._server = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self._server.socket.getsockname()[1]

    @property
    def uri(self) -> str:
        return f"ws://{self.host}:{self.port}/kurento"

    def start(self) -> FakeMediaServer:
        self._server = serve(self._handle_connection, self.host, 0)
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="fake-media-server", daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
        if self._thread is not None:
            self._thread.join(timeout=5)

    def __enter__(self) -> FakeMediaServer:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def fail_next(self, method: str, code: int, message: str) -> None:
        """Answer the next request of method with a JSON-RPC error."""
        self._errors[method] = (code, message)

    def requests_for(self, method: str) -> list[dict[str, Any]]:
        with self._lock:
            return [r for r in self.requests if r["method"] == method]

    def disconnect_clients(self) -> None:
        for connection in list(self._connections):
            connection.close()

    def emit_event(
        self, object_id: str, event_type: str, data: dict[str, Any] | None = None
    ) -> None:
        """Send an onEvent notification to every connected client."""
        payload = {
            "jsonrpc": "2.0",
            "method": "onEvent",
            "params": {
                "value": {
                    "object": object_id,
                    "type": event_type,
                    "data": {
                        "source": object_id,
                        "type": event_type,
                        "timestamp": "1700000000",
                        "tags": [],
                        **(data or {}),
                    },
                }
            },
        }
        for connection in list(self._connections):
            connection.send(json.dumps(payload))

    def _handle_connection(self, connection: ServerConnection) -> None:
        self._connections.append(connection)
        try:
            for raw in connection:
                message = json.loads(raw)
                with self._lock:
                    self.requests.append(message)
                if message["method"] in self.silent_methods:
                    continue
                response, events = self._dispatch(message)
                connection.send(json.dumps(response))
                for object_id, event_type, data in events:
                    if self._is_subscribed(object_id, event_type):
                        self.emit_event(object_id, event_type, data)
        except ConnectionClosed:
            pass
        finally:
            self._connections.remove(connection)

    def _is_subscribed(self, object_id: str, event_type: str) -> bool:
        return (object_id, event_type) in self.subscriptions.values()

    def _dispatch(self, message: dict[str, Any]) -> tuple[dict[str, Any], list[tuple]]:
        method = message["method"]
        params = message.get("params") or {}
        events: list[tuple] = []

        if method in self._errors:
            code, text = self._errors.pop(method)
            return self._error(message, code, text), events

        if method == "ping":
            return self._result(message, {"value": "pong"}), events

        if method == "create":
            object_id = f"{next(self._ids)}_kurento.{params['type']}"
            pipeline = params.get("constructorParams", {}).get("mediaPipeline")
            if pipeline:
                object_id = f"{pipeline}/{object_id}"
            self.objects[object_id] = params["type"]
            return self._result(message, {"value": object_id}), events

        object_id = params.get("object")
        if object_id not in self.objects:
            error = self._error(message, OBJECT_NOT_FOUND, f"Object '{object_id}' not found")
            return error, events

        if method == "invoke":
            operation = params["operation"]
            value = self.invoke_results.get(operation)
            if operation == "processOffer":
                value = SDP_ANSWER
            elif operation == "play":
                events.append((object_id, "EndOfStream", {}))
            elif operation == "gatherCandidates":
                events.append((object_id, "IceCandidateFound", {"candidate": ICE_CANDIDATE}))
            return self._result(message, {"value": value}), events

        if method == "subscribe":
            subscription_id = f"sub-{next(self._ids)}"
            self.subscriptions[subscription_id] = (object_id, params["type"])
            return self._result(message, {"value": subscription_id}), events

        if method == "unsubscribe":
            self.subscriptions.pop(params.get("subscription"), None)
            return self._result(message, {}), events

        if method == "release":
            released = [
                oid for oid in self.objects if oid == object_id or oid.startswith(f"{object_id}/")
            ]
            for oid in released:
                del self.objects[oid]
            return self._result(message, {}), events

        return self._error(message, -32601, f"Method not found: {method}"), events

    @staticmethod
    def _result(message: dict[str, Any], result: dict[str, Any]) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": message["id"],
            "result": {**result, "sessionId": SESSION_ID},
        }

    @staticmethod
    def _error(message: dict[str, Any], code: int, text: str) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": message["id"],
            "error": {"code": code, "message": text, "data": {"type": "MEDIA_OBJECT_NOT_FOUND"}},
        }
