"""
JSON-RPC 2.0 over WebSocket, as spoken by Kurento Media Server.

A single reader thread owns the receiving side of the socket. Responses are
matched to pending requests by id; notifications (the server's "onEvent") are
dispatched to registered handlers on that same reader thread, so handlers must
be quick and must not issue requests themselves.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from collections import defaultdict
from contextlib import ExitStack
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import ClientConnection, connect

from kurento_test.errors import KurentoClientError, KurentoConnectionError

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[dict[str, Any]], None]


class JsonRpcClient:
    """Synchronous JSON-RPC client with a background reader thread.

    Usage:
        rpc = JsonRpcClient("ws://localhost:8888/kurento")
        rpc.connect()
        rpc.add_notification_handler("onEvent", handle_event)
        result = rpc.send_request("create", {"type": "MediaPipeline"})
        rpc.close()
    """

    def __init__(
        self,
        uri: str,
        request_timeout: float = 30.0,
        open_timeout: float = 10.0,
    ) -> None:
        """Initialize client.

        Args:
            uri: WebSocket URI of the server
            request_timeout: Default seconds to wait for each response
            open_timeout: Seconds to wait for the WebSocket handshake
        """
        self.uri = uri
        self.request_timeout = request_timeout
        self.open_timeout = open_timeout
        self.session_id: str | None = None

        self._ws: ClientConnection | None = None
        self._exit_stack = ExitStack()
        self._reader: threading.Thread | None = None
        self._ids = itertools.count(1)
        self._pending: dict[int, Future] = {}
        self._pending_lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._handlers: dict[str, list[NotificationHandler]] = defaultdict(list)

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._reader is not None and self._reader.is_alive()

    def connect(self) -> None:
        """Open the WebSocket and start the reader thread.

        Raises:
            KurentoConnectionError: If the server cannot be reached
        """
        if self._ws is not None:
            return

        try:
            self._ws = self._exit_stack.enter_context(
                connect(self.uri, open_timeout=self.open_timeout, max_size=None)
            )
        except (OSError, TimeoutError, InvalidURI, InvalidHandshake) as e:
            raise KurentoConnectionError(f"Could not connect to {self.uri}: {e}") from e

        self._reader = threading.Thread(
            target=self._read_loop,
            name="kurento-jsonrpc-reader",
            daemon=True,
        )
        self._reader.start()
        logger.info(f"Connected to {self.uri}")

    def close(self) -> None:
        """Close the connection; pending requests fail with KurentoConnectionError."""
        if self._ws is None:
            return

        self._exit_stack.close()
        if self._reader is not None:
            self._reader.join(timeout=5)
        self._ws = None
        self._reader = None
        logger.info(f"Disconnected from {self.uri}")

    def add_notification_handler(self, method: str, handler: NotificationHandler) -> None:
        """Register a handler for server notifications of a method."""
        self._handlers[method].append(handler)

    def remove_notification_handler(self, method: str, handler: NotificationHandler) -> None:
        if handler in self._handlers.get(method, []):
            self._handlers[method].remove(handler)

    def send_request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and block until its response arrives.

        The server's sessionId, once known, is added to every request.

        Args:
            method: JSON-RPC method
            params: Request params
            timeout: Seconds to wait (default: request_timeout)

        Returns:
            The "result" member of the response

        Raises:
            KurentoClientError: On an error response or timeout
            KurentoConnectionError: If not connected or the connection drops
        """
        if self._ws is None:
            raise KurentoConnectionError(f"Not connected to {self.uri}")

        params = dict(params or {})
        if self.session_id is not None and "sessionId" not in params:
            params["sessionId"] = self.session_id

        request_id = next(self._ids)
        message = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}

        future: Future = Future()
        with self._pending_lock:
            self._pending[request_id] = future

        try:
            with self._send_lock:
                self._ws.send(json.dumps(message))
        except ConnectionClosed as e:
            self._pop_pending(request_id)
            raise KurentoConnectionError(f"Connection to {self.uri} closed: {e}") from e

        logger.debug(f"-> [{request_id}] {method} {params}")

        timeout = timeout if timeout is not None else self.request_timeout
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            self._pop_pending(request_id)
            raise KurentoClientError(
                f"Timeout waiting for response to '{method}' after {timeout}s"
            ) from e

    def _pop_pending(self, request_id: int) -> Future | None:
        with self._pending_lock:
            return self._pending.pop(request_id, None)

    def _read_loop(self) -> None:
        ws = self._ws
        try:
            for raw in ws:
                self._handle_message(raw)
        except ConnectionClosed as e:
            logger.info(f"Connection to {self.uri} closed: {e}")
        finally:
            self._fail_pending(KurentoConnectionError(f"Connection to {self.uri} closed"))

    def _fail_pending(self, error: Exception) -> None:
        with self._pending_lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for future in pending:
            if not future.done():
                future.set_exception(error)

    def _handle_message(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring malformed message: {raw!r}")
            return

        if "result" in message or "error" in message:
            self._handle_response(message)
        elif "method" in message:
            self._handle_notification(message)
        else:
            logger.warning(f"Ignoring unexpected message: {message}")

    def _handle_response(self, message: dict[str, Any]) -> None:
        request_id = message.get("id")
        future = self._pop_pending(request_id) if isinstance(request_id, int) else None
        if future is None:
            logger.debug(f"Response for unknown request id {request_id}")
            return

        if "error" in message:
            error = message["error"] or {}
            logger.debug(f"<- [{request_id}] error {error}")
            future.set_exception(
                KurentoClientError(
                    error.get("message", "Unknown error"),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            )
            return

        result = message["result"]
        if isinstance(result, dict) and result.get("sessionId"):
            self.session_id = result["sessionId"]
        logger.debug(f"<- [{request_id}] {result}")
        future.set_result(result)

    def _handle_notification(self, message: dict[str, Any]) -> None:
        method = message["method"]
        params = message.get("params") or {}
        handlers = list(self._handlers.get(method, []))
        if not handlers:
            logger.debug(f"No handler for notification '{method}'")
            return

        for handler in handlers:
            try:
                handler(params)
            except Exception:
                logger.exception(f"Notification handler for '{method}' failed")
