"""
Exception hierarchy for the test harness.

Scenario outcomes are reported with plain assertions; these exceptions cover
failures of the harness itself (configuration, media server connection,
browsers and environment services).
"""

from __future__ import annotations

from typing import Any


class KurentoTestError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(KurentoTestError):
    """A configuration property is missing or has an invalid value."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Invalid configuration for '{key}': {message}")


class KurentoClientError(KurentoTestError):
    """The media server answered a request with a JSON-RPC error."""

    def __init__(self, message: str, code: int | None = None, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(message if code is None else f"[{code}] {message}")


class KurentoConnectionError(KurentoClientError):
    """The WebSocket connection to the media server failed or was closed."""


class BrowserError(KurentoTestError):
    """A WebDriver session could not be created or driven."""


class ServiceError(KurentoTestError):
    """An environment service (media server, Docker container, web app) failed."""
