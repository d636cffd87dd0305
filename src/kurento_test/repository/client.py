"""
Client for the media repository REST API.

The repository stores recordings on behalf of the media server: creating an
item returns an HTTP URL a RecorderEndpoint can upload to, and fetching the
item returns the URL a PlayerEndpoint can read it back from.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from kurento_test.errors import ServiceError

logger = logging.getLogger(__name__)


class RepositoryItem(BaseModel):
    """A repository item and the HTTP endpoint for recording or playing it."""

    id: str
    url: str


class RepositoryClient:
    """Synchronous client for /repo/item endpoints.

    Usage:
        with RepositoryClient("http://127.0.0.1:7676") as repository:
            item = repository.create_item({"test": "recorder"})
            recorder = RecorderEndpoint.builder(pipeline, item.url).build()
            ...
            repository.remove_item(item.id)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize repository client.

        Args:
            base_url: Repository server URL (repository.url)
            timeout: Request timeout in seconds
            transport: Custom transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RepositoryClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ServiceError(
                f"Repository {method} {path} failed with {e.response.status_code}: "
                f"{e.response.text}"
            ) from e
        except httpx.RequestError as e:
            raise ServiceError(f"Repository {method} {path} failed: {e}") from e
        return response

    def create_item(self, metadata: dict[str, str] | None = None) -> RepositoryItem:
        """Create an item; the returned URL accepts the recording upload."""
        response = self._request("POST", "/repo/item", json=metadata or {})
        item = RepositoryItem.model_validate(response.json())
        logger.info(f"Created repository item {item.id}")
        return item

    def get_player(self, item_id: str) -> RepositoryItem:
        """Item with the URL its recording can be played from."""
        response = self._request("GET", f"/repo/item/{item_id}")
        return RepositoryItem.model_validate(response.json())

    def remove_item(self, item_id: str) -> None:
        self._request("DELETE", f"/repo/item/{item_id}")
        logger.info(f"Removed repository item {item_id}")

    def find_by_metadata(self, metadata: dict[str, str]) -> list[str]:
        """Ids of the items whose metadata contains every given entry."""
        response = self._request("POST", "/repo/item/find", json=metadata)
        return list(response.json())

    def find_by_metadata_regex(self, metadata: dict[str, str]) -> list[str]:
        """Ids of the items whose metadata values match the given patterns."""
        response = self._request("POST", "/repo/item/find/regex", json=metadata)
        return list(response.json())

    def get_metadata(self, item_id: str) -> dict[str, str]:
        response = self._request("GET", f"/repo/item/{item_id}/metadata")
        return dict(response.json())

    def set_metadata(self, item_id: str, metadata: dict[str, str]) -> None:
        self._request("PUT", f"/repo/item/{item_id}/metadata", json=metadata)
