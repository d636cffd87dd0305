"""
Unit tests for the repository client using httpx.MockTransport.
"""

import json
import re

import httpx
import pytest

from kurento_test.errors import ServiceError
from kurento_test.repository.client import RepositoryClient, RepositoryItem

BASE_URL = "http://repository:7676"


class FakeRepository:
    """Minimal /repo/item API."""

    def __init__(self):
        self.items: dict[str, dict[str, str]] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/repo/item":
            item_id = f"item-{len(self.items) + 1}"
            self.items[item_id] = json.loads(request.content or b"{}")
            return httpx.Response(200, json={"id": item_id, "url": f"{BASE_URL}/upload/{item_id}"})

        if request.method == "POST" and path == "/repo/item/find":
            query = json.loads(request.content)
            found = [
                item_id
                for item_id, metadata in self.items.items()
                if all(metadata.get(k) == v for k, v in query.items())
            ]
            return httpx.Response(200, json=found)

        if request.method == "POST" and path == "/repo/item/find/regex":
            query = json.loads(request.content)
            found = [
                item_id
                for item_id, metadata in self.items.items()
                if all(re.search(p, metadata.get(k, "")) for k, p in query.items())
            ]
            return httpx.Response(200, json=found)

        parts = path.strip("/").split("/")
        item_id = parts[2] if len(parts) > 2 else None
        if item_id not in self.items:
            return httpx.Response(404, text=f"Item {item_id} not found")

        if path.endswith("/metadata"):
            if request.method == "PUT":
                self.items[item_id] = json.loads(request.content)
                return httpx.Response(200)
            return httpx.Response(200, json=self.items[item_id])
        if request.method == "GET":
            return httpx.Response(200, json={"id": item_id, "url": f"{BASE_URL}/play/{item_id}"})
        if request.method == "DELETE":
            del self.items[item_id]
            return httpx.Response(200)
        return httpx.Response(405)


@pytest.fixture
def fake_repository():
    return FakeRepository()


@pytest.fixture
def repository(fake_repository):
    with RepositoryClient(BASE_URL, transport=httpx.MockTransport(fake_repository)) as client:
        yield client


class TestRepositoryClient:
    def test_create_item_returns_recorder_url(self, repository, fake_repository):
        item = repository.create_item({"test": "recorder"})
        assert item == RepositoryItem(id="item-1", url=f"{BASE_URL}/upload/item-1")
        assert fake_repository.items["item-1"] == {"test": "recorder"}

    def test_get_player(self, repository):
        item = repository.create_item()
        assert repository.get_player(item.id).url == f"{BASE_URL}/play/{item.id}"

    def test_remove_item(self, repository, fake_repository):
        item = repository.create_item()
        repository.remove_item(item.id)
        assert fake_repository.items == {}

    def test_metadata(self, repository):
        item = repository.create_item({"a": "1"})
        repository.set_metadata(item.id, {"a": "2", "b": "3"})
        assert repository.get_metadata(item.id) == {"a": "2", "b": "3"}

    def test_find_by_metadata(self, repository):
        repository.create_item({"kind": "webm"})
        second = repository.create_item({"kind": "mp4"})
        assert repository.find_by_metadata({"kind": "mp4"}) == [second.id]

    def test_find_by_metadata_regex(self, repository, fake_repository):
        first = repository.create_item({"name": "green-10sec.webm"})
        repository.create_item({"name": "red-5sec.mp4"})
        third = repository.create_item({"name": "blue-10sec.webm"})

        assert repository.find_by_metadata_regex({"name": r"10sec\.webm$"}) == [first.id, third.id]
        assert fake_repository.requests[-1].url.path == "/repo/item/find/regex"

    def test_missing_item_raises(self, repository):
        with pytest.raises(ServiceError, match="404"):
            repository.get_player("nope")

    def test_connection_error_raises(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        with RepositoryClient(BASE_URL, transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(ServiceError, match="connection refused"):
                client.create_item()
