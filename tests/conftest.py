"""
Global pytest fixtures for harness tests.
"""

from typing import Generator

import pytest

from kurento_test.client.kurento_client import KurentoClient
from kurento_test.config.properties import TestProperties
from tests.helpers.fake_media_server import FakeMediaServer


@pytest.fixture
def properties() -> TestProperties:
    """Resolver isolated from the process environment."""
    return TestProperties(environ={})


@pytest.fixture
def fake_server() -> Generator[FakeMediaServer, None, None]:
    """Fake media server listening on a free local port."""
    with FakeMediaServer() as server:
        yield server


@pytest.fixture
def client(fake_server: FakeMediaServer) -> Generator[KurentoClient, None, None]:
    """Client connected to the fake media server."""
    with KurentoClient.create(fake_server.uri, request_timeout=5.0) as kurento_client:
        yield kurento_client
