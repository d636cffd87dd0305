"""Test helpers.

Provides:
- FakeMediaServer: In-process JSON-RPC media server
"""

from tests.helpers.fake_media_server import FakeMediaServer

__all__ = ["FakeMediaServer"]
