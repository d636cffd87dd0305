"""Media URI protocols understood by the media server."""

from __future__ import annotations

from enum import Enum


class Protocol(str, Enum):
    """URI scheme of a media location."""

    FILE = "file"
    HTTP = "http"
    HTTPS = "https"
    S3 = "s3"
    MONGODB = "mongodb"
    REPOSITORY = "repository"

    def __str__(self) -> str:
        return self.value

    def uri(self, location: str) -> str:
        """Build a URI with this scheme (FILE + "/tmp/a.webm" -> file:///tmp/a.webm)."""
        return f"{self.value}://{location}"
