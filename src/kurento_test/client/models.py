"""
Data models for the media server API.

Enums for connection media types and recording profiles, the ICE candidate
type exchanged with WebRTC endpoints, and the events delivered through
"onEvent" notifications.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MediaType(str, Enum):
    """Media type of a connection between two elements."""

    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    DATA = "DATA"


class MediaProfileSpecType(str, Enum):
    """Container and tracks written by a RecorderEndpoint."""

    WEBM = "WEBM"
    MP4 = "MP4"
    WEBM_VIDEO_ONLY = "WEBM_VIDEO_ONLY"
    WEBM_AUDIO_ONLY = "WEBM_AUDIO_ONLY"
    MP4_VIDEO_ONLY = "MP4_VIDEO_ONLY"
    MP4_AUDIO_ONLY = "MP4_AUDIO_ONLY"
    JPEG_VIDEO_ONLY = "JPEG_VIDEO_ONLY"
    KURENTO_SPLIT_RECORDER = "KURENTO_SPLIT_RECORDER"


class IceCandidate(BaseModel):
    """ICE candidate in the shape used by both the server and browsers."""

    candidate: str
    sdp_mid: str | None = Field(default=None, alias="sdpMid")
    sdp_m_line_index: int | None = Field(default=None, alias="sdpMLineIndex")

    model_config = {"populate_by_name": True}

    def to_browser(self) -> dict[str, Any]:
        """RTCIceCandidateInit for the browser."""
        return {
            "candidate": self.candidate,
            "sdpMid": self.sdp_mid,
            "sdpMLineIndex": self.sdp_m_line_index,
        }

    def to_server(self) -> dict[str, Any]:
        """Complex-type encoding expected by the media server."""
        return {
            "__module__": "kurento",
            "__type__": "IceCandidate",
            **self.to_browser(),
        }


class MediaEvent(BaseModel):
    """Event raised by a media object.

    Unknown event types are parsed into this base class; their payload is
    kept as extra fields.
    """

    type: str
    source: str | None = None
    timestamp: str | int | None = None
    tags: list[Any] = Field(default_factory=list)

    model_config = {"extra": "allow", "populate_by_name": True}


class EndOfStreamEvent(MediaEvent):
    """A source element has no more data to produce."""


class IceCandidateFoundEvent(MediaEvent):
    candidate: IceCandidate


class ErrorEvent(MediaEvent):
    description: str = ""
    error_code: int | None = Field(default=None, alias="errorCode")


EVENT_TYPES: dict[str, type[MediaEvent]] = {
    "EndOfStream": EndOfStreamEvent,
    "IceCandidateFound": IceCandidateFoundEvent,
    "Error": ErrorEvent,
}


def parse_event(event_type: str, data: dict[str, Any]) -> MediaEvent:
    """Build the typed event for an "onEvent" payload."""
    event_cls = EVENT_TYPES.get(event_type, MediaEvent)
    return event_cls.model_validate({**data, "type": event_type})
