"""WebRTC session options for the test page."""

from __future__ import annotations

from enum import Enum


class WebRtcChannel(str, Enum):
    """Tracks negotiated by the browser."""

    AUDIO_AND_VIDEO = "AUDIO_AND_VIDEO"
    AUDIO_ONLY = "AUDIO_ONLY"
    VIDEO_ONLY = "VIDEO_ONLY"

    @property
    def has_audio(self) -> bool:
        return self is not WebRtcChannel.VIDEO_ONLY

    @property
    def has_video(self) -> bool:
        return self is not WebRtcChannel.AUDIO_ONLY


class WebRtcMode(str, Enum):
    """Direction of media from the browser's point of view."""

    RCV_ONLY = "RCV_ONLY"
    SEND_ONLY = "SEND_ONLY"
    SEND_RCV = "SEND_RCV"

    @property
    def direction(self) -> str:
        """RTCRtpTransceiver direction."""
        return {
            WebRtcMode.RCV_ONLY: "recvonly",
            WebRtcMode.SEND_ONLY: "sendonly",
            WebRtcMode.SEND_RCV: "sendrecv",
        }[self]
