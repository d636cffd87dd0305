"""Recording inspection with ffprobe.

Reads codec and duration of the files written by RecorderEndpoint so
recorder scenarios can check what was actually stored.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class StreamInfo:
    """Information about a stream."""

    codec_name: str
    codec_type: str  # video or audio
    duration_sec: float | None = None
    sample_rate: int | None = None  # audio only
    channels: int | None = None  # audio only
    width: int | None = None  # video only
    height: int | None = None  # video only


@dataclass
class MediaInfo:
    """Container format, duration and streams of a media file."""

    format_name: str
    duration_sec: float | None
    streams: list[StreamInfo] = field(default_factory=list)

    def first_stream(self, codec_type: str) -> StreamInfo | None:
        return next((s for s in self.streams if s.codec_type == codec_type), None)

    @property
    def video_codec(self) -> str | None:
        stream = self.first_stream("video")
        return stream.codec_name if stream else None

    @property
    def audio_codec(self) -> str | None:
        stream = self.first_stream("audio")
        return stream.codec_name if stream else None


def _optional_float(value: str | float | None) -> float | None:
    if value in (None, "", "N/A"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class MediaInspector:
    """Inspects media files using ffprobe.

    Usage:
        inspector = MediaInspector()
        info = inspector.get_media_info("/tmp/recording.webm")
        assert info.video_codec == "vp8"
    """

    def __init__(self, ffprobe_command: str = "ffprobe") -> None:
        self.ffprobe_command = ffprobe_command

    def get_media_info(self, path: str | Path, timeout: int = 30) -> MediaInfo:
        """Get format and stream information of a file or URL.

        Args:
            path: File path or URL
            timeout: ffprobe timeout in seconds

        Returns:
            MediaInfo with one StreamInfo per stream

        Raises:
            RuntimeError: If ffprobe fails or its output cannot be parsed
        """
        cmd = [
            self.ffprobe_command,
            "-v", "quiet",
            "-print_format", "json",
            "-show_streams",
            "-show_format",
            str(path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            raise RuntimeError(f"ffprobe not found: {self.ffprobe_command}") from e
        except subprocess.TimeoutExpired as e:
            raise RuntimeError(f"ffprobe timed out after {timeout}s on {path}") from e

        if result.returncode != 0:
            raise RuntimeError(f"ffprobe failed on {path}: {result.stderr}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Invalid ffprobe output for {path}: {e}") from e

        fmt = data.get("format", {})
        info = MediaInfo(
            format_name=fmt.get("format_name", "unknown"),
            duration_sec=_optional_float(fmt.get("duration")),
        )

        for stream in data.get("streams", []):
            codec_type = stream.get("codec_type", "unknown")
            stream_info = StreamInfo(
                codec_name=stream.get("codec_name", "unknown"),
                codec_type=codec_type,
                duration_sec=_optional_float(stream.get("duration")),
            )
            if codec_type == "audio":
                stream_info.sample_rate = int(stream.get("sample_rate", 0))
                stream_info.channels = int(stream.get("channels", 0))
            elif codec_type == "video":
                stream_info.width = int(stream.get("width", 0))
                stream_info.height = int(stream.get("height", 0))
            info.streams.append(stream_info)

        logger.debug(
            f"{path}: format={info.format_name} video={info.video_codec} "
            f"audio={info.audio_codec} duration={info.duration_sec}"
        )
        return info

    def get_duration(self, path: str | Path) -> float | None:
        """Duration in seconds from the container (None if unknown)."""
        return self.get_media_info(path).duration_sec

    def get_video_codec(self, path: str | Path) -> str | None:
        return self.get_media_info(path).video_codec

    def get_audio_codec(self, path: str | Path) -> str | None:
        return self.get_media_info(path).audio_codec
