"""
Building blocks for media scenario tests.

Exports:
    MediaTestContext: Client, page and paths for one test
    check_player_playback / check_player_pause: Player scenarios
    launch_browser / record_player_media / check_recorded_file: Recorder scenarios
"""

from kurento_test.testing.base import MediaTestContext
from kurento_test.testing.player import check_player_pause, check_player_playback
from kurento_test.testing.recorder import (
    EXPECTED_AUDIO_CODEC_MP4,
    EXPECTED_AUDIO_CODEC_WEBM,
    EXPECTED_VIDEO_CODEC_MP4,
    EXPECTED_VIDEO_CODEC_WEBM,
    EXTENSION_MP4,
    EXTENSION_WEBM,
    check_recorded_file,
    launch_browser,
    record_player_media,
)

__all__ = [
    "EXPECTED_AUDIO_CODEC_MP4",
    "EXPECTED_AUDIO_CODEC_WEBM",
    "EXPECTED_VIDEO_CODEC_MP4",
    "EXPECTED_VIDEO_CODEC_WEBM",
    "EXTENSION_MP4",
    "EXTENSION_WEBM",
    "MediaTestContext",
    "check_player_pause",
    "check_player_playback",
    "check_recorded_file",
    "launch_browser",
    "record_player_media",
]
