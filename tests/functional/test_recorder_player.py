"""
Record a played video, then play the recording back.
"""

import pytest

from kurento_test.browser import color
from kurento_test.client.media_objects import PlayerEndpoint, WebRtcEndpoint
from kurento_test.client.models import MediaProfileSpecType
from kurento_test.config.protocol import Protocol
from kurento_test.config.scenario import local_chrome_and_firefox
from kurento_test.testing.recorder import (
    EXPECTED_AUDIO_CODEC_MP4,
    EXPECTED_AUDIO_CODEC_WEBM,
    EXPECTED_VIDEO_CODEC_MP4,
    EXPECTED_VIDEO_CODEC_WEBM,
    EXTENSION_MP4,
    EXTENSION_WEBM,
    launch_browser,
    record_player_media,
)

PLAYTIME = 10  # seconds
EXPECTED_COLOR = color.GREEN

pytestmark = [
    pytest.mark.functional,
    pytest.mark.slow,
    pytest.mark.timeout(600),
    pytest.mark.scenarios(local_chrome_and_firefox()),
]


@pytest.mark.parametrize(
    "profile, video_codec, audio_codec, extension",
    [
        (
            MediaProfileSpecType.WEBM,
            EXPECTED_VIDEO_CODEC_WEBM,
            EXPECTED_AUDIO_CODEC_WEBM,
            EXTENSION_WEBM,
        ),
        (
            MediaProfileSpecType.MP4,
            EXPECTED_VIDEO_CODEC_MP4,
            EXPECTED_AUDIO_CODEC_MP4,
            EXTENSION_MP4,
        ),
    ],
    ids=["webm", "mp4"],
)
def test_recorder_player(
    media_test, page, kurento_client, profile, video_codec, audio_codec, extension
):
    recording_file = media_test.get_default_output_file(extension)

    # Play the video while it is recorded
    record_player_media(
        media_test,
        media_test.get_media_url(Protocol.HTTP, "/video/10sec/green.webm"),
        recording_file,
        profile,
        video_codec,
        audio_codec,
        EXPECTED_COLOR,
        PLAYTIME,
    )

    page.reload()

    # Play the recording
    pipeline = kurento_client.create_media_pipeline()
    try:
        player = PlayerEndpoint.builder(pipeline, Protocol.FILE.uri(recording_file)).build()
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        player.connect(webrtc)

        launch_browser(
            media_test, webrtc, player, None, video_codec, audio_codec,
            recording_file, EXPECTED_COLOR, None, None, PLAYTIME,
        )
    finally:
        pipeline.release()
