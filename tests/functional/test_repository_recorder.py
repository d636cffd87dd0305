"""
Record a played video into the media repository.
"""

import time

import pytest

from kurento_test.browser import color
from kurento_test.client.media_objects import PlayerEndpoint, RecorderEndpoint, WebRtcEndpoint
from kurento_test.config.protocol import Protocol
from kurento_test.config.scenario import local_chrome_and_firefox
from kurento_test.sync import CountDownLatch
from kurento_test.testing.recorder import launch_browser

PLAYTIME = 10  # seconds

pytestmark = [
    pytest.mark.functional,
    pytest.mark.slow,
    pytest.mark.timeout(300),
    pytest.mark.scenarios(local_chrome_and_firefox()),
]


def test_repository_recorder(media_test, page, kurento_client, repository):
    item = repository.create_item({"test": media_test.test_name})

    pipeline = kurento_client.create_media_pipeline()
    try:
        player = PlayerEndpoint.builder(
            pipeline, media_test.get_media_url(Protocol.HTTP, "/video/10sec/ball.webm")
        ).build()
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        recorder = RecorderEndpoint.builder(pipeline, item.url).build()
        player.connect(webrtc)
        player.connect(recorder)

        eos_latch = CountDownLatch()
        player.add_end_of_stream_listener(lambda event: eos_latch.count_down())

        launch_browser(
            media_test, webrtc, player, recorder, None, None,
            None, color.BLACK, None, None, PLAYTIME,
        )
        assert eos_latch.wait(page.timeout), "Not received EOS event in player"
        recorder.stop()
    finally:
        pipeline.release()
        time.sleep(0.5)
        repository.remove_item(item.id)
