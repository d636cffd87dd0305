"""
Unit tests for KurentoClient and media object proxies.
"""

import threading

import pytest

from kurento_test.client.media_objects import (
    MediaPipeline,
    PlayerEndpoint,
    RecorderEndpoint,
    WebRtcEndpoint,
)
from kurento_test.client.models import (
    EndOfStreamEvent,
    ErrorEvent,
    IceCandidateFoundEvent,
    MediaEvent,
    MediaProfileSpecType,
    MediaType,
)
from kurento_test.errors import KurentoClientError
from kurento_test.sync import CountDownLatch
from tests.helpers.fake_media_server import SDP_ANSWER

VIDEO_URL = "http://files.kurento.org/video/10sec/green.webm"


@pytest.fixture
def pipeline(client):
    return client.create_media_pipeline()


class TestPipeline:
    def test_create_media_pipeline(self, client, fake_server):
        pipeline = client.create_media_pipeline()
        assert isinstance(pipeline, MediaPipeline)
        assert fake_server.objects[pipeline.id] == "MediaPipeline"

    def test_ping(self, client):
        assert client.ping() is True

    def test_release_pipeline_releases_elements(self, client, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        pipeline.release()
        assert pipeline.id not in fake_server.objects
        assert player.id not in fake_server.objects

    def test_invoke_on_released_object_fails(self, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        pipeline.release()
        with pytest.raises(KurentoClientError) as exc_info:
            player.play()
        assert exc_info.value.code == 40101

    def test_objects_compare_by_id(self, client, pipeline):
        assert MediaPipeline(client, pipeline.id) == pipeline
        assert len({pipeline, MediaPipeline(client, pipeline.id)}) == 1
        assert pipeline.id in repr(pipeline)


class TestBuilders:
    def test_player_constructor_params(self, fake_server, pipeline):
        PlayerEndpoint.builder(pipeline, VIDEO_URL).use_encoded_media().with_network_cache(
            500
        ).build()
        params = fake_server.requests_for("create")[-1]["params"]
        assert params["type"] == "PlayerEndpoint"
        assert params["constructorParams"] == {
            "mediaPipeline": pipeline.id,
            "uri": VIDEO_URL,
            "useEncodedMedia": True,
            "networkCache": 500,
        }

    def test_recorder_constructor_params(self, fake_server, pipeline):
        recorder = (
            RecorderEndpoint.builder(pipeline, "file:///tmp/out.mp4")
            .with_media_profile(MediaProfileSpecType.MP4)
            .stop_on_end_of_stream()
            .with_property("test", "recorder")
            .build()
        )
        params = fake_server.requests_for("create")[-1]["params"]
        assert params["constructorParams"]["mediaProfile"] == "MP4"
        assert params["constructorParams"]["stopOnEndOfStream"] is True
        assert params["properties"] == {"test": "recorder"}
        assert recorder.pipeline == pipeline

    def test_webrtc_endpoint(self, fake_server, pipeline):
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        assert fake_server.objects[webrtc.id] == "WebRtcEndpoint"


class TestOperations:
    def test_connect_all_media(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        player.connect(webrtc)

        request = fake_server.requests_for("invoke")[-1]["params"]
        assert request["object"] == player.id
        assert request["operation"] == "connect"
        assert request["operationParams"] == {"sink": webrtc.id}

    def test_connect_single_media_type(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        player.connect(webrtc, MediaType.AUDIO)
        assert fake_server.requests_for("invoke")[-1]["params"]["operationParams"] == {
            "sink": webrtc.id,
            "mediaType": "AUDIO",
        }

    def test_player_position(self, fake_server, pipeline):
        fake_server.invoke_results["getPosition"] = 2500
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        assert player.get_position() == 2500

        player.set_position(1000)
        params = fake_server.requests_for("invoke")[-1]["params"]
        assert params["operation"] == "setPosition"
        assert params["operationParams"] == {"position": 1000}

    def test_video_info(self, fake_server, pipeline):
        fake_server.invoke_results["getVideoInfo"] = {"isSeekable": True, "duration": 10000}
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        assert player.get_video_info()["duration"] == 10000

    def test_process_offer_returns_answer(self, pipeline):
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        assert webrtc.process_offer("v=0 offer") == SDP_ANSWER

    def test_recorder_stop_and_wait(self, fake_server, pipeline):
        recorder = RecorderEndpoint.builder(pipeline, "file:///tmp/out.webm").build()
        recorder.record()
        recorder.stop_and_wait()
        operations = [r["params"]["operation"] for r in fake_server.requests_for("invoke")]
        assert operations[-2:] == ["record", "stopAndWait"]


class TestEvents:
    def test_end_of_stream_listener(self, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        eos_latch = CountDownLatch()
        events = []

        def on_eos(event):
            events.append(event)
            eos_latch.count_down()

        player.add_end_of_stream_listener(on_eos)
        player.play()

        assert eos_latch.wait(timeout=5), "No EOS event"
        assert isinstance(events[0], EndOfStreamEvent)
        assert events[0].source == player.id

    def test_ice_candidate_listener(self, pipeline):
        webrtc = WebRtcEndpoint.builder(pipeline).build()
        found = threading.Event()
        candidates = []

        def on_candidate(event):
            candidates.append(event)
            found.set()

        webrtc.add_ice_candidate_found_listener(on_candidate)
        webrtc.gather_candidates()

        assert found.wait(timeout=5)
        assert isinstance(candidates[0], IceCandidateFoundEvent)
        assert candidates[0].candidate.sdp_m_line_index == 0

    def test_one_server_subscription_per_event_type(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        first = CountDownLatch()
        second = CountDownLatch()
        player.add_end_of_stream_listener(lambda event: first.count_down())
        player.add_end_of_stream_listener(lambda event: second.count_down())

        assert len(fake_server.requests_for("subscribe")) == 1
        player.play()
        assert first.wait(timeout=5) and second.wait(timeout=5)

    def test_unsubscribe_after_last_listener(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        first = player.add_end_of_stream_listener(lambda event: None)
        second = player.add_end_of_stream_listener(lambda event: None)

        player.remove_event_listener(first)
        assert fake_server.requests_for("unsubscribe") == []

        player.remove_event_listener(second)
        unsubscribe = fake_server.requests_for("unsubscribe")
        assert len(unsubscribe) == 1
        assert unsubscribe[0]["params"]["object"] == player.id
        assert fake_server.subscriptions == {}

    def test_failed_subscribe_drops_listener(self, client, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        fake_server.fail_next("subscribe", 40101, "Object not found")
        with pytest.raises(KurentoClientError):
            player.add_end_of_stream_listener(lambda event: None)

        player.add_end_of_stream_listener(lambda event: None)
        assert len(fake_server.requests_for("subscribe")) == 2

    def test_release_drops_element_listeners(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        subscription = player.add_end_of_stream_listener(lambda event: None)
        pipeline.release()

        player.remove_event_listener(subscription)
        assert fake_server.requests_for("unsubscribe") == []

    def test_listener_for_other_object_not_called(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        other = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        called = []
        player.add_end_of_stream_listener(called.append)
        other.add_end_of_stream_listener(lambda event: None)

        other.play()
        # the ping response is ordered after the event on the connection
        player._client.ping()
        assert called == []


class TestSdpNegotiation:
    def test_generate_offer(self, fake_server, pipeline):
        fake_server.invoke_results["generateOffer"] = "v=0 offer"
        webrtc = WebRtcEndpoint.builder(pipeline).build()

        assert webrtc.generate_offer() == "v=0 offer"
        assert fake_server.requests_for("invoke")[-1]["params"]["operation"] == "generateOffer"

    def test_process_answer(self, fake_server, pipeline):
        fake_server.invoke_results["processAnswer"] = "v=0 local"
        webrtc = WebRtcEndpoint.builder(pipeline).build()

        assert webrtc.process_answer("v=0 answer") == "v=0 local"
        params = fake_server.requests_for("invoke")[-1]["params"]
        assert params["operation"] == "processAnswer"
        assert params["operationParams"] == {"answer": "v=0 answer"}


class TestErrorAndStoppedEvents:
    def test_error_listener(self, fake_server, pipeline):
        player = PlayerEndpoint.builder(pipeline, VIDEO_URL).build()
        received = threading.Event()
        events = []

        def on_error(event):
            events.append(event)
            received.set()

        player.add_error_listener(on_error)
        assert list(fake_server.subscriptions.values()) == [(player.id, "Error")]

        fake_server.emit_event(
            player.id, "Error", {"description": "Cannot open uri", "errorCode": 5}
        )

        assert received.wait(timeout=5)
        assert isinstance(events[0], ErrorEvent)
        assert events[0].description == "Cannot open uri"
        assert events[0].error_code == 5

    def test_stopped_listener(self, fake_server, pipeline):
        recorder = RecorderEndpoint.builder(pipeline, "file:///tmp/out.webm").build()
        received = threading.Event()
        events = []

        def on_stopped(event):
            events.append(event)
            received.set()

        recorder.add_stopped_listener(on_stopped)
        fake_server.emit_event(recorder.id, "Stopped")

        assert received.wait(timeout=5)
        assert type(events[0]) is MediaEvent
        assert events[0].type == "Stopped"
        assert events[0].source == recorder.id
