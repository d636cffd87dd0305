"""
Proxies for remote media objects.

Every proxy holds the id the media server assigned on creation and turns
method calls into "invoke" requests. Elements are created through fluent
builders:

    pipeline = client.create_media_pipeline()
    player = PlayerEndpoint.builder(pipeline, "http://files/video.webm").build()
    recorder = (
        RecorderEndpoint.builder(pipeline, "file:///tmp/out.mp4")
        .with_media_profile(MediaProfileSpecType.MP4)
        .build()
    )
    player.connect(recorder)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Generic, TypeVar

from kurento_test.client.models import (
    EndOfStreamEvent,
    ErrorEvent,
    IceCandidate,
    IceCandidateFoundEvent,
    MediaEvent,
    MediaProfileSpecType,
    MediaType,
)

if TYPE_CHECKING:
    from kurento_test.client.kurento_client import KurentoClient, ListenerSubscription

logger = logging.getLogger(__name__)

EventListener = Callable[[MediaEvent], None]
ElementT = TypeVar("ElementT", bound="MediaElement")


class MediaObject:
    """Base proxy for any object living in the media server."""

    remote_type: ClassVar[str] = "MediaObject"

    def __init__(self, client: KurentoClient, object_id: str) -> None:
        self._client = client
        self.id = object_id

    def _invoke(self, operation: str, **operation_params: Any) -> Any:
        return self._client.invoke(self.id, operation, operation_params)

    def release(self) -> None:
        """Destroy the remote object (and, for pipelines, all its elements)."""
        self._client.release(self)

    def add_event_listener(self, event_type: str, listener: EventListener) -> ListenerSubscription:
        """Call listener on the client's reader thread for each event_type event."""
        return self._client.subscribe(self, event_type, listener)

    def remove_event_listener(self, subscription: ListenerSubscription) -> None:
        self._client.unsubscribe(subscription)

    def add_error_listener(self, listener: Callable[[ErrorEvent], None]) -> ListenerSubscription:
        return self.add_event_listener("Error", listener)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MediaObject) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class MediaPipeline(MediaObject):
    remote_type = "MediaPipeline"


class MediaElement(MediaObject):
    """An element inside a pipeline that can be connected to other elements."""

    remote_type = "MediaElement"

    def __init__(self, client: KurentoClient, object_id: str, pipeline: MediaPipeline) -> None:
        super().__init__(client, object_id)
        self.pipeline = pipeline

    def connect(self, sink: MediaElement, media_type: MediaType | None = None) -> None:
        """Send this element's media (all types, or only media_type) to sink."""
        params: dict[str, Any] = {"sink": sink.id}
        if media_type is not None:
            params["mediaType"] = media_type.value
        self._client.invoke(self.id, "connect", params)
        logger.debug(f"Connected {self!r} -> {sink!r} ({media_type or 'all'})")

    def disconnect(self, sink: MediaElement, media_type: MediaType | None = None) -> None:
        params: dict[str, Any] = {"sink": sink.id}
        if media_type is not None:
            params["mediaType"] = media_type.value
        self._client.invoke(self.id, "disconnect", params)


class ElementBuilder(Generic[ElementT]):
    """Collects constructor params and creates the element on build()."""

    def __init__(
        self,
        element_cls: type[ElementT],
        pipeline: MediaPipeline,
        **constructor_params: Any,
    ) -> None:
        self._element_cls = element_cls
        self._pipeline = pipeline
        self._params: dict[str, Any] = {"mediaPipeline": pipeline.id, **constructor_params}
        self._properties: dict[str, Any] = {}

    def with_property(self, name: str, value: Any) -> ElementBuilder[ElementT]:
        """Attach a custom property to the created object."""
        self._properties[name] = value
        return self

    def build(self) -> ElementT:
        """Create the element in the media server."""
        return self._pipeline._client.create_element(
            self._element_cls,
            self._pipeline,
            self._params,
            self._properties,
        )


class PlayerEndpoint(MediaElement):
    """Reads media from a URI (file, http, s3, ...) and injects it in the pipeline."""

    remote_type = "PlayerEndpoint"

    class Builder(ElementBuilder["PlayerEndpoint"]):
        def __init__(self, pipeline: MediaPipeline, uri: str) -> None:
            super().__init__(PlayerEndpoint, pipeline, uri=uri)

        def use_encoded_media(self) -> PlayerEndpoint.Builder:
            self._params["useEncodedMedia"] = True
            return self

        def with_network_cache(self, milliseconds: int) -> PlayerEndpoint.Builder:
            self._params["networkCache"] = milliseconds
            return self

    @classmethod
    def builder(cls, pipeline: MediaPipeline, uri: str) -> PlayerEndpoint.Builder:
        return cls.Builder(pipeline, uri)

    def play(self) -> None:
        self._invoke("play")

    def pause(self) -> None:
        self._invoke("pause")

    def stop(self) -> None:
        self._invoke("stop")

    def get_position(self) -> int:
        """Current position in milliseconds."""
        return int(self._invoke("getPosition"))

    def set_position(self, position_ms: int) -> None:
        """Seek to position_ms."""
        self._invoke("setPosition", position=position_ms)

    def get_video_info(self) -> dict[str, Any]:
        """Seekability, duration and seek window of the media being played."""
        return self._invoke("getVideoInfo") or {}

    def add_end_of_stream_listener(
        self, listener: Callable[[EndOfStreamEvent], None]
    ) -> ListenerSubscription:
        return self.add_event_listener("EndOfStream", listener)


class RecorderEndpoint(MediaElement):
    """Stores the media it receives to a URI."""

    remote_type = "RecorderEndpoint"

    class Builder(ElementBuilder["RecorderEndpoint"]):
        def __init__(self, pipeline: MediaPipeline, uri: str) -> None:
            super().__init__(RecorderEndpoint, pipeline, uri=uri)

        def with_media_profile(self, profile: MediaProfileSpecType) -> RecorderEndpoint.Builder:
            self._params["mediaProfile"] = profile.value
            return self

        def stop_on_end_of_stream(self) -> RecorderEndpoint.Builder:
            self._params["stopOnEndOfStream"] = True
            return self

    @classmethod
    def builder(cls, pipeline: MediaPipeline, uri: str) -> RecorderEndpoint.Builder:
        return cls.Builder(pipeline, uri)

    def record(self) -> None:
        self._invoke("record")

    def pause(self) -> None:
        self._invoke("pause")

    def stop(self) -> None:
        self._invoke("stop")

    def stop_and_wait(self) -> None:
        """Stop and return once the recording has been flushed to storage."""
        self._invoke("stopAndWait")

    def add_recording_listener(self, listener: EventListener) -> ListenerSubscription:
        return self.add_event_listener("Recording", listener)

    def add_stopped_listener(self, listener: EventListener) -> ListenerSubscription:
        return self.add_event_listener("Stopped", listener)


class WebRtcEndpoint(MediaElement):
    """Peer connection endpoint negotiated through SDP and trickle ICE."""

    remote_type = "WebRtcEndpoint"

    class Builder(ElementBuilder["WebRtcEndpoint"]):
        def __init__(self, pipeline: MediaPipeline) -> None:
            super().__init__(WebRtcEndpoint, pipeline)

    @classmethod
    def builder(cls, pipeline: MediaPipeline) -> WebRtcEndpoint.Builder:
        return cls.Builder(pipeline)

    def process_offer(self, offer: str) -> str:
        """Process a remote SDP offer and return the SDP answer."""
        return self._invoke("processOffer", offer=offer)

    def generate_offer(self) -> str:
        return self._invoke("generateOffer")

    def process_answer(self, answer: str) -> str:
        return self._invoke("processAnswer", answer=answer)

    def gather_candidates(self) -> None:
        """Start gathering local candidates; each one raises IceCandidateFound."""
        self._invoke("gatherCandidates")

    def add_ice_candidate(self, candidate: IceCandidate) -> None:
        self._invoke("addIceCandidate", candidate=candidate.to_server())

    def add_ice_candidate_found_listener(
        self, listener: Callable[[IceCandidateFoundEvent], None]
    ) -> ListenerSubscription:
        return self.add_event_listener("IceCandidateFound", listener)
