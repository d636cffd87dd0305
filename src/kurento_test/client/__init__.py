"""
Client for the media server's JSON-RPC API.

Exports:
    KurentoClient: Connection and object factory
    MediaPipeline, PlayerEndpoint, RecorderEndpoint, WebRtcEndpoint: Proxies
    MediaType, MediaProfileSpecType, IceCandidate: API types
    MediaEvent, EndOfStreamEvent, IceCandidateFoundEvent, ErrorEvent: Events
"""

from kurento_test.client.jsonrpc import JsonRpcClient
from kurento_test.client.kurento_client import KurentoClient, ListenerSubscription
from kurento_test.client.media_objects import (
    MediaElement,
    MediaObject,
    MediaPipeline,
    PlayerEndpoint,
    RecorderEndpoint,
    WebRtcEndpoint,
)
from kurento_test.client.models import (
    EndOfStreamEvent,
    ErrorEvent,
    IceCandidate,
    IceCandidateFoundEvent,
    MediaEvent,
    MediaProfileSpecType,
    MediaType,
)

__all__ = [
    "EndOfStreamEvent",
    "ErrorEvent",
    "IceCandidate",
    "IceCandidateFoundEvent",
    "JsonRpcClient",
    "KurentoClient",
    "ListenerSubscription",
    "MediaElement",
    "MediaEvent",
    "MediaObject",
    "MediaPipeline",
    "MediaProfileSpecType",
    "MediaType",
    "PlayerEndpoint",
    "RecorderEndpoint",
    "WebRtcEndpoint",
]
