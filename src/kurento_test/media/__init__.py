"""Media file inspection."""

from kurento_test.media.inspector import MediaInfo, MediaInspector, StreamInfo

__all__ = ["MediaInfo", "MediaInspector", "StreamInfo"]
