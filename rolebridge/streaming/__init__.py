"""Stream events, SSE framing and incremental frame decoding."""

from .events import EventType, FrameDecoder, StreamEvent, encode_frame, parse_frame
from .transport import SSE_HEADERS, SSE_MEDIA_TYPE, error_message_for, sse_frames

__all__ = [
    "EventType",
    "FrameDecoder",
    "StreamEvent",
    "encode_frame",
    "parse_frame",
    "SSE_HEADERS",
    "SSE_MEDIA_TYPE",
    "error_message_for",
    "sse_frames",
]
