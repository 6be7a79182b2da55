"""Stream events and their Server-Sent Events wire format.

A frame is an optional ``event: <name>`` line, one ``data: <json>`` line and
a blank line. Unnamed frames carry ``{"chunk": text}``.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from rolebridge.utils.constants import (
    SSE_EVENT_CONNECTED,
    SSE_EVENT_DONE,
    SSE_EVENT_ERROR,
)

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    CONNECTED = "connected"
    CHUNK = "chunk"
    DONE = "done"
    ERROR = "error"


_EVENT_NAMES = {
    EventType.CONNECTED: SSE_EVENT_CONNECTED,
    EventType.DONE: SSE_EVENT_DONE,
    EventType.ERROR: SSE_EVENT_ERROR,
}


@dataclass(frozen=True)
class StreamEvent:
    """One event of a translation stream.

    Exactly one CONNECTED event opens a stream and exactly one of DONE or
    ERROR closes it; CHUNK events in between arrive in emission order.
    """

    type: EventType
    text: str = ""
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def connected(cls) -> "StreamEvent":
        return cls(EventType.CONNECTED)

    @classmethod
    def chunk(cls, text: str) -> "StreamEvent":
        return cls(EventType.CHUNK, text=text)

    @classmethod
    def done(cls, payload: Optional[Dict[str, Any]] = None) -> "StreamEvent":
        return cls(EventType.DONE, payload=payload or {})

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(EventType.ERROR, text=message)

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.DONE, EventType.ERROR)

    def data(self) -> Dict[str, Any]:
        """JSON payload carried on the frame's data line."""
        if self.type is EventType.CHUNK:
            return {"chunk": self.text}
        if self.type is EventType.ERROR:
            return {"error": self.text}
        return dict(self.payload or {})

    def to_frame(self) -> str:
        return encode_frame(_EVENT_NAMES.get(self.type), self.data())


def encode_frame(event: Optional[str], data: Dict[str, Any]) -> str:
    """Encode one SSE frame."""
    head = f"event: {event}\n" if event else ""
    return f"{head}data: {json.dumps(data, ensure_ascii=False)}\n\n"


def parse_frame(frame: str) -> Optional[StreamEvent]:
    """Decode one complete frame (without its terminating blank line).

    Returns:
        The event, or None when the frame has no data line or the data is
        not a JSON object.
    """
    event_name = ""
    data_lines: List[str] = []
    for line in frame.split("\n"):
        line = line.rstrip("\r")
        if line.startswith("event:"):
            event_name = line[6:].strip()
        elif line.startswith("data:"):
            data_lines.append(line[5:].lstrip(" "))

    if not data_lines:
        return None

    raw = "\n".join(data_lines)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Skipping SSE frame with invalid JSON: %s", raw[:200])
        return None
    if not isinstance(data, dict):
        logger.warning("Skipping SSE frame with non-object data: %s", raw[:200])
        return None

    if event_name == SSE_EVENT_CONNECTED:
        return StreamEvent.connected()
    if event_name == SSE_EVENT_DONE:
        return StreamEvent.done(data)
    if event_name == SSE_EVENT_ERROR:
        return StreamEvent.error(str(data.get("error", "")))
    if "chunk" in data:
        return StreamEvent.chunk(str(data["chunk"]))
    return None


class FrameDecoder:
    """Incremental SSE decoder.

    Bytes are buffered until a blank line completes a frame; the partial
    tail stays in the buffer until more bytes arrive.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def feed(self, data: Union[bytes, str]) -> List[StreamEvent]:
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        self._buffer += data.replace("\r\n", "\n")

        events: List[StreamEvent] = []
        while "\n\n" in self._buffer:
            frame, self._buffer = self._buffer.split("\n\n", 1)
            event = parse_frame(frame)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> List[StreamEvent]:
        """Decode whatever is left once the byte stream has ended."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not tail.strip():
            return []
        event = parse_frame(tail)
        return [event] if event is not None else []

    @property
    def pending(self) -> str:
        """Buffered text of the incomplete frame, if any."""
        return self._buffer
