"""Server-side SSE framing for translation streams."""

from __future__ import annotations

import logging
from typing import AsyncIterator

from rolebridge.streaming.events import EventType, StreamEvent
from rolebridge.utils.exceptions import (
    CancelledRequestError,
    LLMTimeoutError,
    MalformedResponseError,
    ResponseNotJsonError,
    TranslatorError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

GENERIC_ERROR_MESSAGE = "Translation failed, please try again later"
INCOMPLETE_STREAM_MESSAGE = "Translation stream ended unexpectedly"


def error_message_for(error: BaseException) -> str:
    """Map an exception raised by a stage to the text of the error frame."""
    if isinstance(error, LLMTimeoutError):
        return f"LLM request timed out: {error}"
    if isinstance(error, UpstreamError):
        return f"LLM request failed: {error}"
    if isinstance(error, MalformedResponseError):
        return f"LLM returned an unreadable response: {error}"
    if isinstance(error, ResponseNotJsonError):
        return f"Analysis result is not valid JSON: {error}"
    if isinstance(error, CancelledRequestError):
        return "Request cancelled"
    if isinstance(error, TranslatorError):
        return str(error) or GENERIC_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


async def sse_frames(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """Frame a stage's events for a StreamingResponse.

    Yields exactly one connected frame, the chunk frames in order, then
    exactly one terminal frame. Nothing is yielded after the terminal frame.

    Args:
        events: Async generator of stream events produced by a stage.

    Yields:
        Encoded SSE frames.
    """
    yield StreamEvent.connected().to_frame()

    terminal = None
    try:
        async for event in events:
            if event.type is EventType.CONNECTED:
                continue
            if event.is_terminal:
                terminal = event
                break
            yield event.to_frame()
    except TranslatorError as e:
        logger.warning("Stream failed: %s: %s", type(e).__name__, e)
        terminal = StreamEvent.error(error_message_for(e))
    except Exception as e:
        logger.exception("Unexpected error while streaming: %s", e)
        terminal = StreamEvent.error(GENERIC_ERROR_MESSAGE)
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.error("Failed to close stage stream: %s", e)

    if terminal is None:
        logger.error("Stage ended without a terminal event")
        terminal = StreamEvent.error(INCOMPLETE_STREAM_MESSAGE)

    yield terminal.to_frame()
