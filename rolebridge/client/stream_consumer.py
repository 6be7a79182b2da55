"""Client-side consumer for translation event streams.

Turns the raw bytes of an SSE response into incremental text updates and a
final outcome, and stops immediately when the caller cancels.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Optional,
    Tuple,
    Union,
)

import httpx

from rolebridge.streaming.events import EventType, FrameDecoder, StreamEvent

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str, str], None]
StateCallback = Callable[["ConsumerState"], None]

_CANCELLED = object()
_EXHAUSTED = object()


class ConsumerState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        return self in (
            ConsumerState.COMPLETED,
            ConsumerState.CANCELLED,
            ConsumerState.FAILED,
        )


class CancellationToken:
    """Cancellation signal shared between a caller and a running stream."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def event(self) -> asyncio.Event:
        return self._event

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class StreamOutcome:
    """How a stream ended and what it produced."""

    state: ConsumerState
    text: str = ""
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is ConsumerState.COMPLETED


async def _next_chunk(iterator: AsyncIterator[Union[bytes, str]]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _EXHAUSTED


async def race_cancellation(
    awaitable: Awaitable[Any], token: CancellationToken
) -> Tuple[bool, Any]:
    """Await ``awaitable`` unless the token is cancelled first.

    Returns:
        ``(True, None)`` when the token won; the awaitable has then been
        cancelled and unwound. Otherwise ``(False, result)``.
    """
    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if not task.done():
        task.cancel()
        await asyncio.wait({task})
        return True, None
    waiter.cancel()
    return False, task.result()


class StreamConsumer:
    """Consume one translation stream.

    State moves IDLE -> CONNECTING -> STREAMING and ends in exactly one of
    COMPLETED, CANCELLED or FAILED. Chunks are appended to ``text`` and
    reported through ``on_chunk(chunk, full_text)``; once the token is
    cancelled no further chunk callback fires, even for frames that were
    already received.
    """

    def __init__(
        self,
        on_chunk: Optional[ChunkCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ):
        self.on_chunk = on_chunk
        self.on_state_change = on_state_change
        self.state = ConsumerState.IDLE
        self.text = ""

    def _set_state(self, state: ConsumerState) -> None:
        if state is self.state:
            return
        logger.debug("Stream state %s -> %s", self.state.value, state.value)
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _finish(
        self,
        state: ConsumerState,
        payload: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> StreamOutcome:
        self._set_state(state)
        return StreamOutcome(state=state, text=self.text, payload=payload, error=error)

    def begin(self) -> None:
        """Mark the request as sent and awaiting a response."""
        self._set_state(ConsumerState.CONNECTING)

    def fail(self, message: str) -> StreamOutcome:
        """End the stream as FAILED without reading anything."""
        logger.warning("Stream failed: %s", message)
        return self._finish(ConsumerState.FAILED, error=message)

    def cancel(self) -> StreamOutcome:
        return self._finish(ConsumerState.CANCELLED)

    def _handle(self, event: StreamEvent) -> Optional[StreamOutcome]:
        if event.type is EventType.CONNECTED:
            self._set_state(ConsumerState.STREAMING)
            return None
        if event.type is EventType.CHUNK:
            self._set_state(ConsumerState.STREAMING)
            self.text += event.text
            if self.on_chunk is not None:
                self.on_chunk(event.text, self.text)
            return None
        if event.type is EventType.DONE:
            return self._finish(ConsumerState.COMPLETED, payload=event.payload)
        return self.fail(event.text or "Server reported an error")

    @staticmethod
    async def _read(
        iterator: AsyncIterator[Union[bytes, str]], token: CancellationToken
    ) -> Any:
        """Wait for the next chunk or for cancellation, whichever comes first."""
        cancelled, data = await race_cancellation(_next_chunk(iterator), token)
        return _CANCELLED if cancelled else data

    async def consume(
        self,
        chunks: AsyncIterable[Union[bytes, str]],
        token: Optional[CancellationToken] = None,
    ) -> StreamOutcome:
        """Read the stream to its end.

        Args:
            chunks: Raw response body, e.g. ``response.aiter_bytes()``
            token: Cancels the read loop when set

        Returns:
            The outcome. Transport errors are reported as FAILED rather
            than raised.
        """
        if self.state is ConsumerState.IDLE:
            self.begin()
        token = token or CancellationToken()
        if token.cancelled:
            return self.cancel()

        decoder = FrameDecoder()
        iterator = chunks.__aiter__()
        try:
            while True:
                data = await self._read(iterator, token)
                if data is _CANCELLED or token.cancelled:
                    return self.cancel()
                events = decoder.feed(data) if data is not _EXHAUSTED else decoder.flush()
                for event in events:
                    if token.cancelled:
                        return self.cancel()
                    outcome = self._handle(event)
                    if outcome is not None:
                        return outcome
                if data is _EXHAUSTED:
                    break
        except (httpx.HTTPError, OSError) as e:
            return self.fail(f"Connection error: {e}")
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        return self.fail("Stream ended without a completion event")
