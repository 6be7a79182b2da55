"""HTTP client for the rolebridge translation endpoints."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from rolebridge.models.translation import AnalysisResult, Answer, Direction
from rolebridge.utils.constants import DEFAULT_PORT, DEFAULT_REQUEST_TIMEOUT

from .stream_consumer import (
    CancellationToken,
    ChunkCallback,
    ConsumerState,
    StateCallback,
    StreamConsumer,
    StreamOutcome,
    race_cancellation,
)

logger = logging.getLogger(__name__)

AnswerProvider = Callable[
    [AnalysisResult], Union[Sequence[Answer], Awaitable[Sequence[Answer]]]
]


@dataclass
class InteractiveOutcome:
    """Result of a full analyze, clarify and synthesize run."""

    outcome: StreamOutcome
    analysis: Optional[AnalysisResult] = None
    answers: List[Answer] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome.ok


class TranslationApiClient:
    """Async client for the SSE translation endpoints.

    Every call returns a StreamOutcome; HTTP and transport failures are
    reported as FAILED outcomes rather than raised.
    """

    def __init__(
        self,
        base_url: str = f"http://127.0.0.1:{DEFAULT_PORT}",
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(timeout)
        )

    async def __aenter__(self) -> "TranslationApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return f"Request failed with HTTP {response.status_code}"

    async def _post_stream(
        self,
        path: str,
        body: Dict[str, Any],
        token: Optional[CancellationToken],
        on_chunk: Optional[ChunkCallback],
        on_state_change: Optional[StateCallback],
    ) -> StreamOutcome:
        consumer = StreamConsumer(on_chunk=on_chunk, on_state_change=on_state_change)
        token = token or CancellationToken()
        if token.cancelled:
            return consumer.cancel()

        consumer.begin()
        request = self._client.build_request(
            "POST", path, json=body, headers={"Accept": "text/event-stream"}
        )
        try:
            # Cancel applies while waiting for the response head too
            cancelled, response = await race_cancellation(
                self._client.send(request, stream=True), token
            )
        except httpx.HTTPError as e:
            return consumer.fail(f"Connection error: {e}")
        if cancelled:
            return consumer.cancel()

        try:
            if response.status_code >= 400:
                await response.aread()
                return consumer.fail(self._error_message(response))
            return await consumer.consume(response.aiter_bytes(), token)
        except httpx.HTTPError as e:
            return consumer.fail(f"Connection error: {e}")
        finally:
            await response.aclose()

    async def direct(
        self,
        direction: Direction,
        content: str,
        token: Optional[CancellationToken] = None,
        on_chunk: Optional[ChunkCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> StreamOutcome:
        return await self._post_stream(
            "/api/direct",
            {"direction": Direction(direction).value, "content": content},
            token,
            on_chunk,
            on_state_change,
        )

    async def analyze(
        self,
        direction: Direction,
        content: str,
        context: str = "",
        token: Optional[CancellationToken] = None,
        on_chunk: Optional[ChunkCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> StreamOutcome:
        body: Dict[str, Any] = {"direction": Direction(direction).value, "content": content}
        if context:
            body["context"] = context
        return await self._post_stream(
            "/api/interactive/analyze", body, token, on_chunk, on_state_change
        )

    async def synthesize(
        self,
        analysis_json: Dict[str, Any],
        answers: Sequence[Answer],
        original_text: str,
        context: str = "",
        token: Optional[CancellationToken] = None,
        on_chunk: Optional[ChunkCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> StreamOutcome:
        body: Dict[str, Any] = {
            "analysisJson": analysis_json,
            "answers": [answer.model_dump() for answer in answers],
            "originalText": original_text,
        }
        if context:
            body["context"] = context
        return await self._post_stream(
            "/api/interactive/synthesize", body, token, on_chunk, on_state_change
        )

    async def interactive(
        self,
        direction: Direction,
        content: str,
        answer_provider: AnswerProvider,
        context: str = "",
        token: Optional[CancellationToken] = None,
        on_chunk: Optional[ChunkCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> InteractiveOutcome:
        """Run analysis, ask for answers when needed, then synthesize.

        Args:
            direction: Translation direction
            content: Text to translate
            answer_provider: Called with the analysis result when questions
                must be asked; may be sync or async
            context: Optional background
            token: Cancels whichever stage is running
            on_chunk: Receives synthesis chunks
            on_state_change: Receives the state of each stage

        Returns:
            InteractiveOutcome whose ``outcome`` is the last stage that ran
        """
        token = token or CancellationToken()
        analysis_outcome = await self.analyze(
            direction, content, context, token=token, on_state_change=on_state_change
        )
        if not analysis_outcome.ok:
            return InteractiveOutcome(outcome=analysis_outcome)

        analysis_json = (analysis_outcome.payload or {}).get("json")
        if not isinstance(analysis_json, dict):
            return InteractiveOutcome(
                outcome=StreamOutcome(
                    state=ConsumerState.FAILED,
                    text=analysis_outcome.text,
                    error="Analysis result missing from response",
                )
            )
        try:
            analysis = AnalysisResult.model_validate(analysis_json)
        except PydanticValidationError as e:
            logger.warning(f"Server returned an invalid analysis result: {e}")
            return InteractiveOutcome(
                outcome=StreamOutcome(
                    state=ConsumerState.FAILED,
                    text=analysis_outcome.text,
                    error="Analysis result does not match the expected schema",
                )
            )

        answers: List[Answer] = []
        if not analysis.skips_clarification:
            provided = answer_provider(analysis)
            if inspect.isawaitable(provided):
                provided = await provided
            answers = list(provided)

        outcome = await self.synthesize(
            analysis_json,
            answers,
            content.strip(),
            context,
            token=token,
            on_chunk=on_chunk,
            on_state_change=on_state_change,
        )
        return InteractiveOutcome(outcome=outcome, analysis=analysis, answers=answers)
