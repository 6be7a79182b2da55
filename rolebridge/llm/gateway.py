"""Gateway to an OpenAI-compatible chat completions endpoint.

Every call is a single attempt: there are no retries, no fallbacks and no
circuit breaking. Failures surface as LLMError subclasses, cancellation as
CancelledRequestError, and each call leaves an audit trail of its
parameters, the full request and either the full response or the error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
)

import httpx

from rolebridge.llm.prompts import Stage
from rolebridge.models.translation import Direction
from rolebridge.utils.audit_logger import AuditLogger, NullAuditLogger
from rolebridge.utils.constants import DEFAULT_MAX_TOKENS, DEFAULT_REQUEST_TIMEOUT
from rolebridge.utils.exceptions import (
    CancelledRequestError,
    LLMError,
    LLMTimeoutError,
    MalformedResponseError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

Messages = List[Dict[str, str]]


async def _next_line(lines: AsyncIterator[str]) -> Optional[str]:
    try:
        return await lines.__anext__()
    except StopAsyncIteration:
        return None


class LLMGateway:
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint.

    One pooled ``httpx.AsyncClient`` is shared by all requests. The timeout
    bounds each wait for upstream data, so a slow but steady stream is never
    cut off.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        audit: Optional[AuditLogger] = None,
        client: Optional[httpx.AsyncClient] = None,
        debug: bool = False,
    ):
        """Initialize the gateway.

        Args:
            api_key: Bearer credential for the endpoint
            base_url: Base URL, ``/chat/completions`` is appended
            model: Model identifier sent with every request
            timeout: Seconds to wait for upstream data
            max_tokens: Default output token ceiling
            audit: Audit trail sink (nothing is recorded when omitted)
            client: Pre-built HTTP client, mainly for tests
            debug: Log raw response text at DEBUG level
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.audit = audit or NullAuditLogger()
        self.debug = debug
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_config(cls, cfg: Any, audit: Optional[AuditLogger] = None) -> "LLMGateway":
        """Build a gateway from a TranslatorConfig."""
        cfg.validate_llm_config()
        return cls(
            api_key=cfg.LLM_API_KEY,
            base_url=cfg.LLM_API_BASE_URL,
            model=cfg.get_llm_model(),
            timeout=cfg.LLM_TIMEOUT_SECONDS,
            max_tokens=cfg.LLM_MAX_TOKENS,
            audit=audit,
            debug=cfg.DEBUG,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(
        self,
        messages: Messages,
        max_tokens: Optional[int],
        structured_output: bool,
        stream: bool,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
            "stream": stream,
        }
        if structured_output:
            payload["response_format"] = {"type": "json_object"}
        return payload

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    def _record_start(
        self,
        messages: Messages,
        payload: Dict[str, Any],
        direction: Optional[Direction],
        stage: Stage,
        content_length: Optional[int],
    ) -> float:
        direction_value = direction.value if direction else None
        self.audit.log_llm_call(
            model=self.model,
            direction=direction_value,
            stage=stage.value,
            max_tokens=payload["max_tokens"],
            stream=payload["stream"],
            content_length=content_length,
        )
        self.audit.log_llm_request(
            model=self.model,
            direction=direction_value,
            stage=stage.value,
            stream=payload["stream"],
            messages=messages,
        )
        return time.perf_counter()

    def _record_response(
        self,
        content: str,
        direction: Optional[Direction],
        stage: Stage,
        started: float,
    ) -> None:
        if self.debug:
            logger.debug("Raw %s response: %s", stage.value, content)
        self.audit.log_llm_response(
            model=self.model,
            direction=direction.value if direction else None,
            stage=stage.value,
            content=content,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

    def _record_error(
        self,
        error: BaseException,
        direction: Optional[Direction],
        stage: Stage,
        started: float,
    ) -> None:
        self.audit.log_llm_error(
            model=self.model,
            direction=direction.value if direction else None,
            stage=stage.value,
            error=error,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    def _translate_transport_error(self, error: httpx.HTTPError) -> LLMError:
        if isinstance(error, httpx.TimeoutException):
            return LLMTimeoutError(f"No data from LLM endpoint within {self.timeout}s")
        return UpstreamError(f"Could not reach LLM endpoint: {error}")

    @staticmethod
    def _upstream_error(status_code: int, body: bytes) -> UpstreamError:
        detail = body.decode("utf-8", errors="replace").strip()
        try:
            data = json.loads(detail)
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                detail = data["error"].get("message") or detail
        except json.JSONDecodeError:
            pass
        return UpstreamError(
            f"LLM endpoint returned HTTP {status_code}: {detail[:500]}",
            status_code=status_code,
        )

    @staticmethod
    def _parse_stream_line(line: str) -> Tuple[Optional[str], bool]:
        """Decode one line of an upstream event stream.

        Returns:
            (fragment or None, True once the ``[DONE]`` sentinel is seen)

        Raises:
            MalformedResponseError: If a data line is not a JSON object
            UpstreamError: If the line carries an error object
        """
        line = line.strip()
        if not line.startswith("data:"):
            return None, False

        data = line[5:].strip()
        if data == "[DONE]":
            return None, True

        try:
            obj = json.loads(data)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Unreadable stream line: {data[:200]}") from e
        if not isinstance(obj, dict):
            raise MalformedResponseError(f"Unexpected stream line: {data[:200]}")

        error = obj.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise UpstreamError(
                f"LLM stream error: {message}",
                status_code=code if isinstance(code, int) else None,
            )

        choices = obj.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None, False
        delta = choices[0].get("delta") or {}
        return delta.get("content") or None, False

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def _await_with_cancellation(
        self,
        coro: Awaitable,
        cancellation_event: Optional[asyncio.Event],
    ):
        """Await a coroutine while honoring a cancellation event.

        If the event is set while the coroutine is running, cancel it and
        raise CancelledRequestError.
        """
        if cancellation_event is None:
            return await coro

        task = asyncio.ensure_future(coro)
        wait_task = asyncio.create_task(cancellation_event.wait())

        try:
            done, pending = await asyncio.wait(
                {task, wait_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            wait_task.cancel()
            raise

        if wait_task in done and cancellation_event.is_set():
            task.cancel()
            # Let the read unwind before the response is closed
            await asyncio.wait({task})
            raise CancelledRequestError("LLM request cancelled")

        # Cancellation not triggered; ensure waiter is cleaned up
        wait_task.cancel()
        return await task

    @staticmethod
    def _check_cancelled(cancellation_event: Optional[asyncio.Event]) -> None:
        if cancellation_event is not None and cancellation_event.is_set():
            raise CancelledRequestError("LLM request cancelled")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: Messages,
        *,
        max_tokens: Optional[int] = None,
        structured_output: bool = False,
        direction: Optional[Direction] = None,
        stage: Stage = Stage.DIRECT,
        content_length: Optional[int] = None,
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> str:
        """Run one non-streaming completion.

        Args:
            messages: Chat messages (system first)
            max_tokens: Output ceiling, defaults to the gateway's
            structured_output: Ask for a JSON object response
            direction: Translation direction, for the audit trail
            stage: Pipeline stage, for the audit trail
            content_length: Length of the user content, for the audit trail
            cancellation_event: Set to abandon the request

        Returns:
            Full response text

        Raises:
            UpstreamError: Non-2xx status or transport failure
            LLMTimeoutError: No response within the timeout
            MalformedResponseError: Response body cannot be decoded
            CancelledRequestError: Cancellation event was set
        """
        payload = self._payload(messages, max_tokens, structured_output, stream=False)
        started = self._record_start(messages, payload, direction, stage, content_length)

        try:
            self._check_cancelled(cancellation_event)
            try:
                response = await self._await_with_cancellation(
                    self._client.post(
                        self.endpoint, headers=self._headers(), json=payload
                    ),
                    cancellation_event,
                )
            except httpx.HTTPError as e:
                raise self._translate_transport_error(e) from e

            if response.status_code >= 400:
                raise self._upstream_error(response.status_code, response.content)

            try:
                content = response.json()["choices"][0]["message"]["content"]
            except (ValueError, KeyError, IndexError, TypeError) as e:
                raise MalformedResponseError(
                    f"Unexpected completion body: {response.text[:200]}"
                ) from e
            if not isinstance(content, str):
                raise MalformedResponseError("Completion message has no text content")
        except (LLMError, CancelledRequestError) as e:
            self._record_error(e, direction, stage, started)
            raise

        self._record_response(content, direction, stage, started)
        return content

    async def stream_completion(
        self,
        messages: Messages,
        *,
        max_tokens: Optional[int] = None,
        structured_output: bool = False,
        direction: Optional[Direction] = None,
        stage: Stage = Stage.DIRECT,
        content_length: Optional[int] = None,
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """Run one streaming completion.

        Yields:
            Text fragments in arrival order. Iteration ends at the upstream
            ``[DONE]`` sentinel or when the body ends.

        Raises:
            Same as complete(). Closing the iterator early closes the
            upstream response.
        """
        payload = self._payload(messages, max_tokens, structured_output, stream=True)
        started = self._record_start(messages, payload, direction, stage, content_length)
        parts: List[str] = []

        try:
            self._check_cancelled(cancellation_event)
            try:
                async with self._client.stream(
                    "POST", self.endpoint, headers=self._headers(), json=payload
                ) as response:
                    if response.status_code >= 400:
                        body = await response.aread()
                        raise self._upstream_error(response.status_code, body)

                    lines = response.aiter_lines()
                    while True:
                        line = await self._await_with_cancellation(
                            _next_line(lines), cancellation_event
                        )
                        if line is None:
                            break
                        fragment, finished = self._parse_stream_line(line)
                        if finished:
                            break
                        if fragment:
                            parts.append(fragment)
                            yield fragment
            except httpx.HTTPError as e:
                raise self._translate_transport_error(e) from e
        except (LLMError, CancelledRequestError) as e:
            self._record_error(e, direction, stage, started)
            raise

        self._record_response("".join(parts), direction, stage, started)

    async def complete_streaming(
        self,
        messages: Messages,
        on_chunk: Callable[[str], None],
        **kwargs: Any,
    ) -> str:
        """Stream a completion, calling ``on_chunk`` once per fragment.

        Returns:
            The accumulated response text
        """
        parts: List[str] = []
        async for fragment in self.stream_completion(messages, **kwargs):
            parts.append(fragment)
            on_chunk(fragment)
        return "".join(parts)

    async def close(self) -> None:
        """Release the HTTP client if the gateway created it."""
        if self._owns_client:
            await self._client.aclose()
