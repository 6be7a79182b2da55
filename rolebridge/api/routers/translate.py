"""Translation endpoints.

Each endpoint checks the upstream configuration, validates the body and only
then opens a Server-Sent Events stream. Errors raised after that point are
delivered as the stream's terminal error frame.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from rolebridge.streaming.events import StreamEvent
from rolebridge.streaming.transport import SSE_HEADERS, SSE_MEDIA_TYPE, sse_frames
from rolebridge.utils.validators import (
    validate_analysis_json,
    validate_answers,
    validate_content,
    validate_context,
    validate_direction,
    validate_original_text,
)

from ..config import config
from ..models.translate import AnalyzeRequest, DirectRequest, SynthesizeRequest
from ..state import AppState, get_app_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["translate"])


def _event_stream(events: AsyncIterator[StreamEvent]) -> StreamingResponse:
    return StreamingResponse(
        sse_frames(events),
        media_type=SSE_MEDIA_TYPE,
        headers=SSE_HEADERS,
    )


@router.post("/direct")
async def direct_translate(
    request: DirectRequest, state: AppState = Depends(get_app_state)
) -> StreamingResponse:
    """Translate in one streamed call.

    Returns:
        StreamingResponse of chunk frames followed by ``done`` or ``error``.

    Raises:
        ConfigurationError: Upstream settings are missing (500).
        ValidationError: Bad direction or content (400).
    """
    config.validate_llm_config()
    direction = validate_direction(request.direction)
    content = validate_content(request.content, config.MAX_CONTENT_LENGTH)
    service = state.require("direct")

    state.audit.log_request(
        "/api/direct", {"direction": direction.value, "content": content}
    )
    return _event_stream(service.stream(direction, content))


@router.post("/interactive/analyze")
async def interactive_analyze(
    request: AnalyzeRequest, state: AppState = Depends(get_app_state)
) -> StreamingResponse:
    """Stream the analysis text; ``done`` carries ``{"json": AnalysisResult}``."""
    config.validate_llm_config()
    direction = validate_direction(request.direction)
    content = validate_content(request.content, config.MAX_CONTENT_LENGTH)
    context = validate_context(request.context)
    service = state.require("analysis")

    state.audit.log_request(
        "/api/interactive/analyze",
        {"direction": direction.value, "content": content, "hasContext": bool(context)},
    )
    return _event_stream(service.stream(direction, content, context))


@router.post("/interactive/synthesize")
async def interactive_synthesize(
    request: SynthesizeRequest, state: AppState = Depends(get_app_state)
) -> StreamingResponse:
    """Stream the final document built from analysis, answers and original text."""
    config.validate_llm_config()
    analysis = validate_analysis_json(request.analysis_json)
    original_text = validate_original_text(request.original_text)
    answers = validate_answers(request.answers)
    context = validate_context(request.context)
    service = state.require("synthesis")

    state.audit.log_request(
        "/api/interactive/synthesize",
        {
            "direction": analysis.translation_direction.value,
            "answersCount": len(answers),
            "originalText": original_text,
        },
    )
    return _event_stream(service.stream(analysis, answers, original_text, context))
