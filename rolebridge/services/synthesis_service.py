"""Synthesis stage: final document from analysis, answers and original text."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from rolebridge.llm.gateway import LLMGateway
from rolebridge.llm.prompts import Stage, build_synthesis_user_prompt, get_template
from rolebridge.models.translation import AnalysisResult, Answer
from rolebridge.streaming.events import StreamEvent
from rolebridge.utils.audit_logger import AuditLogger, NullAuditLogger

logger = logging.getLogger(__name__)


class SynthesisService:
    """Runs the synthesis stage of the interactive pipeline.

    The direction always comes from the analysis result. Unanswered questions
    fall back to their default assumptions through the prompt rules, so an
    empty answer list is valid.
    """

    def __init__(self, gateway: LLMGateway, audit: Optional[AuditLogger] = None):
        self.gateway = gateway
        self.audit = audit or NullAuditLogger()

    def build_messages(
        self,
        analysis: AnalysisResult,
        answers: Sequence[Answer],
        original_text: str,
        context: str = "",
    ) -> List[Dict[str, str]]:
        direction = analysis.translation_direction
        template = get_template(direction, Stage.SYNTHESIS)
        user_prompt = build_synthesis_user_prompt(
            direction,
            analysis.model_dump(mode="json"),
            [answer.model_dump() for answer in answers],
            original_text,
            context,
        )
        return [
            {"role": "system", "content": template.system},
            {"role": "user", "content": user_prompt},
        ]

    def _prepare(
        self,
        analysis: AnalysisResult,
        answers: Sequence[Answer],
        original_text: str,
        context: str,
    ) -> List[Dict[str, str]]:
        self.audit.log_synthesis_input(
            answers_count=len(answers), original_text_length=len(original_text)
        )
        answered = {answer.id for answer in answers}
        unanswered = [i.id for i in analysis.missing_info if i.id not in answered]
        if unanswered:
            logger.info("Using default assumptions for %s", ", ".join(unanswered))
        return self.build_messages(analysis, answers, original_text, context)

    async def stream(
        self,
        analysis: AnalysisResult,
        answers: Sequence[Answer],
        original_text: str,
        context: str = "",
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield one chunk event per upstream fragment, then an empty done."""
        messages = self._prepare(analysis, answers, original_text, context)
        async for fragment in self.gateway.stream_completion(
            messages,
            direction=analysis.translation_direction,
            stage=Stage.SYNTHESIS,
            content_length=len(original_text),
            cancellation_event=cancellation_event,
        ):
            yield StreamEvent.chunk(fragment)
        yield StreamEvent.done()

    async def synthesize(
        self,
        analysis: AnalysisResult,
        answers: Sequence[Answer],
        original_text: str,
        context: str = "",
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> str:
        messages = self._prepare(analysis, answers, original_text, context)
        return await self.gateway.complete(
            messages,
            direction=analysis.translation_direction,
            stage=Stage.SYNTHESIS,
            content_length=len(original_text),
            cancellation_event=cancellation_event,
        )
