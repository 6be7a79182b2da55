"""Analysis stage: turn raw input into a structured AnalysisResult."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from rolebridge.llm.gateway import LLMGateway
from rolebridge.llm.prompts import Stage, build_analysis_user_prompt, get_template
from rolebridge.models.translation import AnalysisResult, Direction
from rolebridge.streaming.events import StreamEvent
from rolebridge.utils.audit_logger import AuditLogger, NullAuditLogger
from rolebridge.utils.constants import LOW_CONFIDENCE_THRESHOLD
from rolebridge.utils.exceptions import ResponseNotJsonError

logger = logging.getLogger(__name__)


def parse_analysis(text: str) -> AnalysisResult:
    """Decode the full analysis output.

    The whole text must be one JSON object matching the analysis schema.
    Nothing is stripped besides surrounding whitespace, and values are taken
    as the model produced them.

    Raises:
        ResponseNotJsonError: If the text is not JSON, not an object, or does
            not satisfy the schema
    """
    cleaned = text.strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseNotJsonError(f"{e.msg} at position {e.pos}") from e

    if not isinstance(data, dict):
        raise ResponseNotJsonError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return AnalysisResult.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in e.errors()[:5]
        )
        raise ResponseNotJsonError(f"schema mismatch in {fields}") from e


class AnalysisService:
    """Runs the analysis stage of the interactive pipeline."""

    def __init__(self, gateway: LLMGateway, audit: Optional[AuditLogger] = None):
        self.gateway = gateway
        self.audit = audit or NullAuditLogger()

    def build_messages(
        self, direction: Direction, content: str, context: str = ""
    ) -> List[Dict[str, str]]:
        template = get_template(direction, Stage.ANALYSIS)
        return [
            {"role": "system", "content": template.system},
            {
                "role": "user",
                "content": build_analysis_user_prompt(direction, content, context),
            },
        ]

    def _accept(self, text: str, direction: Direction) -> AnalysisResult:
        try:
            result = parse_analysis(text)
            if result.translation_direction is not direction:
                raise ResponseNotJsonError(
                    f"direction {result.direction!r} does not match requested "
                    f"{direction.schema_tag!r}"
                )
        except ResponseNotJsonError as e:
            logger.error("Analysis output rejected: %s", e)
            raise

        self.audit.log_analysis_result(
            questions_count=len(result.missing_info),
            can_proceed_directly=result.can_proceed_directly,
            confidence_score=result.confidence_score,
        )
        if result.can_proceed_directly and result.confidence_score < LOW_CONFIDENCE_THRESHOLD:
            logger.warning(
                "Model set can_proceed_directly with confidence %.2f below %.2f",
                result.confidence_score,
                LOW_CONFIDENCE_THRESHOLD,
            )
        return result

    async def stream(
        self,
        direction: Direction,
        content: str,
        context: str = "",
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream the raw analysis text, then the decoded result.

        Yields:
            One chunk event per upstream fragment, then a done event whose
            payload is ``{"json": <analysis result>}``

        Raises:
            ResponseNotJsonError: If the accumulated text is not a valid result
        """
        parts: List[str] = []
        async for fragment in self.gateway.stream_completion(
            self.build_messages(direction, content, context),
            structured_output=True,
            direction=direction,
            stage=Stage.ANALYSIS,
            content_length=len(content),
            cancellation_event=cancellation_event,
        ):
            parts.append(fragment)
            yield StreamEvent.chunk(fragment)

        result = self._accept("".join(parts), direction)
        yield StreamEvent.done({"json": result.model_dump(mode="json")})

    async def analyze(
        self,
        direction: Direction,
        content: str,
        context: str = "",
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> AnalysisResult:
        """Buffered variant of stream()."""
        text = await self.gateway.complete(
            self.build_messages(direction, content, context),
            structured_output=True,
            direction=direction,
            stage=Stage.ANALYSIS,
            content_length=len(content),
            cancellation_event=cancellation_event,
        )
        return self._accept(text, direction)
