"""One-shot translation without clarification."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict, List, Optional

from rolebridge.llm.gateway import LLMGateway
from rolebridge.llm.prompts import Stage, build_direct_user_prompt, get_template
from rolebridge.models.translation import Direction
from rolebridge.streaming.events import StreamEvent


class DirectService:
    """Translate in a single streamed call, filling gaps with silent assumptions."""

    def __init__(self, gateway: LLMGateway):
        self.gateway = gateway

    def build_messages(self, direction: Direction, content: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": get_template(direction, Stage.DIRECT).system},
            {"role": "user", "content": build_direct_user_prompt(direction, content)},
        ]

    async def stream(
        self,
        direction: Direction,
        content: str,
        cancellation_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamEvent]:
        async for fragment in self.gateway.stream_completion(
            self.build_messages(direction, content),
            direction=direction,
            stage=Stage.DIRECT,
            content_length=len(content),
            cancellation_event=cancellation_event,
        ):
            yield StreamEvent.chunk(fragment)
        yield StreamEvent.done()

    async def translate(self, direction: Direction, content: str) -> str:
        return await self.gateway.complete(
            self.build_messages(direction, content),
            direction=direction,
            stage=Stage.DIRECT,
            content_length=len(content),
        )
