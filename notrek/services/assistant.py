# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Single-shot assistant tasks: call-page chat, intake extraction, call summaries."""

import json
import logging

from pydantic import BaseModel, ConfigDict

from notrek.config import Settings
from notrek.models.call import SummaryCard, TranscriptLine
from notrek.models.chat import ChatMessage, IntakeFacts
from notrek.services.llm import LLMService
from notrek.services.prompts import (
    CALLER_SYSTEM_PROMPT,
    EXTRACT_SYSTEM_PROMPT,
    call_summary_prompt,
)

logger = logging.getLogger(__name__)


class _ExtractReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    facts: IntakeFacts | None = None


async def caller_chat(llm: LLMService, message: str) -> str:
    """Plain-text reply scoped to call scripts and call logistics."""
    return await llm.complete(
        [
            {"role": "system", "content": CALLER_SYSTEM_PROMPT},
            {"role": "user", "content": message},
        ]
    )


async def extract_intake_facts(
    llm: LLMService, settings: Settings, history: list[ChatMessage]
) -> IntakeFacts | None:
    """Extract OPQRST facts and red flags from an intake conversation."""
    payload = json.dumps({"history": [m.model_dump() for m in history]}, ensure_ascii=False)
    reply = await llm.complete_json(
        [
            {"role": "system", "content": EXTRACT_SYSTEM_PROMPT},
            {"role": "user", "content": payload},
        ],
        _ExtractReply,
        model=settings.extract_model,
        temperature=0.0,
    )
    return reply.facts


async def summarize_call(llm: LLMService, transcript: list[TranscriptLine]) -> list[SummaryCard]:
    """Summarize a call transcript. An empty transcript yields no summaries."""
    text = "\n".join(line.text for line in transcript)
    if not text.strip():
        return []
    card = await llm.complete_json(
        [{"role": "user", "content": call_summary_prompt(text)}],
        SummaryCard,
    )
    logger.info(
        "Call summarized",
        extra={"transcript_lines": len(transcript), "followups": len(card.followups)},
    )
    return [card]
