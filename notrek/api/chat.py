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
"""Conversation endpoints: triage chat, call-page chat, intake extraction, pricing bot."""

import logging

from fastapi import APIRouter, Depends

from notrek.config import Settings
from notrek.dependencies import (
    get_cached_settings,
    get_llm_service,
    get_triage_service,
    upstream_service_error,
)
from notrek.models.chat import (
    CallerChatRequest,
    CallerChatResponse,
    ChatRequest,
    ChatResponse,
    ExtractRequest,
    ExtractResponse,
    PricingChatRequest,
    PricingChatResponse,
)
from notrek.services import assistant
from notrek.services.errors import UpstreamServiceError
from notrek.services.llm import LLMService
from notrek.services.pricing import pricing_reply
from notrek.services.triage import TriageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

_LLM_ERROR_RESPONSES = {
    400: {"description": "Malformed request body"},
    500: {
        "description": "Missing configuration",
        "content": {
            "application/json": {
                "example": {
                    "detail": {
                        "error": "OPENAI_API_KEY is not set on the server.",
                        "reason": "NO_ENV",
                        "details": {"hasKey": False},
                    }
                }
            }
        },
    },
    502: {"description": "Language model request failed or returned an unusable reply"},
}


@router.post("/chat", response_model=ChatResponse, responses=_LLM_ERROR_RESPONSES)
async def chat(
    request: ChatRequest, triage: TriageService = Depends(get_triage_service)
) -> ChatResponse:
    """
    Answer the latest turn of a triage conversation.

    The reply carries a normalized risk level, insight cards whose citations
    are restricted to the allow-list, and nearby venues when a ZIP is known and
    the user asked for care nearby or the risk is above low.
    """
    logger.info(
        "Triage chat request received",
        extra={
            "message_count": len(request.messages),
            "has_zip": bool(request.zip),
            "has_image": bool(request.image_base64),
        },
    )
    try:
        return await triage.reply(request)
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e


@router.post("/caller-chat", response_model=CallerChatResponse, responses=_LLM_ERROR_RESPONSES)
async def caller_chat(
    request: CallerChatRequest, llm: LLMService = Depends(get_llm_service)
) -> CallerChatResponse:
    """Chat limited to call scripts and call logistics."""
    try:
        text = await assistant.caller_chat(llm, request.message)
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e
    return CallerChatResponse(text=text)


@router.post("/extract", response_model=ExtractResponse, responses=_LLM_ERROR_RESPONSES)
async def extract(
    request: ExtractRequest,
    llm: LLMService = Depends(get_llm_service),
    settings: Settings = Depends(get_cached_settings),
) -> ExtractResponse:
    """Extract structured intake facts from the conversation so far."""
    try:
        facts = await assistant.extract_intake_facts(llm, settings, request.history)
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e

    logger.info(
        "Intake facts extracted",
        extra={
            "history_length": len(request.history),
            "completeness": facts.completeness if facts else None,
            "ready": facts.ready if facts else False,
        },
    )
    return ExtractResponse(facts=facts)


@router.post("/pricing-bot", response_model=PricingChatResponse)
async def pricing_bot(request: PricingChatRequest) -> PricingChatResponse:
    """Rules-based pricing answers. Messages that look like PHI are refused."""
    return PricingChatResponse(reply=pricing_reply(request.messages))
