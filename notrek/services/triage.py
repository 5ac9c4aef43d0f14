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
"""Triage chat orchestration.

The conversation is forwarded verbatim after a fixed policy prompt; the
model's JSON reply is decoded, its risk normalized, its insight citations
restricted to the allow-list, and nearby venues attached when the user asked
for them or the risk is elevated.
"""

import logging
from typing import Any

from notrek.models.base import new_id
from notrek.models.chat import ChatRequest, ChatResponse, InsightCard, Place, TriageReply
from notrek.models.citation import Citation
from notrek.models.triage import normalize_risk
from notrek.services.citations import DEFAULT_ALLOWED_DOMAINS, filter_allowed
from notrek.services.llm import LLMService
from notrek.services.places import PlacesService, extract_zip, wants_nearby
from notrek.services.prompts import IMAGE_NOTE, triage_system_prompt

logger = logging.getLogger(__name__)

# Chat insights use the core allow-list, without the evidence-review domain.
INSIGHT_ALLOWED_DOMAINS = tuple(d for d in DEFAULT_ALLOWED_DOMAINS if d != "cochranelibrary.com")


def sanitize_insights(raw: list[dict[str, Any]]) -> list[InsightCard]:
    """Coerce model-supplied insight cards, keeping only allow-listed citations."""
    cards = []
    for item in raw:
        raw_citations = item.get("citations")
        if not isinstance(raw_citations, list):
            raw_citations = []
        citations = []
        for c in raw_citations:
            if isinstance(c, dict) and c.get("url"):
                citations.append(
                    Citation(title=c.get("title") or "", url=c["url"], source=c.get("source"))
                )
        cards.append(
            InsightCard(
                id=str(item.get("id") or f"card_{new_id()[:8]}"),
                title=str(item.get("title") or "Note"),
                body=str(item.get("body") or ""),
                citations=filter_allowed(citations, INSIGHT_ALLOWED_DOMAINS),
            )
        )
    return cards


class TriageService:
    """Produces Stella's triage replies."""

    def __init__(self, llm: LLMService, places: PlacesService):
        self.llm = llm
        self.places = places

    def build_messages(self, request: ChatRequest) -> list[dict[str, Any]]:
        chat: list[dict[str, Any]] = [
            {"role": "system", "content": triage_system_prompt(INSIGHT_ALLOWED_DOMAINS)}
        ]
        chat.extend({"role": m.role, "content": m.content} for m in request.messages)
        if request.image_base64:
            chat.append(
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": IMAGE_NOTE},
                        {"type": "image_url", "image_url": {"url": request.image_base64}},
                    ],
                }
            )
        return chat

    async def reply(self, request: ChatRequest) -> ChatResponse:
        """
        Answer the latest turn of a triage conversation.

        Raises:
            UpstreamServiceError: If the completion request fails
            LLMDecodeError: If the model reply is not a usable JSON object
        """
        decoded = await self.llm.complete_json(
            self.build_messages(request), TriageReply, temperature=0.2
        )

        risk = normalize_risk(decoded.raw_risk)
        insights = sanitize_insights(decoded.insights)

        user_turns = [m.content for m in request.messages if m.role == "user"]
        last_user_text = user_turns[-1] if user_turns else ""
        zip_code = extract_zip(request.messages, request.zip)

        places: list[Place] = []
        if zip_code and (wants_nearby(last_user_text) or risk != "low"):
            places = await self.places.places_for_zip(zip_code)

        logger.info(
            "Triage reply generated",
            extra={
                "risk": risk,
                "risk_supplied": decoded.raw_risk is not None,
                "insight_count": len(insights),
                "place_count": len(places),
            },
        )
        return ChatResponse(text=decoded.message, risk=risk, insights=insights, places=places)
