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
"""Task coaching: turn one plan task into a short, doable checklist."""

import logging
from typing import Any

from notrek.models.citation import Citation
from notrek.models.coach import CoachReply, CoachRequest, CoachResponse
from notrek.services.citations import domain_of, filter_allowed, resolve_allowed_domains
from notrek.services.llm import LLMService
from notrek.services.prompts import COACH_SYSTEM_PROMPT, coach_user_prompt

logger = logging.getLogger(__name__)


def normalize_coach_citations(
    raw: list[dict[str, Any]], allowed_domains: list[str] | None
) -> list[Citation]:
    """Allow-list and dedupe citations, assigning ``c_<n>`` ids and domain sources."""
    candidates = [
        Citation(
            id=c.get("id"),
            title=c.get("title") or "",
            url=c["url"],
            source=c.get("source"),
        )
        for c in raw
        if c.get("url")
    ]
    kept = filter_allowed(candidates, resolve_allowed_domains(allowed_domains))
    return [
        c.model_copy(
            update={"id": c.id or f"c_{i}", "source": c.source or domain_of(c.url)}
        )
        for i, c in enumerate(kept, start=1)
    ]


class CoachService:
    def __init__(self, llm: LLMService):
        self.llm = llm

    async def coach(self, request: CoachRequest) -> CoachResponse:
        """
        Coach a single task.

        Raises:
            UpstreamServiceError: If the completion request fails
            LLMDecodeError: If the model reply is not a usable JSON object
        """
        task = request.task
        prompt = coach_user_prompt(
            title=task.title,
            rationale=task.rationale,
            urgency=task.urgency,
            place_name=task.place_name,
            phone=task.phone,
            address=task.address,
            url=task.url,
            preferred_domains=resolve_allowed_domains(request.allowed_domains),
        )
        reply = await self.llm.complete_json(
            [
                {"role": "system", "content": COACH_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            CoachReply,
            temperature=0.4,
        )

        citations = normalize_coach_citations(reply.citations, request.allowed_domains)
        logger.info(
            "Task coached",
            extra={
                "task_id": task.id,
                "step_count": len(reply.steps),
                "citation_count": len(citations),
            },
        )
        return CoachResponse(
            rationale=reply.rationale or task.rationale or "",
            steps=reply.steps,
            citations=citations,
            solution_steps=reply.solution_steps,
        )
