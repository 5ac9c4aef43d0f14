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
"""Rules-based responder for the pricing page chat.

The pricing chat must stay free of protected health information, so messages
that look like PHI are refused before any reply is chosen.
"""

import re

from notrek.models.chat import ChatMessage

_PHI_PATTERNS = (
    re.compile(r"\b(\d{3}-?\d{2}-?\d{4})\b"),
    re.compile(r"\b\d{1,2}/[0-3]?\d/\d{2,4}\b"),
    re.compile(r"\b(medication|rx|prescription|diagnosis|dob|mrn|policy number)\b", re.I),
    re.compile(r"\b(address|phone|email)\b", re.I),
    re.compile(r"\b(full\s*name|last\s*name|first\s*name)\b", re.I),
)

PHI_REFUSAL = (
    "For your privacy, please avoid sharing personal/medical info here. If you need help "
    "with protected details, contact support or use our HIPAA channel."
)

DEFAULT_REPLY = (
    "Here's our quick take on plans. Free: basic tools and 1 trial AI call. "
    "Plus: more AI call credits, insurance finder with filters. "
    "Pro: priority queue, expanded credits, team features. "
    "Family: shared credits + profiles."
)

FAMILY_REPLY = (
    "Family plan includes shared AI call credits, multiple dependent profiles, and priority "
    "support. You can upgrade from Plus anytime and keep your history."
)

DISCOUNT_REPLY = (
    "We offer student/hardship discounts. Contact support from inside the app to apply "
    "your documentation, no PHI needed."
)

HIPAA_REPLY = (
    "We keep this chat PHI-free. For protected details, we route you to a HIPAA-ready "
    "channel. Our AI-call pipeline uses HIPAA-eligible vendors in production."
)


def looks_like_phi(text: str) -> bool:
    return any(p.search(text or "") for p in _PHI_PATTERNS)


def pricing_reply(messages: list[ChatMessage]) -> str:
    """Reply to the latest pricing question."""
    last = messages[-1].content if messages else ""
    if looks_like_phi(last):
        return PHI_REFUSAL

    lowered = last.lower()
    if "family" in lowered:
        return FAMILY_REPLY
    if "discount" in lowered:
        return DISCOUNT_REPLY
    if "hipaa" in lowered or "phi" in lowered:
        return HIPAA_REPLY
    return DEFAULT_REPLY
