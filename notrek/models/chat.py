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
"""Conversation request/response schemas and model-reply decode schemas.

Request models describe what the web client sends. The ``*Reply`` models
describe what the language model is asked to return; they are deliberately
lenient and are used to validate the decoded JSON before it is sanitized
into a response model.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notrek.models.base import WireModel, coerce_str_list
from notrek.models.citation import Citation
from notrek.models.triage import Risk


class ChatMessage(BaseModel):
    """A single turn of a conversation."""

    role: Literal["user", "assistant", "system"] = "user"
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ChatRequest(WireModel):
    """Triage chat request: the full history plus optional location and image."""

    messages: list[ChatMessage] = Field(default_factory=list)
    zip: str | None = Field(default=None, description="US ZIP code if the client knows it")
    image_base64: str | None = Field(
        default=None, description="Data URL of an image to consider in the assessment"
    )


class InsightCard(BaseModel):
    """A short explanatory card shown next to the assistant's reply."""

    id: str
    title: str
    body: str
    citations: list[Citation] = Field(default_factory=list)


class PlaceReview(BaseModel):
    url: str
    source: str | None = None
    quote: str | None = None
    author: str | None = None
    rating: float | None = None
    date: str | None = None


class Place(BaseModel):
    """A nearby care venue suggested alongside a triage reply."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    rating: float | None = None
    reviews: int | None = None
    price: Literal["$", "$$", "$$$", "$$$$"] | None = None
    address: str | None = None
    distance_km: float | None = None
    image: str | None = None
    phone: str | None = None
    url: str | None = None
    maps: str | None = None
    reason: str | None = None
    review_cite: PlaceReview | None = Field(default=None, alias="reviewCite")
    est_cost_min: float | None = None
    est_cost_max: float | None = None


class ChatResponse(BaseModel):
    text: str = ""
    risk: Risk = "low"
    insights: list[InsightCard] = Field(default_factory=list)
    places: list[Place] = Field(default_factory=list)


class TriageReply(BaseModel):
    """Decode schema for the triage model's JSON reply."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str = ""
    reply: str = ""
    risk: str | None = None
    plan_delta: dict[str, Any] | None = Field(default=None, alias="planDelta")
    insights: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("text", "reply", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("risk", mode="before")
    @classmethod
    def coerce_risk(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("plan_delta", mode="before")
    @classmethod
    def coerce_plan_delta(cls, v: Any) -> dict[str, Any] | None:
        return v if isinstance(v, dict) else None

    @field_validator("insights", mode="before")
    @classmethod
    def keep_object_items(cls, v: Any) -> list[dict[str, Any]]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @property
    def message(self) -> str:
        return self.text or self.reply

    @property
    def raw_risk(self) -> str | None:
        if self.risk:
            return self.risk
        if self.plan_delta:
            return self.plan_delta.get("risk")
        return None


class CallerChatRequest(BaseModel):
    """Message sent from the AI call page."""

    message: str = Field(..., min_length=1)


class CallerChatResponse(BaseModel):
    text: str = ""


class RedFlag(BaseModel):
    name: str
    value: bool | None = None


class PatientInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    age: str | None = None
    sex: str | None = None
    pregnant: bool | None = None

    @field_validator("age", "sex", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str | None:
        return None if v is None else str(v)


class IntakeFacts(WireModel):
    """OPQRST facts, demographics and red flags extracted from an intake chat."""

    model_config = ConfigDict(extra="ignore")

    who: PatientInfo | None = None
    onset: str | None = None
    provocation: str | None = None
    quality: str | None = None
    region: str | None = None
    radiation: str | None = None
    severity: str | None = None
    timing: str | None = None
    associated: list[str] = Field(default_factory=list)
    red_flags: list[RedFlag] = Field(default_factory=list)
    completeness: float = 0.0
    missing: list[str] = Field(default_factory=list)
    ready: bool = False

    @field_validator(
        "onset", "provocation", "quality", "region", "radiation", "severity", "timing",
        mode="before",
    )
    @classmethod
    def coerce_str(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("associated", mode="before")
    @classmethod
    def coerce_associated(cls, v: Any) -> list[str]:
        return coerce_str_list(v)

    @field_validator("missing", mode="before")
    @classmethod
    def truncate_missing(cls, v: Any) -> list[str]:
        return coerce_str_list(v)[:5]

    @field_validator("red_flags", mode="before")
    @classmethod
    def keep_named_flags(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [f for f in v if isinstance(f, dict) and f.get("name")]

    @field_validator("completeness", mode="before")
    @classmethod
    def clamp_completeness(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        return min(max(value, 0.0), 1.0)

    @field_validator("ready", mode="before")
    @classmethod
    def coerce_ready(cls, v: Any) -> bool:
        return v is True


class ExtractRequest(BaseModel):
    history: list[ChatMessage] = Field(default_factory=list)


class ExtractResponse(BaseModel):
    facts: IntakeFacts | None = None


class PricingChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)


class PricingChatResponse(BaseModel):
    reply: str
