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
"""Task coaching schemas."""

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from notrek.models.base import WireModel, coerce_str_list
from notrek.models.citation import Citation


class CoachTask(WireModel):
    """The task a user wants help with. Only the title is required."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    title: str = Field(..., min_length=1)
    status: str | None = None
    urgency: str | None = None
    rationale: str | None = None
    steps: list[Any] = Field(default_factory=list)
    citations: list[Any] = Field(default_factory=list)
    phone: str | None = None
    place_name: str | None = None
    address: str | None = None
    url: str | None = None


class CoachRequest(WireModel):
    task: CoachTask
    allowed_domains: list[str] | None = None


class CoachReply(WireModel):
    """Decode schema for the coaching model's JSON reply."""

    model_config = ConfigDict(extra="ignore")

    rationale: str = ""
    steps: list[str] = Field(default_factory=list)
    citations: list[dict[str, Any]] = Field(default_factory=list)
    solution_steps: list[str] = Field(default_factory=list)

    @field_validator("rationale", mode="before")
    @classmethod
    def coerce_rationale(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("steps", "solution_steps", mode="before")
    @classmethod
    def drop_blank_steps(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return coerce_str_list([s for s in v if isinstance(s, str)])

    @field_validator("citations", mode="before")
    @classmethod
    def keep_object_items(cls, v: Any) -> list[dict[str, Any]]:
        if not isinstance(v, list):
            return []
        return [c for c in v if isinstance(c, dict)]


class CoachResponse(WireModel):
    rationale: str = ""
    steps: list[str] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    solution_steps: list[str] = Field(default_factory=list)
