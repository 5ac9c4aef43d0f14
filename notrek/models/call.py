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
"""Call script, transcript and call summary schemas."""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from notrek.models.base import WireModel, coerce_str_list, ensure_utc, new_id, utc_now


class CallScriptIn(WireModel):
    """A call script drafted with the assistant and approved by the user."""

    clinic_name: str | None = None
    clinic_phone: str | None = None
    script_text: str = Field(..., min_length=1)


class CallScript(CallScriptIn):
    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, v: Any) -> Any:
        return ensure_utc(v)


class TranscriptLineIn(WireModel):
    text: str = Field(..., min_length=1)


class TranscriptLine(WireModel):
    script_id: str
    text: str
    created_at: datetime = Field(default_factory=utc_now)


class StartCallRequest(WireModel):
    script_id: str = Field(..., min_length=1)


class StartCallResponse(WireModel):
    call_sid: str


class SummaryCard(WireModel):
    """Summary of a completed clinic call. Also the decode schema for the model reply."""

    model_config = ConfigDict(extra="ignore")

    header: str = "Call summary"
    summary: list[str] = Field(default_factory=list)
    followups: list[str] = Field(default_factory=list)

    @field_validator("header", mode="before")
    @classmethod
    def coerce_header(cls, v: Any) -> str:
        return str(v).strip() if v else "Call summary"

    @field_validator("summary", "followups", mode="before")
    @classmethod
    def coerce_points(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            v = [line.lstrip("-* ").strip() for line in v.splitlines()]
        return coerce_str_list(v)


class CallSummaryResponse(WireModel):
    summaries: list[SummaryCard] = Field(default_factory=list)
