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
"""Citation schemas for medical reference links."""

from typing import Any

from pydantic import Field, field_validator

from notrek.models.base import WireModel


class Citation(WireModel):
    """A titled URL that should originate from an approved medical domain."""

    id: str | None = Field(default=None, description="Optional client-side identifier")
    title: str = Field(default="", description="Readable title of the page")
    url: str = Field(..., description="Absolute URL of the cited page")
    source: str | None = Field(default=None, description="Source label, e.g. cdc.gov")
    published_at: str | None = Field(default=None, description="Publication date if known")

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("url", mode="before")
    @classmethod
    def coerce_url(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("id", "source", mode="before")
    @classmethod
    def coerce_optional_str(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        return str(v)


class CiteRequest(WireModel):
    """Citation lookup request."""

    text: str = Field(default="", description="Free text to find references for")
    allowed_domains: list[str] | None = Field(
        default=None, description="Domain allow-list overriding the default"
    )


class CiteResponse(WireModel):
    """Citation lookup response. Always a list, possibly empty."""

    citations: list[Citation] = Field(default_factory=list)
