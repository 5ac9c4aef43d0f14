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
"""Citation lookup endpoints."""

import logging

from fastapi import APIRouter, Depends

from notrek.dependencies import get_citation_service
from notrek.models.citation import CiteRequest, CiteResponse
from notrek.services.citations import CitationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cite", tags=["citations"])


@router.post("", response_model=CiteResponse, responses={400: {"description": "Malformed body"}})
async def cite(
    request: CiteRequest, citations: CitationService = Depends(get_citation_service)
) -> CiteResponse:
    """
    Find reference links for free text.

    Only allow-listed domains are returned. Lookup failures degrade to an
    empty list; this endpoint does not fail because a provider did.
    """
    found = await citations.find(request.text, request.allowed_domains)
    return CiteResponse(citations=found)


@router.get("")
async def cite_status(citations: CitationService = Depends(get_citation_service)) -> dict:
    """Report which citation providers are configured."""
    return {"ok": True, "route": "cite", "providers": citations.provider_status()}
