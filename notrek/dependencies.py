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
"""Shared dependencies for dependency injection."""

import logging
from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, HTTPException, Request, status

from notrek.config import Settings, get_settings
from notrek.services.call_store import CallStore
from notrek.services.citations import CitationService
from notrek.services.coach import CoachService
from notrek.services.errors import MissingConfigurationError, UpstreamServiceError
from notrek.services.llm import LLMService
from notrek.services.places import PlacesService
from notrek.services.plan_store import PlanStore
from notrek.services.triage import TriageService

logger = logging.getLogger(__name__)


def get_cached_settings() -> Settings:
    """
    Get cached settings instance for dependency injection.

    This wraps get_settings() which is already cached with @lru_cache.
    """
    return get_settings()


def missing_configuration_error(exc: MissingConfigurationError) -> HTTPException:
    """Build the 500 response for a request that needs an unconfigured credential."""
    logger.error(
        "Request rejected: required configuration is missing",
        extra={"setting": exc.setting, "error": str(exc)},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": str(exc),
            "reason": "NO_ENV",
            "details": {"hasKey": False},
        },
    )


def upstream_service_error(exc: UpstreamServiceError) -> HTTPException:
    """Build the 502 response for a failed or unusable upstream call."""
    logger.error(
        "Upstream service failed",
        extra={
            "service": exc.service,
            "upstream_status": exc.status_code,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
    )
    details: dict = {"service": exc.service}
    if exc.status_code is not None:
        details["status"] = exc.status_code
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": str(exc), "details": details},
    )


def get_plan_store(request: Request) -> PlanStore:
    """
    Get the application's plan store.

    The store is created by the application factory and owned by the app
    instance, so separate apps (and tests) never share plans.
    """
    return request.app.state.plan_store


def get_call_store(request: Request) -> CallStore:
    return request.app.state.call_store


async def get_http_client(
    settings: Settings = Depends(get_cached_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield an outbound HTTP client scoped to the request."""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client


def get_llm_service(settings: Settings = Depends(get_cached_settings)) -> LLMService:
    """
    Get an LLMService for a request that cannot proceed without one.

    Raises:
        HTTPException: 500 with reason NO_ENV when no API key is configured
    """
    try:
        return LLMService(api_key=settings.openai_api_key, model=settings.OPENAI_MODEL)
    except MissingConfigurationError as e:
        raise missing_configuration_error(e) from e


def get_optional_llm_service(
    settings: Settings = Depends(get_cached_settings),
) -> LLMService | None:
    """Get an LLMService, or None when no API key is configured."""
    if not settings.openai_api_key:
        return None
    return LLMService(api_key=settings.openai_api_key, model=settings.OPENAI_MODEL)


def get_places_service(
    settings: Settings = Depends(get_cached_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> PlacesService:
    return PlacesService(settings, http)


def get_citation_service(
    settings: Settings = Depends(get_cached_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
    llm: LLMService | None = Depends(get_optional_llm_service),
) -> CitationService:
    return CitationService(settings, http, llm=llm)


def get_triage_service(
    llm: LLMService = Depends(get_llm_service),
    places: PlacesService = Depends(get_places_service),
) -> TriageService:
    return TriageService(llm, places)


def get_coach_service(llm: LLMService = Depends(get_llm_service)) -> CoachService:
    return CoachService(llm)
