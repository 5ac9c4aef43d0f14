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
"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends, Response, status

from notrek.dependencies import get_plan_store
from notrek.services.plan_store import PlanStore

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """
    Basic health check endpoint.

    Returns a simple OK status without performing any expensive operations.

    Returns:
        dict: Status indicating service is healthy
    """
    return {"status": "ok"}


@router.get("/readiness")
async def readiness_check(response: Response, store: PlanStore = Depends(get_plan_store)) -> dict:
    """
    Readiness probe endpoint for Cloud Run.

    Checks that the plan store is usable. Third-party credentials are not
    checked here: a missing key fails only the requests that need it.

    Args:
        response: FastAPI response object for setting status codes
        store: The application's plan store

    Returns:
        dict: Status with ready flag and any issues detected
    """
    issues = []

    try:
        store.ping()
    except Exception as e:
        logger.warning(f"Readiness check: plan store issue: {e}")
        issues.append(f"Plan store: {str(e)[:100]}")

    if issues:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready", "issues": issues}

    return {"status": "ready"}


@router.get("/liveness")
async def liveness_check() -> dict:
    """
    Liveness probe endpoint for Cloud Run.

    Does not check dependencies, only that the process is responsive.

    Returns:
        dict: Status indicating service is alive
    """
    return {"status": "alive"}
