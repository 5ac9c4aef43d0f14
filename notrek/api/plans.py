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
"""Care plan storage endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from notrek.dependencies import get_plan_store
from notrek.models.plan import IntakeSnapshot, Plan, PlanCreateResponse, build_plan_from_intake
from notrek.services.plan_store import PlanStore, StoreConfigurationError, StoreOperationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plan", tags=["plans"])

_STORE_ERROR_RESPONSE = {
    "description": "Internal server error",
    "content": {"application/json": {"example": {"detail": "Internal server error"}}},
}


def _store_not_configured(e: StoreConfigurationError, plan_id: str) -> HTTPException:
    logger.error(
        "Plan store is not configured",
        extra={"plan_id": plan_id, "error": str(e)},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "Plan store is not configured on the server.", "reason": "NO_ENV"},
    )


def _save(store: PlanStore, plan: Plan) -> PlanCreateResponse:
    try:
        store.put(plan)
    except StoreConfigurationError as e:
        raise _store_not_configured(e, plan.id) from e
    except StoreOperationError as e:
        logger.error(
            "Plan save failed due to store error",
            extra={"plan_id": plan.id, "error": str(e)},
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
        ) from e

    logger.info(
        "Plan saved",
        extra={"plan_id": plan.id, "task_count": len(plan.tasks)},
    )
    return PlanCreateResponse(id=plan.id)


@router.post(
    "",
    response_model=PlanCreateResponse,
    responses={
        400: {"description": "Malformed plan payload"},
        500: _STORE_ERROR_RESPONSE,
    },
)
async def save_plan(plan: Plan, store: PlanStore = Depends(get_plan_store)) -> PlanCreateResponse:
    """
    Create or replace a plan.

    Missing identifiers and timestamps are generated. Saving a plan whose id
    already exists replaces the stored plan (last write wins).

    Returns:
        PlanCreateResponse with the stored plan's id
    """
    return _save(store, plan)


@router.post(
    "/from-intake",
    response_model=PlanCreateResponse,
    responses={
        400: {"description": "Malformed intake snapshot"},
        500: _STORE_ERROR_RESPONSE,
    },
)
async def save_plan_from_intake(
    snapshot: IntakeSnapshot, store: PlanStore = Depends(get_plan_store)
) -> PlanCreateResponse:
    """Build a plan from an intake snapshot and store it."""
    logger.info(
        "Building plan from intake",
        extra={
            "session_id": snapshot.session_id,
            "recommendation_count": len(snapshot.recommendations),
        },
    )
    return _save(store, build_plan_from_intake(snapshot))


@router.get(
    "/{plan_id}",
    response_model=Plan,
    responses={
        404: {
            "description": "Plan not found",
            "content": {"application/json": {"example": {"detail": "Plan not found"}}},
        },
        500: _STORE_ERROR_RESPONSE,
    },
)
async def get_plan(plan_id: str, store: PlanStore = Depends(get_plan_store)) -> Plan:
    try:
        plan = store.get(plan_id)
    except StoreConfigurationError as e:
        raise _store_not_configured(e, plan_id) from e
    except StoreOperationError as e:
        logger.error(
            "Plan read failed due to store error",
            extra={"plan_id": plan_id, "error": str(e)},
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
        ) from e

    if plan is None:
        logger.info("Plan not found", extra={"plan_id": plan_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    return plan
