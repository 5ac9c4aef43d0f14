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
"""Task coaching endpoint."""

import logging

from fastapi import APIRouter, Depends

from notrek.dependencies import get_coach_service, upstream_service_error
from notrek.models.coach import CoachRequest, CoachResponse
from notrek.services.coach import CoachService
from notrek.services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["coach"])


@router.post(
    "/coach",
    response_model=CoachResponse,
    responses={
        400: {"description": "Malformed body or missing task title"},
        500: {"description": "Missing configuration"},
        502: {"description": "Language model request failed or returned an unusable reply"},
    },
)
async def coach(
    request: CoachRequest, coach_service: CoachService = Depends(get_coach_service)
) -> CoachResponse:
    """
    Break a plan task into a short checklist with a rationale and citations.

    Citations are filtered against the supplied allow-list, or the default
    one when none is given.
    """
    logger.info(
        "Coach request received",
        extra={"task_id": request.task.id, "has_allow_list": bool(request.allowed_domains)},
    )
    try:
        return await coach_service.coach(request)
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e
