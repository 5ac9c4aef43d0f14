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
"""Connectivity status endpoints."""

from fastapi import APIRouter, Depends

from notrek.config import Settings
from notrek.dependencies import get_cached_settings
from notrek.models.status import KeyStatusResponse, StatusResponse

router = APIRouter(prefix="/status", tags=["status"])


@router.get("", response_model=StatusResponse, response_model_exclude_none=True)
async def status(settings: Settings = Depends(get_cached_settings)) -> StatusResponse:
    """
    Report whether the language model backend is configured.

    No request is sent upstream; ``connected`` reflects key presence only.
    """
    has_key = bool(settings.openai_api_key)
    if has_key:
        return StatusResponse(connected=True, model=settings.OPENAI_MODEL, details={"auth": "ok"})
    return StatusResponse(connected=False, details={"auth": "missing", "hasKey": False})


@router.get("/openai", response_model=KeyStatusResponse)
async def openai_key_status(settings: Settings = Depends(get_cached_settings)) -> KeyStatusResponse:
    return KeyStatusResponse(hasKey=bool(settings.openai_api_key))
