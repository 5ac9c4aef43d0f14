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
"""Clinic call endpoints: call scripts, transcripts, outbound calls and summaries.

Flow:
1. The client saves the approved call script (POST /call-scripts)
2. POST /start-call asks Twilio to dial the clinic; Twilio then fetches
   GET /twilio-voice, which reads the script aloud
3. Transcript lines are appended as the call progresses
4. GET /call-summary summarizes the transcript into follow-up cards
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from notrek.config import Settings
from notrek.dependencies import (
    get_cached_settings,
    get_call_store,
    get_http_client,
    get_optional_llm_service,
    missing_configuration_error,
    upstream_service_error,
)
from notrek.models.call import (
    CallScript,
    CallScriptIn,
    CallSummaryResponse,
    StartCallRequest,
    StartCallResponse,
    TranscriptLine,
    TranscriptLineIn,
)
from notrek.services import assistant
from notrek.services.call_store import CallStore
from notrek.services.errors import MissingConfigurationError, UpstreamServiceError
from notrek.services.llm import LLMService
from notrek.services.telephony import TwilioService, render_voice_twiml

logger = logging.getLogger(__name__)

router = APIRouter(tags=["calls"])

NO_SCRIPT_MESSAGE = "We are unable to complete this call."
UNREADABLE_SCRIPT_MESSAGE = "We are unable to read the call details at this time."


def _require_script(store: CallStore, script_id: str) -> CallScript:
    script = store.get_script(script_id)
    if script is None:
        logger.info("Call script not found", extra={"script_id": script_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Script not found")
    return script


@router.post("/call-scripts", status_code=status.HTTP_201_CREATED, response_model=CallScript)
async def create_call_script(
    script_in: CallScriptIn, store: CallStore = Depends(get_call_store)
) -> CallScript:
    """Save an approved call script."""
    script = CallScript(**script_in.model_dump())
    store.save_script(script)
    logger.info(
        "Call script saved",
        extra={"script_id": script.id, "has_phone": bool(script.clinic_phone)},
    )
    return script


@router.post(
    "/call-scripts/{script_id}/transcript",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Script not found"}},
)
async def append_transcript_line(
    script_id: str, line_in: TranscriptLineIn, store: CallStore = Depends(get_call_store)
) -> Response:
    _require_script(store, script_id)
    store.append_transcript(TranscriptLine(script_id=script_id, text=line_in.text))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/start-call",
    response_model=StartCallResponse,
    responses={
        400: {"description": "Missing scriptId or no clinic phone on file"},
        404: {"description": "Script not found"},
        500: {"description": "Telephony is not configured"},
        502: {"description": "Twilio rejected the call"},
    },
)
async def start_call(
    request: StartCallRequest,
    store: CallStore = Depends(get_call_store),
    settings: Settings = Depends(get_cached_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> StartCallResponse:
    """
    Dial the clinic on a saved script and return the Twilio call SID.

    Raises:
        HTTPException: 404 if the script does not exist, 400 if it has no
            clinic phone, 500 if Twilio is not configured, 502 if Twilio fails
    """
    script = _require_script(store, request.script_id)
    if not script.clinic_phone:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No clinic phone on file"
        )

    try:
        twilio = TwilioService(settings, http)
    except MissingConfigurationError as e:
        raise missing_configuration_error(e) from e

    try:
        call_sid = await twilio.start_call(script.clinic_phone, script.id)
    except httpx.HTTPError as e:
        raise upstream_service_error(
            UpstreamServiceError(f"Twilio request failed: {e}", service="twilio")
        ) from e
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e

    return StartCallResponse(call_sid=call_sid)


@router.get("/twilio-voice", response_class=Response)
async def twilio_voice(
    script_id: str | None = Query(default=None, alias="scriptId"),
    store: CallStore = Depends(get_call_store),
) -> Response:
    """
    TwiML webhook fetched by Twilio once the clinic answers.

    Always answers 200 with a TwiML document; an unknown or missing script
    produces a spoken apology instead of an error.
    """
    if not script_id:
        text = NO_SCRIPT_MESSAGE
    else:
        script = store.get_script(script_id)
        if script is None:
            logger.warning("Voice webhook for unknown script", extra={"script_id": script_id})
            text = UNREADABLE_SCRIPT_MESSAGE
        else:
            text = script.script_text
    return Response(content=render_voice_twiml(text), media_type="text/xml")


@router.get(
    "/call-summary",
    response_model=CallSummaryResponse,
    responses={
        400: {"description": "Missing scriptId"},
        500: {"description": "Missing configuration"},
        502: {"description": "Language model request failed or returned an unusable reply"},
    },
)
async def call_summary(
    script_id: str = Query(..., alias="scriptId", min_length=1),
    store: CallStore = Depends(get_call_store),
    llm: LLMService | None = Depends(get_optional_llm_service),
) -> CallSummaryResponse:
    """Summarize a call transcript. No transcript yet means no summaries."""
    transcript = store.list_transcript(script_id)
    if not transcript:
        return CallSummaryResponse(summaries=[])

    if llm is None:
        raise missing_configuration_error(
            MissingConfigurationError(
                "OPENAI_API_KEY is not set on the server.", setting="OPENAI_API_KEY"
            )
        )

    try:
        summaries = await assistant.summarize_call(llm, transcript)
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e
    return CallSummaryResponse(summaries=summaries)
