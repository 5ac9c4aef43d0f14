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
"""Outbound clinic calls through the Twilio REST API."""

import logging
from urllib.parse import quote
from xml.sax.saxutils import escape

import httpx

from notrek.config import Settings
from notrek.services.errors import MissingConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

VOICE_WEBHOOK_PATH = "/api/no-trek/twilio-voice"


def render_voice_twiml(text: str) -> str:
    """TwiML document that reads ``text`` aloud."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Response><Say>{escape(text)}</Say></Response>"
    )


class TwilioService:
    """Places calls that read an approved call script to a clinic.

    Twilio fetches the script from the voice webhook once the callee answers,
    so APP_BASE_URL must be reachable from Twilio.
    """

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        if not settings.twilio_configured:
            raise MissingConfigurationError(
                "Twilio credentials are not configured on the server.",
                setting="TWILIO_ACCOUNT_SID",
            )
        if not settings.APP_BASE_URL:
            raise MissingConfigurationError(
                "APP_BASE_URL is not configured on the server.", setting="APP_BASE_URL"
            )
        self.settings = settings
        self.http = http

    def voice_url(self, script_id: str) -> str:
        base = self.settings.APP_BASE_URL.rstrip("/")
        return f"{base}{VOICE_WEBHOOK_PATH}?scriptId={quote(script_id, safe='')}"

    async def start_call(self, to: str, script_id: str) -> str:
        """
        Create an outbound call.

        Args:
            to: Clinic phone number
            script_id: Call script read by the voice webhook

        Returns:
            The Twilio call SID

        Raises:
            UpstreamServiceError: If Twilio rejects the request or returns no SID
        """
        s = self.settings
        url = f"{s.TWILIO_API_BASE_URL}/2010-04-01/Accounts/{s.TWILIO_ACCOUNT_SID}/Calls.json"
        r = await self.http.post(
            url,
            data={"To": to, "From": s.TWILIO_CALLER_ID, "Url": self.voice_url(script_id)},
            auth=(s.TWILIO_ACCOUNT_SID, s.TWILIO_AUTH_TOKEN),
        )
        if not r.is_success:
            logger.error(
                "Twilio call creation failed",
                extra={"script_id": script_id, "status_code": r.status_code},
            )
            raise UpstreamServiceError(
                f"Twilio call creation failed with status {r.status_code}",
                service="twilio",
                status_code=r.status_code,
            )

        try:
            payload = r.json()
        except ValueError as e:
            raise UpstreamServiceError(
                "Twilio returned a non-JSON response", service="twilio", status_code=r.status_code
            ) from e
        call_sid = payload.get("sid") if isinstance(payload, dict) else None
        if not call_sid:
            raise UpstreamServiceError("Twilio response did not include a call SID", service="twilio")

        logger.info("Outbound call created", extra={"script_id": script_id, "call_sid": call_sid})
        return call_sid
