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
"""Chat completion client with schema-validated JSON decoding.

This module provides:
1. LLMService, a thin wrapper over ``openai.AsyncOpenAI`` chat completions
2. decode_json_object, which recovers a JSON object from a model reply
3. decode_reply, which validates a decoded object against a pydantic schema

Every failure surfaces as a typed exception: SDK and transport errors become
UpstreamServiceError, unparseable or schema-violating replies become
LLMDecodeError. Callers decide whether a failure is fatal for the request.
"""

import json
import logging
from typing import Any, TypeVar

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from notrek.services.errors import LLMDecodeError, MissingConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def decode_json_object(raw_text: str) -> dict[str, Any]:
    """
    Decode a JSON object from a model reply.

    The reply is parsed strictly first. If that fails (for example when the
    model wrapped the JSON in prose), each balanced ``{...}`` span is tried in
    order and the first one that parses as an object wins.

    Args:
        raw_text: The model's reply text

    Returns:
        The decoded JSON object

    Raises:
        LLMDecodeError: If no JSON object can be recovered
    """
    text = (raw_text or "").strip()
    if not text:
        raise LLMDecodeError("Model returned an empty reply", raw=raw_text or "")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        return payload

    for start_idx in [idx for idx, char in enumerate(text) if char == "{"]:
        depth = 0
        for end_idx in range(start_idx, len(text)):
            char = text[end_idx]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            if depth == 0:
                try:
                    candidate = json.loads(text[start_idx : end_idx + 1])
                except json.JSONDecodeError:
                    break
                if isinstance(candidate, dict):
                    return candidate
                break

    raise LLMDecodeError(
        f"Could not parse a JSON object from model reply: {text[:100]}", raw=text
    )


def decode_reply(raw_text: str, schema: type[SchemaT]) -> SchemaT:
    """Decode a model reply and validate it against ``schema``."""
    payload = decode_json_object(raw_text)
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise LLMDecodeError(
            f"Model reply does not match {schema.__name__}: {e.error_count()} error(s)",
            raw=raw_text,
        ) from e


class LLMService:
    """Service for sending chat completion requests.

    One instance wraps one API key. Construction fails with
    MissingConfigurationError when no key is available so the API layer can
    answer with a diagnostic 500 instead of attempting the request.
    """

    def __init__(self, api_key: str, model: str, client: Any = None):
        if not api_key:
            raise MissingConfigurationError(
                "OPENAI_API_KEY is not set on the server.", setting="OPENAI_API_KEY"
            )
        self.model = model
        self._client = client if client is not None else AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str | None = None,
        temperature: float = 0.2,
        json_mode: bool = False,
    ) -> str:
        """Send a chat completion request and return the first choice's text.

        Args:
            messages: Chat messages in the completion API's format
            model: Model override (default: the service's model)
            temperature: Sampling temperature
            json_mode: Request a JSON object reply

        Returns:
            The reply text, or an empty string if the model returned none

        Raises:
            UpstreamServiceError: If the completion request fails
        """
        kwargs: dict[str, Any] = {
            "model": model or self.model,
            "temperature": temperature,
            "messages": messages,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            completion = await self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.warning(
                "Chat completion request failed",
                extra={"model": kwargs["model"], "error_type": type(e).__name__, "error": str(e)},
            )
            raise UpstreamServiceError(
                f"Chat completion request failed: {e}",
                service="llm",
                status_code=getattr(e, "status_code", None),
            ) from e

        choices = getattr(completion, "choices", None) or []
        if not choices:
            return ""
        return choices[0].message.content or ""

    async def complete_json(
        self,
        messages: list[dict[str, Any]],
        schema: type[SchemaT],
        *,
        model: str | None = None,
        temperature: float = 0.2,
    ) -> SchemaT:
        """Request a JSON reply and decode it into ``schema``.

        Raises:
            UpstreamServiceError: If the completion request fails
            LLMDecodeError: If the reply is not a JSON object matching ``schema``
        """
        content = await self.complete(
            messages, model=model, temperature=temperature, json_mode=True
        )
        return decode_reply(content, schema)
