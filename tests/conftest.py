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
"""Shared fixtures: settings, a scripted chat-completion client and an app factory."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from notrek.config import Settings
from notrek.dependencies import (
    get_cached_settings,
    get_http_client,
    get_llm_service,
    get_optional_llm_service,
)
from notrek.main import create_app
from notrek.services.llm import LLMService
from notrek.services.plan_store import InMemoryPlanStore


def completion(content: str | None) -> SimpleNamespace:
    """A chat completion response shaped like the SDK's."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def scripted_client(*replies) -> MagicMock:
    """A completion client whose ``chat.completions.create`` returns ``replies`` in order.

    dict replies are JSON-encoded; exceptions are raised.
    """
    effects = []
    for reply in replies:
        if isinstance(reply, BaseException):
            effects.append(reply)
        elif isinstance(reply, dict):
            effects.append(completion(json.dumps(reply)))
        else:
            effects.append(completion(reply))
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=effects)
    return client


def make_settings(**overrides) -> Settings:
    values = {
        "OPENAI_API_KEY": "sk-test",
        "OPENAI_API_KEY_1": "",
        "TAVILY_API_KEY": "",
        "BING_SEARCH_V7_SUBSCRIPTION_KEY": "",
        "GOOGLE_API_KEY": "",
        "GOOGLE_CSE_ID": "",
        "CITATION_LINK_CHECK_ENABLED": False,
        "TWILIO_ACCOUNT_SID": "",
        "TWILIO_AUTH_TOKEN": "",
        "TWILIO_CALLER_ID": "",
        "APP_BASE_URL": "",
        "PLAN_STORE_BACKEND": "memory",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    """Application with an in-memory plan store and test settings."""
    application = create_app(plan_store=InMemoryPlanStore())
    application.dependency_overrides[get_cached_settings] = lambda: settings
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


def use_llm(app, *replies) -> MagicMock:
    """Route every LLM-backed dependency of ``app`` to a scripted client."""
    fake = scripted_client(*replies)
    service = LLMService(api_key="sk-test", model="gpt-test", client=fake)
    app.dependency_overrides[get_llm_service] = lambda: service
    app.dependency_overrides[get_optional_llm_service] = lambda: service
    return fake


def use_http(app, handler) -> None:
    """Serve outbound HTTP of ``app`` from ``handler`` through httpx.MockTransport."""

    async def _client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            yield http

    app.dependency_overrides[get_http_client] = _client
