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
"""Application configuration using pydantic BaseSettings."""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # LLM configuration
    OPENAI_API_KEY: str = Field(default="", description="API key for the chat completion API")

    OPENAI_API_KEY_1: str = Field(
        default="", description="Secondary API key, used when OPENAI_API_KEY is unset"
    )

    OPENAI_MODEL: str = Field(default="gpt-4.1-mini", description="Default chat model")

    OPENAI_MODEL_CITE: str = Field(
        default="", description="Model for citation lookups (falls back to OPENAI_MODEL)"
    )

    OPENAI_MODEL_EXTRACT: str = Field(
        default="", description="Model for intake fact extraction (falls back to OPENAI_MODEL)"
    )

    # Citation search providers
    TAVILY_API_KEY: str = Field(default="", description="Tavily search API key")

    BING_SEARCH_V7_SUBSCRIPTION_KEY: str = Field(
        default="", description="Bing Web Search v7 subscription key"
    )

    GOOGLE_API_KEY: str = Field(default="", description="Google Custom Search API key")

    GOOGLE_CSE_ID: str = Field(default="", description="Google Custom Search engine ID")

    CITATION_LINK_CHECK_ENABLED: bool = Field(
        default=True, description="Verify citation URLs resolve before returning them"
    )

    # Telephony configuration
    TWILIO_ACCOUNT_SID: str = Field(default="", description="Twilio account SID")

    TWILIO_AUTH_TOKEN: str = Field(default="", description="Twilio auth token")

    TWILIO_CALLER_ID: str = Field(default="", description="Verified Twilio number to call from")

    TWILIO_API_BASE_URL: str = Field(
        default="https://api.twilio.com", description="Base URL of the Twilio REST API"
    )

    APP_BASE_URL: str = Field(
        default="", description="Public base URL of this service, used for voice webhooks"
    )

    # Geocoding and place lookup
    NOMINATIM_BASE_URL: str = Field(
        default="https://nominatim.openstreetmap.org", description="Nominatim API base URL"
    )

    OVERPASS_URL: str = Field(
        default="https://overpass-api.de/api/interpreter", description="Overpass API endpoint"
    )

    HTTP_USER_AGENT: str = Field(
        default="no-trek/1.0 (care triage)",
        description="User-Agent sent to OpenStreetMap services",
    )

    HTTP_TIMEOUT_SECONDS: float = Field(
        default=20.0, description="Timeout for outbound HTTP requests", gt=0
    )

    PLACES_RADIUS_KM: float = Field(
        default=25.0, description="Search radius for hospitals around a ZIP centroid", gt=0
    )

    # Plan store configuration
    PLAN_STORE_BACKEND: str = Field(
        default="memory",
        description="Plan store backend: memory or firestore",
        pattern="^(memory|firestore)$",
    )

    FIRESTORE_PROJECT_ID: str = Field(default="", description="GCP project ID for Firestore")

    GOOGLE_APPLICATION_CREDENTIALS: str = Field(
        default="", description="Path to GCP service account credentials JSON file"
    )

    # Service configuration
    PORT: int = Field(default=8080, description="Port to run the service on", ge=1, le=65535)

    SERVICE_NAME: str = Field(default="no-trek", description="Name of the service for logging")

    @property
    def openai_api_key(self) -> str:
        """The effective LLM API key, or an empty string when none is configured."""
        return self.OPENAI_API_KEY or self.OPENAI_API_KEY_1

    @property
    def cite_model(self) -> str:
        return self.OPENAI_MODEL_CITE or self.OPENAI_MODEL

    @property
    def extract_model(self) -> str:
        return self.OPENAI_MODEL_EXTRACT or self.OPENAI_MODEL

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_CALLER_ID)

    def model_post_init(self, __context):
        """Warn about missing credentials; requests needing them fail individually."""
        logger = logging.getLogger(__name__)

        if not self.openai_api_key:
            logger.warning(
                "OPENAI_API_KEY not set. Chat, coaching and summary endpoints "
                "will respond with 500 until it is configured."
            )

        if not self.twilio_configured:
            logger.warning(
                "Twilio credentials incomplete (TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, "
                "TWILIO_CALLER_ID). Call initiation is disabled."
            )

        if self.PLAN_STORE_BACKEND == "firestore" and not self.FIRESTORE_PROJECT_ID:
            logger.warning(
                "PLAN_STORE_BACKEND is firestore but FIRESTORE_PROJECT_ID is not set. "
                "Plan store operations may fail."
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
