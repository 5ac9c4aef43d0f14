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
"""Tests for configuration and edge cases."""

import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from notrek.config import Settings, get_settings


def test_settings_default_values():
    """Test that settings have proper default values."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.OPENAI_API_KEY == ""
        assert settings.OPENAI_MODEL == "gpt-4.1-mini"
        assert settings.PLAN_STORE_BACKEND == "memory"
        assert settings.CITATION_LINK_CHECK_ENABLED is True
        assert settings.HTTP_TIMEOUT_SECONDS == 20.0
        assert settings.PLACES_RADIUS_KM == 25.0
        assert settings.PORT == 8080
        assert settings.SERVICE_NAME == "no-trek"


def test_settings_from_environment():
    """Test that settings load from environment variables."""
    test_env = {
        "OPENAI_API_KEY": "sk-env",
        "OPENAI_MODEL": "gpt-other",
        "PLAN_STORE_BACKEND": "firestore",
        "FIRESTORE_PROJECT_ID": "test-project",
        "PORT": "9090",
        "SERVICE_NAME": "test-service",
    }

    with patch.dict(os.environ, test_env, clear=True):
        settings = Settings(_env_file=None)

        assert settings.OPENAI_API_KEY == "sk-env"
        assert settings.OPENAI_MODEL == "gpt-other"
        assert settings.PLAN_STORE_BACKEND == "firestore"
        assert settings.FIRESTORE_PROJECT_ID == "test-project"
        assert settings.PORT == 9090
        assert settings.SERVICE_NAME == "test-service"


def test_secondary_api_key_used_when_primary_missing():
    with patch.dict(os.environ, {"OPENAI_API_KEY_1": "sk-secondary"}, clear=True):
        settings = Settings(_env_file=None)
        assert settings.openai_api_key == "sk-secondary"


def test_primary_api_key_wins_over_secondary():
    env = {"OPENAI_API_KEY": "sk-primary", "OPENAI_API_KEY_1": "sk-secondary"}
    with patch.dict(os.environ, env, clear=True):
        assert Settings(_env_file=None).openai_api_key == "sk-primary"


def test_task_models_fall_back_to_default_model():
    with patch.dict(os.environ, {"OPENAI_MODEL": "base"}, clear=True):
        settings = Settings(_env_file=None)
        assert settings.cite_model == "base"
        assert settings.extract_model == "base"

    env = {"OPENAI_MODEL": "base", "OPENAI_MODEL_CITE": "cite", "OPENAI_MODEL_EXTRACT": "ext"}
    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)
        assert settings.cite_model == "cite"
        assert settings.extract_model == "ext"


def test_twilio_configured_requires_all_credentials():
    partial = {"TWILIO_ACCOUNT_SID": "AC123", "TWILIO_AUTH_TOKEN": "secret"}
    with patch.dict(os.environ, partial, clear=True):
        assert Settings(_env_file=None).twilio_configured is False

    with patch.dict(os.environ, {**partial, "TWILIO_CALLER_ID": "+15550100"}, clear=True):
        assert Settings(_env_file=None).twilio_configured is True


def test_plan_store_backend_rejects_unknown_value():
    with patch.dict(os.environ, {"PLAN_STORE_BACKEND": "redis"}, clear=True):
        with pytest.raises(ValidationError, match="string_pattern_mismatch"):
            Settings(_env_file=None)


def test_port_validation_rejects_non_integer():
    """Test that PORT validation rejects non-integer values."""
    with patch.dict(os.environ, {"PORT": "not-a-number"}, clear=True):
        with pytest.raises(ValidationError, match="int_parsing"):
            Settings(_env_file=None)


def test_port_validation_rejects_out_of_range():
    with patch.dict(os.environ, {"PORT": "0"}, clear=True):
        with pytest.raises(ValidationError, match="greater_than_equal"):
            Settings(_env_file=None)

    with patch.dict(os.environ, {"PORT": "65536"}, clear=True):
        with pytest.raises(ValidationError, match="less_than_equal"):
            Settings(_env_file=None)


def test_http_timeout_must_be_positive():
    with patch.dict(os.environ, {"HTTP_TIMEOUT_SECONDS": "0"}, clear=True):
        with pytest.raises(ValidationError, match="greater_than"):
            Settings(_env_file=None)


def test_missing_credentials_emit_warnings(caplog):
    """Test that missing credentials are logged as warnings rather than failing startup."""
    with patch.dict(os.environ, {"PLAN_STORE_BACKEND": "firestore"}, clear=True):
        with caplog.at_level(logging.WARNING):
            _ = Settings(_env_file=None)

            warning_messages = [
                record.message for record in caplog.records if record.levelname == "WARNING"
            ]

            assert any("OPENAI_API_KEY" in msg for msg in warning_messages)
            assert any("TWILIO_ACCOUNT_SID" in msg for msg in warning_messages)
            assert any("FIRESTORE_PROJECT_ID" in msg for msg in warning_messages)


def test_settings_singleton_returns_instance():
    """Test that get_settings returns a cached Settings instance."""
    assert isinstance(get_settings(), Settings)
    assert get_settings() is get_settings()


def test_settings_case_sensitive():
    """Test that settings are case sensitive."""
    with patch.dict(os.environ, {"port": "9090", "PORT": "8888"}, clear=True):
        settings = Settings(_env_file=None)
        assert settings.PORT == 8888


def test_settings_ignores_extra_env_vars():
    """Test that extra environment variables are ignored."""
    with patch.dict(os.environ, {"PORT": "8080", "EXTRA_VAR": "should-be-ignored"}, clear=True):
        settings = Settings(_env_file=None)
        assert settings.PORT == 8080
        assert not hasattr(settings, "EXTRA_VAR")
