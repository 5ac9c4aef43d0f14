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
"""Exceptions shared by the external-service integrations."""


class MissingConfigurationError(Exception):
    """Raised when a credential or setting required by a request is not configured."""

    def __init__(self, message: str, setting: str):
        super().__init__(message)
        self.setting = setting


class UpstreamServiceError(Exception):
    """Raised when an external service fails or returns an unusable response."""

    def __init__(self, message: str, service: str, status_code: int | None = None):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class LLMDecodeError(UpstreamServiceError):
    """Raised when a model reply cannot be decoded into the expected schema."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message, service="llm")
        self.raw = raw
