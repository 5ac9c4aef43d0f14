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
"""Data models for the No Trek API and plan storage."""

from notrek.models.citation import Citation, CiteRequest, CiteResponse
from notrek.models.plan import (
    IntakeRecommendation,
    IntakeSnapshot,
    Plan,
    PlanCreateResponse,
    Task,
    TaskStep,
    build_plan_from_intake,
)
from notrek.models.triage import Risk, Urgency, normalize_risk, normalize_urgency

__all__ = [
    "Citation",
    "CiteRequest",
    "CiteResponse",
    "IntakeRecommendation",
    "IntakeSnapshot",
    "Plan",
    "PlanCreateResponse",
    "Task",
    "TaskStep",
    "build_plan_from_intake",
    "Risk",
    "Urgency",
    "normalize_risk",
    "normalize_urgency",
]
