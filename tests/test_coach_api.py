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
"""Tests for the task coaching endpoint."""

from conftest import make_settings, use_llm
from notrek.dependencies import get_cached_settings
from notrek.main import API_PREFIX

COACH_URL = f"{API_PREFIX}/coach"

COACH_REPLY = {
    "rationale": "  Seeing a clinician soon helps rule out a fracture.  ",
    "steps": ["Call the clinic", "", "   ", 42, "Bring your insurance card"],
    "citations": [
        {"title": "Ankle sprain", "url": "https://www.mayoclinic.org/ankle", "source": "Mayo Clinic"},
        {"title": "Made up", "url": "https://random-health.example/ankle"},
        {"title": "CDC", "url": "https://cdc.gov/injury"},
        {"title": "No url"},
    ],
    "solutionSteps": ["Confirm diagnosis"],
}


def test_coach_returns_checklist(app, client):
    fake = use_llm(app, COACH_REPLY)

    response = client.post(
        COACH_URL,
        json={
            "task": {
                "id": "t1",
                "title": "See a doctor about ankle",
                "urgency": "elevated",
                "placeName": "Main Street Clinic",
                "phone": "+15550100",
            }
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["rationale"] == "Seeing a clinician soon helps rule out a fracture."
    assert data["steps"] == ["Call the clinic", "Bring your insurance card"]
    assert data["solutionSteps"] == ["Confirm diagnosis"]
    assert [c["url"] for c in data["citations"]] == [
        "https://www.mayoclinic.org/ankle",
        "https://cdc.gov/injury",
    ]
    assert [c["id"] for c in data["citations"]] == ["c_1", "c_2"]
    assert data["citations"][0]["source"] == "Mayo Clinic"
    assert data["citations"][1]["source"] == "cdc.gov"

    kwargs = fake.chat.completions.create.call_args.kwargs
    assert kwargs["temperature"] == 0.4
    prompt = kwargs["messages"][1]["content"]
    assert "See a doctor about ankle" in prompt
    assert "Main Street Clinic" in prompt


def test_supplied_allow_list_restricts_citations(app, client):
    use_llm(app, COACH_REPLY)

    response = client.post(
        COACH_URL, json={"task": {"title": "Ankle"}, "allowedDomains": ["cdc.gov"]}
    )

    assert [c["url"] for c in response.json()["citations"]] == ["https://cdc.gov/injury"]


def test_rationale_falls_back_to_task_rationale(app, client):
    use_llm(app, {"steps": ["Do it"]})

    response = client.post(
        COACH_URL, json={"task": {"title": "Refill", "rationale": "You are almost out."}}
    )

    assert response.json() == {
        "rationale": "You are almost out.",
        "steps": ["Do it"],
        "citations": [],
        "solutionSteps": [],
    }


def test_missing_title_returns_400(client):
    response = client.post(COACH_URL, json={"task": {"rationale": "no title"}})

    assert response.status_code == 400


def test_missing_key_returns_500(app, client):
    app.dependency_overrides[get_cached_settings] = lambda: make_settings(OPENAI_API_KEY="")

    response = client.post(COACH_URL, json={"task": {"title": "Anything"}})

    assert response.status_code == 500
    assert response.json()["detail"]["details"] == {"hasKey": False}


def test_upstream_failure_returns_502(app, client):
    use_llm(app, "")

    response = client.post(COACH_URL, json={"task": {"title": "Anything"}})

    assert response.status_code == 502
