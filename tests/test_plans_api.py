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
"""Tests for plan storage API endpoints."""

import uuid
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from conftest import make_settings
from notrek.main import API_PREFIX, create_app
from notrek.services import plan_store
from notrek.services.plan_store import (
    FirestorePlanStore,
    InMemoryPlanStore,
    StoreOperationError,
    get_firestore_client,
)

PLAN_URL = f"{API_PREFIX}/plan"


@pytest.fixture
def valid_plan_payload():
    """Create a plan payload as the web client sends it."""
    return {
        "id": str(uuid.uuid4()),
        "title": "Knee pain follow-up",
        "createdAt": "2025-01-02T03:04:05+00:00",
        "risk": "moderate",
        "tasks": [
            {
                "id": "t1",
                "title": "Book an appointment",
                "status": "doing",
                "createdAt": "2025-01-02T03:04:05+00:00",
                "updatedAt": "2025-01-02T03:04:05+00:00",
                "urgency": "elevated",
                "steps": [{"id": "s1", "text": "Call the clinic", "done": False}],
                "actions": ["call_ai", "teleport"],
                "citations": [
                    {"title": "Knee pain", "url": "https://medlineplus.gov/kneeinjuriesanddisorders.html"}
                ],
            }
        ],
        "citations": [],
        "solutionSteps": ["Confirm diagnosis"],
        "evidenceLock": False,
    }


def test_save_then_get_round_trip(client, valid_plan_payload):
    response = client.post(PLAN_URL, json=valid_plan_payload)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "id": valid_plan_payload["id"]}

    fetched = client.get(f"{PLAN_URL}/{valid_plan_payload['id']}")
    assert fetched.status_code == 200
    plan = fetched.json()
    assert plan["id"] == valid_plan_payload["id"]
    assert plan["title"] == "Knee pain follow-up"
    assert plan["risk"] == "moderate"
    assert plan["solutionSteps"] == ["Confirm diagnosis"]
    task = plan["tasks"][0]
    assert task["status"] == "in_progress"
    assert task["actions"] == ["call_ai"]
    assert task["steps"][0]["text"] == "Call the clinic"
    assert task["citations"][0]["url"].startswith("https://medlineplus.gov/")


def test_round_trip_is_stable(client, valid_plan_payload):
    """Saving a fetched plan again yields the same document."""
    client.post(PLAN_URL, json=valid_plan_payload)
    first = client.get(f"{PLAN_URL}/{valid_plan_payload['id']}").json()

    client.post(PLAN_URL, json=first)
    second = client.get(f"{PLAN_URL}/{valid_plan_payload['id']}").json()

    assert first == second


def test_last_write_wins(client, valid_plan_payload):
    client.post(PLAN_URL, json=valid_plan_payload)
    client.post(PLAN_URL, json={**valid_plan_payload, "title": "Second version", "tasks": []})

    plan = client.get(f"{PLAN_URL}/{valid_plan_payload['id']}").json()
    assert plan["title"] == "Second version"
    assert plan["tasks"] == []


def test_missing_id_and_created_at_are_generated(client):
    response = client.post(PLAN_URL, json={"title": "Untitled"})

    assert response.status_code == 200
    plan_id = response.json()["id"]
    assert uuid.UUID(plan_id)

    plan = client.get(f"{PLAN_URL}/{plan_id}").json()
    assert plan["createdAt"]
    assert plan["tasks"] == []


def test_get_unknown_plan_returns_404(client):
    response = client.get(f"{PLAN_URL}/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"detail": "Plan not found"}


def test_malformed_body_returns_400(client):
    response = client.post(
        PLAN_URL, content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert "detail" in response.json()


def test_non_object_body_returns_400(client):
    response = client.post(PLAN_URL, json=["not", "a", "plan"])

    assert response.status_code == 400


def test_plan_from_intake(client):
    snapshot = {
        "sessionId": "session-9",
        "risk": "severe",
        "recommendations": [
            {"title": "Go to urgent care", "steps": ["Bring ID", " "], "actions": ["directions"]},
            {"title": "Log symptoms", "urgency": "info", "requiresEvidence": True},
        ],
        "summarySteps": ["Get seen today"],
        "evidenceLock": False,
    }

    response = client.post(f"{PLAN_URL}/from-intake", json=snapshot)

    assert response.status_code == 200
    plan = client.get(f"{PLAN_URL}/{response.json()['id']}").json()
    assert plan["title"] == "Care Plan"
    assert plan["sourceSessionId"] == "session-9"
    assert [t["urgency"] for t in plan["tasks"]] == ["severe", "info"]
    assert [t["status"] for t in plan["tasks"]] == ["todo", "todo"]
    assert [s["text"] for s in plan["tasks"][0]["steps"]] == ["Bring ID"]
    assert plan["tasks"][1]["requiresEvidence"] is True


def test_plan_from_intake_requires_session_id(client):
    response = client.post(f"{PLAN_URL}/from-intake", json={"recommendations": []})

    assert response.status_code == 400


def test_store_error_returns_500(client, valid_plan_payload):
    with patch.object(InMemoryPlanStore, "put", side_effect=StoreOperationError("write failed")):
        response = client.post(PLAN_URL, json=valid_plan_payload)

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_unconfigured_firestore_store_returns_json_500(valid_plan_payload):
    get_firestore_client.cache_clear()
    unconfigured = make_settings(PLAN_STORE_BACKEND="memory", FIRESTORE_PROJECT_ID="")
    client = TestClient(create_app(plan_store=FirestorePlanStore()))

    try:
        with patch.object(plan_store, "get_settings", return_value=unconfigured):
            post = client.post(PLAN_URL, json=valid_plan_payload)
            get = client.get(f"{PLAN_URL}/{valid_plan_payload['id']}")
    finally:
        get_firestore_client.cache_clear()

    for response in (post, get):
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["detail"]["reason"] == "NO_ENV"


def test_plans_are_scoped_to_the_app(client, valid_plan_payload):
    """A fresh application does not see plans stored by another one."""
    client.post(PLAN_URL, json=valid_plan_payload)
    other = TestClient(create_app(plan_store=InMemoryPlanStore()))

    assert other.get(f"{PLAN_URL}/{valid_plan_payload['id']}").status_code == 404
