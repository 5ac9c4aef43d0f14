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
"""Tests for status, citation lookup, pricing and geo endpoints."""

import httpx
import pytest

from conftest import make_settings, use_http
from notrek.dependencies import get_cached_settings
from notrek.main import API_PREFIX
from notrek.services.pricing import (
    DEFAULT_REPLY,
    DISCOUNT_REPLY,
    FAMILY_REPLY,
    HIPAA_REPLY,
    PHI_REFUSAL,
    looks_like_phi,
)


class TestStatus:
    def test_connected_when_key_present(self, client):
        response = client.get(f"{API_PREFIX}/status")

        assert response.status_code == 200
        assert response.json() == {
            "connected": True,
            "model": "gpt-4.1-mini",
            "details": {"auth": "ok"},
        }

    def test_disconnected_without_key(self, app, client):
        app.dependency_overrides[get_cached_settings] = lambda: make_settings(OPENAI_API_KEY="")

        response = client.get(f"{API_PREFIX}/status")

        assert response.json() == {
            "connected": False,
            "details": {"auth": "missing", "hasKey": False},
        }

    def test_openai_key_status(self, app, client):
        assert client.get(f"{API_PREFIX}/status/openai").json() == {"hasKey": True}

        app.dependency_overrides[get_cached_settings] = lambda: make_settings(OPENAI_API_KEY="")
        assert client.get(f"{API_PREFIX}/status/openai").json() == {"hasKey": False}


class TestCite:
    def test_provider_status(self, client):
        response = client.get(f"{API_PREFIX}/cite")

        assert response.json() == {
            "ok": True,
            "route": "cite",
            "providers": {
                "tavily": False,
                "bing": False,
                "googleCSE": False,
                "openaiFallback": True,
            },
        }

    def test_lookup_failure_degrades_to_empty_list(self, app, client):
        app.dependency_overrides[get_cached_settings] = lambda: make_settings(
            OPENAI_API_KEY="", TAVILY_API_KEY="k"
        )
        use_http(app, lambda request: httpx.Response(500))

        response = client.post(f"{API_PREFIX}/cite", json={"text": "flu symptoms"})

        assert response.status_code == 200
        assert response.json() == {"citations": []}

    def test_returns_only_allow_listed_citations(self, app, client):
        app.dependency_overrides[get_cached_settings] = lambda: make_settings(
            OPENAI_API_KEY="", TAVILY_API_KEY="k"
        )
        use_http(
            app,
            lambda request: httpx.Response(
                200,
                json={
                    "results": [
                        {"title": "Flu", "url": "https://www.cdc.gov/flu"},
                        {"title": "Forum", "url": "https://forum.example/flu"},
                    ]
                },
            ),
        )

        response = client.post(
            f"{API_PREFIX}/cite", json={"text": "flu", "allowedDomains": ["cdc.gov"]}
        )

        citations = response.json()["citations"]
        assert [c["url"] for c in citations] == ["https://www.cdc.gov/flu"]
        assert citations[0]["source"] == "cdc.gov"


class TestPricing:
    @pytest.mark.parametrize(
        "text",
        [
            "my SSN is 123-45-6789",
            "born 1/2/1990",
            "I take a medication for that",
            "what is my MRN",
            "my email is on file",
            "my last name is Smith",
        ],
    )
    def test_phi_detection(self, text):
        assert looks_like_phi(text)

    def test_plain_question_is_not_phi(self):
        assert not looks_like_phi("how much is the family plan?")

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Tell me about the Family plan", FAMILY_REPLY),
            ("any student discount?", DISCOUNT_REPLY),
            ("are you HIPAA compliant?", HIPAA_REPLY),
            ("what plans exist", DEFAULT_REPLY),
            ("my diagnosis is asthma, is family cheaper?", PHI_REFUSAL),
        ],
    )
    def test_pricing_bot_replies(self, client, text, expected):
        response = client.post(
            f"{API_PREFIX}/pricing-bot", json={"messages": [{"role": "user", "content": text}]}
        )

        assert response.status_code == 200
        assert response.json() == {"reply": expected}

    def test_empty_conversation_gets_default_reply(self, client):
        response = client.post(f"{API_PREFIX}/pricing-bot", json={"messages": []})

        assert response.json() == {"reply": DEFAULT_REPLY}


class TestGeo:
    def test_nearby(self, app, client):
        def handler(request):
            assert request.url.host == "overpass-api.de"
            assert "around%3A5000%2C40.0%2C-75.0" in request.content.decode()
            return httpx.Response(
                200,
                json={"elements": [{"id": 1, "lat": 40.01, "lon": -75.0, "tags": {"name": "Clinic"}}]},
            )

        use_http(app, handler)

        response = client.get(
            f"{API_PREFIX}/geo/nearby", params={"lat": 40.0, "lng": -75.0, "radius": 5000}
        )

        assert response.status_code == 200
        assert response.json() == {
            "places": [{"name": "Clinic", "lat": 40.01, "lng": -75.0, "tags": {"name": "Clinic"}}]
        }

    def test_nearby_requires_coordinates(self, client):
        response = client.get(f"{API_PREFIX}/geo/nearby", params={"lat": "abc"})

        assert response.status_code == 400

    def test_nearby_upstream_error_returns_502(self, app, client):
        use_http(app, lambda request: httpx.Response(504))

        response = client.get(f"{API_PREFIX}/geo/nearby", params={"lat": 40.0, "lng": -75.0})

        assert response.status_code == 502
        assert response.json()["detail"]["details"] == {"service": "overpass", "status": 504}

    def test_nearby_non_json_body_returns_502(self, app, client):
        use_http(app, lambda request: httpx.Response(200, text="<html>rate limited</html>"))

        response = client.get(f"{API_PREFIX}/geo/nearby", params={"lat": 40.0, "lng": -75.0})

        assert response.status_code == 502
        assert response.json()["detail"]["details"] == {"service": "overpass", "status": 200}

    def test_revgeo(self, app, client):
        use_http(app, lambda request: httpx.Response(200, json={"address": {"postcode": "19104"}}))

        response = client.get(f"{API_PREFIX}/geo/revgeo", params={"lat": 39.95, "lng": -75.19})

        assert response.json() == {"zip": "19104"}

    def test_revgeo_upstream_status(self, app, client):
        use_http(app, lambda request: httpx.Response(429))

        response = client.get(f"{API_PREFIX}/geo/revgeo", params={"lat": 39.95, "lng": -75.19})

        assert response.status_code == 200
        assert response.json() == {"zip": None, "status": 429}

    def test_revgeo_non_json_body_returns_502(self, app, client):
        use_http(app, lambda request: httpx.Response(200, text="<html>oops</html>"))

        response = client.get(f"{API_PREFIX}/geo/revgeo", params={"lat": 39.95, "lng": -75.19})

        assert response.status_code == 502
        assert response.json()["detail"]["details"]["service"] == "nominatim"
