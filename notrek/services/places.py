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
"""Place resolution: ZIP geocoding, nearby hospital search and distances.

Key Features:
- ZIP extraction from a request body or the conversation text
- Nominatim forward and reverse geocoding
- Overpass queries for hospital and clinic points of interest
- Haversine distances with results sorted nearest first
- An explicit, logged fallback list so the chat UI never shows an empty
  venue panel when upstream lookups fail
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote_plus

import httpx

from notrek.config import Settings
from notrek.models.chat import ChatMessage, Place, PlaceReview
from notrek.services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

_BODY_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
_MARKED_ZIP_RE = re.compile(r"\bZIP:\s*([0-9]{5})(?:-[0-9]{4})?", re.IGNORECASE)
_BARE_ZIP_RE = re.compile(r"\b([0-9]{5})(?:-[0-9]{4})?\b")
_NEARBY_RE = re.compile(r"near\s*me|nearby|closest|hospital|urgent|\ber\b|clinic", re.IGNORECASE)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass(frozen=True)
class Facility:
    """A hospital-tagged OpenStreetMap element."""

    id: str
    name: str
    lat: float
    lon: float
    address: str | None = None
    website: str | None = None


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometres."""
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    x = math.sin(dlat / 2) ** 2 + math.sin(dlon / 2) ** 2 * math.cos(lat1) * math.cos(lat2)
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(x))


def extract_zip(messages: list[ChatMessage], body_zip: str | None = None) -> str | None:
    """
    Find the user's ZIP code.

    A well-formed ZIP in the request body wins. Otherwise the conversation is
    searched for an explicit ``ZIP: 12345`` marker, then for any standalone
    five-digit number.

    Returns:
        The five-digit ZIP, or None if none was found
    """
    if body_zip and _BODY_ZIP_RE.match(body_zip.strip()):
        return body_zip.strip()[:5]
    joined = " ".join(m.content or "" for m in messages)
    match = _MARKED_ZIP_RE.search(joined) or _BARE_ZIP_RE.search(joined)
    return match.group(1) if match else None


def wants_nearby(text: str) -> bool:
    """Whether the user is asking for nearby care."""
    return bool(_NEARBY_RE.search(text or ""))


def maps_search_url(name: str, zip_code: str | None = None) -> str:
    query = f"{name} {zip_code or ''}".strip()
    return f"https://www.google.com/maps/search/?api=1&query={quote_plus(query)}"


def _place_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def demo_fallback(zip_code: str) -> list[Place]:
    """Static venues shown when live lookups return nothing."""

    def mk(name: str, km: float) -> Place:
        url = maps_search_url(name, zip_code)
        return Place(
            id=f"demo-{_place_slug(name)}",
            name=name,
            distance_km=km,
            maps=url,
            review_cite=PlaceReview(url=url, source="google.com"),
            reason="Demo fallback, replace with live data",
            price="$$$",
        )

    return [
        mk("Medical City Dallas Hospital", 5.1),
        mk("Baylor University Medical Center", 7.3),
    ]


def _dict_or_empty(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _json_body(r: httpx.Response, service: str) -> Any:
    """Decode a JSON response body, treating a non-JSON body as an upstream failure."""
    try:
        return r.json()
    except ValueError as e:
        raise UpstreamServiceError(
            f"{service} returned a non-JSON response", service=service, status_code=r.status_code
        ) from e


def _float_or_none(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class PlacesService:
    """Looks up care venues through OpenStreetMap services."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self.settings = settings
        self.http = http

    @property
    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.settings.HTTP_USER_AGENT, "Accept": "application/json"}

    async def geocode_zip(self, zip_code: str) -> GeoPoint | None:
        """Resolve a US ZIP code to its centroid, or None if Nominatim has no hit."""
        r = await self.http.get(
            f"{self.settings.NOMINATIM_BASE_URL}/search",
            params={"format": "jsonv2", "q": zip_code, "countrycodes": "us", "limit": 1},
            headers=self._headers,
        )
        if not r.is_success:
            raise UpstreamServiceError(
                f"Nominatim search failed with status {r.status_code}",
                service="nominatim",
                status_code=r.status_code,
            )
        hits = _json_body(r, "nominatim")
        hit = hits[0] if isinstance(hits, list) and hits else None
        if not isinstance(hit, dict):
            return None
        lat, lon = _float_or_none(hit.get("lat")), _float_or_none(hit.get("lon"))
        if lat is None or lon is None:
            return None
        return GeoPoint(lat=lat, lon=lon)

    async def _overpass(self, query: str) -> list[dict[str, Any]]:
        r = await self.http.post(
            self.settings.OVERPASS_URL,
            data={"data": query},
            headers=self._headers,
        )
        if not r.is_success:
            raise UpstreamServiceError(
                f"Overpass query failed with status {r.status_code}",
                service="overpass",
                status_code=r.status_code,
            )
        payload = _json_body(r, "overpass")
        elements = payload.get("elements") if isinstance(payload, dict) else None
        return [e for e in elements if isinstance(e, dict)] if isinstance(elements, list) else []

    async def hospitals_near(
        self, point: GeoPoint, radius_km: float | None = None
    ) -> list[Facility]:
        """Hospital and emergency-capable facilities within ``radius_km`` of ``point``."""
        radius_m = int((radius_km or self.settings.PLACES_RADIUS_KM) * 1000)
        around = f"around:{radius_m},{point.lat},{point.lon}"
        query = f"""
            [out:json][timeout:25];
            (
              node["amenity"="hospital"]({around});
              way["amenity"="hospital"]({around});
              relation["amenity"="hospital"]({around});
              node["emergency"="yes"]({around});
            );
            out center tags 40;"""

        facilities = []
        for e in await self._overpass(query):
            center = e.get("center")
            if not isinstance(center, dict):
                center = e
            lat, lon = _float_or_none(center.get("lat")), _float_or_none(center.get("lon"))
            if lat is None or lon is None:
                continue
            tags = _dict_or_empty(e.get("tags"))
            address = " ".join(
                str(tags[k])
                for k in ("addr:housenumber", "addr:street", "addr:city")
                if tags.get(k)
            )
            facilities.append(
                Facility(
                    id=f"osm-{e.get('id')}",
                    name=tags.get("name") or tags.get("operator") or "Hospital",
                    lat=lat,
                    lon=lon,
                    address=address or None,
                    website=tags.get("website") or None,
                )
            )
        return facilities

    async def resolve_places_from_zip(self, zip_code: str) -> list[Place]:
        """Live venue lookup for a ZIP, sorted by non-decreasing distance.

        Raises:
            UpstreamServiceError: If a geocoding or Overpass request fails
            httpx.HTTPError: On transport failures
        """
        origin = await self.geocode_zip(zip_code)
        if origin is None:
            return []

        places = []
        for f in await self.hospitals_near(origin):
            review_url = maps_search_url(f.name, zip_code)
            places.append(
                Place(
                    id=f.id,
                    name=f.name,
                    address=f.address,
                    url=f.website,
                    maps=review_url,
                    distance_km=haversine_km(origin, GeoPoint(f.lat, f.lon)),
                    price="$$$",
                    reason="Emergency-capable facility near you",
                    review_cite=PlaceReview(url=review_url, source="google.com"),
                )
            )
        places.sort(key=lambda p: p.distance_km if p.distance_km is not None else math.inf)
        return places

    async def places_for_zip(self, zip_code: str) -> list[Place]:
        """Venues for a ZIP, substituting the static fallback list on empty or failed lookups."""
        try:
            places = await self.resolve_places_from_zip(zip_code)
        except Exception as e:
            logger.warning(
                "Place lookup failed, using fallback venues",
                extra={"zip": zip_code, "error_type": type(e).__name__, "error": str(e)},
            )
            return demo_fallback(zip_code)

        if not places:
            logger.info(
                "Place lookup returned no results, using fallback venues",
                extra={"zip": zip_code},
            )
            return demo_fallback(zip_code)
        return places

    async def nearby_facilities(
        self, lat: float, lng: float, radius_m: int = 7000, limit: int = 12
    ) -> list[dict[str, Any]]:
        """Hospitals, clinics, doctors and urgent care around a coordinate.

        Raises:
            UpstreamServiceError: If the Overpass request fails
        """
        around = f"around:{radius_m},{lat},{lng}"
        query = f"""
            [out:json][timeout:25];
            (
              node({around})["amenity"~"hospital|clinic"];
              node({around})["healthcare"~"hospital|clinic|doctor|urgent_care"];
            );
            out body 25;"""

        out = []
        for e in await self._overpass(query):
            e_lat, e_lon = _float_or_none(e.get("lat")), _float_or_none(e.get("lon"))
            if e_lat is None or e_lon is None:
                continue
            tags = _dict_or_empty(e.get("tags"))
            out.append(
                {
                    "name": tags.get("name") or "Unnamed facility",
                    "lat": e_lat,
                    "lng": e_lon,
                    "tags": tags,
                }
            )
        return out[:limit]

    async def reverse_zip(self, lat: float, lng: float) -> tuple[str | None, int | None]:
        """Postcode for a coordinate.

        Returns:
            Tuple of (zip, upstream_status); upstream_status is set only when
            Nominatim answered with a non-2xx status

        Raises:
            UpstreamServiceError: If a 2xx answer is not JSON
        """
        r = await self.http.get(
            f"{self.settings.NOMINATIM_BASE_URL}/reverse",
            params={
                "format": "jsonv2",
                "lat": lat,
                "lon": lng,
                "zoom": 10,
                "addressdetails": 1,
            },
            headers=self._headers,
        )
        if not r.is_success:
            return None, r.status_code
        payload = _json_body(r, "nominatim")
        address = payload.get("address") if isinstance(payload, dict) else None
        postcode = address.get("postcode") if isinstance(address, dict) else None
        return (str(postcode) if postcode else None), None
