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
"""Coordinate-based lookups: nearby facilities and reverse geocoding."""

import logging

import httpx
from fastapi import APIRouter, Depends, Query

from notrek.dependencies import get_places_service, upstream_service_error
from notrek.services.errors import UpstreamServiceError
from notrek.services.places import PlacesService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geo", tags=["geo"])

_GEO_RESPONSES = {
    400: {"description": "lat/lng required"},
    502: {"description": "Upstream lookup failed"},
}


@router.get("/nearby", responses=_GEO_RESPONSES)
async def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: int = Query(7000, gt=0, le=50000, description="Search radius in metres"),
    places: PlacesService = Depends(get_places_service),
) -> dict:
    """Hospitals, clinics, doctors and urgent care near a coordinate (at most 12)."""
    try:
        found = await places.nearby_facilities(lat, lng, radius_m=radius)
    except httpx.HTTPError as e:
        raise upstream_service_error(
            UpstreamServiceError(f"Overpass request failed: {e}", service="overpass")
        ) from e
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e

    logger.info("Nearby facilities found", extra={"radius_m": radius, "count": len(found)})
    return {"places": found}


@router.get("/revgeo", responses=_GEO_RESPONSES)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    places: PlacesService = Depends(get_places_service),
) -> dict:
    """
    Postcode for a coordinate.

    A non-2xx answer from the geocoder is reported as ``{"zip": null, "status": <code>}``
    rather than an error.
    """
    try:
        zip_code, upstream_status = await places.reverse_zip(lat, lng)
    except httpx.HTTPError as e:
        raise upstream_service_error(
            UpstreamServiceError(f"Nominatim request failed: {e}", service="nominatim")
        ) from e
    except UpstreamServiceError as e:
        raise upstream_service_error(e) from e

    if upstream_status is not None:
        logger.warning(
            "Reverse geocoding returned an error status",
            extra={"upstream_status": upstream_status},
        )
        return {"zip": None, "status": upstream_status}
    return {"zip": zip_code}
