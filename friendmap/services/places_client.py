"""
Nearby place search against the Google Places API (New).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from friendmap.config import settings
from friendmap.exceptions import PlaceSearchError
from friendmap.schemas.location import Location
from friendmap.schemas.recommendations import PlaceCandidate
from friendmap.utils.geohash import decode

logger = logging.getLogger(__name__)

FIELD_MASK = "places.id,places.displayName,places.formattedAddress,places.location,places.primaryType"


class GooglePlacesClient:
    """Place search provider backed by the Nearby Search endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        max_results: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.url = url if url is not None else settings.places_api_url
        self.max_results = max_results if max_results is not None else settings.max_place_results
        self.client = client

    async def search_nearby_places(
        self,
        center: str,
        radius_meters: float,
        included_types: Optional[Sequence[str]] = None
    ) -> List[PlaceCandidate]:
        """Points of interest within ``radius_meters`` of the geohash ``center``."""
        lat, lng = decode(center)

        payload = {
            "includedTypes": list(
                included_types if included_types is not None else settings.included_place_types
            ),
            "maxResultCount": self.max_results,
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": lat, "longitude": lng},
                    "radius": radius_meters
                }
            }
        }
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key or "",
            "X-Goog-FieldMask": FIELD_MASK
        }

        try:
            if self.client is not None:
                response = await self.client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=settings.places_request_timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Nearby search request failed: {e}")
            raise PlaceSearchError(f"Nearby search request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Nearby search failed with status {response.status_code}: {response.text}")
            raise PlaceSearchError(f"Nearby search returned status {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise PlaceSearchError("Nearby search returned invalid JSON") from e

        return [
            candidate for candidate in
            (self._parse_place(place) for place in body.get("places", []))
            if candidate is not None
        ]

    @staticmethod
    def _parse_place(place: Dict[str, Any]) -> Optional[PlaceCandidate]:
        location = place.get("location")
        if not location:
            logger.warning(f"Skipping place without location: {place.get('id')}")
            return None

        return PlaceCandidate(
            id=place.get("id"),
            display_name=(place.get("displayName") or {}).get("text", ""),
            address=place.get("formattedAddress"),
            location=Location(latitude=location["latitude"], longitude=location["longitude"]),
            primary_type=place.get("primaryType")
        )
