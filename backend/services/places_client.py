"""
Places client for Google Places Text Search and Place Details.

The API key, endpoint and timeout are passed in explicitly so the client can be
built per request and stubbed in tests.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests

from domain.errors import ProviderError
from domain.models import PlaceRecord
from services.http_session import SessionPerThread
from settings import Settings

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
DETAILS_FIELDS = "name,formatted_address,geometry,place_id,rating,types"


def _place_from_item(item: dict) -> Optional[PlaceRecord]:
    location = ((item.get("geometry") or {}).get("location")) or {}
    place_id = item.get("place_id")
    if not place_id or "lat" not in location or "lng" not in location:
        return None
    rating = item.get("rating")
    return PlaceRecord(
        name=item.get("name") or "",
        address=item.get("formatted_address") or item.get("vicinity") or "",
        lat=float(location["lat"]),
        lng=float(location["lng"]),
        place_id=str(place_id),
        rating=float(rating) if rating is not None else None,
        categories=list(item.get("types") or []) or None,
    )


def build_search_query(query: str, country: Optional[str] = None, city: Optional[str] = None) -> str:
    """Append the locality hint to the free-text query.

    A two-letter country code is sent separately as a region bias, so only
    longer country names are added to the text.
    """
    locality = [p for p in (city, country if country and len(country) != 2 else None) if p]
    if not locality:
        return query
    return f"{query} in {', '.join(locality)}"


class PlacesClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        category: str = "restaurant",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        provider: str = "google",
    ):
        self.api_key = api_key
        self.base_url = (base_url or PLACES_BASE_URL).rstrip("/")
        self.category = category
        self.timeout = timeout
        self._sessions = SessionPerThread(session)
        self.provider = provider
        self.logger = logging.getLogger(__name__)

    @property
    def session(self) -> requests.Session:
        """HTTP session for the calling thread."""
        return self._sessions.get()

    def _get(self, path: str, params: dict[str, Any]) -> dict:
        if not self.api_key:
            raise ProviderError("GOOGLE_MAPS_API_KEY not configured")
        params = dict(params, key=self.api_key)
        try:
            resp = self.session.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise ProviderError(f"Places API request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"Places API returned invalid JSON: {exc}") from exc

    def search(
        self,
        query: str,
        country: Optional[str] = None,
        city: Optional[str] = None,
    ) -> List[PlaceRecord]:
        """
        Text-search places for a candidate name.

        Never raises: provider errors and non-OK statuses yield an empty list.
        """
        params: dict[str, Any] = {
            "query": build_search_query(query, country, city),
            "type": self.category,
        }
        if country and len(country) == 2:
            params["region"] = country.lower()

        try:
            data = self._get("textsearch/json", params)
        except ProviderError as exc:
            self.logger.warning("Place search failed for %r: %s", query, exc)
            return []

        status = data.get("status")
        if status != "OK":
            if status == "ZERO_RESULTS":
                self.logger.debug("Place search returned no results for %r", query)
            else:
                self.logger.warning(
                    "Places API returned status %s for %r: %s",
                    status,
                    query,
                    data.get("error_message", ""),
                )
            return []

        results: List[PlaceRecord] = []
        for item in data.get("results") or []:
            place = _place_from_item(item)
            if place is not None:
                results.append(place)
        self.logger.debug(
            "PlacesClient.search: provider=%s query=%r country=%s city=%s got %d results",
            self.provider,
            params["query"],
            country,
            city,
            len(results),
        )
        return results

    def get_details(self, place_id: str) -> Optional[PlaceRecord]:
        """Fetch canonical fields for a place. Returns None when the place is not found."""
        data = self._get("details/json", {"place_id": place_id, "fields": DETAILS_FIELDS})
        status = data.get("status")
        if status != "OK" or not data.get("result"):
            if status not in ("NOT_FOUND", "INVALID_REQUEST", "ZERO_RESULTS"):
                self.logger.warning("Place details returned status %s for %s", status, place_id)
            return None
        return _place_from_item(data["result"])


def build_places_client(settings: Settings) -> PlacesClient:
    return PlacesClient(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        category=settings.PLACES_CATEGORY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
