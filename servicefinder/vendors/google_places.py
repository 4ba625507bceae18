"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from servicefinder.core.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"

SEARCH_FIELDS = (
    "place_id",
    "name",
    "formatted_address",
    "rating",
    "user_ratings_total",
    "geometry",
    "business_status",
    "opening_hours",
    "photos",
    "types",
)

DETAILS_FIELDS = (
    "place_id",
    "name",
    "formatted_address",
    "formatted_phone_number",
    "international_phone_number",
    "website",
    "rating",
    "user_ratings_total",
    "reviews",
    "opening_hours",
    "photos",
    "geometry",
    "business_status",
    "types",
    "url",
    "price_level",
)


class UpstreamError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


class NotFoundError(LookupError):
    """Raised when a place lookup finds no such place."""


def _get(path: str, params: Dict[str, Any]) -> requests.Response:
    try:
        response = _SESSION.get(f"{_BASE_URL}/{path}", params=params, timeout=10)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.error("Places request to %s failed: %s", path, exc)
        raise UpstreamError(f"Google Places request failed: {exc}") from exc
    return response


def text_search(query: str, api_key: str, radius: Optional[float] = None) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": query, "key": api_key, "fields": ",".join(SEARCH_FIELDS)}
    if radius:
        params["radius"] = str(radius)
    payload = _get("textsearch/json", params).json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("text_search failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise UpstreamError(payload.get("error_message") or f"Google Places API returned status: {status}")
    return payload


def place_details(place_id: str, api_key: str, fields: Sequence[str] = DETAILS_FIELDS) -> Optional[Dict[str, Any]]:
    params = {"place_id": place_id, "key": api_key, "fields": ",".join(fields)}
    payload = _get("details/json", params).json()
    status = payload.get("status")
    if status == "NOT_FOUND":
        return None
    if status != "OK":
        logger.error("place_details failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise UpstreamError(payload.get("error_message") or f"Google Places API returned status: {status}")
    return payload.get("result", {})


def fetch_photo(photo_reference: str, api_key: str, max_width: int = 400) -> Tuple[bytes, str]:
    params = {"photoreference": photo_reference, "maxwidth": str(max_width), "key": api_key}
    response = _get("photo", params)
    return response.content, response.headers.get("content-type") or "image/jpeg"


class GooglePlacesProvider:
    """Search, details and photo lookups for home-service businesses."""

    def __init__(
        self,
        api_key: str,
        *,
        radius: float = 16093.4,
        max_results: int = 20,
        region_label: str = "Texas",
    ) -> None:
        self.api_key = api_key
        self.radius = radius
        self.max_results = max_results
        self.region_label = region_label

    @classmethod
    def from_settings(cls, settings: Settings) -> "GooglePlacesProvider":
        return cls(
            settings.google_api_key,
            radius=settings.default_search_radius,
            max_results=settings.max_results,
            region_label=settings.region_label,
        )

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Google Places API key is not configured")

    def search(self, category: str, location: str, radius: Optional[float] = None) -> List[Dict[str, Any]]:
        self.ensure_configured()
        query = f"{category} contractor in {location}, {self.region_label}"
        payload = text_search(query, self.api_key, radius=radius or self.radius)
        results = payload.get("results") or []
        logger.info("Places text search returned %d results for query=%s", len(results), query)
        return results[: self.max_results]

    def get_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        self.ensure_configured()
        return place_details(place_id, self.api_key)

    def get_photo(self, photo_reference: str, max_width: int = 400) -> Tuple[bytes, str]:
        self.ensure_configured()
        return fetch_photo(photo_reference, self.api_key, max_width=max_width)
