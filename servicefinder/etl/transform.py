"""Utilities for moving Google Places payloads in and out of the cache tables."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

_DETAIL_ONLY_FIELDS = (
    "formatted_phone_number",
    "international_phone_number",
    "website",
    "url",
    "price_level",
)


def _dumps_or_none(value: Optional[List[Any]]) -> Optional[str]:
    if not value:
        return None
    return json.dumps(value)


def _loads_list(blob: Any) -> List[Any]:
    """Decode a serialized list column; raise ValueError on malformed data."""
    if blob is None or blob == "":
        return []
    if isinstance(blob, list):
        return blob
    try:
        value = json.loads(blob)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ValueError(f"stored value is not valid JSON: {exc}") from exc
    if not isinstance(value, list):
        raise ValueError(f"expected a JSON list, got {type(value).__name__}")
    return value


def to_business_row(place: Dict[str, Any], updated_at: datetime) -> Dict[str, Any]:
    """Flatten a text-search place summary into a ``businesses`` row."""
    location = (place.get("geometry") or {}).get("location") or {}
    plus_code = place.get("plus_code") or {}
    opening_hours = place.get("opening_hours") or {}

    return {
        "place_id": place.get("place_id"),
        "name": place.get("name"),
        "formatted_address": place.get("formatted_address"),
        "rating": place.get("rating"),
        "user_ratings_total": place.get("user_ratings_total"),
        "lat": location.get("lat"),
        "lng": location.get("lng"),
        "business_status": place.get("business_status"),
        "types": list(place.get("types") or []),
        "open_now": opening_hours.get("open_now"),
        "photos": _dumps_or_none(place.get("photos")),
        "plus_code_global": plus_code.get("global_code"),
        "plus_code_compound": plus_code.get("compound_code"),
        "basic_info_updated_at": updated_at,
    }


def to_details_row(details: Dict[str, Any], updated_at: datetime) -> Dict[str, Any]:
    """Flatten a place-details payload, including the extended contact and hours fields."""
    row = to_business_row(details, updated_at)
    del row["basic_info_updated_at"]
    opening_hours = details.get("opening_hours") or {}

    for field in _DETAIL_ONLY_FIELDS:
        row[field] = details.get(field)
    row["opening_hours_weekday_text"] = opening_hours.get("weekday_text")
    row["opening_hours_periods"] = _dumps_or_none(opening_hours.get("periods"))
    row["details_updated_at"] = updated_at
    return row


def _review_fields(review: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "author_name": review.get("author_name"),
        "author_url": review.get("author_url"),
        "language": review.get("language") or "en",
        "profile_photo_url": review.get("profile_photo_url"),
        "rating": review.get("rating"),
        "text": review.get("text"),
        "time": review.get("time"),
        "relative_time_description": review.get("relative_time_description"),
    }


def to_review_rows(place_id: str, reviews: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [dict(_review_fields(review), place_id=place_id) for review in reviews]


def to_place(row: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild the place-summary shape the provider returns from a stored row."""
    place: Dict[str, Any] = {
        "place_id": row["place_id"],
        "name": row.get("name"),
        "formatted_address": row.get("formatted_address"),
        "rating": row.get("rating"),
        "user_ratings_total": row.get("user_ratings_total"),
        "geometry": {"location": {"lat": row.get("lat"), "lng": row.get("lng")}},
        "business_status": row.get("business_status"),
        "types": list(row.get("types") or []),
        "photos": _loads_list(row.get("photos")),
    }
    if row.get("open_now") is not None:
        place["opening_hours"] = {"open_now": row["open_now"]}
    if row.get("plus_code_global") or row.get("plus_code_compound"):
        place["plus_code"] = {
            "global_code": row.get("plus_code_global"),
            "compound_code": row.get("plus_code_compound"),
        }
    return place


def to_place_details(row: Dict[str, Any], reviews: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Rebuild a place-details payload from a stored row and its reviews."""
    details = to_place(row)
    for field in _DETAIL_ONLY_FIELDS:
        details[field] = row.get(field)

    weekday_text = row.get("opening_hours_weekday_text")
    if weekday_text:
        details["opening_hours"] = {
            "open_now": row.get("open_now"),
            "weekday_text": list(weekday_text),
            "periods": _loads_list(row.get("opening_hours_periods")),
        }

    details["reviews"] = [_review_fields(review) for review in reviews]
    details["details_updated_at"] = row.get("details_updated_at")
    return details
