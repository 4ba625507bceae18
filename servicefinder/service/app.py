"""HTTP entrypoint for search, place details and photo lookups."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from servicefinder.cache.cleanup import SearchCacheCleaner
from servicefinder.cache.details import DetailCache
from servicefinder.cache.search import SearchCache
from servicefinder.core.config import ConfigurationError, Settings, get_settings
from servicefinder.core.db import StorageClient
from servicefinder.regions import is_supported_region
from servicefinder.service.lookup import LookupService
from servicefinder.vendors.google_places import GooglePlacesProvider, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

MAX_PHOTO_WIDTH = 1600
DEFAULT_PHOTO_WIDTH = 400

api = Blueprint("api", __name__)
_executor = ThreadPoolExecutor(max_workers=2)


def _service() -> LookupService:
    return current_app.extensions["lookup_service"]


def _error(error: str, status: int, message: Optional[str] = None) -> Any:
    body: Dict[str, Any] = {"error": error}
    if message:
        body["message"] = message
    return jsonify(body), status


# ---------- Routes ----------


@api.get("/healthz")
def healthcheck() -> Any:
    return jsonify({"status": "ok", "cache_available": _service().cache_available}), 200


@api.get("/api/search")
def search() -> Any:
    category = (request.args.get("category") or "").strip()
    location = (request.args.get("location") or "").strip()
    if not category or not location:
        return _error("Missing required parameters: category and location", 400)

    region = is_supported_region(location)
    if not region.valid:
        return _error(
            "Location must be in Texas",
            400,
            "Please enter a Texas city, county, or zip code (e.g., Houston, Harris County, 77024)",
        )

    radius_raw = request.args.get("radius")
    radius = None
    if radius_raw:
        try:
            radius = int(radius_raw)
        except ValueError:
            return _error("radius must be an integer number of meters", 400)

    try:
        payload = _service().search(category, location, radius=radius, metro=region.metro)
    except ConfigurationError as exc:
        logger.error("Search unavailable: %s", exc)
        return _error("Failed to search places", 500, str(exc))
    except UpstreamError as exc:
        return _error("Failed to search places", 502, str(exc))
    return jsonify(payload), 200


@api.get("/api/place/<place_id>")
def place_details(place_id: str) -> Any:
    try:
        payload = _service().place_details(place_id)
    except NotFoundError as exc:
        return _error("Place not found", 404, str(exc))
    except ConfigurationError as exc:
        logger.error("Place details unavailable: %s", exc)
        return _error("Failed to get place details", 500, str(exc))
    except UpstreamError as exc:
        return _error("Failed to get place details", 502, str(exc))
    return jsonify(payload), 200


@api.get("/api/photo")
def photo() -> Any:
    reference = request.args.get("reference")
    if not reference:
        return _error("Missing required parameter: reference", 400)

    try:
        max_width = int(request.args.get("maxWidth") or DEFAULT_PHOTO_WIDTH)
    except ValueError:
        max_width = 0
    if not 1 <= max_width <= MAX_PHOTO_WIDTH:
        return _error(f"Invalid maxWidth parameter (must be between 1 and {MAX_PHOTO_WIDTH})", 400)

    try:
        content, content_type = _service().photo(reference, max_width=max_width)
    except ConfigurationError as exc:
        return _error("Failed to fetch photo", 500, str(exc))
    except UpstreamError as exc:
        return _error("Failed to fetch photo", 502, str(exc))

    response = Response(content, status=200, content_type=content_type)
    response.headers["Cache-Control"] = "public, max-age=86400"
    return response


@api.post("/api/cache/cleanup")
def enqueue_cleanup() -> Any:
    cleaner: SearchCacheCleaner = current_app.extensions["cache_cleaner"]
    logger.info("Queueing search cache cleanup")
    _executor.submit(_run_cleanup_safe, cleaner)
    return jsonify({"data": {"status": "queued"}}), 202


# ---------- Internals ----------


def _run_cleanup_safe(cleaner: SearchCacheCleaner) -> None:
    try:
        cleaner.evict_older_than()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Cache cleanup failed: %s", exc)


def build_service(settings: Settings, storage: StorageClient) -> LookupService:
    """Wire the provider and cache tiers around a shared storage client."""
    return LookupService(
        GooglePlacesProvider.from_settings(settings),
        SearchCache(storage, ttl=timedelta(days=settings.search_ttl_days)),
        DetailCache(storage, ttl=timedelta(days=settings.details_ttl_days)),
        single_flight=settings.single_flight,
    )


def create_app(service: LookupService, cleaner: Optional[SearchCacheCleaner] = None) -> Flask:
    app = Flask(__name__)
    app.extensions["lookup_service"] = service
    app.extensions["cache_cleaner"] = cleaner or SearchCacheCleaner(
        service.search_cache.storage, ttl=service.search_cache.ttl
    )
    app.register_blueprint(api)
    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    settings = get_settings()
    storage = StorageClient.from_settings(settings)
    service = build_service(settings, storage)
    cleaner = SearchCacheCleaner(storage, ttl=timedelta(days=settings.search_ttl_days))
    app = create_app(service, cleaner)

    port = int(os.getenv("PORT") or settings.port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d (cache available: %s)", port, storage.available)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
