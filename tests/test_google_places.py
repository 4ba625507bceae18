import pytest
import requests

from servicefinder.core.config import ConfigurationError
from servicefinder.vendors import google_places


class DummyResponse:
    def __init__(self, status_code=200, payload=None, content=b"", headers=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.content = content
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        return self.response


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(google_places, "_SESSION", session)
    return session


def test_text_search_success(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OK", "results": []})
    payload = google_places.text_search("plumbing", "key", radius=500)
    assert payload["status"] == "OK"
    url, params, timeout = patch_session.calls[0]
    assert "textsearch" in url
    assert params["query"] == "plumbing"
    assert params["radius"] == "500"
    assert timeout == 10


def test_text_search_zero_results_is_not_an_error(patch_session):
    patch_session.response = DummyResponse(payload={"status": "ZERO_RESULTS", "results": []})
    assert google_places.text_search("plumbing", "key")["results"] == []


def test_text_search_error_status(patch_session):
    patch_session.response = DummyResponse(payload={"status": "INVALID_REQUEST", "error_message": "bad"})
    with pytest.raises(google_places.UpstreamError, match="bad"):
        google_places.text_search("plumbing", "key")


def test_http_errors_become_upstream_errors(patch_session):
    patch_session.response = DummyResponse(status_code=503)
    with pytest.raises(google_places.UpstreamError):
        google_places.text_search("plumbing", "key")


def test_place_details_success(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OK", "result": {"name": "Acme"}})
    result = google_places.place_details("pid", "key")
    assert result["name"] == "Acme"
    assert "reviews" in patch_session.calls[0][1]["fields"]


def test_place_details_not_found(patch_session):
    patch_session.response = DummyResponse(payload={"status": "NOT_FOUND"})
    assert google_places.place_details("pid", "key") is None


def test_place_details_error(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OVER_QUERY_LIMIT", "error_message": "limit"})
    with pytest.raises(google_places.UpstreamError):
        google_places.place_details("pid", "key")


def test_fetch_photo_returns_bytes_and_type(patch_session):
    patch_session.response = DummyResponse(content=b"\x89PNG", headers={"content-type": "image/png"})
    content, content_type = google_places.fetch_photo("ref", "key", max_width=800)
    assert content == b"\x89PNG"
    assert content_type == "image/png"
    assert patch_session.calls[0][1]["maxwidth"] == "800"


def test_fetch_photo_defaults_to_jpeg(patch_session):
    patch_session.response = DummyResponse(content=b"data")
    assert google_places.fetch_photo("ref", "key")[1] == "image/jpeg"


def test_provider_builds_query_and_caps_results(patch_session):
    results = [{"place_id": str(i)} for i in range(25)]
    patch_session.response = DummyResponse(payload={"status": "OK", "results": results})
    provider = google_places.GooglePlacesProvider("key", radius=1000, max_results=20)

    places = provider.search("Roofing", "Katy")

    assert len(places) == 20
    params = patch_session.calls[0][1]
    assert params["query"] == "Roofing contractor in Katy, Texas"
    assert params["radius"] == "1000"


def test_provider_requires_api_key(patch_session):
    provider = google_places.GooglePlacesProvider("")
    with pytest.raises(ConfigurationError):
        provider.search("Roofing", "Katy")
    with pytest.raises(ConfigurationError):
        provider.get_details("pid")
    assert patch_session.calls == []
