"""Tests for the Marinesia profile client (marinesia_client.py).

Uses httpx.MockTransport so every request is answered in-process.
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from app.modules.marinesia_client import MarinesiaClient, RemoteServiceError
from app.schemas.vessel import ResultSource


PROFILE = {
    "name": "EVER GIVEN", "imo": 9811000, "mmsi": 353136000, "ship_type": "Container Ship",
    "length": 400, "width": 59, "country": "PAN", "callsign": "H3RC",
}


def _client(handler, api_key="test-key") -> MarinesiaClient:
    return MarinesiaClient(
        api_key=api_key,
        base_url="https://marinesia.test/api/v1",
        retry_delays=[0],
        transport=httpx.MockTransport(handler),
    )


def _call(client: MarinesiaClient, method: str, *args, **kwargs):
    async def _run():
        try:
            return await getattr(client, method)(*args, **kwargs)
        finally:
            await client.aclose()

    return asyncio.run(_run())


class TestGetProfile:
    def test_profile_found(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"error": False, "data": PROFILE})

        result = _call(_client(handler), "get_profile", "353136000")
        assert result.name == "EVER GIVEN"
        assert result.flag == "Panama"
        assert result.source == ResultSource.REMOTE
        assert seen[0].url.path == "/api/v1/vessel/353136000/profile"
        assert seen[0].url.params["key"] == "test-key"

    def test_404_is_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"error": True, "message": "not found"})

        assert _call(_client(handler), "get_profile", "353136000") is None

    def test_error_payload_is_not_found(self):
        def handler(request):
            return httpx.Response(200, json={"error": True, "data": None})

        assert _call(_client(handler), "get_profile", "353136000") is None


class TestSearchProfiles:
    def test_filters_and_limit_forwarded(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [PROFILE, PROFILE]})

        results = _call(_client(handler), "search_profiles", "name:EVER GIVEN", limit=5)
        assert len(results) == 2
        assert seen[0].url.path == "/api/v1/vessel/profile"
        assert seen[0].url.params["filters"] == "name:EVER GIVEN"
        assert seen[0].url.params["limit"] == "5"

    def test_404_is_empty_list(self):
        def handler(request):
            return httpx.Response(404)

        assert _call(_client(handler), "search_profiles", "imo:1234567") == []


class TestErrors:
    def test_missing_key(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(RemoteServiceError, match="not configured"):
            _call(_client(handler, api_key=None), "get_profile", "353136000")

    def test_non_json_rate_limit(self):
        def handler(request):
            return httpx.Response(403, text="Rate Limit exceeded", headers={"content-type": "text/html"})

        with pytest.raises(RemoteServiceError, match="Rate limit") as exc_info:
            _call(_client(handler), "search_profiles", "name:GINGKO")
        assert exc_info.value.status_code == 403

    def test_non_json_invalid_key(self):
        def handler(request):
            return httpx.Response(401, text="Invalid key", headers={"content-type": "text/plain"})

        with pytest.raises(RemoteServiceError, match="Invalid API key"):
            _call(_client(handler), "get_profile", "353136000")

    def test_json_server_error_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"error": True})

        with pytest.raises(RemoteServiceError, match="HTTP 500"):
            _call(_client(handler), "get_profile", "353136000")
        assert len(calls) == 2

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(RemoteServiceError, match="Failed to fetch"):
            _call(_client(handler), "get_profile", "353136000")


class TestLatestLocation:
    def test_location_mapped(self):
        def handler(request):
            assert request.url.path.endswith("/vessel/353136000/location/latest")
            return httpx.Response(200, json={"data": {
                "lat": 30.0, "lng": 32.5, "sog": 0.0, "cog": 0.0, "hdt": 511,
                "status": 6, "ts": "2021-03-23T05:40:00Z", "dest": "ROTTERDAM",
            }})

        position = _call(_client(handler), "get_latest_location", "353136000")
        assert position.status == "Aground"
        assert position.destination == "ROTTERDAM"

    def test_no_location(self):
        def handler(request):
            return httpx.Response(404)

        assert _call(_client(handler), "get_latest_location", "353136000") is None
