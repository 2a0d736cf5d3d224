"""Marinesia vessel-profile API client.

Async httpx client for https://api.marinesia.com/api/v1.  The API key travels
as the ``key`` query parameter.  Three endpoints are used:

  - ``/vessel/{mmsi}/profile``          single profile by MMSI
  - ``/vessel/profile?filters=...``     filtered profile search (``name:X``, ``imo:N``)
  - ``/vessel/{mmsi}/location/latest``  most recent position

Error contract:
  - HTTP 404 is "not found", not an error: profile and location lookups return
    None, searches return [].
  - Payloads flagged ``error: true`` or carrying no ``data`` are treated the
    same way as a 404.
  - Transport failures, non-JSON responses, other non-success statuses and a
    missing API key raise ``RemoteServiceError``.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import settings
from app.modules.normalize import from_profile, latest_position_from_payload
from app.schemas.vessel import LatestPosition, VesselResult
from app.utils.http_retry import retry_request

logger = logging.getLogger(__name__)


class RemoteServiceError(Exception):
    """The remote profile service could not answer the request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_hint(body: str) -> str:
    """Turn a non-JSON error page into a short, actionable message."""
    lowered = body.lower()
    if "rate limit" in lowered:
        return "Rate limit exceeded. Please try again later."
    if "invalid" in lowered:
        return "Invalid API key or request."
    return "Marinesia API returned an error"


class MarinesiaClient:
    """Thin async wrapper over the Marinesia REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_delays: list[float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or settings.MARINESIA_BASE_URL).rstrip("/")
        self._retry_delays = retry_delays
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.MARINESIA_TIMEOUT,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict | None = None) -> Any | None:
        """GET *path* and return the ``data`` member, or None when not found."""
        if not self.api_key:
            raise RemoteServiceError("Marinesia API not configured")

        query = dict(params or {})
        query["key"] = self.api_key
        logger.debug("Marinesia API: GET %s", path)

        try:
            resp = await retry_request(
                self._client.get, path, params=query, delays=self._retry_delays,
            )
        except httpx.HTTPStatusError as exc:
            resp = exc.response
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"Failed to fetch from Marinesia: {exc}") from exc
        except OSError as exc:
            raise RemoteServiceError(f"Failed to fetch from Marinesia: {exc}") from exc

        if resp.status_code == 404:
            return None

        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.error("Marinesia API returned non-JSON (%d)", resp.status_code)
            raise RemoteServiceError(_error_hint(resp.text), status_code=resp.status_code)

        if resp.status_code >= 400:
            raise RemoteServiceError(
                f"Marinesia API returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise RemoteServiceError("Marinesia API returned malformed JSON") from exc

        if not isinstance(payload, dict) or payload.get("error") or not payload.get("data"):
            return None
        return payload["data"]

    async def get_profile(self, mmsi: str) -> VesselResult | None:
        data = await self._get(f"/vessel/{mmsi}/profile")
        if not isinstance(data, dict):
            return None
        return from_profile(data)

    async def search_profiles(self, filters: str, limit: int | None = None) -> list[VesselResult]:
        """Filtered profile search, e.g. ``name:EVER GIVEN`` or ``imo:9811000``."""
        data = await self._get(
            "/vessel/profile",
            params={"filters": filters, "limit": limit or settings.MARINESIA_SEARCH_LIMIT},
        )
        if not isinstance(data, list):
            return []
        return [from_profile(item) for item in data if isinstance(item, dict)]

    async def get_latest_location(self, mmsi: str) -> LatestPosition | None:
        data = await self._get(f"/vessel/{mmsi}/location/latest")
        if not isinstance(data, dict):
            return None
        return latest_position_from_payload(data)
