"""Async HTTP client for drive distance/duration lookups against OSRM."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from ...config import settings
from ...errors import CollaboratorUnavailable
from ...models.domain import Location, RouteEstimate, RouteSource

METERS_PER_MILE = 1609.344

logger = logging.getLogger(__name__)


class OSRMRouteClient:
    """Route collaborator backed by the OSRM ``route`` service."""

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    def _route_url(self, origin: Location, destination: Location) -> str:
        if not origin.has_coordinates or not destination.has_coordinates:
            raise CollaboratorUnavailable("osrm", "origin and destination need coordinates")
        coordinate_str = (
            f"{origin.longitude},{origin.latitude};{destination.longitude},{destination.latitude}"
        )
        return f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"

    async def estimate_route(self, origin: Location, destination: Location) -> RouteEstimate:
        """Return drive distance (miles) and duration (minutes) between two points."""

        url = self._route_url(origin, destination)
        params = {"overview": "false", "alternatives": "false", "steps": "false"}

        async with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    try:
                        payload = response.json()
                    except ValueError as exc:
                        raise CollaboratorUnavailable("osrm", "invalid JSON in route response") from exc
                    return self._parse_route(payload)
                except httpx.HTTPStatusError as exc:
                    attempt += 1
                    if exc.response.status_code < 500 or attempt > self.max_retries:
                        raise CollaboratorUnavailable(
                            "osrm", f"HTTP {exc.response.status_code} from {self.base_url}"
                        ) from exc
                    await asyncio.sleep(self.backoff_seconds * attempt)
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request failed after {self.max_retries} retries: {exc}")
                        raise CollaboratorUnavailable("osrm", str(exc) or type(exc).__name__) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))  # Exponential backoff
                    logger.debug(
                        f"OSRM request error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})"
                    )
                    await asyncio.sleep(wait_time)

    @staticmethod
    def _parse_route(data: dict) -> RouteEstimate:
        if data.get("code") not in (None, "Ok"):
            raise CollaboratorUnavailable("osrm", f"route lookup returned {data.get('code')}")
        routes = data.get("routes") or []
        if not routes:
            raise CollaboratorUnavailable("osrm", "no route found")
        first = routes[0]
        try:
            distance_m = float(first["distance"])
            duration_s = float(first["duration"])
        except (KeyError, TypeError, ValueError) as exc:
            raise CollaboratorUnavailable("osrm", "route response missing distance/duration") from exc
        return RouteEstimate(
            distance_miles=distance_m / METERS_PER_MILE,
            duration_minutes=duration_s / 60,
            source=RouteSource.COLLABORATOR,
        )
