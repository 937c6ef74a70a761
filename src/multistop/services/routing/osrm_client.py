"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...errors import RoutingProviderError
from ...models.domain import Location
from .models import CostMatrix

logger = logging.getLogger(__name__)

OSRM_PROFILES = {
    "driving": "driving",
    "walking": "foot",
    "cycling": "bike",
}


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def _get_json(self, url: str, params: dict) -> dict:
        """GET with retries; transport failures surface as RoutingProviderError."""
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if not isinstance(data, dict):
                        raise RoutingProviderError(f"OSRM returned an unexpected {type(data).__name__} body.")
                    if data.get("code", "Ok") != "Ok":
                        raise RoutingProviderError(
                            f"OSRM returned {data.get('code')}: {data.get('message', 'no message')}"
                        )
                    return data
                except RoutingProviderError:
                    raise
                except httpx.HTTPStatusError as exc:
                    # Client errors will not improve on retry.
                    if exc.response.status_code < 500 and exc.response.status_code != 429:
                        raise RoutingProviderError(
                            f"OSRM rejected the request with HTTP {exc.response.status_code}"
                        ) from exc
                    attempt += 1
                    if attempt > self.max_retries:
                        raise RoutingProviderError(
                            f"OSRM request failed with HTTP {exc.response.status_code} after {attempt} attempts"
                        ) from exc
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM request timed out after {self.max_retries} retries: {exc}")
                        raise RoutingProviderError(f"OSRM request timed out: {exc}") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise RoutingProviderError(
                            f"Failed to connect to OSRM service at {self.base_url}: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                    time.sleep(wait_time)
                except ValueError as exc:
                    raise RoutingProviderError(f"OSRM response was not valid JSON: {exc}") from exc
        finally:
            client.close()

    def table(
        self,
        locations: Sequence[Location],
        *,
        mode: str = "driving",
        avoid_tolls: bool = False,
        avoid_highways: bool = False,
    ) -> CostMatrix:
        """Distance/duration matrix for ``locations``. Unroutable pairs are ``None`` cells."""
        if len(locations) < 2:
            raise ValueError("At least two locations are required for OSRM table.")

        params = {"annotations": "duration,distance"}
        exclude = _exclude_classes(avoid_tolls, avoid_highways)
        if exclude:
            params["exclude"] = exclude
        url = f"{self.base_url}/table/v1/{_profile(mode)}/{_coordinate_path(locations)}"

        data = self._get_json(url, params)
        if "durations" not in data or "distances" not in data:
            raise RoutingProviderError("OSRM response missing durations/distances.")

        size = len(locations)
        try:
            durations = _square(data["durations"], size)
            distances = _square(data["distances"], size)
        except (TypeError, ValueError) as exc:
            raise RoutingProviderError(f"OSRM table response is malformed: {exc}") from exc
        return CostMatrix(distances=distances, durations=durations)

    def route(self, locations: Sequence[Location], *, mode: str = "driving") -> list[tuple[float, float]]:
        """Street-following geometry through ``locations`` in the given order, as (lat, lng) pairs."""
        if len(locations) < 2:
            raise ValueError("At least two locations are required for OSRM route.")

        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{_profile(mode)}/{_coordinate_path(locations)}"
        data = self._get_json(url, params)
        routes = data.get("routes") or []
        first = routes[0] if isinstance(routes, list) and routes else None
        if not isinstance(first, dict) or not first.get("geometry"):
            raise RoutingProviderError("OSRM route response has no geometry.")
        try:
            return decode_polyline(first["geometry"])
        except (IndexError, TypeError) as exc:
            raise RoutingProviderError(f"OSRM route geometry could not be decoded: {exc}") from exc


def _profile(mode: str) -> str:
    try:
        return OSRM_PROFILES[mode]
    except KeyError as exc:
        raise ValueError(f"Unsupported travel mode '{mode}'.") from exc


def _coordinate_path(locations: Sequence[Location]) -> str:
    # OSRM expects lon,lat order
    return ";".join(f"{location.lng},{location.lat}" for location in locations)


def _exclude_classes(avoid_tolls: bool, avoid_highways: bool) -> str:
    classes = []
    if avoid_tolls:
        classes.append("toll")
    if avoid_highways:
        classes.append("motorway")
    return ",".join(classes)


def _square(rows: list, size: int) -> list[list[float | None]]:
    """Copy an OSRM table into a ``size`` x ``size`` grid, leaving absent cells as None."""
    grid: list[list[float | None]] = [[None] * size for _ in range(size)]
    for i, row in enumerate(rows[:size]):
        for j, value in enumerate((row or [])[:size]):
            grid[i][j] = float(value) if value is not None else None
    return grid


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates."""
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(polyline[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if (result & 1) else (result >> 1))
        lat += deltas[0]
        lon += deltas[1]
        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health with a minimal two-point table request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base.rstrip('/')}/table/v1/driving/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return "durations" in data and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError):
        return False
