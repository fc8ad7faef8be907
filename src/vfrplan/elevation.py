"""
Terrain elevation client for the Open-Meteo elevation API.
"""

import asyncio
import json
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import ClientConfig
from .exceptions import ProviderConnectionError, ProviderError, ProviderQueryError
from .units import meters_to_feet
from .weather import validate_coordinates

logger = logging.getLogger(__name__)

# Open-Meteo accepts up to 100 coordinates per request
MAX_POINTS_PER_REQUEST = 100


class ElevationClient:
    """Async client for batched elevation lookups."""

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig.elevation_defaults()
        self.timeout = self.config.timeout
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ElevationClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _make_request(self, params: Dict[str, str]) -> Any:
        """Make a request to the elevation API with error handling."""
        try:
            response = await self._client.get(self.config.base_url, params=params)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise ProviderConnectionError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ProviderQueryError("Elevation data not found") from e
            elif e.response.status_code == 429:
                raise ProviderConnectionError("Rate limit exceeded") from e
            elif e.response.status_code >= 500:
                raise ProviderConnectionError(
                    "Elevation service temporarily unavailable"
                ) from e
            else:
                raise ProviderConnectionError(
                    f"HTTP error {e.response.status_code}: {e}"
                ) from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(f"Network error: {e}") from e
        except json.JSONDecodeError as e:
            raise ProviderQueryError(f"Invalid JSON response: {e}") from e

    async def _fetch_chunk(self, points: Sequence[Any]) -> List[Optional[float]]:
        """Fetch one batch; a failed batch yields None for each point."""
        params = {
            "latitude": ",".join(f"{p.lat:.5f}" for p in points),
            "longitude": ",".join(f"{p.lon:.5f}" for p in points),
        }

        try:
            data = await self._make_request(params)
        except ProviderError as e:
            logger.warning(f"Elevation lookup failed for {len(points)} points: {e}")
            return [None] * len(points)

        values = data.get("elevation") if isinstance(data, dict) else None
        if not isinstance(values, list):
            logger.warning("Elevation response has no 'elevation' array")
            return [None] * len(points)

        elevations: List[Optional[float]] = []
        for i in range(len(points)):
            value = values[i] if i < len(values) else None
            if value is None or (isinstance(value, float) and math.isnan(value)):
                elevations.append(None)
            else:
                elevations.append(float(value))
        return elevations

    async def fetch_elevations(self, points: Sequence[Any]) -> List[Optional[float]]:
        """
        Look up terrain elevation for many points.

        Points only need ``lat`` and ``lon`` attributes. Requests are split
        into batches of 100 and sent concurrently.

        Args:
            points: Points to look up, in order

        Returns:
            Elevations in meters MSL, same order as ``points``; None where a
            lookup failed
        """
        if not points:
            return []

        for p in points:
            validate_coordinates(p.lat, p.lon)

        chunks = [
            points[i : (i + MAX_POINTS_PER_REQUEST)]
            for i in range(0, len(points), MAX_POINTS_PER_REQUEST)
        ]
        if len(chunks) > 1:
            logger.debug(
                f"Fetching {len(points)} elevations in {len(chunks)} chunks "
                f"of {MAX_POINTS_PER_REQUEST}"
            )

        results = await asyncio.gather(*[self._fetch_chunk(chunk) for chunk in chunks])

        elevations: List[Optional[float]] = []
        for chunk_result in results:
            elevations.extend(chunk_result)
        return elevations

    async def fetch_point_elevation(self, lat: float, lon: float) -> Optional[float]:
        """Terrain elevation at one point in feet MSL, or None if unavailable."""
        validate_coordinates(lat, lon)
        data = await self._make_request({"latitude": f"{lat:.5f}", "longitude": f"{lon:.5f}"})

        values = data.get("elevation") if isinstance(data, dict) else None
        if not values or values[0] is None:
            return None
        return meters_to_feet(float(values[0]))
