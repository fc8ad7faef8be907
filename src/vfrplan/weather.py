"""
Point forecast client and forecast sampling.

Forecasts come from the Windy Point Forecast API (v2). A response holds a
``ts`` array of millisecond timestamps and one array per
``<parameter>-<level>`` key, for example ``wind_u-850h`` or
``temp-surface``.
"""

import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import ClientConfig
from .exceptions import ProviderConnectionError, ProviderQueryError
from .interpolation import Bracket, bracket, series_value
from .models import WeatherSample
from .units import CLEAR_SKY_METERS, kelvin_to_celsius, ms_to_knots
from .vertical_wind import decode_wind_components, resolve_wind_at_altitude, vertical_wind_profile

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = (
    "wind",
    "windGust",
    "temp",
    "dewpoint",
    "rh",
    "pressure",
    "precip",
    "cbase",
)

# Key spellings tried in order; some models return bare parameter names
GUST_KEYS = ("gust-surface", "gust")
CLOUD_BASE_KEYS = ("cbase-surface", "cbase")
DEFAULT_LEVELS = (
    "surface",
    "1000h",
    "950h",
    "925h",
    "900h",
    "850h",
    "800h",
    "700h",
    "600h",
    "500h",
    "400h",
    "300h",
    "200h",
    "150h",
)

# Response keys that are not forecast series
_META_KEYS = ("ts", "units", "warning")


def estimate_visibility(humidity: float) -> float:
    """Rough visibility (km) from relative humidity (%)."""
    if humidity >= 100:
        return 0.5
    if humidity >= 95:
        return 2.0
    if humidity >= 90:
        return 5.0
    if humidity >= 80:
        return 10.0
    return 20.0


def validate_coordinates(lat: float, lon: float) -> None:
    if not -90 <= lat <= 90:
        raise ValueError(f"Latitude must be between -90 and 90, got {lat}")
    if not -180 <= lon <= 180:
        raise ValueError(f"Longitude must be between -180 and 180, got {lon}")


@dataclass
class PointForecast:
    """Raw forecast series for one location."""

    lat: float
    lon: float
    timestamps: List[int]
    series: Dict[str, List[Optional[float]]] = field(default_factory=dict)
    units: Dict[str, Optional[str]] = field(default_factory=dict)
    fetched_at: float = field(default_factory=time.time)

    @classmethod
    def from_response(cls, lat: float, lon: float, data: Dict[str, Any]) -> "PointForecast":
        """
        Build from a point forecast JSON payload.

        Raises:
            ProviderQueryError: If timestamps or series values are not numeric
        """
        try:
            timestamps = [int(t) for t in data.get("ts") or []]
            series = {
                key: [None if v is None else float(v) for v in values]
                for key, values in data.items()
                if key not in _META_KEYS and isinstance(values, list)
            }
            units = dict(data.get("units") or {})
        except (TypeError, ValueError) as e:
            raise ProviderQueryError(f"Invalid forecast payload: {e}") from e

        short = [key for key, values in series.items() if len(values) != len(timestamps)]
        if short:
            logger.warning(
                f"Forecast series length differs from timestamps for: {', '.join(sorted(short))}"
            )

        return cls(lat=lat, lon=lon, timestamps=timestamps, series=series, units=units)

    @property
    def start(self) -> Optional[int]:
        return self.timestamps[0] if self.timestamps else None

    @property
    def end(self) -> Optional[int]:
        return self.timestamps[-1] if self.timestamps else None

    def _value(self, key: str, position: Bracket) -> Optional[float]:
        return series_value(self.series.get(key), position)

    def _first_value(self, keys: Sequence[str], position: Bracket) -> Optional[float]:
        for key in keys:
            if self.series.get(key):
                return self._value(key, position)
        return None

    def _temperature(self, key: str, position: Bracket) -> Optional[float]:
        value = self._value(key, position)
        if value is None:
            return None
        # Windy reports temperatures in kelvin
        if self.units.get(key) in (None, "K"):
            return kelvin_to_celsius(value)
        return value

    def _precipitation(self, position: Bracket) -> Optional[float]:
        key = "past3hprecip-surface"
        value = self._value(key, position)
        if value is None:
            return None
        return value * 1000.0 if self.units.get(key) == "m" else value

    def _cloud_base(self, position: Bracket) -> Optional[float]:
        value = self._first_value(CLOUD_BASE_KEYS, position)
        # Absent, NaN, non-positive and sentinel bases all mean clear sky
        if value is None or math.isnan(value) or value <= 0 or value >= CLEAR_SKY_METERS:
            return None
        return value

    def sample(
        self, timestamp: Optional[int] = None, altitude_ft: Optional[float] = None
    ) -> Optional[WeatherSample]:
        """
        Weather at ``timestamp`` (ms), with wind resolved at ``altitude_ft``.

        Surface values are interpolated between the bracketing forecast
        steps. The vertical wind profile is taken from the nearest step. If
        no altitude is given, or no pressure-level wind is available, the
        surface wind is used. Missing wind is reported as zero.

        Returns:
            WeatherSample, or None if the forecast has no timestamps
        """
        if not self.timestamps:
            return None

        if timestamp is None:
            timestamp = int(time.time() * 1000)

        position = bracket(self.timestamps, timestamp)
        nearest = position.upper_index if position.fraction >= 0.5 else position.lower_index

        surface_speed = surface_direction = None
        u = self._value("wind_u-surface", position)
        v = self._value("wind_v-surface", position)
        if u is not None and v is not None:
            surface_speed, surface_direction = decode_wind_components(u, v)

        verticals = vertical_wind_profile(self.series, nearest)

        wind_speed, wind_direction = surface_speed, surface_direction
        wind_altitude = wind_level = None
        if altitude_ft is not None and altitude_ft > 0:
            resolved = resolve_wind_at_altitude(verticals, altitude_ft)
            if resolved is not None:
                wind_speed, wind_direction = resolved.speed, resolved.direction
                wind_altitude, wind_level = altitude_ft, resolved.level

        gust = self._first_value(GUST_KEYS, position)
        pressure = self._value("pressure-surface", position)
        humidity = self._value("rh-surface", position)

        return WeatherSample(
            timestamp=timestamp,
            wind_speed=wind_speed if wind_speed is not None else 0.0,
            wind_direction=wind_direction if wind_direction is not None else 0.0,
            temperature=self._temperature("temp-surface", position),
            wind_altitude=wind_altitude,
            wind_level=wind_level,
            surface_wind_speed=surface_speed,
            surface_wind_direction=surface_direction,
            gust=ms_to_knots(gust) if gust is not None else None,
            dew_point=self._temperature("dewpoint-surface", position),
            pressure=pressure / 100.0 if pressure is not None else None,
            cloud_base=self._cloud_base(position),
            humidity=humidity,
            visibility=estimate_visibility(humidity) if humidity is not None else None,
            precipitation=self._precipitation(position),
            vertical_winds=verticals,
        )


class ForecastClient:
    """
    Async client for the Windy Point Forecast API.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig.forecast_defaults()
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

    async def __aenter__(self) -> "ForecastClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _make_request(self, payload: Dict[str, Any]) -> Any:
        """POST a forecast request with error handling."""
        try:
            response = await self._client.post(self.config.base_url, json=payload)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise ProviderConnectionError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ProviderQueryError("Forecast not found") from e
            elif e.response.status_code == 429:
                raise ProviderConnectionError("Rate limit exceeded") from e
            elif e.response.status_code >= 500:
                raise ProviderConnectionError(
                    "Forecast service temporarily unavailable"
                ) from e
            else:
                raise ProviderConnectionError(
                    f"HTTP error {e.response.status_code}: {e}"
                ) from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(f"Network error: {e}") from e
        except json.JSONDecodeError as e:
            raise ProviderQueryError(f"Invalid JSON response: {e}") from e

    async def fetch_forecast(
        self,
        lat: float,
        lon: float,
        levels: Optional[Sequence[str]] = None,
        parameters: Optional[Sequence[str]] = None,
    ) -> PointForecast:
        """
        Fetch the raw forecast series for a location.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees
            levels: Level labels to request (default: surface and pressure levels)
            parameters: Forecast parameters to request

        Returns:
            PointForecast

        Raises:
            ValueError: If the coordinates are out of range
            ProviderQueryError: If no API key is configured or the response is unusable
            ProviderConnectionError: On network or service errors
        """
        validate_coordinates(lat, lon)

        if not self.config.api_key:
            raise ProviderQueryError(
                "No forecast API key configured. Set WINDY_API_KEY or pass a ClientConfig."
            )

        payload = {
            "lat": round(lat, 4),
            "lon": round(lon, 4),
            "model": self.config.model,
            "parameters": list(parameters or DEFAULT_PARAMETERS),
            "levels": list(levels or DEFAULT_LEVELS),
            "key": self.config.api_key,
        }

        logger.debug(f"Requesting {self.config.model} forecast for {lat:.4f},{lon:.4f}")
        data = await self._make_request(payload)

        if not isinstance(data, dict):
            raise ProviderQueryError("Unexpected forecast response format")

        forecast = PointForecast.from_response(lat, lon, data)
        if not forecast.timestamps:
            raise ProviderQueryError("Forecast response contains no timestamps")

        return forecast

    async def fetch_weather(
        self,
        lat: float,
        lon: float,
        timestamp: Optional[int] = None,
        altitude_ft: Optional[float] = None,
    ) -> Optional[WeatherSample]:
        """Fetch a forecast and sample it at one time and altitude."""
        forecast = await self.fetch_forecast(lat, lon)
        return forecast.sample(timestamp, altitude_ft)
