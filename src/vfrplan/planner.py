"""
Route planning: navigation recomputation, concurrent weather and terrain
fetching, and end-to-end profile construction.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .cache import ForecastCache
from .conditions import (
    DEFAULT_ALERT_THRESHOLDS,
    AlertThresholds,
    ConditionThresholds,
    WeatherAlert,
    check_weather_alerts,
    thresholds_for_preset,
)
from .config import PlannerSettings
from .elevation import ElevationClient
from .exceptions import ProviderError, RouteError
from .models import ProfilePoint, RouteTotals, SampledPoint, Waypoint, WeatherSample
from .navigation import calculate_leg, headwind_component
from .profile import DEFAULT_ALTITUDE_FT, fuse
from .sampling import DEFAULT_SAMPLE_INTERVAL_NM, attach_elevations, sample_route
from .units import MS_PER_MINUTE
from .utils import add_sync_version
from .weather import ForecastClient, PointForecast

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 4


@dataclass
class FlightProfile:
    """Everything derived for one route at one departure time."""

    waypoints: List[Waypoint]
    totals: RouteTotals
    weather: Mapping[str, WeatherSample]
    samples: List[SampledPoint] = field(default_factory=list)
    points: List[ProfilePoint] = field(default_factory=list)
    departure_time: Optional[int] = None
    alerts: Dict[str, List[WeatherAlert]] = field(default_factory=dict)


def validate_route(waypoints: Sequence[Waypoint]) -> None:
    """Raise RouteError if waypoint ids are not unique."""
    seen = set()
    for wp in waypoints:
        if wp.id in seen:
            raise RouteError(f"Duplicate waypoint id '{wp.id}' in route")
        seen.add(wp.id)


def compute_route_navigation(
    waypoints: Sequence[Waypoint],
    tas: float = 100.0,
    weather: Optional[Mapping[str, WeatherSample]] = None,
) -> Tuple[List[Waypoint], RouteTotals]:
    """
    Recompute leg figures for every waypoint.

    Returns new Waypoint objects; the inputs are not modified. The first
    waypoint has no leg fields. When ``weather`` has an entry for a
    waypoint, its wind is applied to the leg arriving there.

    Args:
        waypoints: Route waypoints in order
        tas: True airspeed in knots
        weather: Forecast samples keyed by waypoint id

    Returns:
        Tuple of (updated waypoints, route totals)
    """
    if not waypoints:
        return [], RouteTotals()

    weather = weather or {}
    updated = [replace(waypoints[0], bearing=None, distance=None, ground_speed=None, ete=None)]

    total_distance = 0.0
    total_ete = 0.0
    weighted_headwind = 0.0
    has_wind = False

    for prev, wp in zip(waypoints, waypoints[1:]):
        wx = weather.get(wp.id)
        leg = calculate_leg(
            prev,
            wp,
            tas,
            wind_dir=wx.wind_direction if wx else None,
            wind_speed=wx.wind_speed if wx else None,
        )

        total_distance += leg.distance
        if leg.ete is not None:
            total_ete += leg.ete

        if wx is not None:
            weighted_headwind += (
                headwind_component(leg.bearing, wx.wind_direction, wx.wind_speed) * leg.distance
            )
            has_wind = True

        updated.append(
            replace(
                wp,
                bearing=leg.bearing,
                distance=leg.distance,
                ground_speed=leg.ground_speed,
                ete=leg.ete,
            )
        )

    totals = RouteTotals(
        distance=total_distance,
        ete=total_ete,
        average_ground_speed=(total_distance / total_ete) * 60 if total_ete > 0 else tas,
        average_headwind=(
            weighted_headwind / total_distance if has_wind and total_distance > 0 else None
        ),
    )
    return updated, totals


def waypoint_arrival_times(waypoints: Sequence[Waypoint], departure_time: int) -> List[int]:
    """Arrival timestamp (ms) at each waypoint from cumulative leg ETE."""
    times = []
    elapsed = 0.0
    for index, wp in enumerate(waypoints):
        if index > 0:
            elapsed += wp.ete or 0.0
        times.append(int(departure_time + elapsed * MS_PER_MINUTE))
    return times


def route_weather_alerts(
    waypoints: Sequence[Waypoint],
    weather: Mapping[str, WeatherSample],
    default_altitude: float = DEFAULT_ALTITUDE_FT,
    thresholds: AlertThresholds = DEFAULT_ALERT_THRESHOLDS,
) -> Dict[str, List[WeatherAlert]]:
    """
    Weather alerts for each waypoint that has any.

    The first and last waypoints are checked as terminals. Each waypoint is
    checked against its planned altitude, or ``default_altitude``.
    """
    alerts: Dict[str, List[WeatherAlert]] = {}
    last = len(waypoints) - 1
    for index, wp in enumerate(waypoints):
        wx = weather.get(wp.id)
        if wx is None:
            continue
        altitude = wp.altitude if wp.altitude is not None else default_altitude
        found = check_weather_alerts(
            wx, thresholds, planned_altitude=altitude, is_terminal=index in (0, last)
        )
        if found:
            alerts[wp.id] = found
    return alerts


async def _fetch_forecast(
    wp: Waypoint,
    client: ForecastClient,
    semaphore: asyncio.Semaphore,
    cache: Optional[ForecastCache],
) -> Optional[PointForecast]:
    if cache is not None:
        cached = cache.get(wp.lat, wp.lon)
        if cached is not None:
            return cached

    try:
        async with semaphore:
            forecast = await client.fetch_forecast(wp.lat, wp.lon)
    except (ProviderError, ValueError) as e:
        logger.warning(f"Weather fetch failed for waypoint {wp.name} ({wp.id}): {e}")
        return None

    if cache is not None:
        cache.set(wp.lat, wp.lon, forecast)
    return forecast


@add_sync_version
async def fetch_route_forecasts(
    waypoints: Sequence[Waypoint],
    client: Optional[ForecastClient] = None,
    cache: Optional[ForecastCache] = None,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
) -> Dict[str, Optional[PointForecast]]:
    """
    Fetch the raw forecast for every waypoint concurrently.

    A failed fetch is logged and recorded as None; it never aborts the
    batch. Cached forecasts are reused and fresh ones stored.

    Returns:
        Dict of waypoint id to PointForecast (None where the fetch failed)
    """
    if max_concurrent < 1:
        raise ValueError("max_concurrent must be at least 1")

    owns_client = client is None
    client = client or ForecastClient()
    semaphore = asyncio.Semaphore(max_concurrent)

    try:
        forecasts = await asyncio.gather(
            *[_fetch_forecast(wp, client, semaphore, cache) for wp in waypoints]
        )
    finally:
        if owns_client:
            await client.close()

    return {wp.id: forecast for wp, forecast in zip(waypoints, forecasts)}


@add_sync_version
async def fetch_route_weather(
    waypoints: Sequence[Waypoint],
    client: Optional[ForecastClient] = None,
    departure_time: Optional[int] = None,
    default_altitude: float = DEFAULT_ALTITUDE_FT,
    cache: Optional[ForecastCache] = None,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
) -> Mapping[str, WeatherSample]:
    """
    Fetch weather for every waypoint at its estimated arrival time.

    Each waypoint is sampled at its planned altitude (or the default).
    Waypoints whose forecast could not be fetched are left out of the
    result.

    Args:
        waypoints: Route waypoints with leg ETE filled in
        client: Forecast client; one is created and closed if not given
        departure_time: Departure in ms since epoch (default: now)
        default_altitude: Altitude for waypoints with none planned
        cache: Optional forecast cache shared across calls
        max_concurrent: Maximum simultaneous forecast requests

    Returns:
        Read-only mapping of waypoint id to WeatherSample
    """
    forecasts = await fetch_route_forecasts(
        waypoints, client=client, cache=cache, max_concurrent=max_concurrent
    )

    if departure_time is not None:
        arrivals: List[Optional[int]] = list(waypoint_arrival_times(waypoints, departure_time))
    else:
        arrivals = [None] * len(waypoints)

    snapshot: Dict[str, WeatherSample] = {}
    for wp, arrival in zip(waypoints, arrivals):
        forecast = forecasts.get(wp.id)
        if forecast is None:
            continue
        altitude = wp.altitude if wp.altitude is not None else default_altitude
        sample = forecast.sample(arrival, altitude)
        if sample is not None:
            snapshot[wp.id] = sample

    missing = len(waypoints) - len(snapshot)
    if missing:
        logger.warning(f"No weather for {missing} of {len(waypoints)} waypoints")

    return MappingProxyType(snapshot)


@add_sync_version
async def fetch_route_terrain(
    waypoints: Sequence[Waypoint],
    client: Optional[ElevationClient] = None,
    interval_nm: float = DEFAULT_SAMPLE_INTERVAL_NM,
) -> List[SampledPoint]:
    """
    Sample the route and attach terrain elevation from one batched lookup.

    Returns:
        Sampled points with ``elevation_ft`` set where the lookup succeeded
    """
    samples = sample_route(waypoints, interval_nm)
    if not samples:
        return []

    owns_client = client is None
    client = client or ElevationClient()
    try:
        elevations = await client.fetch_elevations(samples)
    finally:
        if owns_client:
            await client.close()

    return attach_elevations(samples, elevations)


@add_sync_version
async def plan_route(
    waypoints: Sequence[Waypoint],
    departure_time: Optional[int] = None,
    settings: Optional[PlannerSettings] = None,
    forecast_client: Optional[ForecastClient] = None,
    elevation_client: Optional[ElevationClient] = None,
    cache: Optional[ForecastCache] = None,
    thresholds: Optional[ConditionThresholds] = None,
    alert_thresholds: AlertThresholds = DEFAULT_ALERT_THRESHOLDS,
) -> FlightProfile:
    """
    Build the full profile for a route.

    Weather and terrain are fetched concurrently. Leg figures are then
    recomputed with the fetched wind and the profile is fused and
    classified.

    Args:
        waypoints: Route waypoints in order
        departure_time: Departure in ms since epoch (default: now)
        settings: Planner settings (default: PlannerSettings())
        forecast_client: Forecast client; created if not given
        elevation_client: Elevation client; created if not given
        cache: Optional forecast cache
        thresholds: Classification limits (default: from settings preset)
        alert_thresholds: Limits for per-waypoint weather alerts

    Returns:
        FlightProfile

    Raises:
        RouteError: If waypoint ids are not unique
    """
    validate_route(waypoints)
    settings = settings or PlannerSettings()
    thresholds = thresholds or thresholds_for_preset(settings.threshold_preset)

    # Still-air leg times give the arrival times used to pick forecast steps
    route, _ = compute_route_navigation(waypoints, settings.tas)

    weather, samples = await asyncio.gather(
        fetch_route_weather(
            route,
            client=forecast_client,
            departure_time=departure_time,
            default_altitude=settings.default_altitude,
            cache=cache,
            max_concurrent=settings.max_concurrent,
        ),
        fetch_route_terrain(
            route, client=elevation_client, interval_nm=settings.sample_interval_nm
        ),
    )

    route, totals = compute_route_navigation(route, settings.tas, weather)
    points = fuse(route, weather, settings.default_altitude, samples, thresholds)
    alerts = route_weather_alerts(route, weather, settings.default_altitude, alert_thresholds)

    logger.info(
        f"Planned {len(route)} waypoints, {totals.distance:.1f} NM, "
        f"{len(weather)} with weather, {len(points)} profile points, "
        f"{len(alerts)} with alerts"
    )

    return FlightProfile(
        waypoints=route,
        totals=totals,
        weather=weather,
        samples=samples,
        points=points,
        departure_time=departure_time,
        alerts=alerts,
    )
