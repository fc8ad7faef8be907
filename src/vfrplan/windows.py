"""
Departure window search.

Scans departure times across the forecast period, classifies the route at
each waypoint's arrival time and merges acceptable departure times into
windows long enough to fly the route.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from .cache import ForecastCache
from .conditions import (
    STANDARD_THRESHOLDS,
    ConditionThresholds,
    meets_minimum_condition,
    worse_condition,
)
from .models import ConditionTier, Waypoint, WeatherSample
from .planner import (
    DEFAULT_MAX_CONCURRENT,
    compute_route_navigation,
    fetch_route_forecasts,
    waypoint_arrival_times,
)
from .profile import DEFAULT_ALTITUDE_FT, fuse
from .units import HIGH_CONFIDENCE_HOURS, MEDIUM_CONFIDENCE_HOURS, MS_PER_HOUR, MS_PER_MINUTE
from .utils import add_sync_version
from .weather import ForecastClient, PointForecast

logger = logging.getLogger(__name__)

NO_WEATHER_REASON = "Unable to fetch weather data"
DEFAULT_REFINE_PRECISION_MINUTES = 30


@dataclass
class DepartureEvaluation:
    """Route conditions for one departure time."""

    departure_time: int
    is_acceptable: bool
    worst_condition: ConditionTier
    limiting_waypoint: Optional[str] = None
    limiting_reasons: List[str] = field(default_factory=list)


@dataclass
class VfrWindow:
    """A span of acceptable departure times."""

    start: int  # earliest acceptable departure, ms
    end: int  # latest acceptable departure, ms
    duration: float  # minutes
    worst_condition: ConditionTier
    confidence: str  # high, medium or low


@dataclass
class VfrWindowSearchResult:
    windows: List[VfrWindow]
    search_start: int
    search_end: int
    minimum_condition: str
    flight_duration: float  # minutes
    limited_by: Optional[str] = None
    evaluations: List[DepartureEvaluation] = field(default_factory=list)


def forecast_confidence(timestamp: int, now: Optional[int] = None) -> str:
    """Confidence label from how far ``timestamp`` is ahead of now."""
    if now is None:
        now = int(time.time() * 1000)
    hours_ahead = (timestamp - now) / MS_PER_HOUR
    if hours_ahead <= HIGH_CONFIDENCE_HOURS:
        return "high"
    if hours_ahead <= MEDIUM_CONFIDENCE_HOURS:
        return "medium"
    return "low"


def evaluate_departure_time(
    waypoints: Sequence[Waypoint],
    forecasts: Mapping[str, Optional[PointForecast]],
    departure_time: int,
    default_altitude: float = DEFAULT_ALTITUDE_FT,
    minimum: str = "marginal",
    thresholds: ConditionThresholds = STANDARD_THRESHOLDS,
) -> DepartureEvaluation:
    """
    Classify the route for one departure time.

    Each waypoint's forecast is sampled at its arrival time. The first
    waypoint that falls below ``minimum`` ends the evaluation; otherwise the
    worst condition found and the waypoint causing it are reported.

    Args:
        waypoints: Route waypoints with leg ETE filled in
        forecasts: Raw forecasts keyed by waypoint id
        departure_time: Departure in ms since epoch
        default_altitude: Altitude for waypoints with none planned
        minimum: Lowest acceptable condition, ``good`` or ``marginal``
        thresholds: Classification limits

    Returns:
        DepartureEvaluation
    """
    arrivals = waypoint_arrival_times(waypoints, departure_time)

    weather: Dict[str, WeatherSample] = {}
    for wp, arrival in zip(waypoints, arrivals):
        forecast = forecasts.get(wp.id)
        altitude = wp.altitude if wp.altitude is not None else default_altitude
        sample = forecast.sample(arrival, altitude) if forecast is not None else None
        if sample is None:
            return DepartureEvaluation(
                departure_time,
                is_acceptable=False,
                worst_condition=ConditionTier.UNKNOWN,
                limiting_waypoint=wp.name,
                limiting_reasons=[NO_WEATHER_REASON],
            )
        weather[wp.id] = sample

    points = fuse(waypoints, weather, default_altitude, thresholds=thresholds)

    worst = ConditionTier.GOOD
    limiting_waypoint = None
    limiting_reasons: List[str] = []

    for point in points:
        condition = point.condition
        if worse_condition(condition, worst) is condition:
            worst = condition
            if point.condition_reasons:
                limiting_waypoint = point.waypoint_name
                limiting_reasons = point.condition_reasons

        if not meets_minimum_condition(condition, minimum):
            return DepartureEvaluation(
                departure_time,
                is_acceptable=False,
                worst_condition=condition,
                limiting_waypoint=point.waypoint_name,
                limiting_reasons=point.condition_reasons,
            )

    return DepartureEvaluation(
        departure_time,
        is_acceptable=True,
        worst_condition=worst,
        limiting_waypoint=limiting_waypoint,
        limiting_reasons=limiting_reasons,
    )


def _merge_acceptable(evaluations: Sequence[DepartureEvaluation]) -> List[List[DepartureEvaluation]]:
    """Group consecutive acceptable evaluations."""
    runs: List[List[DepartureEvaluation]] = []
    current: List[DepartureEvaluation] = []
    for evaluation in evaluations:
        if evaluation.is_acceptable:
            current.append(evaluation)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def _refine_boundary(good: int, bad: int, evaluate, precision_ms: int) -> int:
    """Bisect between an acceptable and an unacceptable time; returns the acceptable side."""
    while abs(bad - good) > precision_ms:
        mid = (good + bad) // 2
        if evaluate(mid).is_acceptable:
            good = mid
        else:
            bad = mid
    return good


@add_sync_version
async def find_vfr_windows(
    waypoints: Sequence[Waypoint],
    client: Optional[ForecastClient] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
    step_minutes: int = 60,
    minimum: str = "marginal",
    max_windows: int = 5,
    tas: float = 100.0,
    default_altitude: float = DEFAULT_ALTITUDE_FT,
    cache: Optional[ForecastCache] = None,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    thresholds: ConditionThresholds = STANDARD_THRESHOLDS,
    refine_precision_minutes: int = DEFAULT_REFINE_PRECISION_MINUTES,
    now: Optional[int] = None,
) -> VfrWindowSearchResult:
    """
    Find departure windows with acceptable VFR conditions.

    Forecasts are fetched once per waypoint. Departure times are scanned
    every ``step_minutes`` from the later of ``start`` and the forecast
    start, aligned to the step. Runs of acceptable times are merged, their
    edges refined by bisection, and kept when the window is at least as long
    as the flight.

    Args:
        waypoints: Route waypoints in order
        client: Forecast client; one is created and closed if not given
        start: Earliest departure in ms (default: forecast start)
        end: Latest departure in ms (default: forecast end)
        step_minutes: Scan interval in minutes
        minimum: Lowest acceptable condition, ``good`` or ``marginal``
        max_windows: Maximum number of windows returned
        tas: True airspeed in knots, for flight duration
        default_altitude: Altitude for waypoints with none planned
        cache: Optional forecast cache
        max_concurrent: Maximum simultaneous forecast requests
        thresholds: Classification limits
        refine_precision_minutes: Bisection precision for window edges
        now: Current time in ms for confidence labels (default: clock)

    Returns:
        VfrWindowSearchResult; ``limited_by`` notes an ignored start and
        why no or fewer windows were returned
    """
    # Fail fast on a bad minimum before any network work
    meets_minimum_condition(ConditionTier.GOOD, minimum)
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    fallback_time = int(time.time() * 1000)
    if not waypoints:
        return VfrWindowSearchResult(
            [], fallback_time, fallback_time, minimum, 0.0, "No waypoints in flight plan"
        )

    route, totals = compute_route_navigation(waypoints, tas)
    flight_duration = totals.ete

    forecasts = await fetch_route_forecasts(
        route, client=client, cache=cache, max_concurrent=max_concurrent
    )

    reference = forecasts.get(route[0].id)
    if reference is None or not reference.timestamps:
        return VfrWindowSearchResult(
            [],
            fallback_time,
            fallback_time,
            minimum,
            flight_duration,
            "Unable to fetch forecast time range",
        )

    step_ms = step_minutes * MS_PER_MINUTE
    range_start, range_end = reference.start, reference.end

    notes: List[str] = []
    search_start = range_start
    if start is not None and start > range_end:
        notes.append("Requested start is after the forecast range, searched from forecast start")
    elif start is not None and start >= range_start:
        aligned = math.ceil(start / step_ms) * step_ms
        if aligned <= range_end:
            search_start = aligned
        else:
            notes.append(
                "Requested start is after the last forecast step, searched from forecast start"
            )
    search_end = range_end if end is None else max(search_start, min(end, range_end))

    def evaluate(departure: int) -> DepartureEvaluation:
        return evaluate_departure_time(
            route, forecasts, departure, default_altitude, minimum, thresholds
        )

    evaluations = [evaluate(t) for t in range(search_start, search_end + 1, step_ms)]
    acceptable = sum(1 for e in evaluations if e.is_acceptable)
    logger.debug(f"Scanned {len(evaluations)} departure times, {acceptable} acceptable")

    runs = _merge_acceptable(evaluations)
    precision_ms = refine_precision_minutes * MS_PER_MINUTE
    windows: List[VfrWindow] = []

    for run in runs:
        if len(windows) >= max_windows:
            break

        window_start = run[0].departure_time
        if window_start - step_ms >= search_start:
            window_start = _refine_boundary(window_start, window_start - step_ms, evaluate, precision_ms)

        window_end = run[-1].departure_time
        if window_end + step_ms <= search_end:
            window_end = _refine_boundary(window_end, window_end + step_ms, evaluate, precision_ms)

        duration = (window_end - window_start) / MS_PER_MINUTE
        if duration < flight_duration:
            logger.debug(
                f"Skipping window of {duration:.0f} min, flight needs {flight_duration:.0f} min"
            )
            continue

        worst = ConditionTier.GOOD
        for evaluation in run:
            worst = worse_condition(worst, evaluation.worst_condition)

        windows.append(
            VfrWindow(
                start=window_start,
                end=window_end,
                duration=duration,
                worst_condition=worst,
                confidence=forecast_confidence(window_start, now),
            )
        )

    if not windows and runs:
        notes.append(
            f"All candidate windows shorter than {flight_duration:.0f} min flight duration"
        )
    elif len(windows) >= max_windows:
        notes.append(f"Limited to first {max_windows} windows")
    limited_by = "; ".join(notes) if notes else None

    logger.info(f"Found {len(windows)} VFR windows between {search_start} and {search_end}")

    return VfrWindowSearchResult(
        windows=windows,
        search_start=search_start,
        search_end=search_end,
        minimum_condition=minimum,
        flight_duration=flight_duration,
        limited_by=limited_by,
        evaluations=evaluations,
    )
