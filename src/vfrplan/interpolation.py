"""
Series bracketing and interpolation helpers.

Used for forecast time series (timestamps), pressure-level wind profiles
(altitudes) and positions along a route (cumulative distance).
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import Waypoint


@dataclass(frozen=True)
class Bracket:
    """Position of a target value within an ascending series."""

    lower_index: int
    upper_index: int
    fraction: float
    needs_interpolation: bool


_NO_BRACKET = Bracket(0, 0, 0.0, False)


def bracket(series: Sequence[float], target: float) -> Bracket:
    """
    Find the pair of entries in ``series`` that surround ``target``.

    Targets at or before the first entry clamp to index 0 and targets at or
    after the last clamp to the last index, both without interpolation.

    Args:
        series: Ascending numbers (timestamps, altitudes, distances)
        target: Value to locate

    Returns:
        Bracket with indices, fraction and whether interpolation is needed
    """
    if not series:
        return _NO_BRACKET

    if target <= series[0]:
        return _NO_BRACKET

    last = len(series) - 1
    if target >= series[last]:
        return Bracket(last, last, 0.0, False)

    for i in range(last):
        lo, hi = series[i], series[i + 1]
        if lo <= target <= hi:
            span = hi - lo
            fraction = (target - lo) / span if span > 0 else 0.0
            return Bracket(i, i + 1, fraction, 0 < fraction < 1)

    # Unsorted input: fall back to the closest entry
    closest = min(range(len(series)), key=lambda i: abs(series[i] - target))
    return Bracket(closest, closest, 0.0, False)


def _is_valid(value: Optional[float]) -> bool:
    return value is not None and not (isinstance(value, float) and math.isnan(value))


def lerp(v0: Optional[float], v1: Optional[float], t: float) -> Optional[float]:
    """
    Linear interpolation tolerant of missing values.

    If one side is None or NaN the other is returned unchanged; if both are
    invalid the result is None.
    """
    v0_valid = _is_valid(v0)
    v1_valid = _is_valid(v1)

    if not v0_valid and not v1_valid:
        return None
    if not v0_valid:
        return v1
    if not v1_valid:
        return v0

    return v0 + (v1 - v0) * t  # type: ignore[operator]


def lerp_angle(a: float, b: float, t: float) -> float:
    """Interpolate between two headings along the shorter arc, in [0, 360)."""
    delta = (b - a) % 360.0
    if delta > 180.0:
        delta -= 360.0

    result = (a + delta * t) % 360.0
    # -0.0 % 360 and values a hair under 360 can land on 360.0
    return 0.0 if result >= 360.0 else result


def series_value(values: Optional[Sequence[Optional[float]]], position: Bracket) -> Optional[float]:
    """Value of a forecast array at a bracket position."""
    if not values:
        return None

    def _at(index: int) -> Optional[float]:
        if index >= len(values):
            return None
        value = values[index]
        return value if _is_valid(value) else None

    if not position.needs_interpolation:
        # A target exactly on an interior entry brackets with fraction 1
        index = position.upper_index if position.fraction >= 1 else position.lower_index
        return _at(index)

    return lerp(_at(position.lower_index), _at(position.upper_index), position.fraction)


@dataclass(frozen=True)
class WaypointBracket:
    """The leg containing a cumulative route distance."""

    prev_index: int
    next_index: int
    prev_distance: float
    next_distance: float
    fraction: float


def find_bracketing_waypoints(
    distance: float, waypoints: Sequence[Waypoint]
) -> Optional[WaypointBracket]:
    """
    Locate the leg containing ``distance`` NM from the start of the route.

    Leg lengths come from each waypoint's derived ``distance`` (the leg
    arriving at it). Distances past the end map to the last leg with
    fraction 1.
    """
    if len(waypoints) < 2:
        return None

    cumulative = 0.0
    for i in range(len(waypoints) - 1):
        leg = waypoints[i + 1].distance or 0.0
        next_cumulative = cumulative + leg

        if cumulative <= distance <= next_cumulative:
            fraction = (distance - cumulative) / leg if leg > 0 else 0.0
            return WaypointBracket(i, i + 1, cumulative, next_cumulative, fraction)

        cumulative = next_cumulative

    if distance >= cumulative:
        last = len(waypoints) - 1
        leg = waypoints[last].distance or 0.0
        return WaypointBracket(last - 1, last, cumulative - leg, cumulative, 1.0)

    return None
