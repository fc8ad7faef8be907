"""
Altitude profile construction.

Merges waypoints, per-waypoint forecast samples and sampled terrain into a
single ordered list of ProfilePoint covering the whole route.
"""

import logging
import math
from dataclasses import replace
from typing import List, Mapping, Optional, Sequence, Tuple

from .conditions import STANDARD_THRESHOLDS, ConditionThresholds, classify
from .interpolation import find_bracketing_waypoints, lerp, lerp_angle
from .models import ProfilePoint, SampledPoint, Waypoint, WeatherSample
from .navigation import bearing, distance_nm, wind_components
from .units import TYPICAL_CLOUD_THICKNESS_FEET, meters_to_feet

logger = logging.getLogger(__name__)

DEFAULT_ALTITUDE_FT = 3000.0


def estimate_cloud_top(cloud_base_ft: float) -> float:
    """Cloud top from base using a typical thickness; not a forecast value."""
    return cloud_base_ft + TYPICAL_CLOUD_THICKNESS_FEET


def _cloud_base_msl(weather: Optional[WeatherSample], terrain_ft: Optional[float]) -> Optional[float]:
    """Cloud base in ft MSL, or None when the sample reports clear sky."""
    if weather is None:
        return None
    base = weather.cloud_base
    if base is None or not isinstance(base, (int, float)) or math.isnan(base) or base <= 0:
        return None
    return meters_to_feet(base) + (terrain_ft or 0.0)


def _with_leg_distances(waypoints: Sequence[Waypoint]) -> List[Waypoint]:
    """Fill in missing leg distance and bearing so legs can be located."""
    legs = [waypoints[0]] if waypoints else []
    for prev, wp in zip(waypoints, waypoints[1:]):
        if wp.distance is None or wp.bearing is None:
            wp = replace(
                wp,
                distance=wp.distance if wp.distance is not None else distance_nm(prev.point, wp.point),
                bearing=wp.bearing if wp.bearing is not None else bearing(prev.point, wp.point),
            )
        legs.append(wp)
    return legs


def _components(
    track: Optional[float], speed: float, direction: float
) -> Tuple[float, float]:
    if track is None:
        return 0.0, 0.0
    return wind_components(track, direction, speed)


def _waypoint_point(
    legs: Sequence[Waypoint],
    index: int,
    distance: float,
    terrain_ft: Optional[float],
    weather: Mapping[str, WeatherSample],
    default_altitude: float,
    thresholds: ConditionThresholds,
) -> ProfilePoint:
    wp = legs[index]
    wx = weather.get(wp.id)
    altitude = wp.altitude if wp.altitude is not None else default_altitude

    cloud_base = _cloud_base_msl(wx, terrain_ft)
    cloud_top = estimate_cloud_top(cloud_base) if cloud_base is not None else None

    # Incoming leg; the first waypoint has none
    track = wp.bearing if index > 0 else None

    if wx is not None:
        speed: Optional[float] = wx.wind_speed
        direction = wx.wind_direction
        headwind, crosswind = _components(track, wx.wind_speed, wx.wind_direction)
    else:
        speed, direction, headwind, crosswind = None, 0.0, 0.0, 0.0

    point = ProfilePoint(
        distance=distance,
        altitude=altitude,
        headwind=headwind,
        crosswind=crosswind,
        wind_speed=speed,
        wind_direction=direction,
        terrain_elevation=terrain_ft,
        cloud_base=cloud_base,
        cloud_top=cloud_top,
        waypoint_id=wp.id,
        waypoint_name=wp.name,
    )

    is_terminal = index == 0 or index == len(legs) - 1
    result = classify(point, altitude, wx, is_terminal=is_terminal, thresholds=thresholds)
    point.condition = result.condition
    point.condition_reasons = result.reasons
    return point


def _terrain_point(
    legs: Sequence[Waypoint],
    sample: SampledPoint,
    weather: Mapping[str, WeatherSample],
    default_altitude: float,
) -> Optional[ProfilePoint]:
    position = find_bracketing_waypoints(sample.distance, legs)
    if position is None:
        return None

    prev, nxt = legs[position.prev_index], legs[position.next_index]
    t = position.fraction

    prev_alt = prev.altitude if prev.altitude is not None else default_altitude
    next_alt = nxt.altitude if nxt.altitude is not None else default_altitude
    altitude = prev_alt + (next_alt - prev_alt) * t

    wx_prev, wx_next = weather.get(prev.id), weather.get(nxt.id)
    if wx_prev is not None and wx_next is not None:
        speed = lerp(wx_prev.wind_speed, wx_next.wind_speed, t) or 0.0
        direction = lerp_angle(wx_prev.wind_direction, wx_next.wind_direction, t)
    elif wx_prev is not None or wx_next is not None:
        wx = wx_prev if wx_prev is not None else wx_next
        speed, direction = wx.wind_speed, wx.wind_direction
    else:
        speed, direction = 0.0, 0.0

    headwind, crosswind = _components(nxt.bearing, speed, direction)

    return ProfilePoint(
        distance=sample.distance,
        altitude=altitude,
        headwind=headwind,
        crosswind=crosswind,
        wind_speed=speed,
        wind_direction=direction,
        terrain_elevation=sample.elevation_ft,
    )


def fuse(
    waypoints: Sequence[Waypoint],
    weather: Mapping[str, WeatherSample],
    default_altitude: float = DEFAULT_ALTITUDE_FT,
    elevation_samples: Optional[Sequence[SampledPoint]] = None,
    thresholds: ConditionThresholds = STANDARD_THRESHOLDS,
) -> List[ProfilePoint]:
    """
    Build the altitude profile for a route.

    When ``elevation_samples`` is non-empty it is iterated in order and
    interior samples become terrain points between waypoints. Otherwise one
    point per waypoint is produced. Only waypoint points are classified.

    Waypoints with no entry in ``weather`` get no wind and classify as
    unknown; cloud fields are set only when the sample has a positive cloud
    base.

    Args:
        waypoints: Route waypoints in order
        weather: Forecast samples keyed by waypoint id
        default_altitude: Altitude (ft MSL) for waypoints with none planned
        elevation_samples: Output of sample_route with terrain attached
        thresholds: Limits used for classification

    Returns:
        ProfilePoint list ordered by distance
    """
    if not waypoints:
        return []

    legs = _with_leg_distances(waypoints)
    points: List[ProfilePoint] = []

    if elevation_samples:
        for sample in elevation_samples:
            if sample.is_waypoint:
                index = sample.waypoint_index
                if index >= len(legs):
                    logger.warning(f"Sample references missing waypoint index {index}")
                    continue
                terrain = (
                    sample.elevation_ft
                    if sample.elevation_ft is not None
                    else legs[index].elevation
                )
                points.append(
                    _waypoint_point(
                        legs, index, sample.distance, terrain, weather, default_altitude, thresholds
                    )
                )
            else:
                point = _terrain_point(legs, sample, weather, default_altitude)
                if point is not None:
                    points.append(point)
    else:
        cumulative = 0.0
        for index, wp in enumerate(legs):
            if index > 0:
                cumulative += wp.distance
            points.append(
                _waypoint_point(
                    legs, index, cumulative, wp.elevation, weather, default_altitude, thresholds
                )
            )

    logger.debug(f"Built profile with {len(points)} points for {len(waypoints)} waypoints")
    return points
