"""
Dense great-circle sampling of a route for terrain lookup.
"""

import logging
import math
from dataclasses import replace
from typing import List, Optional, Sequence

from .exceptions import RouteError
from .models import SampledPoint, Waypoint
from .navigation import distance_nm, interpolate_great_circle
from .units import meters_to_feet

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_INTERVAL_NM = 5.0


def sample_route(
    waypoints: Sequence[Waypoint], interval_nm: float = DEFAULT_SAMPLE_INTERVAL_NM
) -> List[SampledPoint]:
    """
    Sample a route into ordered points every ``interval_nm`` along each leg.

    Every waypoint is emitted and tagged with its index, however close it is
    to the previous point. Between waypoints, ``floor(leg / interval_nm)``
    interior points are placed on the great circle, including one that lands
    on the leg's end when the leg is an exact multiple of the interval.

    Args:
        waypoints: Route waypoints in order
        interval_nm: Spacing of interior points in nautical miles

    Returns:
        List of SampledPoint, empty for routes with fewer than two waypoints

    Raises:
        RouteError: If interval_nm is not positive
    """
    if interval_nm <= 0:
        raise RouteError(f"Sampling interval must be positive, got {interval_nm}")

    if len(waypoints) < 2:
        return []

    first = waypoints[0]
    points = [SampledPoint(first.lat, first.lon, 0.0, waypoint_index=0)]
    cumulative = 0.0

    for i in range(len(waypoints) - 1):
        start, end = waypoints[i], waypoints[i + 1]
        leg = distance_nm(start.point, end.point)

        if leg > 0:
            for j in range(1, math.floor(leg / interval_nm) + 1):
                fraction = j * interval_nm / leg
                p = interpolate_great_circle(start.point, end.point, fraction)
                points.append(SampledPoint(p.lat, p.lon, cumulative + j * interval_nm))

        cumulative += leg
        points.append(SampledPoint(end.lat, end.lon, cumulative, waypoint_index=i + 1))

    logger.debug(f"Sampled {len(points)} points over {cumulative:.1f} NM")
    return points


def attach_elevations(
    points: Sequence[SampledPoint], elevations_m: Sequence[Optional[float]]
) -> List[SampledPoint]:
    """
    Return copies of ``points`` with terrain elevation converted to feet.

    Missing entries, and points past the end of a short elevation list,
    keep ``elevation_ft`` as None.
    """
    if len(elevations_m) != len(points):
        logger.warning(
            f"Got {len(elevations_m)} elevations for {len(points)} sampled points"
        )

    attached = []
    for i, point in enumerate(points):
        meters = elevations_m[i] if i < len(elevations_m) else None
        if meters is None or (isinstance(meters, float) and math.isnan(meters)):
            attached.append(replace(point, elevation_ft=None))
        else:
            attached.append(replace(point, elevation_ft=meters_to_feet(meters)))
    return attached
