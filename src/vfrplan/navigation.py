"""
Great-circle navigation math.

Distances are in nautical miles, angles in degrees true, speeds in knots.
Wind directions follow the meteorological convention (direction the wind
blows from).

Ground speed uses a simplified model: the headwind component is subtracted
from true airspeed and the wind correction angle is ignored.
"""

import math
from typing import Optional, Tuple

from .models import GeoPoint, LegData, Waypoint
from .units import EARTH_RADIUS_NM, round_half_up

# Angular separations below this are treated as coincident points (radians)
_COINCIDENT_EPSILON = 1e-12


def distance_nm(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine great-circle distance between two points."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))

    return EARTH_RADIUS_NM * c


def bearing(a: GeoPoint, b: GeoPoint) -> float:
    """Initial great-circle bearing from ``a`` to ``b`` in [0, 360)."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlon = math.radians(b.lon - a.lon)

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)

    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def final_bearing(a: GeoPoint, b: GeoPoint) -> float:
    """Bearing on arrival at ``b`` when flying the great circle from ``a``."""
    return (bearing(b, a) + 180.0) % 360.0


def headwind_component(track: float, wind_dir: float, wind_speed: float) -> float:
    """Wind component along the track. Positive is headwind, negative tailwind."""
    return wind_speed * math.cos(math.radians(wind_dir) - math.radians(track))


def crosswind_component(track: float, wind_dir: float, wind_speed: float) -> float:
    """Wind component across the track."""
    return wind_speed * math.sin(math.radians(track) - math.radians(wind_dir))


def wind_components(track: float, wind_dir: float, wind_speed: float) -> Tuple[float, float]:
    """Return ``(headwind, crosswind)`` for a track and wind."""
    return (
        headwind_component(track, wind_dir, wind_speed),
        crosswind_component(track, wind_dir, wind_speed),
    )


def ground_speed(tas: float, track: float, wind_dir: float, wind_speed: float) -> float:
    """Ground speed as TAS minus the headwind component, floored at zero."""
    return max(0.0, tas - headwind_component(track, wind_dir, wind_speed))


def interpolate_great_circle(a: GeoPoint, b: GeoPoint, fraction: float) -> GeoPoint:
    """
    Point at ``fraction`` of the way along the great circle from ``a`` to ``b``.

    Args:
        a: Start point
        b: End point
        fraction: Position along the arc, 0 at ``a`` and 1 at ``b``

    Returns:
        Interpolated GeoPoint
    """
    if fraction <= 0:
        return a
    if fraction >= 1:
        return b

    phi1, lam1 = math.radians(a.lat), math.radians(a.lon)
    phi2, lam2 = math.radians(b.lat), math.radians(b.lon)

    d = 2 * math.asin(
        math.sqrt(
            min(
                1.0,
                math.sin((phi2 - phi1) / 2) ** 2
                + math.cos(phi1) * math.cos(phi2) * math.sin((lam2 - lam1) / 2) ** 2,
            )
        )
    )

    sin_d = math.sin(d)
    if abs(sin_d) < _COINCIDENT_EPSILON:
        return GeoPoint(
            a.lat + (b.lat - a.lat) * fraction,
            a.lon + (b.lon - a.lon) * fraction,
        )

    fa = math.sin((1 - fraction) * d) / sin_d
    fb = math.sin(fraction * d) / sin_d

    x = fa * math.cos(phi1) * math.cos(lam1) + fb * math.cos(phi2) * math.cos(lam2)
    y = fa * math.cos(phi1) * math.sin(lam1) + fb * math.cos(phi2) * math.sin(lam2)
    z = fa * math.sin(phi1) + fb * math.sin(phi2)

    phi = math.atan2(z, math.sqrt(x * x + y * y))
    lam = math.atan2(y, x)

    return GeoPoint(math.degrees(phi), math.degrees(lam))


def destination_point(origin: GeoPoint, distance: float, course: float) -> GeoPoint:
    """Point reached after flying ``distance`` NM from ``origin`` on ``course``."""
    delta = distance / EARTH_RADIUS_NM
    theta = math.radians(course)
    phi1 = math.radians(origin.lat)
    lam1 = math.radians(origin.lon)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lam2 = lam1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )

    lon = (math.degrees(lam2) + 540.0) % 360.0 - 180.0
    return GeoPoint(math.degrees(phi2), lon)


def calculate_leg(
    origin: Waypoint,
    to: Waypoint,
    tas: float = 100.0,
    wind_dir: Optional[float] = None,
    wind_speed: Optional[float] = None,
) -> LegData:
    """
    Navigation figures for the leg from ``origin`` to ``to``.

    Without wind, ground speed equals TAS. With wind, ground speed follows
    the simplified headwind model and ETE is ``None`` when it drops to zero.
    """
    leg_bearing = bearing(origin.point, to.point)
    leg_distance = distance_nm(origin.point, to.point)

    if wind_dir is not None and wind_speed is not None:
        gs = ground_speed(tas, leg_bearing, wind_dir, wind_speed)
        ete = (leg_distance / gs) * 60 if gs > 0 else None
    else:
        gs = tas
        ete = (leg_distance / tas) * 60 if tas > 0 else None

    return LegData(distance=leg_distance, bearing=leg_bearing, ground_speed=gs, ete=ete)


def format_distance(nm: float) -> str:
    return f"{nm:.1f} NM"


def format_bearing(degrees: float) -> str:
    return f"{round_half_up(degrees) % 360:03d}°"


def format_ete(minutes: float) -> str:
    hours = int(minutes // 60)
    mins = round_half_up(minutes % 60)
    if mins == 60:
        hours, mins = hours + 1, 0
    if hours > 0:
        return f"{hours}h {mins:02d}m"
    return f"{mins}m"


def format_headwind(headwind: float) -> str:
    if headwind > 0:
        return f"HW {abs(headwind):.0f} kt"
    if headwind < 0:
        return f"TW {abs(headwind):.0f} kt"
    return "No wind"
