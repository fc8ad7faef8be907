"""
Data models for routes, forecast samples and altitude profiles.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

WAYPOINT_TYPES = ("airport", "vor", "ndb", "intersection", "user")


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


@dataclass
class Waypoint:
    """A route waypoint.

    ``bearing``, ``distance``, ``ground_speed`` and ``ete`` describe the leg
    arriving at this waypoint and are filled in by
    :func:`vfrplan.planner.compute_route_navigation`. They stay ``None`` on
    the first waypoint of a route.
    """

    id: str
    name: str
    lat: float
    lon: float
    type: str = "user"  # airport, vor, ndb, intersection or user
    altitude: Optional[float] = None  # planned, ft MSL
    elevation: Optional[float] = None  # ground, ft MSL

    bearing: Optional[float] = None  # degrees true
    distance: Optional[float] = None  # NM
    ground_speed: Optional[float] = None  # knots
    ete: Optional[float] = None  # minutes

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lon)


@dataclass
class LegData:
    """Navigation figures for a single leg."""

    distance: float
    bearing: float
    ground_speed: Optional[float] = None
    ete: Optional[float] = None


@dataclass
class RouteTotals:
    """Route-wide navigation totals."""

    distance: float = 0.0
    ete: float = 0.0
    average_ground_speed: Optional[float] = None
    average_headwind: Optional[float] = None


@dataclass(frozen=True)
class PressureLevel:
    """A forecast pressure level and its standard-atmosphere altitude."""

    label: str
    altitude_ft: float


@dataclass
class VerticalWindSample:
    """Wind at one pressure level."""

    level: str
    altitude_ft: float
    speed: float  # knots
    direction: float  # degrees true, wind from


class WindReading:
    """Tri-state wind speed reading: unknown, calm or measured.

    Providers report a missing reading and a calm one the same way (a zero
    speed), so ``from_speed`` maps 0 to calm and ``None``/NaN to unknown.
    """

    UNKNOWN = "unknown"
    CALM = "calm"
    MEASURED = "measured"

    __slots__ = ("state", "value")

    def __init__(self, state: str, value: Optional[float] = None):
        self.state = state
        self.value = value

    @classmethod
    def unknown(cls) -> "WindReading":
        return cls(cls.UNKNOWN)

    @classmethod
    def calm(cls) -> "WindReading":
        return cls(cls.CALM, 0.0)

    @classmethod
    def measured(cls, value: float) -> "WindReading":
        return cls(cls.MEASURED, float(value))

    @classmethod
    def from_speed(cls, speed: Optional[float]) -> "WindReading":
        if speed is None or (isinstance(speed, float) and math.isnan(speed)):
            return cls.unknown()
        if speed == 0:
            return cls.calm()
        return cls.measured(speed)

    @property
    def is_unknown(self) -> bool:
        return self.state == self.UNKNOWN

    @property
    def is_calm(self) -> bool:
        return self.state == self.CALM

    @property
    def is_measured(self) -> bool:
        return self.state == self.MEASURED

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WindReading):
            return NotImplemented
        return self.state == other.state and self.value == other.value

    def __repr__(self) -> str:
        if self.is_measured:
            return f"WindReading.measured({self.value})"
        return f"WindReading.{self.state}()"


@dataclass
class WeatherSample:
    """Forecast weather at one location and time.

    ``cloud_base`` is in meters AGL. ``None`` means clear sky, not missing
    data.
    """

    timestamp: int  # ms since epoch
    wind_speed: float  # knots, at wind_altitude when set
    wind_direction: float  # degrees true
    temperature: Optional[float] = None  # celsius
    wind_altitude: Optional[float] = None  # ft MSL
    wind_level: Optional[str] = None
    surface_wind_speed: Optional[float] = None
    surface_wind_direction: Optional[float] = None
    gust: Optional[float] = None  # knots
    dew_point: Optional[float] = None  # celsius
    pressure: Optional[float] = None  # hPa
    cloud_base: Optional[float] = None  # meters AGL
    humidity: Optional[float] = None  # %
    visibility: Optional[float] = None  # km
    precipitation: Optional[float] = None  # mm
    vertical_winds: List[VerticalWindSample] = field(default_factory=list)


@dataclass
class SampledPoint:
    """A point along the route, optionally tagged with its waypoint index."""

    lat: float
    lon: float
    distance: float  # cumulative NM
    waypoint_index: Optional[int] = None
    elevation_ft: Optional[float] = None  # terrain, ft MSL

    @property
    def is_waypoint(self) -> bool:
        return self.waypoint_index is not None


class ConditionTier(str, Enum):
    """VFR condition assessment for a profile point."""

    GOOD = "good"
    MARGINAL = "marginal"
    POOR = "poor"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    ConditionTier.GOOD: 0,
    ConditionTier.MARGINAL: 1,
    ConditionTier.POOR: 2,
    # Missing input ranks above any assessed level when picking a worst case
    ConditionTier.UNKNOWN: 3,
}


@dataclass
class ConditionResult:
    condition: ConditionTier
    reasons: List[str] = field(default_factory=list)


@dataclass
class ProfilePoint:
    """A point on the altitude profile. All altitudes are ft MSL."""

    distance: float
    altitude: float
    headwind: float = 0.0
    crosswind: float = 0.0
    wind_speed: Optional[float] = 0.0  # None when no weather reached this point
    wind_direction: float = 0.0
    terrain_elevation: Optional[float] = None
    cloud_base: Optional[float] = None
    cloud_top: Optional[float] = None
    waypoint_id: Optional[str] = None
    waypoint_name: Optional[str] = None
    condition: Optional[ConditionTier] = None
    condition_reasons: List[str] = field(default_factory=list)
