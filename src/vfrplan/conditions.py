"""
VFR condition classification for profile points.

Each waypoint point is checked against a fixed set of limits and ends up
``good``, ``marginal``, ``poor`` or ``unknown`` with a list of reasons.
Waypoint weather can also raise caution and warning alerts.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .models import ConditionResult, ConditionTier, ProfilePoint, WeatherSample, WindReading
from .units import meters_to_feet, round_half_up

logger = logging.getLogger(__name__)

MISSING_WIND_REASON = "Missing wind data"
IMC_REASON = "Aircraft above cloud base (IMC)"

DEFAULT_VISIBILITY_KM = 10.0
DEFAULT_PRECIPITATION_MM = 0.0

THRESHOLD_PRESETS = ("standard", "conservative", "custom")
MINIMUM_CONDITIONS = ("good", "marginal")


@dataclass(frozen=True)
class Threshold:
    """Poor and marginal limits for one check."""

    poor: float
    marginal: float


@dataclass(frozen=True)
class ConditionThresholds:
    """Limits for every classifier check.

    ``ceiling_agl``, ``visibility``, ``terrain_clearance`` and
    ``cloud_clearance`` trigger below their limits; the wind, gust and
    precipitation checks trigger above them.
    """

    wind_speed: Threshold  # kt, terminal only
    gust: Threshold  # kt, terminal only
    ceiling_agl: Threshold  # ft
    visibility: Threshold  # km
    precipitation: Threshold  # mm
    terrain_clearance: Threshold  # ft
    cloud_clearance: Threshold  # ft


LESS_THAN_CHECKS = ("ceiling_agl", "visibility", "terrain_clearance", "cloud_clearance")
GREATER_THAN_CHECKS = ("wind_speed", "gust", "precipitation")

STANDARD_THRESHOLDS = ConditionThresholds(
    wind_speed=Threshold(poor=25, marginal=20),
    gust=Threshold(poor=35, marginal=30),
    ceiling_agl=Threshold(poor=1500, marginal=2000),
    visibility=Threshold(poor=5, marginal=8),
    precipitation=Threshold(poor=5, marginal=2),
    terrain_clearance=Threshold(poor=500, marginal=1000),
    cloud_clearance=Threshold(poor=200, marginal=500),
)

CONSERVATIVE_THRESHOLDS = ConditionThresholds(
    wind_speed=Threshold(poor=20, marginal=15),
    gust=Threshold(poor=28, marginal=22),
    ceiling_agl=Threshold(poor=2000, marginal=3000),
    visibility=Threshold(poor=8, marginal=12),
    precipitation=Threshold(poor=3, marginal=1),
    terrain_clearance=Threshold(poor=1000, marginal=1500),
    cloud_clearance=Threshold(poor=500, marginal=1000),
)


def validate_thresholds(thresholds: ConditionThresholds) -> bool:
    """
    Check that each marginal limit is reached before its poor limit.

    For below-limit checks marginal must be >= poor; for above-limit checks
    marginal must be <= poor.
    """
    for name in LESS_THAN_CHECKS:
        threshold = getattr(thresholds, name)
        if threshold.marginal < threshold.poor:
            return False

    for name in GREATER_THAN_CHECKS:
        threshold = getattr(thresholds, name)
        if threshold.marginal > threshold.poor:
            return False

    return True


def thresholds_for_preset(
    preset: str, custom: Optional[ConditionThresholds] = None
) -> ConditionThresholds:
    """
    Resolve a preset name to its thresholds.

    ``custom`` falls back to the standard limits when no custom thresholds
    are given or they fail validation.

    Raises:
        ValueError: If preset is not a known preset name
    """
    if preset == "standard":
        return STANDARD_THRESHOLDS
    if preset == "conservative":
        return CONSERVATIVE_THRESHOLDS
    if preset == "custom":
        if custom is None:
            return STANDARD_THRESHOLDS
        if not validate_thresholds(custom):
            logger.warning("Custom thresholds are inconsistent, using standard limits")
            return STANDARD_THRESHOLDS
        return custom

    raise ValueError(
        f"Unknown threshold preset '{preset}'. Choose from: {', '.join(THRESHOLD_PRESETS)}"
    )


def _as_tier(condition: Union[ConditionTier, str]) -> ConditionTier:
    return condition if isinstance(condition, ConditionTier) else ConditionTier(condition)


def worse_condition(
    a: Union[ConditionTier, str], b: Union[ConditionTier, str]
) -> ConditionTier:
    """The more severe of two tiers. Ties return ``a``."""
    a, b = _as_tier(a), _as_tier(b)
    return a if a.severity >= b.severity else b


def meets_minimum_condition(
    condition: Union[ConditionTier, str], minimum: str = "marginal"
) -> bool:
    """Whether ``condition`` is acceptable for a ``good`` or ``marginal`` minimum."""
    condition = _as_tier(condition)
    if minimum == "good":
        return condition is ConditionTier.GOOD
    if minimum == "marginal":
        return condition in (ConditionTier.GOOD, ConditionTier.MARGINAL)

    raise ValueError(
        f"Unknown minimum condition '{minimum}'. Choose from: {', '.join(MINIMUM_CONDITIONS)}"
    )


class _Assessment:
    """Accumulates triggered checks."""

    def __init__(self):
        self.poor = False
        self.marginal = False
        self.reasons: List[str] = []

    def above(self, value: float, limit: Threshold, poor_msg: str, marginal_msg: str):
        if value > limit.poor:
            self.reasons.append(poor_msg)
            self.poor = True
        elif value > limit.marginal:
            self.reasons.append(marginal_msg)
            self.marginal = True

    def below(self, value: float, limit: Threshold, poor_msg: str, marginal_msg: str):
        if value < limit.poor:
            self.reasons.append(poor_msg)
            self.poor = True
        elif value < limit.marginal:
            self.reasons.append(marginal_msg)
            self.marginal = True

    def result(self) -> ConditionResult:
        if self.poor:
            return ConditionResult(ConditionTier.POOR, self.reasons)
        if self.marginal:
            return ConditionResult(ConditionTier.MARGINAL, self.reasons)
        return ConditionResult(ConditionTier.GOOD, [])


def classify(
    point: ProfilePoint,
    flight_altitude: float,
    weather: Optional[WeatherSample] = None,
    is_terminal: bool = False,
    thresholds: ConditionThresholds = STANDARD_THRESHOLDS,
) -> ConditionResult:
    """
    Classify VFR conditions at a profile point.

    A point without a usable wind reading is ``unknown``. Flying at or above
    a present cloud base is ``poor`` (IMC) with no further checks. Otherwise
    every check runs and may add a reason; any poor check makes the point
    poor, else any marginal check makes it marginal.

    Missing cloud base means clear sky: the ceiling and cloud clearance
    checks are skipped. Missing visibility, precipitation and gust count as
    benign.

    Args:
        point: Profile point with wind, terrain and cloud fields (ft MSL)
        flight_altitude: Planned altitude in ft MSL
        weather: Forecast sample for the point, for gust/visibility/precipitation
        is_terminal: True for departure and arrival, where wind limits apply
        thresholds: Limits to classify against

    Returns:
        ConditionResult with tier and reasons
    """
    wind = WindReading.from_speed(point.wind_speed)
    # Providers report a missing reading as 0, so calm cannot be told apart
    if wind.is_unknown or wind.is_calm:
        return ConditionResult(ConditionTier.UNKNOWN, [MISSING_WIND_REASON])

    terrain = point.terrain_elevation if point.terrain_elevation is not None else 0.0
    cloud_base = point.cloud_base

    if cloud_base is not None and flight_altitude >= cloud_base:
        return ConditionResult(ConditionTier.POOR, [IMC_REASON])

    visibility = DEFAULT_VISIBILITY_KM
    precipitation = DEFAULT_PRECIPITATION_MM
    gust = None
    if weather is not None:
        if weather.visibility is not None:
            visibility = weather.visibility
        if weather.precipitation is not None:
            precipitation = weather.precipitation
        gust = weather.gust

    check = _Assessment()

    if is_terminal:
        speed = wind.value
        check.above(
            speed,
            thresholds.wind_speed,
            f"High wind ({round_half_up(speed)}kt)",
            f"Elevated wind ({round_half_up(speed)}kt)",
        )
        if gust is not None:
            check.above(
                gust,
                thresholds.gust,
                f"High gusts ({round_half_up(gust)}kt)",
                f"Elevated gusts ({round_half_up(gust)}kt)",
            )

    if cloud_base is not None:
        ceiling = cloud_base - terrain
        check.below(
            ceiling,
            thresholds.ceiling_agl,
            f"Low ceiling ({round_half_up(ceiling)}ft AGL)",
            f"Marginal ceiling ({round_half_up(ceiling)}ft AGL)",
        )

    check.below(
        visibility,
        thresholds.visibility,
        f"Low visibility ({visibility:.1f}km)",
        f"Reduced visibility ({visibility:.1f}km)",
    )

    check.above(
        precipitation,
        thresholds.precipitation,
        f"Heavy precipitation ({precipitation:.1f}mm)",
        f"Moderate precipitation ({precipitation:.1f}mm)",
    )

    clearance = flight_altitude - terrain
    check.below(
        clearance,
        thresholds.terrain_clearance,
        f"Low terrain clearance ({round_half_up(clearance)}ft)",
        f"Marginal terrain clearance ({round_half_up(clearance)}ft)",
    )

    if cloud_base is not None:
        cloud_clearance = cloud_base - flight_altitude
        check.below(
            cloud_clearance,
            thresholds.cloud_clearance,
            f"Insufficient cloud clearance ({round_half_up(cloud_clearance)}ft)",
            f"Marginal cloud clearance ({round_half_up(cloud_clearance)}ft)",
        )

    return check.result()



@dataclass(frozen=True)
class AlertThresholds:
    """Limits at which a waypoint's weather raises an alert."""

    wind_speed: float = 25.0  # kt, terminal only
    gust: float = 35.0  # kt, terminal only
    visibility: float = 5.0  # km
    cloud_base: float = 1500.0  # ft
    precipitation: float = 5.0  # mm


DEFAULT_ALERT_THRESHOLDS = AlertThresholds()

# Ratios of value to threshold at which a caution becomes a warning
WIND_WARNING_FACTOR = 1.5
GUST_WARNING_FACTOR = 1.3
PRECIPITATION_WARNING_FACTOR = 2.0
# Cloud base this far below the planned altitude is a warning
ALTITUDE_CONFLICT_WARNING_FT = 500.0


@dataclass
class WeatherAlert:
    """A caution or warning about one weather element at a waypoint."""

    type: str  # wind, gust, visibility, ceiling, rain or altitude-conflict
    severity: str  # caution or warning
    message: str
    value: float
    threshold: float


def check_weather_alerts(
    weather: WeatherSample,
    thresholds: AlertThresholds = DEFAULT_ALERT_THRESHOLDS,
    planned_altitude: Optional[float] = None,
    is_terminal: bool = False,
) -> List[WeatherAlert]:
    """
    Alerts for a waypoint's forecast weather.

    Wind and gust alerts apply only at departure and arrival, using the
    surface wind when the forecast has it. Cloud base is compared in feet
    AGL against the ceiling limit and against ``planned_altitude``.
    Zero or missing values raise no alert.

    Args:
        weather: Forecast sample for the waypoint
        thresholds: Alert limits
        planned_altitude: Planned altitude in ft, for the altitude conflict check
        is_terminal: True for departure and arrival

    Returns:
        List of WeatherAlert, empty when nothing exceeds its limit
    """
    alerts: List[WeatherAlert] = []

    if is_terminal:
        wind = weather.surface_wind_speed
        if wind is None:
            wind = weather.wind_speed
        if wind is not None and wind >= thresholds.wind_speed:
            severe = wind >= thresholds.wind_speed * WIND_WARNING_FACTOR
            alerts.append(
                WeatherAlert(
                    type="wind",
                    severity="warning" if severe else "caution",
                    message=f"Wind {round_half_up(wind)} kt",
                    value=wind,
                    threshold=thresholds.wind_speed,
                )
            )

        gust = weather.gust
        if gust and gust >= thresholds.gust:
            severe = gust >= thresholds.gust * GUST_WARNING_FACTOR
            alerts.append(
                WeatherAlert(
                    type="gust",
                    severity="warning" if severe else "caution",
                    message=f"Gust {round_half_up(gust)} kt",
                    value=gust,
                    threshold=thresholds.gust,
                )
            )

    visibility = weather.visibility
    if visibility and visibility < thresholds.visibility:
        severe = visibility < thresholds.visibility / 2
        alerts.append(
            WeatherAlert(
                type="visibility",
                severity="warning" if severe else "caution",
                message=f"Vis {visibility:.1f} km",
                value=visibility,
                threshold=thresholds.visibility,
            )
        )

    if weather.cloud_base:
        base_ft = meters_to_feet(weather.cloud_base)
        ceiling = f"{round_half_up(base_ft)} ft"

        if base_ft < thresholds.cloud_base:
            alerts.append(
                WeatherAlert(
                    type="ceiling",
                    severity="warning" if base_ft < thresholds.cloud_base / 2 else "caution",
                    message=f"Ceiling {ceiling}",
                    value=base_ft,
                    threshold=thresholds.cloud_base,
                )
            )

        if planned_altitude is not None and planned_altitude > 0 and base_ft < planned_altitude:
            margin = planned_altitude - base_ft
            alerts.append(
                WeatherAlert(
                    type="altitude-conflict",
                    severity="warning" if margin > ALTITUDE_CONFLICT_WARNING_FT else "caution",
                    message=f"Ceiling {ceiling} below planned {round_half_up(planned_altitude)} ft",
                    value=base_ft,
                    threshold=planned_altitude,
                )
            )

    precipitation = weather.precipitation
    if precipitation and precipitation >= thresholds.precipitation:
        severe = precipitation >= thresholds.precipitation * PRECIPITATION_WARNING_FACTOR
        alerts.append(
            WeatherAlert(
                type="rain",
                severity="warning" if severe else "caution",
                message=f"Rain {precipitation:.1f} mm",
                value=precipitation,
                threshold=thresholds.precipitation,
            )
        )

    return alerts
