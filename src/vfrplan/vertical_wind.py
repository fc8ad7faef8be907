"""
Wind at altitude from pressure-level forecasts.

Forecast models report wind on fixed pressure levels. This module maps
those levels to standard-atmosphere altitudes, decodes u/v components and
interpolates between levels to get wind at an arbitrary altitude.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .interpolation import lerp_angle
from .models import PressureLevel, VerticalWindSample
from .units import ms_to_knots

logger = logging.getLogger(__name__)

# Standard atmosphere altitudes (ft) for the levels requested from the provider
PRESSURE_LEVELS: Tuple[PressureLevel, ...] = (
    PressureLevel("surface", 0),
    PressureLevel("1000h", 330),
    PressureLevel("950h", 1600),
    PressureLevel("900h", 3300),
    PressureLevel("850h", 5000),
    PressureLevel("700h", 10000),
    PressureLevel("500h", 18000),
    PressureLevel("300h", 30000),
    PressureLevel("200h", 39000),
)

# Full ladder used to place decoded vertical winds
METEOGRAM_PRESSURE_LEVELS: Tuple[PressureLevel, ...] = (
    PressureLevel("1000h", 330),
    PressureLevel("975h", 1000),
    PressureLevel("950h", 1600),
    PressureLevel("925h", 2500),
    PressureLevel("900h", 3300),
    PressureLevel("850h", 5000),
    PressureLevel("800h", 6200),
    PressureLevel("700h", 10000),
    PressureLevel("600h", 14000),
    PressureLevel("500h", 18000),
    PressureLevel("400h", 23500),
    PressureLevel("300h", 30000),
    PressureLevel("250h", 34000),
    PressureLevel("200h", 39000),
    PressureLevel("150h", 45000),
    PressureLevel("100h", 53000),
)

_METEOGRAM_BY_LABEL: Dict[str, PressureLevel] = {
    level.label: level for level in METEOGRAM_PRESSURE_LEVELS
}
_LEVELS_BY_LABEL: Dict[str, PressureLevel] = {
    **_METEOGRAM_BY_LABEL,
    **{level.label: level for level in PRESSURE_LEVELS},
}

# Parameter names providers use for the eastward/northward components
U_PARAMETERS = ("wind_u", "windU", "wind-u")
V_PARAMETERS = ("wind_v", "windV", "wind-v")

# Separators between parameter and level in fallback key spellings
_KEY_SEPARATORS = ("-", "_")


@dataclass(frozen=True)
class LevelBracket:
    """Two adjacent pressure levels around an altitude."""

    lower: PressureLevel
    upper: PressureLevel
    fraction: float


@dataclass(frozen=True)
class ResolvedWind:
    """Wind interpolated to a target altitude."""

    speed: float  # knots
    direction: float  # degrees true
    level: str  # level label, or "lower-upper" when interpolated


@dataclass(frozen=True)
class WindKeyPair:
    """Series keys holding the u and v components of one level."""

    u_key: str
    v_key: str


def bracket_levels(
    altitude_ft: float, levels: Sequence[PressureLevel] = PRESSURE_LEVELS
) -> LevelBracket:
    """
    Find the two table levels surrounding ``altitude_ft``.

    Below the second level the lowest pair is used with a fraction clamped
    to [0, 1]. Above the top level the top pair is returned with fraction
    1.0; nothing is extrapolated.
    """
    lowest, second = levels[0], levels[1]
    if altitude_ft < second.altitude_ft:
        span = second.altitude_ft - lowest.altitude_ft
        fraction = (altitude_ft - lowest.altitude_ft) / span if span > 0 else 0.0
        return LevelBracket(lowest, second, min(1.0, max(0.0, fraction)))

    for lower, upper in zip(levels, levels[1:]):
        if lower.altitude_ft <= altitude_ft <= upper.altitude_ft:
            span = upper.altitude_ft - lower.altitude_ft
            fraction = (altitude_ft - lower.altitude_ft) / span if span > 0 else 0.0
            return LevelBracket(lower, upper, fraction)

    return LevelBracket(levels[-2], levels[-1], 1.0)


def altitude_to_pressure_level(altitude_ft: float) -> str:
    """Label of the highest table level at or below ``altitude_ft``."""
    if altitude_ft < 500:
        return "surface"

    label = PRESSURE_LEVELS[0].label
    for level in PRESSURE_LEVELS:
        if level.altitude_ft <= altitude_ft:
            label = level.label
    return label


def altitude_for_level(label: str) -> Optional[float]:
    """Standard altitude for a level label, or None for unknown labels."""
    level = _LEVELS_BY_LABEL.get(label)
    return level.altitude_ft if level else None


def decode_wind_components(u: float, v: float) -> Tuple[float, float]:
    """
    Convert eastward/northward components (m/s) to ``(speed_kt, direction)``.

    Direction is the meteorological "from" direction, so both components
    are negated.
    """
    speed = ms_to_knots(math.hypot(u, v))
    direction = (math.degrees(math.atan2(-u, -v)) + 360.0) % 360.0
    return speed, direction


def resolve_wind_at_altitude(
    samples: Iterable[VerticalWindSample], altitude_ft: float
) -> Optional[ResolvedWind]:
    """
    Interpolate wind at ``altitude_ft`` from a vertical profile.

    Targets outside the observed range clamp to the nearest end. Speed is
    interpolated linearly and direction along the shorter arc.

    Args:
        samples: Wind at one or more pressure levels, any order
        altitude_ft: Target altitude in feet MSL

    Returns:
        ResolvedWind, or None when no samples are available
    """
    ordered = sorted(samples, key=lambda s: s.altitude_ft)
    if not ordered:
        return None

    lower = upper = None
    if altitude_ft <= ordered[0].altitude_ft:
        lower = upper = ordered[0]
    elif altitude_ft >= ordered[-1].altitude_ft:
        lower = upper = ordered[-1]
    else:
        for below, above in zip(ordered, ordered[1:]):
            if below.altitude_ft <= altitude_ft <= above.altitude_ft:
                lower, upper = below, above
                break

    if lower is upper:
        return ResolvedWind(lower.speed, lower.direction, lower.level)

    span = upper.altitude_ft - lower.altitude_ft
    fraction = (altitude_ft - lower.altitude_ft) / span if span > 0 else 0.0

    speed = lower.speed + (upper.speed - lower.speed) * fraction
    direction = lerp_angle(lower.direction, upper.direction, fraction)

    logger.debug(
        f"Interpolated wind {lower.level}->{upper.level} at {altitude_ft:.0f}ft "
        f"(fraction {fraction:.2f}): {direction:.0f}/{speed:.0f}kt"
    )

    return ResolvedWind(speed, direction, f"{lower.level}-{upper.level}")


def _split_key(key: str) -> Optional[Tuple[str, str]]:
    """Split ``<parameter>-<level>`` at the last dash."""
    parameter, sep, level = key.rpartition("-")
    if not sep or not parameter or not level:
        return None
    return parameter, level


def parse_wind_level_pairs(series_keys: Iterable[str]) -> Dict[str, WindKeyPair]:
    """
    Map level labels to the keys holding their u/v components.

    Keys are read once as ``<parameter>-<level>``. Only levels with both a
    u and a v key are returned. When the declared keys yield no pairs, the
    known level labels are tried with the common key spellings instead.
    """
    keys = list(series_keys)
    u_keys: Dict[str, str] = {}
    v_keys: Dict[str, str] = {}

    for key in keys:
        parts = _split_key(key)
        if parts is None:
            continue
        parameter, level = parts
        if parameter in U_PARAMETERS:
            u_keys.setdefault(level, key)
        elif parameter in V_PARAMETERS:
            v_keys.setdefault(level, key)

    pairs = {
        level: WindKeyPair(u_key, v_keys[level])
        for level, u_key in u_keys.items()
        if level in v_keys
    }
    if pairs:
        return pairs

    return _fallback_wind_level_pairs(set(keys))


def _fallback_wind_level_pairs(available: set) -> Dict[str, WindKeyPair]:
    pairs: Dict[str, WindKeyPair] = {}

    for level in METEOGRAM_PRESSURE_LEVELS:
        u_key = _first_present(available, U_PARAMETERS, level.label)
        v_key = _first_present(available, V_PARAMETERS, level.label)
        if u_key and v_key:
            pairs[level.label] = WindKeyPair(u_key, v_key)

    if pairs:
        logger.debug(f"Resolved {len(pairs)} wind levels from known key spellings")
    return pairs


def _first_present(available: set, parameters: Sequence[str], label: str) -> Optional[str]:
    for parameter in parameters:
        for sep in _KEY_SEPARATORS:
            candidate = f"{parameter}{sep}{label}"
            if candidate in available:
                return candidate
    return None


def _value_at(values: Optional[Sequence[Optional[float]]], index: int) -> Optional[float]:
    if not values or index >= len(values):
        return None
    value = values[index]
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return value


def vertical_wind_profile(
    series: Mapping[str, Sequence[Optional[float]]], time_index: int = 0
) -> List[VerticalWindSample]:
    """
    Decode the wind at every known pressure level for one forecast step.

    Levels missing from the meteogram table (including ``surface``) are
    skipped so that altitudes are never guessed.
    """
    winds: List[VerticalWindSample] = []

    for label, pair in parse_wind_level_pairs(series.keys()).items():
        level = _METEOGRAM_BY_LABEL.get(label)
        if level is None:
            continue

        u = _value_at(series.get(pair.u_key), time_index)
        v = _value_at(series.get(pair.v_key), time_index)
        if u is None or v is None:
            continue

        speed, direction = decode_wind_components(u, v)
        winds.append(VerticalWindSample(label, level.altitude_ft, speed, direction))

    winds.sort(key=lambda w: w.altitude_ft)
    return winds
