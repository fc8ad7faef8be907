"""
Unit conversions and shared constants.
"""

import math

METERS_TO_FEET = 3.28084
FEET_TO_METERS = 0.3048
MS_TO_KNOTS = 1.94384
KNOTS_TO_MS = 0.514444
NM_TO_METERS = 1852.0
KELVIN_OFFSET = 273.15

EARTH_RADIUS_NM = 3440.065

# Heuristic thickness added to a cloud base to estimate its top
TYPICAL_CLOUD_THICKNESS_FEET = 3000.0

# Cloud bases at or above this (30000 ft) are reported when there is no cloud
CLEAR_SKY_METERS = 9144.0

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE

# Forecast confidence horizons (hours ahead of now)
HIGH_CONFIDENCE_HOURS = 24
MEDIUM_CONFIDENCE_HOURS = 72


def meters_to_feet(m: float) -> float:
    return m * METERS_TO_FEET


def feet_to_meters(feet: float) -> float:
    return feet * FEET_TO_METERS


def ms_to_knots(ms: float) -> float:
    return ms * MS_TO_KNOTS


def knots_to_ms(knots: float) -> float:
    return knots * KNOTS_TO_MS


def nm_to_meters(nm: float) -> float:
    return nm * NM_TO_METERS


def meters_to_nm(meters: float) -> float:
    return meters / NM_TO_METERS


def kelvin_to_celsius(k: float) -> float:
    return k - KELVIN_OFFSET


def celsius_to_kelvin(c: float) -> float:
    return c + KELVIN_OFFSET


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up, so 20.5 gives 21."""
    return int(math.floor(value + 0.5))
