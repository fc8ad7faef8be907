"""
Shared fixtures for vfrplan tests.
"""

import math

import pytest

from vfrplan.models import Waypoint
from vfrplan.units import EARTH_RADIUS_NM, KNOTS_TO_MS

# 2024-06-01T00:00:00Z
BASE_TIME_MS = 1717200000000
HOUR_MS = 3600 * 1000

# Degrees of latitude per nautical mile along a meridian
DEG_PER_NM = 180.0 / (math.pi * EARTH_RADIUS_NM)


def wind_uv(direction: float, speed_kt: float):
    """u/v components (m/s) of a wind blowing from ``direction`` at ``speed_kt``."""
    speed_ms = speed_kt * KNOTS_TO_MS
    rad = math.radians(direction)
    return -speed_ms * math.sin(rad), -speed_ms * math.cos(rad)


@pytest.fixture
def uv():
    """The wind_uv helper, for tests that build raw series."""
    return wind_uv


@pytest.fixture
def make_waypoint():
    """Factory for waypoints."""

    def _make(wp_id, lat, lon, **kwargs):
        kwargs.setdefault("name", wp_id.upper())
        return Waypoint(id=wp_id, lat=lat, lon=lon, **kwargs)

    return _make


@pytest.fixture
def north_route(make_waypoint):
    """Two waypoints 60 NM apart on a track of 000."""
    return [
        make_waypoint("dep", 40.0, -105.0, type="airport"),
        make_waypoint("arr", 40.0 + 60.0 * DEG_PER_NM, -105.0, type="airport"),
    ]


@pytest.fixture
def three_leg_route(make_waypoint):
    """Four waypoints heading north in 20 NM legs."""
    return [
        make_waypoint(
            f"wp{i}", 40.0 + 20.0 * i * DEG_PER_NM, -105.0, type="airport" if i in (0, 3) else "user"
        )
        for i in range(4)
    ]


@pytest.fixture
def forecast_payload():
    """Factory for point forecast API payloads.

    Every series has one value per timestamp. ``levels`` maps pressure
    level labels to ``(direction, speed_kt)`` winds held constant over time.
    """

    def _make(
        steps=3,
        surface_wind=(270.0, 10.0),
        levels=None,
        temp_k=288.15,
        dewpoint_k=283.15,
        rh=60.0,
        pressure_pa=101325.0,
        gust_ms=5.0,
        precip_m=0.0,
        cbase=None,
        start=BASE_TIME_MS,
        step_ms=3 * HOUR_MS,
    ):
        ts = [start + i * step_ms for i in range(steps)]
        payload = {
            "ts": ts,
            "units": {
                "temp-surface": "K",
                "dewpoint-surface": "K",
                "past3hprecip-surface": "m",
                "wind_u-surface": "m*s-1",
                "wind_v-surface": "m*s-1",
            },
            "warning": "Test data",
        }

        def _series(value):
            return value if isinstance(value, list) else [value] * steps

        if surface_wind is not None:
            u, v = wind_uv(*surface_wind)
            payload["wind_u-surface"] = _series(u)
            payload["wind_v-surface"] = _series(v)

        for label, (direction, speed) in (levels or {}).items():
            u, v = wind_uv(direction, speed)
            payload[f"wind_u-{label}"] = _series(u)
            payload[f"wind_v-{label}"] = _series(v)

        payload["temp-surface"] = _series(temp_k)
        payload["dewpoint-surface"] = _series(dewpoint_k)
        payload["rh-surface"] = _series(rh)
        payload["pressure-surface"] = _series(pressure_pa)
        payload["gust-surface"] = _series(gust_ms)
        payload["past3hprecip-surface"] = _series(precip_m)
        if cbase is not None:
            payload["cbase-surface"] = _series(cbase)

        return payload

    return _make
