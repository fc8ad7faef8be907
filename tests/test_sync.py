"""
Tests for the synchronous wrappers.
"""

from types import MappingProxyType
from unittest.mock import AsyncMock

import pytest

from vfrplan.config import PlannerSettings
from vfrplan.planner import fetch_route_forecasts, fetch_route_weather, plan_route
from vfrplan.sync import (
    AsyncSyncBridge,
    fetch_route_weather_sync,
    find_vfr_windows_sync,
    plan_route_sync,
)
from vfrplan.utils import add_sync_version
from vfrplan.weather import PointForecast
from vfrplan.windows import find_vfr_windows

BASE_TIME_MS = 1717200000000


@pytest.fixture
def forecast_client(forecast_payload):
    async def fetch(lat, lon):
        return PointForecast.from_response(lat, lon, forecast_payload())

    client = AsyncMock()
    client.fetch_forecast.side_effect = fetch
    return client


@pytest.fixture
def elevation_client():
    async def fetch(points):
        return [100.0] * len(points)

    client = AsyncMock()
    client.fetch_elevations.side_effect = fetch
    return client


class TestAsyncSyncBridge:
    """Test running coroutines from synchronous code."""

    def test_run_async(self):
        async def double(x, factor=2):
            return x * factor

        assert AsyncSyncBridge.run_async(double, args=(4,), kwargs={"factor": 3}) == 12

    def test_exceptions_propagate(self):
        async def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            AsyncSyncBridge.run_async(fail)

    @pytest.mark.asyncio
    async def test_refuses_running_loop(self):
        async def noop():
            return None

        with pytest.raises(RuntimeError, match="existing asyncio event loop"):
            AsyncSyncBridge.run_async(noop)


class TestAddSyncVersion:
    """Test the .sync attribute on public async functions."""

    def test_decorator(self):
        @add_sync_version
        async def add(a, b):
            return a + b

        assert add.sync(2, 3) == 5

    @pytest.mark.parametrize(
        "fn", [plan_route, fetch_route_weather, fetch_route_forecasts, find_vfr_windows]
    )
    def test_public_functions_have_sync(self, fn):
        assert callable(fn.sync)

    def test_plan_route_sync_attribute(self, north_route, forecast_client, elevation_client):
        profile = plan_route.sync(
            north_route,
            departure_time=BASE_TIME_MS,
            forecast_client=forecast_client,
            elevation_client=elevation_client,
        )
        assert len(profile.waypoints) == 2


class TestSyncWrappers:
    """Test the module level sync functions."""

    def test_plan_route_sync(self, three_leg_route, forecast_client, elevation_client):
        profile = plan_route_sync(
            three_leg_route,
            departure_time=BASE_TIME_MS,
            settings=PlannerSettings(sample_interval_nm=6.0),
            forecast_client=forecast_client,
            elevation_client=elevation_client,
        )

        assert len(profile.points) == 13
        assert profile.totals.distance == pytest.approx(60.0)

    def test_fetch_route_weather_sync(self, three_leg_route, forecast_client):
        weather = fetch_route_weather_sync(
            three_leg_route, client=forecast_client, departure_time=BASE_TIME_MS
        )

        assert isinstance(weather, MappingProxyType)
        assert len(weather) == 4

    def test_find_vfr_windows_sync(self):
        result = find_vfr_windows_sync([], client=AsyncMock())
        assert result.limited_by == "No waypoints in flight plan"
