"""
Tests for the point forecast client and forecast sampling.
"""

import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from httpx import HTTPStatusError, RequestError, TimeoutException

from vfrplan.config import FORECAST_BASE_URL, ClientConfig
from vfrplan.exceptions import ProviderConnectionError, ProviderQueryError
from vfrplan.weather import ForecastClient, PointForecast, estimate_visibility

BASE_TIME_MS = 1717200000000
HOUR_MS = 3600 * 1000


class TestPointForecast:
    """Test parsing and sampling forecast series."""

    def test_from_response(self, forecast_payload):
        forecast = PointForecast.from_response(40.0, -105.0, forecast_payload())

        assert forecast.timestamps == [BASE_TIME_MS + i * 3 * HOUR_MS for i in range(3)]
        assert forecast.start == BASE_TIME_MS
        assert forecast.end == BASE_TIME_MS + 6 * HOUR_MS
        assert "ts" not in forecast.series
        assert "units" not in forecast.series
        assert forecast.units["temp-surface"] == "K"

    def test_length_mismatch_warns(self, forecast_payload, caplog):
        payload = forecast_payload()
        payload["rh-surface"] = [50.0]

        PointForecast.from_response(40.0, -105.0, payload)

        assert "rh-surface" in caplog.text

    def test_empty_forecast(self):
        forecast = PointForecast(lat=0.0, lon=0.0, timestamps=[])
        assert forecast.start is None
        assert forecast.sample(BASE_TIME_MS) is None

    def test_surface_sample(self, forecast_payload):
        forecast = PointForecast.from_response(
            40.0, -105.0, forecast_payload(precip_m=0.002, gust_ms=10.0)
        )

        wx = forecast.sample(BASE_TIME_MS + HOUR_MS)

        assert wx.timestamp == BASE_TIME_MS + HOUR_MS
        assert wx.wind_speed == pytest.approx(10.0, rel=1e-4)
        assert wx.wind_direction == pytest.approx(270.0)
        assert wx.wind_level is None
        assert wx.surface_wind_speed == pytest.approx(wx.wind_speed)
        assert wx.temperature == pytest.approx(15.0)
        assert wx.dew_point == pytest.approx(10.0)
        assert wx.pressure == pytest.approx(1013.25)
        assert wx.gust == pytest.approx(19.4384)
        assert wx.precipitation == pytest.approx(2.0)
        assert wx.humidity == 60.0
        assert wx.visibility == 20.0
        assert wx.cloud_base is None

    def test_interpolates_between_steps(self, forecast_payload):
        forecast = PointForecast.from_response(
            40.0, -105.0, forecast_payload(temp_k=[280.0, 290.0, 300.0])
        )

        wx = forecast.sample(BASE_TIME_MS + int(1.5 * HOUR_MS))

        assert wx.temperature == pytest.approx(285.0 - 273.15)

    def test_clamps_outside_range(self, forecast_payload):
        forecast = PointForecast.from_response(
            40.0, -105.0, forecast_payload(temp_k=[280.0, 290.0, 300.0])
        )

        assert forecast.sample(BASE_TIME_MS - HOUR_MS).temperature == pytest.approx(6.85)
        assert forecast.sample(BASE_TIME_MS + 99 * HOUR_MS).temperature == pytest.approx(26.85)

    def test_wind_at_altitude(self, forecast_payload):
        payload = forecast_payload(levels={"900h": (260.0, 20.0), "850h": (280.0, 30.0)})
        forecast = PointForecast.from_response(40.0, -105.0, payload)

        wx = forecast.sample(BASE_TIME_MS, altitude_ft=4150)

        assert wx.wind_level == "900h-850h"
        assert wx.wind_altitude == 4150
        assert wx.wind_speed == pytest.approx(25.0, rel=1e-4)
        assert wx.wind_direction == pytest.approx(270.0)
        assert wx.surface_wind_speed == pytest.approx(10.0, rel=1e-4)
        assert [w.level for w in wx.vertical_winds] == ["900h", "850h"]

    def test_zero_altitude_uses_surface_wind(self, forecast_payload):
        payload = forecast_payload(levels={"850h": (180.0, 40.0)})
        forecast = PointForecast.from_response(40.0, -105.0, payload)

        wx = forecast.sample(BASE_TIME_MS, altitude_ft=0)

        assert wx.wind_level is None
        assert wx.wind_direction == pytest.approx(270.0)

    def test_vertical_profile_from_nearest_step(self, forecast_payload, uv):
        payload = forecast_payload()
        slow, fast = uv(90.0, 10.0), uv(90.0, 50.0)
        payload["wind_u-850h"] = [slow[0], fast[0], fast[0]]
        payload["wind_v-850h"] = [slow[1], fast[1], fast[1]]
        forecast = PointForecast.from_response(40.0, -105.0, payload)

        early = forecast.sample(BASE_TIME_MS + HOUR_MS, altitude_ft=5000)
        late = forecast.sample(BASE_TIME_MS + 2 * HOUR_MS, altitude_ft=5000)

        assert early.wind_speed == pytest.approx(10.0, rel=1e-4)
        assert late.wind_speed == pytest.approx(50.0, rel=1e-4)

    def test_missing_wind_reported_as_zero(self, forecast_payload):
        forecast = PointForecast.from_response(40.0, -105.0, forecast_payload(surface_wind=None))

        wx = forecast.sample(BASE_TIME_MS, altitude_ft=3000)

        assert wx.wind_speed == 0.0
        assert wx.wind_direction == 0.0
        assert wx.surface_wind_speed is None

    @pytest.mark.parametrize(
        "cbase,expected", [(800.0, 800.0), (0.0, None), (-5.0, None), (9144.0, None)]
    )
    def test_cloud_base(self, forecast_payload, cbase, expected):
        forecast = PointForecast.from_response(40.0, -105.0, forecast_payload(cbase=cbase))
        assert forecast.sample(BASE_TIME_MS).cloud_base == expected

    def test_bare_cloud_base_key(self, forecast_payload):
        payload = forecast_payload()
        payload["cbase"] = [650.0, 650.0, 650.0]

        forecast = PointForecast.from_response(40.0, -105.0, payload)

        assert forecast.sample(BASE_TIME_MS).cloud_base == 650.0

    def test_surface_cloud_base_preferred(self, forecast_payload):
        payload = forecast_payload(cbase=800.0)
        payload["cbase"] = [650.0, 650.0, 650.0]

        forecast = PointForecast.from_response(40.0, -105.0, payload)

        assert forecast.sample(BASE_TIME_MS).cloud_base == 800.0

    def test_bare_gust_key(self, forecast_payload):
        payload = forecast_payload()
        del payload["gust-surface"]
        payload["gust"] = [10.0, 10.0, 10.0]

        forecast = PointForecast.from_response(40.0, -105.0, payload)

        assert forecast.sample(BASE_TIME_MS).gust == pytest.approx(19.4384)

    def test_null_timestamps_rejected(self, forecast_payload):
        payload = forecast_payload()
        payload["ts"] = [None, None, None]

        with pytest.raises(ProviderQueryError, match="Invalid forecast payload"):
            PointForecast.from_response(40.0, -105.0, payload)

    def test_non_numeric_series_rejected(self, forecast_payload):
        payload = forecast_payload()
        payload["rh-surface"] = ["humid", 60.0, 60.0]

        with pytest.raises(ProviderQueryError, match="Invalid forecast payload"):
            PointForecast.from_response(40.0, -105.0, payload)

    def test_celsius_units_not_converted(self, forecast_payload):
        payload = forecast_payload(temp_k=12.0)
        payload["units"]["temp-surface"] = "C"
        forecast = PointForecast.from_response(40.0, -105.0, payload)
        assert forecast.sample(BASE_TIME_MS).temperature == 12.0


@pytest.mark.parametrize(
    "humidity,expected", [(100, 0.5), (96, 2.0), (91, 5.0), (85, 10.0), (40, 20.0)]
)
def test_estimate_visibility(humidity, expected):
    assert estimate_visibility(humidity) == expected


class TestForecastClient:
    """Test ForecastClient functionality."""

    @pytest.fixture
    def client(self):
        """Create a test client."""
        return ForecastClient(ClientConfig(base_url=FORECAST_BASE_URL, api_key="test-key", timeout=5))

    def test_init(self, client):
        """Test client initialization."""
        assert client.timeout == 5
        assert client.config.base_url == "https://api.windy.com/api/point-forecast/v2"

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("WINDY_API_KEY", "env-key")
        monkeypatch.setenv("VFRPLAN_TIMEOUT", "12")

        client = ForecastClient()

        assert client.config.api_key == "env-key"
        assert client.timeout == 12.0

    def test_bad_timeout_environment(self, monkeypatch):
        monkeypatch.setenv("VFRPLAN_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="VFRPLAN_TIMEOUT"):
            ForecastClient()

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_fetch_forecast_success(self, mock_client_class, client, forecast_payload):
        """Test successful forecast retrieval."""
        mock_response = Mock()
        mock_response.json.return_value = forecast_payload()
        mock_response.raise_for_status.return_value = None

        mock_client = AsyncMock()
        mock_client.post.return_value = mock_response
        mock_client_class.return_value = mock_client

        client._client = mock_client

        forecast = await client.fetch_forecast(40.123456, -105.987654)

        assert len(forecast.timestamps) == 3
        assert forecast.lat == 40.123456

        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == FORECAST_BASE_URL
        assert payload["lat"] == 40.1235
        assert payload["lon"] == -105.9877
        assert payload["key"] == "test-key"
        assert payload["model"] == "ecmwf"
        assert "850h" in payload["levels"]
        assert "wind" in payload["parameters"]
        assert "cbase" in payload["parameters"]

    @pytest.mark.asyncio
    async def test_fetch_forecast_custom_levels(self, client, forecast_payload):
        mock_response = Mock()
        mock_response.json.return_value = forecast_payload()
        client._client = AsyncMock()
        client._client.post.return_value = mock_response

        await client.fetch_forecast(40.0, -105.0, levels=["surface"], parameters=["wind"])

        payload = client._client.post.call_args.kwargs["json"]
        assert payload["levels"] == ["surface"]
        assert payload["parameters"] == ["wind"]

    @pytest.mark.asyncio
    async def test_fetch_weather(self, client, forecast_payload):
        mock_response = Mock()
        mock_response.json.return_value = forecast_payload()
        client._client = AsyncMock()
        client._client.post.return_value = mock_response

        wx = await client.fetch_weather(40.0, -105.0, timestamp=BASE_TIME_MS)

        assert wx.timestamp == BASE_TIME_MS
        assert wx.wind_direction == pytest.approx(270.0)

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        client = ForecastClient(ClientConfig(base_url=FORECAST_BASE_URL))
        client._client = AsyncMock()

        with pytest.raises(ProviderQueryError, match="No forecast API key"):
            await client.fetch_forecast(40.0, -105.0)

        client._client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_coordinates(self, client):
        client._client = AsyncMock()

        with pytest.raises(ValueError, match="Latitude"):
            await client.fetch_forecast(91.0, 0.0)
        with pytest.raises(ValueError, match="Longitude"):
            await client.fetch_forecast(0.0, 181.0)

    @pytest.mark.asyncio
    async def test_unexpected_response_format(self, client):
        mock_response = Mock()
        mock_response.json.return_value = ["not", "a", "dict"]
        client._client = AsyncMock()
        client._client.post.return_value = mock_response

        with pytest.raises(ProviderQueryError, match="Unexpected forecast response format"):
            await client.fetch_forecast(40.0, -105.0)

    @pytest.mark.asyncio
    async def test_no_timestamps(self, client):
        mock_response = Mock()
        mock_response.json.return_value = {"ts": [], "units": {}}
        client._client = AsyncMock()
        client._client.post.return_value = mock_response

        with pytest.raises(ProviderQueryError, match="no timestamps"):
            await client.fetch_forecast(40.0, -105.0)

    @pytest.mark.asyncio
    async def test_malformed_payload(self, client, forecast_payload):
        payload = forecast_payload()
        payload["ts"] = [None, None, None]
        mock_response = Mock()
        mock_response.json.return_value = payload
        client._client = AsyncMock()
        client._client.post.return_value = mock_response

        with pytest.raises(ProviderQueryError, match="Invalid forecast payload") as exc_info:
            await client.fetch_forecast(40.0, -105.0)

        assert isinstance(exc_info.value.__cause__, TypeError)

    @patch("httpx.AsyncClient")
    @pytest.mark.asyncio
    async def test_timeout_error(self, mock_client_class, client):
        """Test timeout error handling."""
        mock_client = AsyncMock()
        mock_client.post.side_effect = TimeoutException("Timeout")
        mock_client_class.return_value = mock_client

        client._client = mock_client

        with pytest.raises(ProviderConnectionError, match="Request timeout after 5s"):
            await client.fetch_forecast(40.0, -105.0)

    @pytest.mark.parametrize(
        "status,error,message",
        [
            (404, ProviderQueryError, "Forecast not found"),
            (429, ProviderConnectionError, "Rate limit exceeded"),
            (503, ProviderConnectionError, "temporarily unavailable"),
            (400, ProviderConnectionError, "HTTP error 400"),
        ],
    )
    @pytest.mark.asyncio
    async def test_http_errors(self, client, status, error, message):
        """Test HTTP status error handling."""
        mock_response = Mock()
        mock_response.status_code = status

        mock_client = AsyncMock()
        mock_client.post.side_effect = HTTPStatusError(
            "Request failed", request=Mock(), response=mock_response
        )
        client._client = mock_client

        with pytest.raises(error, match=message):
            await client.fetch_forecast(40.0, -105.0)

    @pytest.mark.asyncio
    async def test_network_error(self, client):
        client._client = AsyncMock()
        client._client.post.side_effect = RequestError("Connection refused")

        with pytest.raises(ProviderConnectionError, match="Network error: Connection refused"):
            await client.fetch_forecast(40.0, -105.0)

    @pytest.mark.asyncio
    async def test_invalid_json(self, client):
        mock_response = Mock()
        mock_response.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)
        client._client = AsyncMock()
        client._client.post.return_value = mock_response

        with pytest.raises(ProviderQueryError, match="Invalid JSON response"):
            await client.fetch_forecast(40.0, -105.0)

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        async with ForecastClient(ClientConfig(base_url=FORECAST_BASE_URL)) as client:
            mock_client = AsyncMock()
            client._client = mock_client

        mock_client.aclose.assert_awaited_once()
