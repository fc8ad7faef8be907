"""
Tests for pressure-level wind handling.
"""

import pytest

from vfrplan.models import VerticalWindSample
from vfrplan.vertical_wind import (
    PRESSURE_LEVELS,
    altitude_for_level,
    altitude_to_pressure_level,
    bracket_levels,
    decode_wind_components,
    parse_wind_level_pairs,
    resolve_wind_at_altitude,
    vertical_wind_profile,
)


class TestBracketLevels:
    """Test bracketing altitudes against the pressure level table."""

    def test_below_second_level(self):
        result = bracket_levels(165)
        assert (result.lower.label, result.upper.label) == ("surface", "1000h")
        assert result.fraction == pytest.approx(0.5)

    def test_negative_altitude_clamps(self):
        result = bracket_levels(-200)
        assert result.lower.label == "surface"
        assert result.fraction == 0.0

    def test_inside_table(self):
        result = bracket_levels(4150)
        assert (result.lower.label, result.upper.label) == ("900h", "850h")
        assert result.fraction == pytest.approx(0.5)

    def test_above_top(self):
        result = bracket_levels(50000)
        assert (result.lower.label, result.upper.label) == ("300h", "200h")
        assert result.fraction == 1.0

    @pytest.mark.parametrize("altitude", [0, 500, 1600, 2400, 7000, 25000, 39000, 60000])
    def test_monotonic(self, altitude):
        result = bracket_levels(altitude)
        assert result.lower.altitude_ft <= result.upper.altitude_ft
        assert 0 <= result.fraction <= 1

    def test_table_is_ascending(self):
        altitudes = [level.altitude_ft for level in PRESSURE_LEVELS]
        assert altitudes == sorted(altitudes)


class TestLevelLookup:
    """Test altitude and label lookups."""

    def test_low_altitude_is_surface(self):
        assert altitude_to_pressure_level(300) == "surface"

    def test_highest_level_below(self):
        assert altitude_to_pressure_level(4500) == "900h"
        assert altitude_to_pressure_level(5000) == "850h"

    def test_altitude_for_level(self):
        assert altitude_for_level("850h") == 5000
        assert altitude_for_level("975h") == 1000
        assert altitude_for_level("surface") == 0

    def test_unknown_level(self):
        assert altitude_for_level("123h") is None


class TestDecodeWindComponents:
    """Test u/v decoding to speed and meteorological direction."""

    @pytest.mark.parametrize(
        "u,v,direction",
        [(0.0, -10.0, 0.0), (-10.0, 0.0, 90.0), (0.0, 10.0, 180.0), (10.0, 0.0, 270.0)],
    )
    def test_directions(self, u, v, direction):
        speed, result = decode_wind_components(u, v)
        assert result == pytest.approx(direction)
        assert speed == pytest.approx(19.4384)

    def test_calm(self):
        speed, direction = decode_wind_components(0.0, 0.0)
        assert speed == 0
        assert 0 <= direction < 360

    def test_matches_test_helper(self, uv):
        speed, direction = decode_wind_components(*uv(230, 25))
        assert speed == pytest.approx(25.0, rel=1e-4)
        assert direction == pytest.approx(230.0)


class TestResolveWindAtAltitude:
    """Test interpolation of wind from a vertical profile."""

    @pytest.fixture
    def profile(self):
        return [
            VerticalWindSample("850h", 5000, 30.0, 280.0),
            VerticalWindSample("900h", 3300, 20.0, 260.0),
            VerticalWindSample("700h", 10000, 50.0, 300.0),
        ]

    def test_empty(self):
        assert resolve_wind_at_altitude([], 3000) is None

    def test_below_lowest_clamps(self, profile):
        result = resolve_wind_at_altitude(profile, 1000)
        assert (result.speed, result.direction, result.level) == (20.0, 260.0, "900h")

    def test_above_highest_clamps(self, profile):
        result = resolve_wind_at_altitude(profile, 20000)
        assert result.level == "700h"
        assert result.speed == 50.0

    def test_interpolates_between_levels(self, profile):
        result = resolve_wind_at_altitude(profile, 7500)
        assert result.level == "850h-700h"
        assert result.speed == pytest.approx(40.0)
        assert result.direction == pytest.approx(290.0)

    def test_direction_across_north(self):
        profile = [
            VerticalWindSample("900h", 3300, 10.0, 350.0),
            VerticalWindSample("850h", 5000, 10.0, 10.0),
        ]
        result = resolve_wind_at_altitude(profile, 4150)
        assert min(result.direction, 360 - result.direction) == pytest.approx(0.0, abs=1e-9)


class TestParseWindLevelPairs:
    """Test discovery of u/v series keys."""

    def test_declared_keys(self):
        keys = ["ts", "wind_u-850h", "wind_v-850h", "wind_u-700h", "temp-surface"]
        pairs = parse_wind_level_pairs(keys)
        assert list(pairs) == ["850h"]
        assert pairs["850h"].u_key == "wind_u-850h"
        assert pairs["850h"].v_key == "wind_v-850h"

    def test_alternate_parameter_names(self):
        pairs = parse_wind_level_pairs(["windU-500h", "windV-500h"])
        assert pairs["500h"].u_key == "windU-500h"

    def test_fallback_spellings(self):
        pairs = parse_wind_level_pairs(["windU_850h", "windV_850h", "temp_surface"])
        assert list(pairs) == ["850h"]
        assert pairs["850h"].v_key == "windV_850h"

    def test_no_wind(self):
        assert parse_wind_level_pairs(["temp-surface", "rh-surface"]) == {}


class TestVerticalWindProfile:
    """Test decoding a full vertical profile from forecast series."""

    def test_decodes_known_levels(self, forecast_payload):
        payload = forecast_payload(levels={"850h": (270.0, 30.0), "925h": (250.0, 15.0)})
        series = {k: v for k, v in payload.items() if isinstance(v, list) and k != "ts"}

        winds = vertical_wind_profile(series, time_index=1)

        assert [w.level for w in winds] == ["925h", "850h"]
        assert winds[0].altitude_ft == 2500
        assert winds[1].speed == pytest.approx(30.0, rel=1e-4)
        assert winds[1].direction == pytest.approx(270.0)

    def test_skips_surface_and_missing_values(self):
        series = {
            "wind_u-surface": [1.0],
            "wind_v-surface": [1.0],
            "wind_u-850h": [None],
            "wind_v-850h": [2.0],
            "wind_u-700h": [float("nan")],
            "wind_v-700h": [2.0],
        }
        assert vertical_wind_profile(series) == []

    def test_index_out_of_range(self):
        series = {"wind_u-850h": [1.0], "wind_v-850h": [1.0]}
        assert vertical_wind_profile(series, time_index=5) == []
