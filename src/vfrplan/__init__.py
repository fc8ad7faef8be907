"""
VFR cross-country route planning.

Fuse a waypoint route with forecast wind/weather and terrain, and classify
flying conditions along it.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .cache import ForecastCache
from .conditions import (
    CONSERVATIVE_THRESHOLDS,
    DEFAULT_ALERT_THRESHOLDS,
    STANDARD_THRESHOLDS,
    AlertThresholds,
    ConditionThresholds,
    Threshold,
    WeatherAlert,
    check_weather_alerts,
    classify,
    meets_minimum_condition,
    thresholds_for_preset,
    validate_thresholds,
    worse_condition,
)
from .config import ClientConfig, PlannerSettings
from .elevation import ElevationClient
from .exceptions import (
    ProviderConnectionError,
    ProviderError,
    ProviderQueryError,
    RouteError,
    VFRPlanError,
)
from .frames import profile_to_dataframe, weather_to_dataframe
from .interpolation import Bracket, bracket, find_bracketing_waypoints, lerp, lerp_angle
from .models import (
    ConditionResult,
    ConditionTier,
    GeoPoint,
    LegData,
    PressureLevel,
    ProfilePoint,
    RouteTotals,
    SampledPoint,
    VerticalWindSample,
    Waypoint,
    WeatherSample,
    WindReading,
)
from .navigation import (
    bearing,
    calculate_leg,
    crosswind_component,
    distance_nm,
    format_bearing,
    format_distance,
    format_ete,
    format_headwind,
    ground_speed,
    headwind_component,
    interpolate_great_circle,
)
from .planner import (
    FlightProfile,
    compute_route_navigation,
    fetch_route_forecasts,
    fetch_route_terrain,
    fetch_route_weather,
    plan_route,
    route_weather_alerts,
    waypoint_arrival_times,
)
from .profile import estimate_cloud_top, fuse
from .sampling import attach_elevations, sample_route
from .sync import find_vfr_windows_sync, fetch_route_weather_sync, plan_route_sync
from .vertical_wind import (
    PRESSURE_LEVELS,
    bracket_levels,
    decode_wind_components,
    resolve_wind_at_altitude,
)
from .weather import ForecastClient, PointForecast, estimate_visibility
from .windows import (
    DepartureEvaluation,
    VfrWindow,
    VfrWindowSearchResult,
    evaluate_departure_time,
    find_vfr_windows,
)

__all__ = [
    # Models
    "GeoPoint",
    "Waypoint",
    "LegData",
    "RouteTotals",
    "PressureLevel",
    "VerticalWindSample",
    "WindReading",
    "WeatherSample",
    "SampledPoint",
    "ProfilePoint",
    "ConditionTier",
    "ConditionResult",
    # Navigation
    "distance_nm",
    "bearing",
    "headwind_component",
    "crosswind_component",
    "ground_speed",
    "interpolate_great_circle",
    "calculate_leg",
    "format_distance",
    "format_bearing",
    "format_ete",
    "format_headwind",
    # Interpolation
    "Bracket",
    "bracket",
    "lerp",
    "lerp_angle",
    "find_bracketing_waypoints",
    # Vertical wind
    "PRESSURE_LEVELS",
    "bracket_levels",
    "resolve_wind_at_altitude",
    "decode_wind_components",
    # Sampling and profile
    "sample_route",
    "attach_elevations",
    "fuse",
    "estimate_cloud_top",
    # Conditions
    "Threshold",
    "ConditionThresholds",
    "STANDARD_THRESHOLDS",
    "CONSERVATIVE_THRESHOLDS",
    "classify",
    "validate_thresholds",
    "thresholds_for_preset",
    "worse_condition",
    "meets_minimum_condition",
    "AlertThresholds",
    "DEFAULT_ALERT_THRESHOLDS",
    "WeatherAlert",
    "check_weather_alerts",
    # Providers
    "ClientConfig",
    "ForecastClient",
    "PointForecast",
    "estimate_visibility",
    "ElevationClient",
    "ForecastCache",
    # Planning
    "PlannerSettings",
    "FlightProfile",
    "compute_route_navigation",
    "waypoint_arrival_times",
    "fetch_route_forecasts",
    "fetch_route_weather",
    "fetch_route_terrain",
    "plan_route",
    "route_weather_alerts",
    "DepartureEvaluation",
    "VfrWindow",
    "VfrWindowSearchResult",
    "evaluate_departure_time",
    "find_vfr_windows",
    # Sync
    "plan_route_sync",
    "fetch_route_weather_sync",
    "find_vfr_windows_sync",
    # DataFrames
    "profile_to_dataframe",
    "weather_to_dataframe",
    # Exceptions
    "VFRPlanError",
    "RouteError",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderQueryError",
]
