"""
DataFrame export of profiles and weather snapshots.

pandas and polars are optional; install the ``dataframe`` or ``polars``
extra to use these functions.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import ProfilePoint, WeatherSample

PROFILE_COLUMNS = (
    "distance",
    "altitude",
    "terrain_elevation",
    "cloud_base",
    "cloud_top",
    "headwind",
    "crosswind",
    "wind_speed",
    "wind_direction",
    "waypoint_id",
    "waypoint_name",
    "condition",
    "condition_reasons",
)

WEATHER_COLUMNS = (
    "waypoint_id",
    "timestamp",
    "wind_speed",
    "wind_direction",
    "wind_altitude",
    "wind_level",
    "surface_wind_speed",
    "surface_wind_direction",
    "gust",
    "temperature",
    "dew_point",
    "pressure",
    "cloud_base",
    "humidity",
    "visibility",
    "precipitation",
)


def _profile_records(points: Sequence[ProfilePoint]) -> Dict[str, List[Any]]:
    data: Dict[str, List[Any]] = {name: [] for name in PROFILE_COLUMNS}
    for point in points:
        for name in PROFILE_COLUMNS:
            value = getattr(point, name)
            if name == "condition":
                value = value.value if value is not None else None
            elif name == "condition_reasons":
                value = "; ".join(value)
            data[name].append(value)
    return data


def _weather_records(snapshot: Mapping[str, WeatherSample]) -> Dict[str, List[Any]]:
    data: Dict[str, List[Any]] = {name: [] for name in WEATHER_COLUMNS}
    for waypoint_id, sample in snapshot.items():
        data["waypoint_id"].append(waypoint_id)
        for name in WEATHER_COLUMNS[1:]:
            data[name].append(getattr(sample, name))
    return data


def _to_frame(data: Dict[str, List[Any]], library: str, time_column: Optional[str] = None) -> Any:
    if library.lower() == "pandas":
        try:
            import pandas as pd
        except ImportError:
            raise ImportError(
                "pandas is required for DataFrame conversion. Install with: pip install pandas"
            ) from None

        df = pd.DataFrame(data)
        if time_column and not df.empty:
            df["time"] = pd.to_datetime(df[time_column], unit="ms", utc=True)
        return df

    elif library.lower() == "polars":
        try:
            import polars as pl
        except ImportError:
            raise ImportError(
                "polars is required for DataFrame conversion. Install with: pip install polars"
            ) from None

        df = pl.DataFrame(data, strict=False)
        if time_column and not df.is_empty():
            df = df.with_columns(pl.from_epoch(time_column, time_unit="ms").alias("time"))
        return df

    else:
        raise ValueError(f"Unsupported library: {library}. Choose 'pandas' or 'polars'.")


def profile_to_dataframe(points: Sequence[ProfilePoint], library: str = "pandas") -> Any:
    """One row per profile point; reasons are joined with ``"; "``."""
    return _to_frame(_profile_records(points), library)


def weather_to_dataframe(snapshot: Mapping[str, WeatherSample], library: str = "pandas") -> Any:
    """
    One row per waypoint in a weather snapshot.

    A ``time`` column with UTC datetimes is added from ``timestamp``.
    Vertical wind profiles are not included.
    """
    return _to_frame(_weather_records(snapshot), library, time_column="timestamp")
