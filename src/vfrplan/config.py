"""
Configuration for provider clients and route planning.
"""

import os
from dataclasses import dataclass
from typing import Optional

FORECAST_BASE_URL = "https://api.windy.com/api/point-forecast/v2"
ELEVATION_BASE_URL = "https://api.open-meteo.com/v1/elevation"

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "vfrplan/0.1.0"
DEFAULT_MODEL = "ecmwf"


def _env_timeout(default: float) -> float:
    value = os.environ.get("VFRPLAN_TIMEOUT")
    if not value:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"VFRPLAN_TIMEOUT must be a number of seconds, got {value!r}") from e


@dataclass
class ClientConfig:
    """Settings shared by the HTTP provider clients."""

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    api_key: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    model: str = DEFAULT_MODEL

    @classmethod
    def forecast_defaults(cls) -> "ClientConfig":
        """Point forecast settings, with key and timeout from the environment."""
        return cls(
            base_url=FORECAST_BASE_URL,
            timeout=_env_timeout(DEFAULT_TIMEOUT),
            api_key=os.environ.get("WINDY_API_KEY"),
        )

    @classmethod
    def elevation_defaults(cls) -> "ClientConfig":
        return cls(base_url=ELEVATION_BASE_URL, timeout=_env_timeout(DEFAULT_TIMEOUT))


@dataclass
class PlannerSettings:
    """Defaults for route planning."""

    tas: float = 100.0  # knots
    default_altitude: float = 3000.0  # ft MSL
    sample_interval_nm: float = 5.0
    max_concurrent: int = 4
    threshold_preset: str = "standard"
