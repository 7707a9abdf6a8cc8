"""Service configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the trip-weather service."""
    model_config = SettingsConfigDict(env_prefix="TRIPWX_", extra="ignore")

    routing_source: str = "osrm"
    forecast_source: str = "open_meteo"
    geocoding_source: str = "nominatim"
    osrm_base_url: str = "https://router.project-osrm.org"
    open_meteo_base_url: str = "https://api.open-meteo.com"
    open_meteo_geocoding_url: str = "https://geocoding-api.open-meteo.com"
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "tripweather/0.1"
    http_timeout_seconds: float = 10.0

    forecast_days: int = 8
    temperature_unit: str = "fahrenheit"
    wind_speed_unit: str = "mph"
    precipitation_unit: str = "inch"

    waypoint_interval_miles: float = 50.0
    destination_merge_miles: float = 10.0
    # OSRM durations run long against real driving; divide them by this.
    speed_correction_factor: float = 1.27
    geocode_stagger_seconds: float = 0.2
    auto_refresh_seconds: float = 300.0
    default_timezone: str = "America/Chicago"

    session_ttl_seconds: int = 3600
    session_sweep_seconds: float = 60.0
    api_key: str | None = None

    @field_validator("osrm_base_url", "open_meteo_base_url", "open_meteo_geocoding_url",
                     "nominatim_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("speed_correction_factor", "waypoint_interval_miles", "auto_refresh_seconds",
                     "destination_merge_miles", "session_sweep_seconds", mode="after")
    @classmethod
    def require_positive(cls, v: float) -> float:
        """Reject zero or negative divisors, distances and periods."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("geocode_stagger_seconds", mode="after")
    @classmethod
    def require_non_negative(cls, v: float) -> float:
        """A zero stagger is allowed; a negative delay is not."""
        if v < 0:
            raise ValueError("must not be negative")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
