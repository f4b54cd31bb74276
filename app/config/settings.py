from functools import lru_cache

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    influx_url: str
    influx_token: str
    influx_org: str
    influx_bucket: str
    influx_measurement: str = "telemetry"
    influx_timeout_ms: int = 10000

    lookup_window_days: int = 30


@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        missing = ", ".join(
            str(err["loc"][0]).upper() for err in e.errors() if err.get("loc")
        )
        raise ConfigurationError(
            f"InfluxDB settings are incomplete, check .env: {missing}"
        ) from e
