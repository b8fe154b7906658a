"""
Resolver configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The geolocation endpoint defaults to ip-api.com's free JSON API; the
correlation key (IP address or host) is appended as the last path segment.
"""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeoIpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    geoip_api_url: str = "http://ip-api.com/json"
    # Covers connect/read/write/pool; elapsing yields a Timeout result
    geoip_timeout_seconds: float = 5.0
    # Optional ip-api "lang" parameter (e.g. "de", "ja"); empty = omitted
    geoip_lang: str = ""

    @field_validator("geoip_api_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("geoip_api_url must not be empty")
        return v

    @field_validator("geoip_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("geoip_timeout_seconds must be positive")
        return v


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"

    # Sub-configs (composed via model_validator below)
    geoip: Optional[GeoIpSettings] = None
    logging: Optional[LoggingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.geoip is None:
            self.geoip = GeoIpSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
