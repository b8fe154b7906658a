"""
GeoIP lookup result models.

GeoIpSuccessData mirrors the ip-api.com success payload. Python attribute
names are snake_case; the wire names (countryCode, regionName, as, ...) are
kept as aliases so model_dump(by_alias=True) reproduces the upstream shape.

GeoIpInformation is a tagged union on `status`:
  GeoIpSuccess  — carries data, never a message
  GeoIpFailure  — carries an optional diagnostic message, never data
  GeoIpTimeout  — the lookup exceeded the configured HTTP timeout
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class GeoIpStatus(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    TIMEOUT = "timeout"


_TEXT_FIELDS = (
    "country",
    "country_code",
    "region",
    "region_name",
    "city",
    "zip",
    "timezone",
    "isp",
    "org",
    "as_",
)


class GeoIpSuccessData(BaseModel):
    """Geographic/network attributes of a successfully resolved address."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    country: str = ""
    country_code: str = Field(default="", alias="countryCode")
    region: str = ""
    region_name: str = Field(default="", alias="regionName")
    city: str = ""
    zip: str = ""
    lat: float = 0.0
    lon: float = 0.0
    timezone: str = ""
    isp: str = ""
    org: str = ""
    as_: str = Field(default="", alias="as")

    # ip-api occasionally sends null for fields it has no value for
    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _null_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _null_coordinate(cls, v: Any) -> Any:
        return 0.0 if v is None else v


class GeoIpSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    status: Literal[GeoIpStatus.SUCCESS] = GeoIpStatus.SUCCESS
    data: GeoIpSuccessData


class GeoIpFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    status: Literal[GeoIpStatus.FAIL] = GeoIpStatus.FAIL
    message: Optional[str] = None


class GeoIpTimeout(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    status: Literal[GeoIpStatus.TIMEOUT] = GeoIpStatus.TIMEOUT
    message: str


GeoIpInformation = Annotated[
    Union[GeoIpSuccess, GeoIpFailure, GeoIpTimeout],
    Field(discriminator="status"),
]

# Validates a plain dict (e.g. from a queue or log replay) into the right variant
geoip_information_adapter: TypeAdapter[GeoIpInformation] = TypeAdapter(
    GeoIpInformation
)
