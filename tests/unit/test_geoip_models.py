"""Unit tests for the GeoIP result models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from schemas.models.geoip import (
    GeoIpFailure,
    GeoIpStatus,
    GeoIpSuccess,
    GeoIpSuccessData,
    GeoIpTimeout,
    geoip_information_adapter,
)


class TestGeoIpSuccessData:
    def test_defaults(self):
        data = GeoIpSuccessData()
        assert data.country == ""
        assert data.as_ == ""
        assert data.lat == 0.0
        assert data.lon == 0.0

    def test_populates_by_alias_and_name(self):
        by_alias = GeoIpSuccessData.model_validate(
            {"countryCode": "DE", "regionName": "Hesse", "as": "AS3320"}
        )
        by_name = GeoIpSuccessData(country_code="DE", region_name="Hesse", as_="AS3320")
        assert by_alias == by_name

    def test_dump_by_alias_uses_wire_names(self):
        dumped = GeoIpSuccessData(country_code="DE").model_dump(by_alias=True)
        assert set(dumped) == {
            "country",
            "countryCode",
            "region",
            "regionName",
            "city",
            "zip",
            "lat",
            "lon",
            "timezone",
            "isp",
            "org",
            "as",
        }

    def test_is_frozen(self):
        data = GeoIpSuccessData(country="France")
        with pytest.raises(PydanticValidationError):
            data.country = "Spain"


class TestGeoIpInformation:
    def test_variants_carry_their_status(self):
        assert GeoIpSuccess(query="a", data=GeoIpSuccessData()).status == GeoIpStatus.SUCCESS
        assert GeoIpFailure(query="a").status == GeoIpStatus.FAIL
        assert GeoIpTimeout(query="a", message="slow").status == GeoIpStatus.TIMEOUT

    def test_success_requires_data(self):
        with pytest.raises(PydanticValidationError):
            GeoIpSuccess(query="a")

    def test_timeout_requires_message(self):
        with pytest.raises(PydanticValidationError):
            GeoIpTimeout(query="a")

    def test_status_cannot_be_mismatched(self):
        with pytest.raises(PydanticValidationError):
            GeoIpFailure(query="a", status=GeoIpStatus.SUCCESS)

    @pytest.mark.parametrize(
        "info",
        [
            GeoIpSuccess(query="8.8.8.8", data=GeoIpSuccessData(country="US", lat=1.5)),
            GeoIpFailure(query="8.8.8.8", message="private range"),
            GeoIpTimeout(query="8.8.8.8", message="timed out"),
        ],
        ids=["success", "fail", "timeout"],
    )
    def test_adapter_picks_variant_from_status(self, info):
        restored = geoip_information_adapter.validate_python(info.model_dump())
        assert type(restored) is type(info)
        assert restored == info

    def test_status_is_string_enum(self):
        assert GeoIpStatus("success") is GeoIpStatus.SUCCESS
        assert GeoIpStatus.FAIL == "fail"
