"""
GeoIP resolver error hierarchy.

GeoIpError is the base for all typed errors. Apart from InvalidKeyError,
which is raised synchronously by resolve() for a bad key, none of these
escape to the caller: the correlator turns them into a Fail/Timeout
GeoIpInformation via to_information() and hands that to the registered
handler.
"""

from __future__ import annotations

from typing import Any, Optional

from schemas.models.geoip import (
    GeoIpFailure,
    GeoIpInformation,
    GeoIpStatus,
    GeoIpTimeout,
)


class GeoIpError(Exception):
    """Base resolver error. All typed errors inherit from this."""

    error_code: str = "geoip_error"
    status: GeoIpStatus = GeoIpStatus.FAIL

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.key = key
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.key is not None:
            payload["key"] = self.key
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def to_information(self, key: str) -> GeoIpInformation:
        if self.status is GeoIpStatus.TIMEOUT:
            return GeoIpTimeout(query=key, message=self.message)
        return GeoIpFailure(query=key, message=self.message)


class InvalidKeyError(GeoIpError):
    error_code = "invalid_key"


class TransportError(GeoIpError):
    error_code = "transport_error"


class TransportTimeoutError(TransportError):
    error_code = "transport_timeout"
    status = GeoIpStatus.TIMEOUT


class EmptyResponseError(GeoIpError):
    error_code = "empty_response"


class MalformedPayloadError(GeoIpError):
    error_code = "malformed_payload"


class InvalidFormatError(GeoIpError):
    error_code = "invalid_format"
