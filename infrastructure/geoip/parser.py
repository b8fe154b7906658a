"""ip-api.com payload parsing and re-serialization.

parse_payload() never raises: every malformed body becomes a GeoIpFailure so
the registered handler always receives a result.
"""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import ValidationError

from errors import (
    EmptyResponseError,
    GeoIpError,
    InvalidFormatError,
    MalformedPayloadError,
)
from schemas.models.geoip import (
    GeoIpFailure,
    GeoIpInformation,
    GeoIpSuccess,
    GeoIpSuccessData,
)

EMPTY_RESPONSE_MESSAGE = "Empty response from server"
MISSING_FIELDS_MESSAGE = "Invalid response format: missing 'query' or 'status'"

_SUCCESS_STATUS = "success"


def _decode(key: str, raw_body: Union[bytes, str]) -> Any:
    if not raw_body.strip():
        raise EmptyResponseError(EMPTY_RESPONSE_MESSAGE, key=key)
    try:
        return json.loads(raw_body)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors;
        # RecursionError comes from pathologically nested arrays/objects
        raise MalformedPayloadError(
            f"JSON parse error: {e}, request data: {key}", key=key
        ) from e


def _parse(key: str, raw_body: Union[bytes, str]) -> GeoIpInformation:
    payload = _decode(key, raw_body)

    if not isinstance(payload, dict) or "query" not in payload or "status" not in payload:
        raise InvalidFormatError(MISSING_FIELDS_MESSAGE, key=key)

    query = payload["query"] if isinstance(payload["query"], str) else key

    # Case-sensitive: "Success" or "SUCCESS" is an upstream failure
    if payload["status"] != _SUCCESS_STATUS:
        message = payload.get("message")
        return GeoIpFailure(
            query=query, message=None if message is None else str(message)
        )

    try:
        data = GeoIpSuccessData.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidFormatError(
            f"Invalid response format: bad value for {fields}",
            key=key,
            details=e.errors(include_url=False),
        ) from e

    return GeoIpSuccess(query=query, data=data)


def parse_payload(key: str, raw_body: Union[bytes, str]) -> GeoIpInformation:
    """Classify a raw ip-api.com response body for ``key``.

    Returns GeoIpSuccess when the payload reports ``"status": "success"``,
    otherwise a GeoIpFailure whose message explains why (empty body, invalid
    JSON, missing ``query``/``status``, or the upstream's own message).
    """
    try:
        return _parse(key, raw_body)
    except GeoIpError as e:
        return e.to_information(key)


def success_data_to_json(query: str, data: GeoIpSuccessData) -> str:
    """Render ``data`` with its wire field names, preceded by ``query``."""
    payload = {"query": query}
    payload.update(data.model_dump(mode="json", by_alias=True))
    return json.dumps(payload)


def success_data_from_json(raw: Union[bytes, str]) -> GeoIpSuccessData:
    """Inverse of success_data_to_json(); the ``query`` key is ignored."""
    return GeoIpSuccessData.model_validate_json(raw)
