"""Routes a completed lookup back to the handlers registered for its key.

The resolver stamps each completion with the key it was issued for. A bare
completion falls back to the request URL's last path segment, which cannot
round-trip keys such as "." or ".." that URL normalisation collapses.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import unquote

import httpx

from errors import GeoIpError
from infrastructure.geoip.parser import parse_payload
from infrastructure.geoip.protocol import GeoIpHandler
from infrastructure.geoip.registry import PendingRequestRegistry
from schemas.models.geoip import GeoIpFailure, GeoIpInformation
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)


@dataclass(frozen=True)
class Completion:
    """A finished outbound request: either a body or the error that ended it.

    ``key`` is the correlation key the request was issued for; when absent it
    is recovered from the last path segment of ``url``.
    """

    url: str
    body: bytes = b""
    error: Optional[GeoIpError] = None
    key: Optional[str] = None


def key_from_url(url: str) -> str:
    # raw_path keeps %2F escaped, so a key containing "/" survives the split
    raw_path = httpx.URL(url).raw_path.decode("ascii").split("?", 1)[0]
    return unquote(raw_path.rsplit("/", 1)[-1])


class ResponseCorrelator:
    def __init__(self, registry: PendingRequestRegistry) -> None:
        self._registry = registry

    def complete(
        self, completion: Completion
    ) -> tuple[list[GeoIpHandler], Optional[GeoIpInformation]]:
        """Claim the handlers for ``completion`` and classify its outcome.

        Returns ``([], None)`` when nothing is waiting on the key; the
        response is then dropped. Once handlers are claimed a result is
        always returned for them, even if classification itself blows up.
        """
        key = completion.key if completion.key is not None else key_from_url(completion.url)
        handlers = self._registry.take(key)
        if not handlers:
            log.debug("geoip_response_unmatched", ip_hash=hash_ip(key))
            return [], None

        try:
            info = self._classify(key, completion)
        except Exception as e:
            log.error(
                "geoip_response_classification_failed",
                ip_hash=hash_ip(key),
                error=str(e),
                error_type=type(e).__name__,
            )
            info = GeoIpFailure(
                query=key, message=f"Unable to process response: {type(e).__name__}: {e}"
            )
        else:
            log.info(
                "geoip_lookup_completed",
                ip_hash=hash_ip(key),
                status=info.status.value,
                handlers=len(handlers),
            )
        return handlers, info

    def _classify(self, key: str, completion: Completion) -> GeoIpInformation:
        if completion.error is None:
            return parse_payload(key, completion.body)
        log.warning(
            "geoip_lookup_transport_failed",
            ip_hash=hash_ip(key),
            error=completion.error.message,
            error_code=completion.error.error_code,
        )
        return completion.error.to_information(key)


def _handler_failed(info: GeoIpInformation, e: Exception) -> None:
    log.error(
        "geoip_handler_failed",
        ip_hash=hash_ip(info.query),
        error=str(e),
        error_type=type(e).__name__,
    )


async def deliver(handlers: Iterable[GeoIpHandler], info: GeoIpInformation) -> None:
    """Invoke each handler once with ``info``; one failing handler does not stop the rest."""
    for handler in handlers:
        try:
            result = handler(info)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            _handler_failed(info, e)


def deliver_now(handlers: Iterable[GeoIpHandler], info: GeoIpInformation) -> None:
    """Invoke handlers outside any event loop.

    Coroutine handlers cannot be awaited here; their coroutine is closed and
    the skip is logged.
    """
    for handler in handlers:
        try:
            result = handler(info)
            if inspect.iscoroutine(result):
                result.close()
                log.warning("geoip_handler_not_awaited", ip_hash=hash_ip(info.query))
        except Exception as e:
            _handler_failed(info, e)
