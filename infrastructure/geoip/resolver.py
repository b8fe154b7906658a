"""Non-blocking GeoIP resolver backed by the ip-api.com JSON endpoint.

resolve() registers a handler and schedules the HTTP lookup as an asyncio
task, returning immediately. When the request finishes (in any order
relative to other lookups) the correlator matches it back to its key and
every handler registered for that key is invoked exactly once.

Concurrent resolve() calls for a key that is already in flight do not issue a
second request; they join the pending lookup and receive the same result.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Any, Optional, Union
from urllib.parse import quote, urlencode

import httpx

from config import GeoIpSettings
from errors import GeoIpError, InvalidKeyError, TransportError, TransportTimeoutError
from infrastructure.geoip.correlator import (
    Completion,
    ResponseCorrelator,
    deliver,
    deliver_now,
)
from infrastructure.geoip.protocol import GeoIpHandler, GeoIpTransport
from infrastructure.geoip.registry import PendingRequestRegistry
from infrastructure.http_client import HttpClient
from schemas.models.geoip import GeoIpFailure, GeoIpInformation
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

_REQUEST_HEADERS = {"Content-Type": "application/json"}

LookupFuture = Union["asyncio.Task[None]", concurrent.futures.Future]


class GeoIpResolver:
    def __init__(
        self,
        http_client: GeoIpTransport,
        settings: Optional[GeoIpSettings] = None,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._http = http_client
        self._settings = settings or GeoIpSettings()
        self._loop = loop
        self._registry = PendingRequestRegistry()
        self._correlator = ResponseCorrelator(self._registry)
        # Only touched from the loop thread
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls, settings: Optional[GeoIpSettings] = None, **kwargs: Any
    ) -> "GeoIpResolver":
        """Build a resolver with its own HttpClient using the configured timeout."""
        settings = settings or GeoIpSettings()
        http_client = HttpClient(
            timeout=settings.geoip_timeout_seconds, headers=dict(_REQUEST_HEADERS)
        )
        return cls(http_client, settings, **kwargs)

    @property
    def pending(self) -> int:
        """Number of keys still waiting for a response."""
        return len(self._registry)

    def build_url(self, key: str) -> str:
        url = f"{self._settings.geoip_api_url}/{quote(key, safe='')}"
        if self._settings.geoip_lang:
            url = f"{url}?{urlencode({'lang': self._settings.geoip_lang})}"
        return url

    def resolve(self, key: str, handler: GeoIpHandler) -> Optional[LookupFuture]:
        """Look up ``key`` without blocking; ``handler`` receives the result later.

        The handler runs on the resolver's event loop, never synchronously
        inside this call. Returns the scheduled lookup (an asyncio Task when
        called on the loop thread, a concurrent Future from any other thread),
        or None when ``key`` was already in flight and the handler joined it.

        Raises:
            InvalidKeyError: ``key`` is empty or not a string.
            RuntimeError: no event loop is running and none was given.
        """
        if not isinstance(key, str) or not key.strip():
            raise InvalidKeyError(
                "Correlation key must be a non-empty string", details=repr(key)
            )

        try:
            running: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is None:
            if running is None:
                raise RuntimeError(
                    "GeoIpResolver.resolve() needs a running event loop or an explicit loop"
                )
            self._loop = running

        if not self._registry.insert(key, handler):
            log.debug("geoip_lookup_coalesced", ip_hash=hash_ip(key))
            return None

        coro = self._lookup(key, self.build_url(key))
        if running is self._loop:
            task = self._loop.create_task(coro)
            self._track(task)
            return task
        try:
            return asyncio.run_coroutine_threadsafe(coro, self._loop)
        except RuntimeError:
            # Loop closed: nothing will ever complete this key. Our own caller
            # gets the exception; handlers that joined meanwhile get a Fail.
            coro.close()
            joined = self._registry.take(key)
            joined.remove(handler)
            if joined:
                deliver_now(
                    joined,
                    GeoIpFailure(query=key, message="Resolver event loop is closed"),
                )
            raise

    async def lookup(self, key: str) -> GeoIpInformation:
        """Await the lookup of ``key`` directly instead of passing a handler."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _set_result(info: GeoIpInformation) -> None:
            if not future.done():
                future.set_result(info)

        self.resolve(key, lambda info: loop.call_soon_threadsafe(_set_result, info))
        return await future

    async def drain(self) -> None:
        """Wait for every lookup scheduled on this loop to deliver its result."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._http.aclose()

    async def __aenter__(self) -> "GeoIpResolver":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch(self, key: str, url: str) -> Completion:
        try:
            response = await self._http.get(url, headers=_REQUEST_HEADERS)
        except httpx.TimeoutException as e:
            error: GeoIpError = TransportTimeoutError(
                f"Request timed out: {type(e).__name__}: {e}", key=key
            )
        except Exception as e:
            # httpx.HTTPError and anything a custom transport raises
            error = TransportError(f"Request failed: {type(e).__name__}: {e}", key=key)
        else:
            if response.is_success:
                return Completion(url=url, body=response.content, key=key)
            error = TransportError(
                f"HTTP {response.status_code} from geolocation service",
                key=key,
                details=response.text[:200],
            )
        return Completion(url=url, error=error, key=key)

    async def _lookup(self, key: str, url: str) -> None:
        task = asyncio.current_task()
        if task is not None and task not in self._tasks:
            self._track(task)

        log.debug("geoip_lookup_dispatched", ip_hash=hash_ip(key))
        try:
            completion = await self._fetch(key, url)
        except asyncio.CancelledError:
            handlers, info = self._correlator.complete(
                Completion(
                    url=url, error=TransportError("Lookup cancelled", key=key), key=key
                )
            )
            if info is not None:
                await deliver(handlers, info)
            raise

        handlers, info = self._correlator.complete(completion)
        if info is not None:
            await deliver(handlers, info)
