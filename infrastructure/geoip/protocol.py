"""Resolver collaborators — the resolver depends on these, not on concrete classes."""

from typing import Any, Awaitable, Callable, Protocol, Union

import httpx

from schemas.models.geoip import GeoIpInformation

# A handler may be sync or async; async handlers are awaited by the lookup task.
GeoIpHandler = Callable[[GeoIpInformation], Union[None, Awaitable[None]]]


class GeoIpTransport(Protocol):
    async def get(self, url: str, **kwargs: Any) -> httpx.Response: ...

    async def aclose(self) -> None: ...
