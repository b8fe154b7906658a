"""Pending lookup registry: correlation key -> handlers awaiting its response.

A key maps to a list so that concurrent resolve() calls for the same key fan
out to every caller instead of the later one silently replacing the earlier.
All access goes through one threading.Lock, held only for the dict operation,
so the registry can be shared between the event loop and caller threads.
"""

from __future__ import annotations

import threading

from infrastructure.geoip.protocol import GeoIpHandler


class PendingRequestRegistry:
    def __init__(self) -> None:
        self._pending: dict[str, list[GeoIpHandler]] = {}
        self._lock = threading.Lock()

    def insert(self, key: str, handler: GeoIpHandler) -> bool:
        """Register ``handler`` for ``key``.

        Returns True when ``key`` had nothing pending, i.e. the caller owns
        the lookup and must dispatch the request. False means the handler
        joined a lookup already in flight.
        """
        with self._lock:
            handlers = self._pending.get(key)
            if handlers is None:
                self._pending[key] = [handler]
                return True
            handlers.append(handler)
            return False

    def take(self, key: str) -> list[GeoIpHandler]:
        """Atomically remove and return every handler waiting on ``key``.

        An unknown key yields an empty list: the response was already
        consumed and is dropped by the caller.
        """
        with self._lock:
            return self._pending.pop(key, [])

    def pending_keys(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
