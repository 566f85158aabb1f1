# homelab_dash/utils/tokens.py
"""Process-wide credential caches.

Each upstream that hands out a session token (qBittorrent SID, Beszel JWT,
Proxmox ticket, B2 authorisation) gets one TokenCache. The caches live on
``app.state`` and reach the routes through ``Depends(get_token_caches)`` so
tests can swap them out.

Lifecycle:
    - ``get()`` returns the cached value while it is valid, else None.
    - ``store()`` records a fresh value; the expiry is ``ttl - margin``.
    - ``invalidate()`` drops the value; call it when an upstream answers 401/403
      so the next request logs in again.

There is no lock: two requests racing to refresh both log in and the last
write wins.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


class TokenCache:
    def __init__(
        self,
        ttl_seconds: float,
        margin_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.margin_seconds = margin_seconds
        self._clock = clock
        self._value: Optional[Any] = None
        self._expires_at = 0.0

    def get(self) -> Optional[Any]:
        if self._value is None:
            return None
        if self._clock() >= self._expires_at - self.margin_seconds:
            self._value = None
            return None
        return self._value

    def store(self, value: Any, ttl_seconds: Optional[float] = None) -> Any:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._value = value
        self._expires_at = self._clock() + ttl
        return value

    def invalidate(self) -> None:
        self._value = None
        self._expires_at = 0.0

    @property
    def is_valid(self) -> bool:
        return self.get() is not None


@dataclass
class TokenCaches:
    qbittorrent: TokenCache = field(default_factory=lambda: TokenCache(30 * 60))
    beszel: TokenCache = field(default_factory=lambda: TokenCache(2 * 60 * 60, margin_seconds=5 * 60))
    pve: TokenCache = field(default_factory=lambda: TokenCache(2 * 60 * 60, margin_seconds=5 * 60))
    b2: TokenCache = field(default_factory=lambda: TokenCache(24 * 60 * 60, margin_seconds=5 * 60))
