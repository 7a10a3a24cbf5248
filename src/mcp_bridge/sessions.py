"""Short-lived reuse of handshake sessions."""

import asyncio
import hashlib
import logging
import time
from collections.abc import Callable

from .models import EndpointConfig, Session

logger = logging.getLogger("mcp-bridge.sessions")


class SessionCache:
    """Sessions keyed by endpoint URL plus a digest of its credentials.

    Only a SHA-256 digest of the headers is kept, never the tokens
    themselves. Entries expire after ``ttl_seconds``; callers invalidate an
    entry when the server rejects it.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: dict[str, tuple[float, Session]] = {}

    @staticmethod
    def key(endpoint: EndpointConfig) -> str:
        digest = hashlib.sha256()
        for name, value in sorted(
            (name.lower(), value) for name, value in endpoint.headers.items()
        ):
            digest.update(f"{name}:{value}\n".encode())
        return f"{endpoint.provider}|{endpoint.url}|{digest.hexdigest()}"

    async def get(self, key: str) -> Session | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, session = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug("Cached session expired")
                return None
            return session

    async def put(self, key: str, session: Session) -> None:
        async with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, session)

    async def invalidate(self, key: str) -> None:
        async with self._lock:
            if self._entries.pop(key, None) is not None:
                logger.debug("Cached session invalidated")

    def __len__(self) -> int:
        return len(self._entries)
