"""
Platform Token Store - Short-lived OAuth sessions

Holds the access token obtained in an OAuth callback until the client calls
the profile endpoint with the returned session id. Entries expire after
platform_token_ttl_seconds.

Implementations:
    - InMemoryTokenStore: single-process dev/test store, evicts on read and
      via purge_expired() (run by the scheduler)
    - RedisTokenStore: SETEX-based store shared between workers; Redis errors
      are logged and reported as a miss instead of raised

Key Pattern:
    platform_token:{session_id}
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

from app.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class PlatformToken:
    """OAuth credentials for one platform session."""
    platform: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def new_session_id(platform: str) -> str:
    return f"{platform}_{uuid.uuid4().hex}"


class TokenStore(Protocol):
    """Protocol for platform token stores."""

    async def put(self, session_id: str, token: PlatformToken) -> None:
        ...

    async def get(self, session_id: str) -> Optional[PlatformToken]:
        ...

    async def delete(self, session_id: str) -> None:
        ...


class InMemoryTokenStore:
    """In-process token store with TTL eviction."""

    def __init__(self, ttl_seconds: int = 3600, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, PlatformToken]] = {}

    async def put(self, session_id: str, token: PlatformToken) -> None:
        self._entries[session_id] = (self._clock() + self.ttl_seconds, token)

    async def get(self, session_id: str) -> Optional[PlatformToken]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        expires_at, token = entry
        if expires_at <= self._clock():
            del self._entries[session_id]
            return None
        return token

    async def delete(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisTokenStore:
    """
    Redis-backed token store.

    Attributes:
        redis_url: Redis connection URL
        ttl_seconds: Expiry for each session
    """

    KEY_PREFIX = "platform_token"

    def __init__(self, redis_url: str, ttl_seconds: int = 3600):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.redis: Optional[redis.Redis] = None

    async def _ensure_connected(self) -> Optional[redis.Redis]:
        if self.redis is None:
            try:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
            except Exception as e:
                logger.warning(f"Failed to connect to Redis: {e}")
                return None
        return self.redis

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}:{session_id}"

    async def put(self, session_id: str, token: PlatformToken) -> None:
        client = await self._ensure_connected()
        if not client:
            return
        try:
            await client.setex(self._key(session_id), self.ttl_seconds, json.dumps(asdict(token)))
        except Exception as e:
            logger.warning(f"Redis set error (platform token): {e}")

    async def get(self, session_id: str) -> Optional[PlatformToken]:
        client = await self._ensure_connected()
        if not client:
            return None
        try:
            cached = await client.get(self._key(session_id))
        except Exception as e:
            logger.warning(f"Redis get error (platform token): {e}")
            return None
        if not cached:
            return None
        try:
            return PlatformToken(**json.loads(cached))
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt platform token entry {session_id}: {e}")
            return None

    async def delete(self, session_id: str) -> None:
        client = await self._ensure_connected()
        if not client:
            return
        try:
            await client.delete(self._key(session_id))
        except Exception as e:
            logger.warning(f"Redis delete error (platform token): {e}")

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.close()
            self.redis = None


# ==============================================================================
# Singleton Pattern for Dependency Injection
# ==============================================================================

_token_store: Optional[TokenStore] = None


def get_token_store() -> TokenStore:
    """Shared token store selected by settings.token_store."""
    global _token_store
    if _token_store is None:
        settings = get_settings()
        if settings.token_store == "redis":
            _token_store = RedisTokenStore(settings.redis_url, settings.platform_token_ttl_seconds)
        else:
            _token_store = InMemoryTokenStore(settings.platform_token_ttl_seconds)
        logger.info(f"Created {type(_token_store).__name__} for platform sessions")
    return _token_store
