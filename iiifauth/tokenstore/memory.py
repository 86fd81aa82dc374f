"""
In-memory access token storage for iiifauth.

Suitable for a single process, e.g. a viewer session or a batch job.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..core.types import AccessToken
from .store import AccessTokenStore


logger = logging.getLogger(__name__)


class MemoryAccessTokenStore(AccessTokenStore):
    """
    In-memory token store implementation.

    Expired tokens are dropped when read, so a lapsed token never reaches
    the negotiator as a "cached" credential.
    """

    def __init__(self):
        self._store: Dict[str, AccessToken] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[AccessToken]:
        async with self._lock:
            token = self._store.get(key)

            if token is not None and token.is_expired():
                del self._store[key]
                logger.debug(f"Removed expired token for {key}")
                return None

            return token

    async def put(self, key: str, token: AccessToken) -> None:
        async with self._lock:
            self._store[key] = token
            logger.debug(f"Stored token for {key}")

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._store:
                del self._store[key]
                logger.debug(f"Deleted token for {key}")
                return True
            return False

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._store)
            self._store.clear()
            logger.info(f"Cleared {count} tokens from memory store")
            return count

    async def count(self) -> int:
        """Count stored tokens, including ones not yet found expired."""
        async with self._lock:
            return len(self._store)
