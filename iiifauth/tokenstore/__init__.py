"""
Token store package for iiifauth.

Provides in-memory and Redis-backed storage for access tokens obtained
during negotiation, keyed by resource identity.
"""

from .store import AccessTokenStore

from .memory import MemoryAccessTokenStore

from .distributed import (
    DistributedConfig,
    RedisAccessTokenStore,
    create_distributed_store,
)

__all__ = [
    "AccessTokenStore",
    "MemoryAccessTokenStore",
    "DistributedConfig",
    "RedisAccessTokenStore",
    "create_distributed_store",
]
