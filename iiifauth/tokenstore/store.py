"""
Access token storage interface for iiifauth.

Token stores are shared, keyed maps from resource identity to the last
access token obtained for it. Reads and writes are single atomic calls;
there is no transaction spanning a read and a later write.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.types import AccessToken


class AccessTokenStore(ABC):
    """
    Abstract base class for access token storage implementations.

    All implementations must be safe for concurrent use from many
    negotiations running on the same event loop.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[AccessToken]:
        """
        Retrieve the token stored under a key.

        Args:
            key: Resource identity

        Returns:
            The token, or None if absent or expired
        """
        pass

    @abstractmethod
    async def put(self, key: str, token: AccessToken) -> None:
        """
        Store a token, replacing any previous one for the key.

        Args:
            key: Resource identity
            token: Token to store
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove the token stored under a key.

        Returns:
            True if a token was removed
        """
        pass

    @abstractmethod
    async def clear(self) -> int:
        """
        Remove all tokens.

        Returns:
            Number of tokens removed
        """
        pass

    async def close(self) -> None:
        """Release any backend resources"""
        pass
