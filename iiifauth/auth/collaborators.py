"""
Collaborator interface for access-control negotiation.

The negotiation engine never talks to users, token services or storage
itself. It drives an :class:`AuthCollaborators` object that performs
those steps, which keeps viewers, CLIs and test doubles interchangeable.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

from ..common.utils import get_host
from ..core.types import AccessToken
from ..resource.types import ExternalResource
from ..tokenstore.store import AccessTokenStore


class AuthCollaborators(ABC):
    """
    Capabilities the negotiator needs to obtain access to a resource.

    Every method may suspend; any exception raised propagates out of
    ``authorize`` and ``load_external_resource`` unchanged.
    """

    @abstractmethod
    async def click_through(self, resource: ExternalResource) -> None:
        """Run the click-through acknowledgement advertised by the resource."""
        pass

    @abstractmethod
    async def login(self, resource: ExternalResource) -> None:
        """Run the full interactive login for the resource."""
        pass

    @abstractmethod
    async def get_access_token(self, resource: ExternalResource) -> AccessToken:
        """Mint an access token after click-through or login succeeded."""
        pass

    @abstractmethod
    async def store_access_token(self, resource: ExternalResource,
                                 token: AccessToken) -> None:
        """Persist a freshly minted token for later reuse."""
        pass

    @abstractmethod
    async def get_stored_access_token(self, resource: ExternalResource) -> Optional[AccessToken]:
        """Return a previously stored token for the resource, if any."""
        pass

    async def handle_resource_response(self, resource: ExternalResource) -> Any:
        """Post-process the final resource. Returns the resource by default."""
        return resource

    def realm_for(self, resource: ExternalResource) -> str:
        """
        Name the login domain a resource belongs to.

        Resources sharing a realm share one interactive prompt when
        interactive remediation is serialized.
        """
        return get_host(resource.id) or resource.id


ClickThroughFn = Callable[[ExternalResource], Awaitable[None]]
LoginFn = Callable[[ExternalResource], Awaitable[None]]
GetAccessTokenFn = Callable[[ExternalResource], Awaitable[AccessToken]]
StoreAccessTokenFn = Callable[[ExternalResource, AccessToken], Awaitable[None]]
GetStoredAccessTokenFn = Callable[[ExternalResource], Awaitable[Optional[AccessToken]]]
HandleResourceResponseFn = Callable[[ExternalResource], Awaitable[Any]]


class CallbackCollaborators(AuthCollaborators):
    """Collaborators assembled from plain async callables."""

    def __init__(self,
                 click_through: ClickThroughFn,
                 login: LoginFn,
                 get_access_token: GetAccessTokenFn,
                 store_access_token: StoreAccessTokenFn,
                 get_stored_access_token: GetStoredAccessTokenFn,
                 handle_resource_response: Optional[HandleResourceResponseFn] = None):
        self._click_through = click_through
        self._login = login
        self._get_access_token = get_access_token
        self._store_access_token = store_access_token
        self._get_stored_access_token = get_stored_access_token
        self._handle_resource_response = handle_resource_response

    async def click_through(self, resource: ExternalResource) -> None:
        await self._click_through(resource)

    async def login(self, resource: ExternalResource) -> None:
        await self._login(resource)

    async def get_access_token(self, resource: ExternalResource) -> AccessToken:
        return await self._get_access_token(resource)

    async def store_access_token(self, resource: ExternalResource,
                                 token: AccessToken) -> None:
        await self._store_access_token(resource, token)

    async def get_stored_access_token(self, resource: ExternalResource) -> Optional[AccessToken]:
        return await self._get_stored_access_token(resource)

    async def handle_resource_response(self, resource: ExternalResource) -> Any:
        if self._handle_resource_response is None:
            return resource
        return await self._handle_resource_response(resource)


class StoreBackedCollaborators(AuthCollaborators):
    """
    Collaborators that keep tokens in an :class:`AccessTokenStore`.

    Subclasses supply the interactive steps and token minting.
    """

    def __init__(self, token_store: AccessTokenStore):
        self.token_store = token_store

    async def store_access_token(self, resource: ExternalResource,
                                 token: AccessToken) -> None:
        await self.token_store.put(resource.token_key, token)

    async def get_stored_access_token(self, resource: ExternalResource) -> Optional[AccessToken]:
        return await self.token_store.get(resource.token_key)
