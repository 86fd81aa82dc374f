"""
IIIF Authentication collaborators over HTTP.

Cookies set by the click-through or login service live in the aiohttp
session's cookie jar and are presented to the token service, which
answers with an ``accessToken`` JSON body.
"""

import logging
from typing import Awaitable, Callable, Optional

import aiohttp

from ..core.errors import NegotiationError
from ..core.types import AccessToken
from ..resource.types import ExternalResource
from ..tokenstore.memory import MemoryAccessTokenStore
from ..tokenstore.store import AccessTokenStore
from .collaborators import StoreBackedCollaborators


logger = logging.getLogger(__name__)

LoginPrompt = Callable[[ExternalResource, str], Awaitable[None]]


def _service_id(service: Optional[dict]) -> Optional[str]:
    if not service:
        return None
    return service.get("@id") or service.get("id")


class ServiceMissingError(NegotiationError):
    """The resource does not advertise a service the step needs."""

    def __init__(self, resource_id: str, service: str):
        super().__init__(
            f"{resource_id} advertises no {service} service",
            "SERVICE_MISSING",
            {"resource_id": resource_id, "service": service},
        )


class HttpAuthCollaborators(StoreBackedCollaborators):
    """
    Collaborators speaking to IIIF auth services with aiohttp.

    Login needs a human, so it is delegated to ``login_prompt``, which
    receives the resource and the login service URL and returns once the
    user has finished (for example after opening a browser and waiting
    for confirmation).
    """

    def __init__(self,
                 session: aiohttp.ClientSession,
                 login_prompt: LoginPrompt,
                 token_store: Optional[AccessTokenStore] = None):
        super().__init__(token_store or MemoryAccessTokenStore())
        self.session = session
        self.login_prompt = login_prompt

    async def click_through(self, resource: ExternalResource) -> None:
        url = _service_id(resource.click_through_service)
        if not url:
            raise ServiceMissingError(resource.id, "click-through")

        logger.info(f"Acknowledging click-through for {resource.id}")
        async with self.session.get(url) as response:
            response.raise_for_status()

    async def login(self, resource: ExternalResource) -> None:
        url = _service_id(resource.login_service)
        if not url:
            raise ServiceMissingError(resource.id, "login")

        logger.info(f"Prompting for login to {url}")
        await self.login_prompt(resource, url)

    async def get_access_token(self, resource: ExternalResource) -> AccessToken:
        url = _service_id(resource.token_service)
        if not url:
            raise ServiceMissingError(resource.id, "token")

        async with self.session.get(url) as response:
            response.raise_for_status()
            payload = await response.json(content_type=None)

        try:
            return AccessToken.from_response(payload)
        except ValueError as e:
            raise NegotiationError(
                str(e), "TOKEN_SERVICE_ERROR", {"resource_id": resource.id}
            ) from e
