"""
External resource abstraction for access-control negotiation.

An external resource is anything the loader can fetch with or without a
bearer token: an image service ``info.json``, a manifest, a search service.
Concrete handles implement :meth:`ExternalResource.get_data`; the
negotiation engine only reads the state that method leaves behind.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..core.errors import ResourceStateError
from ..core.types import AccessToken, HTTPStatusCode, NegotiationState


# IIIF Authentication API 0.9 service profiles
CLICK_THROUGH_PROFILE = "http://iiif.io/api/auth/0/login/clickthrough"
LOGIN_PROFILE = "http://iiif.io/api/auth/0/login"
KIOSK_PROFILE = "http://iiif.io/api/auth/0/login/kiosk"
EXTERNAL_PROFILE = "http://iiif.io/api/auth/0/login/external"
TOKEN_PROFILE = "http://iiif.io/api/auth/0/token"
LOGOUT_PROFILE = "http://iiif.io/api/auth/0/logout"

ACCESS_CONTROLLED_STATUSES = (
    HTTPStatusCode.MOVED_TEMPORARILY,
    HTTPStatusCode.UNAUTHORIZED,
)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def find_service(data: Any, profile: str) -> Optional[Dict[str, Any]]:
    """
    Find a service description with the given profile.

    Login services nest their token and logout services, so the search
    descends into each service's own ``service`` entries.

    Args:
        data: Parsed resource document
        profile: Profile URI to look for

    Returns:
        The first matching service dict, or None
    """
    if not isinstance(data, dict):
        return None

    pending: List[Any] = list(_as_list(data.get("service")))
    while pending:
        service = pending.pop(0)
        if not isinstance(service, dict):
            continue
        if profile in _as_list(service.get("profile")):
            return service
        pending.extend(_as_list(service.get("service")))
    return None


class ExternalResource(ABC):
    """
    Handle on one remotely hosted, possibly access-controlled resource.

    The caller owns the handle for its whole lifetime; every fetch mutates
    ``data`` and ``status`` in place. ``is_response_handled`` is a latch the
    caller sets once it has acted on a response (for example, decided to
    show a login prompt after a degraded redirect).
    """

    def __init__(self, id: str, data: Any = None):
        self.id = id
        self.data = data
        self.status: Optional[int] = None
        self.is_response_handled = False
        self.negotiation_state = NegotiationState.UNKNOWN
        self.fetch_count = 0

    @abstractmethod
    async def get_data(self, access_token: Optional[AccessToken] = None) -> None:
        """
        Fetch the resource, replacing ``data`` and ``status``.

        Args:
            access_token: Bearer token to present, if any
        """
        pass

    @property
    def has_been_fetched(self) -> bool:
        return self.status is not None

    @property
    def token_key(self) -> str:
        """Key under which tokens for this resource are stored."""
        return self.id

    def is_access_controlled(self) -> bool:
        """
        Check whether the last fetch showed the resource is access controlled.

        Raises:
            ResourceStateError: If the resource has not been fetched yet
        """
        if not self.has_been_fetched:
            raise ResourceStateError(
                f"Access control status of {self.id} is unknown before fetching",
                {"resource_id": self.id},
            )
        return self.status in ACCESS_CONTROLLED_STATUSES

    @property
    def click_through_service(self) -> Optional[Dict[str, Any]]:
        return find_service(self.data, CLICK_THROUGH_PROFILE)

    @property
    def login_service(self) -> Optional[Dict[str, Any]]:
        for profile in (LOGIN_PROFILE, KIOSK_PROFILE, EXTERNAL_PROFILE):
            service = find_service(self.data, profile)
            if service:
                return service
        return None

    @property
    def token_service(self) -> Optional[Dict[str, Any]]:
        return find_service(self.data, TOKEN_PROFILE)

    @property
    def logout_service(self) -> Optional[Dict[str, Any]]:
        return find_service(self.data, LOGOUT_PROFILE)

    def mark_response_handled(self) -> None:
        """Opt into interactive remediation on the next negotiation."""
        self.is_response_handled = True

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(id={self.id!r}, status={self.status}, "
            f"state={self.negotiation_state.value})"
        )


class StaticExternalResource(ExternalResource):
    """
    Resource served from pre-recorded responses.

    Each fetch pops the next ``(status, data)`` pair; the final pair repeats
    once the script runs out. Tokens listed in ``accepted_tokens`` turn an
    access-controlled response into ``authorized_data`` with status 200.
    Handy for demos and for exercising collaborators without a network.
    """

    def __init__(self, id: str,
                 responses: Iterable[tuple],
                 accepted_tokens: Iterable[str] = (),
                 authorized_data: Any = None):
        super().__init__(id)
        self._responses = list(responses)
        if not self._responses:
            raise ValueError("StaticExternalResource needs at least one response")
        self.accepted_tokens = set(accepted_tokens)
        self.authorized_data = authorized_data
        self.presented_tokens: List[Optional[str]] = []

    async def get_data(self, access_token: Optional[AccessToken] = None) -> None:
        self.fetch_count += 1
        token_value = access_token.access_token if access_token else None
        self.presented_tokens.append(token_value)

        if token_value is not None and token_value in self.accepted_tokens:
            self.status = HTTPStatusCode.OK
            self.data = self.authorized_data
            return

        if len(self._responses) > 1:
            status, data = self._responses.pop(0)
        else:
            status, data = self._responses[0]
        self.status = status
        self.data = data
