"""
Shared fixtures for iiifauth tests.
"""

from typing import Any, List, Optional, Tuple

import pytest

from iiifauth.auth.collaborators import AuthCollaborators
from iiifauth.core.types import AccessToken, HTTPStatusCode
from iiifauth.resource.types import (
    CLICK_THROUGH_PROFILE,
    LOGIN_PROFILE,
    TOKEN_PROFILE,
    ExternalResource,
    StaticExternalResource,
)


BASE_URL = "https://images.example.org/iiif"


def click_through_info() -> dict:
    return {
        "service": [{
            "@id": f"{BASE_URL}/auth/clickthrough",
            "profile": CLICK_THROUGH_PROFILE,
            "service": [{"@id": f"{BASE_URL}/auth/token", "profile": TOKEN_PROFILE}],
        }]
    }


def login_info() -> dict:
    return {
        "service": [{
            "@id": f"{BASE_URL}/auth/login",
            "profile": LOGIN_PROFILE,
            "service": [{"@id": f"{BASE_URL}/auth/token", "profile": TOKEN_PROFILE}],
        }]
    }


class ScriptedResource(StaticExternalResource):
    """Static resource that also records its fetches in a shared call log."""

    def __init__(self, id: str, responses, calls: List[Tuple], **kwargs):
        super().__init__(id, responses, **kwargs)
        self.calls = calls

    async def get_data(self, access_token: Optional[AccessToken] = None) -> None:
        self.calls.append(("fetch", self.id, access_token.access_token if access_token else None))
        await super().get_data(access_token)


class RecordingCollaborators(AuthCollaborators):
    """
    Collaborators that record every call and keep tokens in a dict.

    Minted tokens are accepted by every resource created through
    :meth:`resource`, so remediation always succeeds unless
    ``reject_minted`` is set.
    """

    def __init__(self):
        self.calls: List[Tuple] = []
        self.stored = {}
        self.resources: List[ScriptedResource] = []
        self.minted = 0
        self.reject_minted = False
        self.fail_on = {}

    def resource(self, name: str, responses, authorized_data: Any = None) -> ScriptedResource:
        resource = ScriptedResource(
            f"{BASE_URL}/{name}/info.json",
            responses,
            self.calls,
            authorized_data=authorized_data if authorized_data is not None else {"name": name},
        )
        self.resources.append(resource)
        return resource

    def names(self, kind: str) -> List[Tuple]:
        return [call for call in self.calls if call[0] == kind]

    def count(self, kind: str) -> int:
        return len(self.names(kind))

    async def _maybe_fail(self, step: str, resource: ExternalResource) -> None:
        error = self.fail_on.get((step, resource.id)) or self.fail_on.get(step)
        if error is not None:
            raise error

    async def click_through(self, resource: ExternalResource) -> None:
        self.calls.append(("click_through", resource.id))
        await self._maybe_fail("click_through", resource)

    async def login(self, resource: ExternalResource) -> None:
        self.calls.append(("login", resource.id))
        await self._maybe_fail("login", resource)

    async def get_access_token(self, resource: ExternalResource) -> AccessToken:
        self.calls.append(("get_access_token", resource.id))
        await self._maybe_fail("get_access_token", resource)
        self.minted += 1
        token = AccessToken(access_token=f"minted-{self.minted}")
        if not self.reject_minted:
            for candidate in self.resources:
                candidate.accepted_tokens.add(token.access_token)
        return token

    async def store_access_token(self, resource: ExternalResource, token: AccessToken) -> None:
        self.calls.append(("store_access_token", resource.id, token.access_token))
        self.stored[resource.token_key] = token

    async def get_stored_access_token(self, resource: ExternalResource) -> Optional[AccessToken]:
        self.calls.append(("get_stored_access_token", resource.id))
        return self.stored.get(resource.token_key)

    async def handle_resource_response(self, resource: ExternalResource) -> Any:
        self.calls.append(("handle_resource_response", resource.id))
        return {"id": resource.id, "status": resource.status}


@pytest.fixture
def collaborators():
    return RecordingCollaborators()


@pytest.fixture
def open_resource(collaborators):
    return collaborators.resource("open", [(HTTPStatusCode.OK, {"width": 100})])


@pytest.fixture
def click_through_resource(collaborators):
    return collaborators.resource(
        "terms", [(HTTPStatusCode.UNAUTHORIZED, click_through_info())]
    )


@pytest.fixture
def login_resource(collaborators):
    return collaborators.resource(
        "restricted", [(HTTPStatusCode.UNAUTHORIZED, login_info())]
    )


@pytest.fixture
def redirected_resource(collaborators):
    return collaborators.resource(
        "degraded", [(HTTPStatusCode.MOVED_TEMPORARILY, click_through_info())]
    )
