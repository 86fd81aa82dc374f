"""
Tests for external resource handles and HTTP collaborators.
"""

import asyncio
import copy
import json
from typing import Any, Dict, List, Optional

import aiohttp
import pytest

from iiifauth.auth.http import HttpAuthCollaborators, ServiceMissingError
from iiifauth.auth.loader import load_external_resource
from iiifauth.core.errors import NegotiationError, ResourceFetchError, ResourceStateError
from iiifauth.core.types import AccessToken, HTTPStatusCode
from iiifauth.resource.http import HttpExternalResource
from iiifauth.resource.types import (
    CLICK_THROUGH_PROFILE,
    KIOSK_PROFILE,
    LOGOUT_PROFILE,
    StaticExternalResource,
    find_service,
)

from conftest import BASE_URL, click_through_info, login_info


class FakeResponse:
    def __init__(self, status: int, body: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status = status
        self._body = body
        self.headers = headers or {}

    async def text(self) -> str:
        if self._body is None:
            return ""
        if isinstance(self._body, str):
            return self._body
        return json.dumps(self._body)

    async def json(self, content_type=None) -> Any:
        return self._body

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientResponseError(None, (), status=self.status)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Serves canned responses per URL and records requests."""

    def __init__(self, routes: Dict[str, List[FakeResponse]]):
        self.routes = routes
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, **kwargs) -> FakeResponse:
        self.requests.append({"url": url, **kwargs})
        responses = self.routes[url]
        if isinstance(responses, Exception):
            raise responses
        return responses.pop(0) if len(responses) > 1 else responses[0]

    async def close(self) -> None:
        self.closed = True


INFO_URL = f"{BASE_URL}/restricted/info.json"


class TestFindService:

    def test_finds_nested_token_service(self):
        info = click_through_info()
        token_service = find_service(info, "http://iiif.io/api/auth/0/token")
        assert token_service["@id"] == f"{BASE_URL}/auth/token"

    def test_accepts_single_service_object_and_profile_lists(self):
        info = {"service": {"@id": "kiosk", "profile": [KIOSK_PROFILE, "extra"]}}
        assert find_service(info, KIOSK_PROFILE)["@id"] == "kiosk"

    def test_ignores_non_documents(self):
        assert find_service("not json", CLICK_THROUGH_PROFILE) is None
        assert find_service(None, CLICK_THROUGH_PROFILE) is None

    def test_resource_service_accessors(self):
        resource = StaticExternalResource(INFO_URL, [(401, None)])
        resource.data = login_info()
        resource.data["service"][0]["service"].append(
            {"@id": f"{BASE_URL}/auth/logout", "profile": LOGOUT_PROFILE}
        )

        assert resource.click_through_service is None
        assert resource.login_service["@id"] == f"{BASE_URL}/auth/login"
        assert resource.token_service["@id"] == f"{BASE_URL}/auth/token"
        assert resource.logout_service["@id"] == f"{BASE_URL}/auth/logout"

    def test_lookups_leave_document_untouched(self):
        info = click_through_info()
        resource = StaticExternalResource(INFO_URL, [(401, None)])
        resource.data = copy.deepcopy(info)

        for _ in range(3):
            assert resource.click_through_service["@id"] == f"{BASE_URL}/auth/clickthrough"
            assert resource.login_service is None
            assert resource.token_service["@id"] == f"{BASE_URL}/auth/token"

        assert resource.data == info


class TestExternalResource:

    def test_access_control_unknown_before_fetch(self):
        resource = StaticExternalResource(INFO_URL, [(200, None)])
        assert not resource.has_been_fetched
        with pytest.raises(ResourceStateError):
            resource.is_access_controlled()

    @pytest.mark.asyncio
    async def test_redirect_and_unauthorized_are_access_controlled(self):
        for status in (HTTPStatusCode.MOVED_TEMPORARILY, HTTPStatusCode.UNAUTHORIZED):
            resource = StaticExternalResource(INFO_URL, [(status, None)])
            await resource.get_data()
            assert resource.is_access_controlled()

        resource = StaticExternalResource(INFO_URL, [(HTTPStatusCode.NOT_FOUND, None)])
        await resource.get_data()
        assert not resource.is_access_controlled()

    def test_static_resource_requires_responses(self):
        with pytest.raises(ValueError):
            StaticExternalResource(INFO_URL, [])


class TestHttpExternalResource:

    @pytest.mark.asyncio
    async def test_fetch_without_token(self):
        session = FakeSession({INFO_URL: [FakeResponse(200, {"width": 10})]})
        resource = HttpExternalResource(INFO_URL, session=session)

        await resource.get_data()

        assert resource.status == 200
        assert resource.data == {"width": 10}
        assert resource.fetch_count == 1
        request = session.requests[0]
        assert "Authorization" not in request["headers"]
        assert request["allow_redirects"] is False

    @pytest.mark.asyncio
    async def test_fetch_with_token_sends_bearer_header(self):
        session = FakeSession({INFO_URL: [FakeResponse(200, {"width": 10})]})
        resource = HttpExternalResource(INFO_URL, session=session)

        await resource.get_data(AccessToken(access_token="secret-token"))

        assert session.requests[0]["headers"]["Authorization"] == "Bearer secret-token"

    @pytest.mark.asyncio
    async def test_redirect_loads_degraded_document(self):
        degraded = f"{BASE_URL}/restricted-degraded/info.json"
        session = FakeSession({
            INFO_URL: [FakeResponse(302, None, {"Location": degraded})],
            degraded: [FakeResponse(200, login_info())],
        })
        resource = HttpExternalResource(INFO_URL, session=session)

        await resource.get_data(AccessToken(access_token="stale"))

        assert resource.status == HTTPStatusCode.MOVED_TEMPORARILY
        assert resource.redirect_location == degraded
        assert resource.is_access_controlled()
        assert resource.login_service["@id"] == f"{BASE_URL}/auth/login"
        assert resource.fetch_count == 1
        assert [r["url"] for r in session.requests] == [INFO_URL, degraded]
        assert "Authorization" not in session.requests[1]["headers"]

    @pytest.mark.asyncio
    async def test_relative_redirect_location(self):
        degraded = f"{BASE_URL}/restricted-degraded/info.json"
        session = FakeSession({
            INFO_URL: [FakeResponse(302, "<html>moved</html>",
                                    {"Location": "../restricted-degraded/info.json"})],
            degraded: [FakeResponse(200, click_through_info())],
        })
        resource = HttpExternalResource(INFO_URL, session=session)

        await resource.get_data()

        assert resource.redirect_location == degraded
        assert resource.click_through_service is not None

    @pytest.mark.asyncio
    async def test_handled_redirect_negotiates_with_degraded_services(self):
        degraded = f"{BASE_URL}/restricted-degraded/info.json"
        session = FakeSession({
            INFO_URL: [
                FakeResponse(302, None, {"Location": degraded}),
                FakeResponse(302, None, {"Location": degraded}),
                FakeResponse(200, {"width": 4000}),
            ],
            degraded: [FakeResponse(200, login_info())],
            f"{BASE_URL}/auth/token": [FakeResponse(200, {"accessToken": "tkn"})],
        })
        prompts = []

        async def login_prompt(resource, url):
            prompts.append(url)

        collaborators = HttpAuthCollaborators(session, login_prompt)
        resource = HttpExternalResource(INFO_URL, session=session)

        await load_external_resource(resource, collaborators)
        assert resource.status == HTTPStatusCode.MOVED_TEMPORARILY
        assert prompts == []

        resource.mark_response_handled()
        await load_external_resource(resource, collaborators)

        assert prompts == [f"{BASE_URL}/auth/login"]
        assert resource.status == 200
        assert resource.data == {"width": 4000}

    @pytest.mark.asyncio
    async def test_non_json_body_is_kept_as_text(self):
        session = FakeSession({INFO_URL: [FakeResponse(401, "<html>denied</html>")]})
        resource = HttpExternalResource(INFO_URL, session=session)

        await resource.get_data()

        assert resource.data == "<html>denied</html>"
        assert resource.click_through_service is None

    @pytest.mark.asyncio
    async def test_transport_errors_become_fetch_errors(self):
        session = FakeSession({INFO_URL: aiohttp.ClientConnectionError("refused")})
        resource = HttpExternalResource(INFO_URL, session=session)

        with pytest.raises(ResourceFetchError):
            await resource.get_data()

    @pytest.mark.asyncio
    async def test_timeouts_become_fetch_errors(self):
        session = FakeSession({INFO_URL: asyncio.TimeoutError()})
        resource = HttpExternalResource(INFO_URL, session=session)

        with pytest.raises(ResourceFetchError) as exc_info:
            await resource.get_data()
        assert exc_info.value.error_code == "RESOURCE_FETCH_ERROR"

    @pytest.mark.asyncio
    async def test_injected_session_is_not_closed(self):
        session = FakeSession({INFO_URL: [FakeResponse(200, {})]})

        async with HttpExternalResource(INFO_URL, session=session) as resource:
            await resource.get_data()

        assert not session.closed


class TestHttpAuthCollaborators:

    @pytest.mark.asyncio
    async def test_click_through_flow(self):
        info = click_through_info()
        session = FakeSession({
            INFO_URL: [
                FakeResponse(401, info),
                FakeResponse(200, {"width": 4000}),
            ],
            f"{BASE_URL}/auth/clickthrough": [FakeResponse(200, "ok")],
            f"{BASE_URL}/auth/token": [FakeResponse(200, {"accessToken": "tkn", "expiresIn": 60})],
        })
        prompts = []

        async def login_prompt(resource, url):
            prompts.append(url)

        collaborators = HttpAuthCollaborators(session, login_prompt)
        resource = HttpExternalResource(INFO_URL, session=session)

        await load_external_resource(resource, collaborators)

        assert resource.status == 200
        assert resource.data == {"width": 4000}
        assert prompts == []
        assert [r["url"] for r in session.requests] == [
            INFO_URL,
            f"{BASE_URL}/auth/clickthrough",
            f"{BASE_URL}/auth/token",
            INFO_URL,
        ]
        assert session.requests[-1]["headers"]["Authorization"] == "Bearer tkn"
        assert (await collaborators.token_store.get(INFO_URL)).access_token == "tkn"

    @pytest.mark.asyncio
    async def test_login_is_delegated_to_prompt(self):
        session = FakeSession({
            f"{BASE_URL}/auth/token": [FakeResponse(200, {"accessToken": "tkn"})],
        })
        prompts = []

        async def login_prompt(resource, url):
            prompts.append((resource.id, url))

        collaborators = HttpAuthCollaborators(session, login_prompt)
        resource = StaticExternalResource(INFO_URL, [(401, login_info())])
        await resource.get_data()

        await collaborators.login(resource)
        token = await collaborators.get_access_token(resource)

        assert prompts == [(INFO_URL, f"{BASE_URL}/auth/login")]
        assert token.access_token == "tkn"

    @pytest.mark.asyncio
    async def test_missing_services(self):
        async def login_prompt(resource, url):
            pass

        collaborators = HttpAuthCollaborators(FakeSession({}), login_prompt)
        resource = StaticExternalResource(INFO_URL, [(401, {})])
        await resource.get_data()

        with pytest.raises(ServiceMissingError):
            await collaborators.click_through(resource)
        with pytest.raises(ServiceMissingError):
            await collaborators.login(resource)
        with pytest.raises(ServiceMissingError):
            await collaborators.get_access_token(resource)

    @pytest.mark.asyncio
    async def test_token_service_error(self):
        session = FakeSession({
            f"{BASE_URL}/auth/token": [FakeResponse(200, {"error": "invalidCredentials"})],
        })

        async def login_prompt(resource, url):
            pass

        collaborators = HttpAuthCollaborators(session, login_prompt)
        resource = StaticExternalResource(INFO_URL, [(401, login_info())])
        await resource.get_data()

        with pytest.raises(NegotiationError) as exc_info:
            await collaborators.get_access_token(resource)
        assert exc_info.value.error_code == "TOKEN_SERVICE_ERROR"
