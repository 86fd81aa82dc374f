"""
HTTP-backed external resources.

Fetches IIIF documents with aiohttp, presenting access tokens as bearer
credentials and recording redirects instead of following them, so a
redirect to a degraded image service stays visible to the negotiator.
The degraded document is still loaded, since it advertises the auth services.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urljoin

import aiohttp

from ..common.utils import mask_sensitive_data
from ..core.errors import ResourceFetchError
from ..core.types import AccessToken, HTTPStatusCode
from .types import ExternalResource


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/ld+json, application/json;q=0.9, */*;q=0.1",
}


class HttpExternalResource(ExternalResource):
    """
    External resource fetched over HTTP(S).

    A session may be shared between many resources; when none is given
    the resource creates its own on first fetch and closes it in
    :meth:`close`.
    """

    def __init__(self, id: str,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = 30.0,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(id)
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.redirect_location: Optional[str] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def get_data(self, access_token: Optional[AccessToken] = None) -> None:
        headers = dict(self.headers)
        if access_token is not None:
            headers["Authorization"] = access_token.authorization_header
            logger.debug(
                f"Fetching {self.id} with token "
                f"{mask_sensitive_data(access_token.access_token)}"
            )
        else:
            logger.debug(f"Fetching {self.id} without token")

        self.fetch_count += 1
        status, body, location = await self._request(self.id, headers)
        self._apply_response(status, body, location)

        if self.redirect_location:
            await self._load_degraded_document()

    async def _load_degraded_document(self) -> None:
        # The auth services of a redirected resource are described by the
        # document it redirects to; status stays 302.
        _, body, _ = await self._request(self.redirect_location, dict(self.headers))
        degraded = self._parse_body(body)
        if isinstance(degraded, dict):
            self.data = degraded
        logger.debug(f"Loaded degraded document {self.redirect_location} for {self.id}")

    async def _request(self, url: str,
                       headers: Dict[str, str]) -> Tuple[int, str, Optional[str]]:
        session = self._get_session()
        try:
            async with session.get(url, headers=headers,
                                   allow_redirects=False) as response:
                body = await response.text()
                return response.status, body, response.headers.get("Location")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ResourceFetchError(
                f"Failed to fetch {url}: {e}", {"resource_id": self.id}
            ) from e

    def _apply_response(self, status: int, body: str,
                        location: Optional[str] = None) -> None:
        self.status = status
        self.redirect_location = (
            urljoin(self.id, location)
            if status == HTTPStatusCode.MOVED_TEMPORARILY and location else None
        )
        self.data = self._parse_body(body)
        logger.debug(f"Fetched {self.id}: status {status}")

    @staticmethod
    def _parse_body(body: str) -> Any:
        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError:
            return body

    async def close(self) -> None:
        """Close the session if this resource created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpExternalResource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
