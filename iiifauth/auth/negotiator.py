"""
Access-control negotiation for a single external resource.

The negotiator fetches a resource once to learn whether it is access
controlled and then picks the least interactive remediation available:

1. not access controlled: nothing to do
2. a stored token exists: re-fetch with it
3. an unhandled temporary redirect: leave it to the caller
4. a click-through service and an unhandled response: click through
5. otherwise: full login

Interactive remediation mints a token, stores it once and re-fetches the
resource with it. Collaborator exceptions are not caught here.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..audit.logger import AuditLogger, NegotiationEvent
from ..core.types import AccessToken, HTTPStatusCode, NegotiationState, Remediation
from ..resource.types import ExternalResource
from .collaborators import AuthCollaborators


logger = logging.getLogger(__name__)


def choose_remediation(resource: ExternalResource,
                       has_stored_token: bool = False,
                       pessimistic: bool = False) -> Remediation:
    """
    Decide how to obtain access to a fetched resource.

    Deferral on an unhandled redirect beats click-through, which beats
    login. Pessimistic negotiation ignores stored tokens and never defers.

    Args:
        resource: Resource after at least one fetch
        has_stored_token: Whether the token store holds a token for it
        pessimistic: Whether to always drive to an interactive remediation

    Returns:
        The remediation to apply
    """
    if not resource.is_access_controlled():
        return Remediation.NONE

    if pessimistic:
        if resource.click_through_service:
            return Remediation.CLICK_THROUGH
        return Remediation.LOGIN

    if has_stored_token:
        return Remediation.STORED_TOKEN

    if (resource.status == HTTPStatusCode.MOVED_TEMPORARILY
            and not resource.is_response_handled):
        return Remediation.DEFER

    if resource.click_through_service and not resource.is_response_handled:
        return Remediation.CLICK_THROUGH

    return Remediation.LOGIN


class Negotiator:
    """
    Drives the negotiation state machine for resources.

    One negotiator may serve many resources concurrently, but never two
    negotiations over the same resource at once.
    """

    def __init__(self,
                 collaborators: AuthCollaborators,
                 audit_logger: Optional[AuditLogger] = None,
                 serialize_interactive: bool = False):
        """
        Initialize the negotiator.

        Args:
            collaborators: Capabilities used to remediate access
            audit_logger: Optional audit trail of negotiation steps
            serialize_interactive: Run at most one interactive remediation
                per realm at a time
        """
        self.collaborators = collaborators
        self.audit_logger = audit_logger
        self.serialize_interactive = serialize_interactive
        self._realm_locks: Dict[str, asyncio.Lock] = {}

    async def authorize(self, resource: ExternalResource) -> ExternalResource:
        """
        Fetch a resource and remediate access if it is access controlled.

        Returns:
            The same resource, mutated in place. Its ``status`` tells
            whether access was obtained.
        """
        await self.fetch(resource)

        if not resource.is_access_controlled():
            self.transition(resource, NegotiationState.NOT_CONTROLLED)
            return resource

        self.transition(resource, NegotiationState.AWAITING_REMEDIATION)

        stored_token = await self.collaborators.get_stored_access_token(resource)
        remediation = choose_remediation(resource, has_stored_token=stored_token is not None)
        logger.debug(f"Chose {remediation.value} for {resource.id}")

        if remediation is Remediation.STORED_TOKEN:
            await self.fetch(resource, stored_token)
            self.transition(resource, NegotiationState.REMEDIATED)
        elif remediation is Remediation.DEFER:
            logger.info(f"Deferring redirected response of {resource.id} to the caller")
            await self._audit("deferred", resource, status=resource.status)
        else:
            await self.remediate(resource, remediation)

        return resource

    async def renegotiate(self, resource: ExternalResource) -> ExternalResource:
        """
        Fetch a resource without a token and, if access controlled, always
        run interactive remediation regardless of stored tokens.
        """
        await self.fetch(resource)

        if not resource.is_access_controlled():
            self.transition(resource, NegotiationState.NOT_CONTROLLED)
            return resource

        self.transition(resource, NegotiationState.AWAITING_REMEDIATION)
        await self.remediate(
            resource, choose_remediation(resource, pessimistic=True), recheck_store=False
        )
        return resource

    async def remediate(self, resource: ExternalResource, remediation: Remediation,
                        recheck_store: bool = True) -> ExternalResource:
        """
        Obtain a token interactively and re-fetch the resource with it.

        When interactive remediation is serialized and ``recheck_store`` is
        set, the store is consulted again once the realm lock is held, so a
        token stored by a concurrent negotiation is reused without a prompt.
        """
        if not remediation.is_interactive:
            raise ValueError(f"{remediation.value} is not an interactive remediation")

        if self.serialize_interactive:
            async with self._lock_for(resource):
                token = None
                if recheck_store:
                    token = await self.collaborators.get_stored_access_token(resource)
                if token is None:
                    token = await self._obtain_token(resource, remediation)
                else:
                    logger.debug(f"Reusing token stored while waiting for {resource.id}")
        else:
            token = await self._obtain_token(resource, remediation)

        await self.fetch(resource, token)
        self.transition(resource, NegotiationState.REMEDIATED)
        return resource

    async def fetch(self, resource: ExternalResource,
                    access_token: Optional[AccessToken] = None) -> None:
        await resource.get_data(access_token)
        await self._audit("fetch", resource, status=resource.status,
                          with_token=access_token is not None)

    async def _obtain_token(self, resource: ExternalResource,
                            remediation: Remediation) -> AccessToken:
        logger.info(f"Running {remediation.value} for {resource.id}")
        await self._audit("remediation", resource, remediation=remediation.value)

        if remediation is Remediation.CLICK_THROUGH:
            await self.collaborators.click_through(resource)
        else:
            await self.collaborators.login(resource)

        token = await self.collaborators.get_access_token(resource)
        await self.collaborators.store_access_token(resource, token)
        await self._audit("token_stored", resource)
        return token

    def _lock_for(self, resource: ExternalResource) -> asyncio.Lock:
        realm = self.collaborators.realm_for(resource)
        return self._realm_locks.setdefault(realm, asyncio.Lock())

    @staticmethod
    def transition(resource: ExternalResource, state: NegotiationState) -> None:
        logger.debug(f"{resource.id}: {resource.negotiation_state.value} -> {state.value}")
        resource.negotiation_state = state

    async def _audit(self, event_type: str, resource: ExternalResource, **details) -> None:
        if self.audit_logger is not None:
            await self.audit_logger.log(
                NegotiationEvent(event_type=event_type, resource_id=resource.id, details=details)
            )


async def authorize(resource: ExternalResource,
                    collaborators: AuthCollaborators,
                    audit_logger: Optional[AuditLogger] = None) -> ExternalResource:
    """
    Negotiate access to one resource.

    Example:
        resource = await authorize(resource, collaborators)
        if resource.status != HTTPStatusCode.OK:
            ...
    """
    return await Negotiator(collaborators, audit_logger).authorize(resource)
