"""
Loading of external resources with access-control negotiation.

Two strategies are available:

- optimistic (default): try a stored token first and only negotiate when
  it is missing or rejected, so a valid token never flashes a login window.
- pessimistic: access-control cookies may have been cleared, so always
  fetch without a token and run interactive remediation when the resource
  turns out to be access controlled.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from ..audit.logger import AuditLogger, NegotiationEvent
from ..core.config import LoaderOptions
from ..core.errors import BatchLoadError, CollaboratorError
from ..core.types import HTTPStatusCode, NegotiationOutcome, NegotiationState, OutcomeKind
from ..resource.types import ExternalResource
from .collaborators import AuthCollaborators
from .negotiator import Negotiator


logger = logging.getLogger(__name__)


def classify(resource: ExternalResource) -> OutcomeKind:
    """Map a negotiated resource to the outcome it represents."""
    if resource.negotiation_state is NegotiationState.NOT_CONTROLLED:
        if resource.status == HTTPStatusCode.OK:
            return OutcomeKind.NOT_CONTROLLED
        return OutcomeKind.UNAVAILABLE
    if resource.status == HTTPStatusCode.OK:
        return OutcomeKind.AUTHORIZED
    if resource.negotiation_state is NegotiationState.AWAITING_REMEDIATION:
        return OutcomeKind.DEFERRED
    return OutcomeKind.DENIED


class ResourceLoader:
    """
    Loads external resources, negotiating access as needed.

    A loader shares one negotiator, and therefore one set of realm locks,
    across every resource it loads.
    """

    def __init__(self,
                 collaborators: AuthCollaborators,
                 options: Optional[LoaderOptions] = None,
                 audit_logger: Optional[AuditLogger] = None):
        """
        Initialize the loader.

        Args:
            collaborators: Capabilities used to remediate access
            options: Loader options (defaults to optimistic)
            audit_logger: Optional audit trail of negotiation steps
        """
        self.collaborators = collaborators
        self.options = options or LoaderOptions()
        self.options.validate()
        self.audit_logger = audit_logger
        self.negotiator = Negotiator(
            collaborators,
            audit_logger=audit_logger,
            serialize_interactive=self.options.serialize_interactive,
        )

    async def load(self, resource: ExternalResource) -> Any:
        """
        Load one resource and post-process it.

        Returns:
            Whatever ``handle_resource_response`` returns for the resource

        Raises:
            Exception: Any exception raised by a collaborator or fetch
        """
        if self.options.pessimistic_access_control:
            await self.negotiator.renegotiate(resource)
        else:
            await self._load_optimistically(resource)

        kind = classify(resource)
        if kind in (OutcomeKind.DENIED, OutcomeKind.DEFERRED, OutcomeKind.UNAVAILABLE):
            logger.warning(f"Access to {resource.id} not obtained: {kind.value} (status {resource.status})")
        else:
            logger.debug(f"Loaded {resource.id}: {kind.value}")
        await self._audit(resource, kind)

        return await self.collaborators.handle_resource_response(resource)

    async def _load_optimistically(self, resource: ExternalResource) -> None:
        stored_token = await self.collaborators.get_stored_access_token(resource)

        if stored_token is not None:
            await self.negotiator.fetch(resource, stored_token)
            if resource.status == HTTPStatusCode.OK:
                self.negotiator.transition(resource, NegotiationState.REMEDIATED)
                return
            logger.debug(f"Stored token rejected for {resource.id} (status {resource.status})")

        await self.negotiator.authorize(resource)

    async def load_all(self, resources: Sequence[ExternalResource]) -> Sequence[ExternalResource]:
        """
        Load every resource concurrently.

        Waits for all negotiations to settle, then returns the input
        collection, each resource mutated in place.

        Raises:
            BatchLoadError: If one or more negotiations raised
        """
        results = await self._gather(resources)
        failures = [
            (resource, result)
            for resource, result in zip(resources, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            raise BatchLoadError(failures)
        return resources

    async def settle_all(self, resources: Sequence[ExternalResource]) -> List[NegotiationOutcome]:
        """
        Load every resource concurrently and report one outcome per resource.

        Collaborator failures become ``FAILED`` outcomes instead of
        exceptions, so partial failure can be reported.
        """
        results = await self._gather(resources)
        outcomes = []
        for resource, result in zip(resources, results):
            if isinstance(result, BaseException):
                outcomes.append(NegotiationOutcome(
                    resource=resource,
                    kind=OutcomeKind.FAILED,
                    error=CollaboratorError(resource.id, result),
                ))
            else:
                outcomes.append(NegotiationOutcome(
                    resource=resource, kind=classify(resource), result=result
                ))
        return outcomes

    async def _gather(self, resources: Sequence[ExternalResource]) -> List[Any]:
        semaphore = (
            asyncio.Semaphore(self.options.max_concurrency)
            if self.options.max_concurrency else None
        )

        async def run(resource: ExternalResource) -> Any:
            if semaphore is None:
                return await self.load(resource)
            async with semaphore:
                return await self.load(resource)

        results = await asyncio.gather(
            *(run(resource) for resource in resources), return_exceptions=True
        )

        for resource, result in zip(resources, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Loading {resource.id} failed: {result}")

        failed = sum(1 for result in results if isinstance(result, BaseException))
        logger.info(f"Loaded {len(resources) - failed}/{len(resources)} resources")
        return results

    async def _audit(self, resource: ExternalResource, kind: OutcomeKind) -> None:
        if self.audit_logger is not None:
            await self.audit_logger.log(NegotiationEvent(
                event_type="completed",
                resource_id=resource.id,
                details={"outcome": kind.value, "status": resource.status},
            ))


async def load_external_resource(resource: ExternalResource,
                                 collaborators: AuthCollaborators,
                                 options: Optional[LoaderOptions] = None,
                                 audit_logger: Optional[AuditLogger] = None) -> Any:
    """
    Load one resource, negotiating access with the configured strategy.

    Example:
        result = await load_external_resource(
            resource, collaborators, LoaderOptions(pessimistic_access_control=True)
        )
    """
    return await ResourceLoader(collaborators, options, audit_logger).load(resource)


async def load_external_resources(resources: Sequence[ExternalResource],
                                  collaborators: AuthCollaborators,
                                  options: Optional[LoaderOptions] = None,
                                  audit_logger: Optional[AuditLogger] = None
                                  ) -> Sequence[ExternalResource]:
    """Load many resources concurrently and return the same collection."""
    return await ResourceLoader(collaborators, options, audit_logger).load_all(resources)


async def settle_external_resources(resources: Sequence[ExternalResource],
                                    collaborators: AuthCollaborators,
                                    options: Optional[LoaderOptions] = None,
                                    audit_logger: Optional[AuditLogger] = None
                                    ) -> List[NegotiationOutcome]:
    """Load many resources concurrently and return one outcome per resource."""
    return await ResourceLoader(collaborators, options, audit_logger).settle_all(resources)
