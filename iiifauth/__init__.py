"""
iiifauth Python Package

Access-control negotiation for IIIF image services and manifests.
"""

__version__ = "0.1.0"

from .core.config import LoaderOptions
from .core.types import (
    AccessToken,
    HTTPStatusCode,
    NegotiationOutcome,
    NegotiationState,
    OutcomeKind,
    Remediation,
)
from .resource import ExternalResource, HttpExternalResource
from .auth import (
    AuthCollaborators,
    CallbackCollaborators,
    StoreBackedCollaborators,
    Negotiator,
    ResourceLoader,
    authorize,
    load_external_resource,
    load_external_resources,
    settle_external_resources,
)

__all__ = [
    "LoaderOptions",
    "AccessToken",
    "HTTPStatusCode",
    "NegotiationOutcome",
    "NegotiationState",
    "OutcomeKind",
    "Remediation",
    "ExternalResource",
    "HttpExternalResource",
    "AuthCollaborators",
    "CallbackCollaborators",
    "StoreBackedCollaborators",
    "Negotiator",
    "ResourceLoader",
    "authorize",
    "load_external_resource",
    "load_external_resources",
    "settle_external_resources",
]
