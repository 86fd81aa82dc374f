"""
Access-control negotiation for IIIF resources.

This package provides the collaborator interface, the single-resource
negotiator and the loaders that apply it to one or many resources.
"""

from .collaborators import (
    AuthCollaborators,
    CallbackCollaborators,
    StoreBackedCollaborators,
)

from .negotiator import (
    Negotiator,
    choose_remediation,
    authorize,
)

from .loader import (
    ResourceLoader,
    classify,
    load_external_resource,
    load_external_resources,
    settle_external_resources,
)

from .http import HttpAuthCollaborators, ServiceMissingError

__all__ = [
    "AuthCollaborators",
    "CallbackCollaborators",
    "StoreBackedCollaborators",
    "Negotiator",
    "choose_remediation",
    "authorize",
    "ResourceLoader",
    "classify",
    "load_external_resource",
    "load_external_resources",
    "settle_external_resources",
    "HttpAuthCollaborators",
    "ServiceMissingError",
]
