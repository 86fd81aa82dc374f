"""
Error classes for iiifauth.
"""

from typing import Any, Dict, List, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..resource.types import ExternalResource


class NegotiationError(Exception):
    """Base negotiation error."""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "NEGOTIATION_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ResourceStateError(NegotiationError):
    """Resource queried for state that only exists after a fetch."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "RESOURCE_STATE_ERROR", details)


class ResourceFetchError(NegotiationError):
    """Transport failure while fetching a resource."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "RESOURCE_FETCH_ERROR", details)


class CollaboratorError(NegotiationError):
    """A collaborator raised while negotiating access to a resource."""

    def __init__(self, resource_id: str, cause: BaseException):
        super().__init__(
            f"Negotiation for {resource_id} failed: {cause}",
            "COLLABORATOR_ERROR",
            {"resource_id": resource_id, "cause": type(cause).__name__},
        )
        self.cause = cause


class BatchLoadError(NegotiationError):
    """One or more negotiations in a batch raised."""

    def __init__(self, failures: List[Tuple["ExternalResource", BaseException]]):
        super().__init__(
            f"{len(failures)} resource(s) failed to load",
            "BATCH_LOAD_ERROR",
            {"resource_ids": [resource.id for resource, _ in failures]},
        )
        self.failures = failures


class ConfigurationError(NegotiationError):
    """Invalid loader configuration."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class TokenStoreError(NegotiationError):
    """Token store backend failure."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "TOKEN_STORE_ERROR", details)
