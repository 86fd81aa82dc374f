"""
Core types and data structures for IIIF access-control negotiation.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, TYPE_CHECKING

from ..common.utils import get_current_time

if TYPE_CHECKING:
    from ..resource.types import ExternalResource


class HTTPStatusCode(IntEnum):
    """HTTP status codes the negotiation engine reacts to."""
    OK = 200
    MOVED_TEMPORARILY = 302
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404


class NegotiationState(Enum):
    """Position of a resource in the negotiation state machine."""
    UNKNOWN = "unknown"
    NOT_CONTROLLED = "not_controlled"
    AWAITING_REMEDIATION = "awaiting_remediation"
    REMEDIATED = "remediated"


class Remediation(Enum):
    """Next step chosen for an access-controlled resource."""
    NONE = "none"
    STORED_TOKEN = "stored_token"
    DEFER = "defer"
    CLICK_THROUGH = "click_through"
    LOGIN = "login"

    @property
    def is_interactive(self) -> bool:
        return self in (Remediation.CLICK_THROUGH, Remediation.LOGIN)


class OutcomeKind(Enum):
    """Tagged result of one negotiation attempt."""
    AUTHORIZED = "authorized"
    NOT_CONTROLLED = "not_controlled"
    UNAVAILABLE = "unavailable"
    DEFERRED = "deferred"
    DENIED = "denied"
    FAILED = "failed"


@dataclass
class AccessToken:
    """
    Bearer credential handed out by an IIIF token service.

    The negotiation engine treats tokens as opaque; expiry bookkeeping is
    only used by token stores.
    """
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    issued_at: datetime = field(default_factory=get_current_time)

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.expires_in is None:
            return None
        return self.issued_at + timedelta(seconds=self.expires_in)

    def is_expired(self) -> bool:
        """Check if the token has passed its advertised lifetime."""
        expires_at = self.expires_at
        return expires_at is not None and get_current_time() >= expires_at

    def time_until_expiry(self) -> Optional[timedelta]:
        expires_at = self.expires_at
        if expires_at is None:
            return None
        return expires_at - get_current_time()

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["issued_at"] = self.issued_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessToken":
        data = dict(data)
        if isinstance(data.get("issued_at"), str):
            data["issued_at"] = datetime.fromisoformat(data["issued_at"])
        return cls(**data)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "AccessToken":
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "AccessToken":
        """
        Build a token from an IIIF token service response body.

        Args:
            payload: Parsed JSON with ``accessToken`` and optional ``expiresIn``

        Returns:
            AccessToken instance

        Raises:
            ValueError: If the payload carries an ``error`` or no token
        """
        if "error" in payload:
            raise ValueError(
                f"Token service returned error: {payload.get('error')}"
                f" ({payload.get('description', '')})"
            )
        token = payload.get("accessToken")
        if not token:
            raise ValueError("Token service response has no accessToken")
        expires_in = payload.get("expiresIn")
        return cls(
            access_token=token,
            expires_in=int(expires_in) if expires_in is not None else None,
        )


@dataclass
class NegotiationOutcome:
    """Result of loading one resource, including collaborator failures."""
    resource: "ExternalResource"
    kind: OutcomeKind
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.kind in (OutcomeKind.AUTHORIZED, OutcomeKind.NOT_CONTROLLED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource.id,
            "kind": self.kind.value,
            "status": self.resource.status,
            "error": str(self.error) if self.error else None,
        }
