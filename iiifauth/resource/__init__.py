"""
External resource handles for iiifauth.
"""

from .types import (
    ExternalResource,
    StaticExternalResource,
    find_service,
    CLICK_THROUGH_PROFILE,
    LOGIN_PROFILE,
    KIOSK_PROFILE,
    EXTERNAL_PROFILE,
    TOKEN_PROFILE,
    LOGOUT_PROFILE,
)
from .http import HttpExternalResource

__all__ = [
    "ExternalResource",
    "StaticExternalResource",
    "HttpExternalResource",
    "find_service",
    "CLICK_THROUGH_PROFILE",
    "LOGIN_PROFILE",
    "KIOSK_PROFILE",
    "EXTERNAL_PROFILE",
    "TOKEN_PROFILE",
    "LOGOUT_PROFILE",
]
