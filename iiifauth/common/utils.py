"""
Common utilities and helper functions for iiifauth.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier with optional prefix."""
    unique_id = str(uuid.uuid4())
    return f"{prefix}{unique_id}" if prefix else unique_id


def get_current_time() -> datetime:
    """Get the current UTC time."""
    return datetime.now(timezone.utc)


def get_host(url: Optional[str]) -> str:
    """
    Extract the lowercased network location of a URL.

    Args:
        url: URL to inspect

    Returns:
        Host (with port, if any), or an empty string for relative or empty URLs
    """
    if not url:
        return ""
    return urlparse(url).netloc.lower()


def mask_sensitive_data(data: str, mask_char: str = "*", visible_chars: int = 4) -> str:
    """
    Mask sensitive data, showing only first and last few characters.

    Args:
        data: Data to mask
        mask_char: Character to use for masking
        visible_chars: Number of characters to show at start and end

    Returns:
        Masked string
    """
    if len(data) <= visible_chars * 2:
        return mask_char * len(data)

    visible_start = visible_chars // 2
    visible_end = visible_chars - visible_start

    masked_length = len(data) - visible_chars
    return data[:visible_start] + mask_char * masked_length + data[-visible_end:]
