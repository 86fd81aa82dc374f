"""
Common utilities for iiifauth.
"""

from .utils import generate_id, get_current_time, get_host, mask_sensitive_data

__all__ = [
    "generate_id",
    "get_current_time",
    "get_host",
    "mask_sensitive_data",
]
