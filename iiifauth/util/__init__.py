"""
Utility helpers for iiifauth.
"""

from .config import (
    get_config_value,
    get_bool_config,
    get_int_config,
    load_config_file,
)

__all__ = [
    'get_config_value',
    'get_bool_config',
    'get_int_config',
    'load_config_file',
]
