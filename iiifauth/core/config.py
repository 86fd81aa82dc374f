"""
Configuration module for the iiifauth loader.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from ..util.config import get_bool_config, get_int_config, load_config_file


@dataclass
class LoaderOptions:
    """Options controlling how external resources are negotiated"""
    # Re-negotiate on every load instead of trusting a cached token first.
    pessimistic_access_control: bool = False
    # Hold a per-realm lock around click-through/login and token minting.
    serialize_interactive: bool = False
    max_concurrency: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LoaderOptions":
        """Create options from a mapping, ignoring unknown keys"""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        options = cls(**{k: v for k, v in data.items() if k in known})
        options.validate()
        return options

    @classmethod
    def from_env(cls, prefix: str = "IIIFAUTH_") -> "LoaderOptions":
        """Create options from environment variables"""
        options = cls(
            pessimistic_access_control=get_bool_config(
                "pessimistic_access_control", False, prefix
            ),
            serialize_interactive=get_bool_config("serialize_interactive", False, prefix),
            max_concurrency=get_int_config("max_concurrency", None, prefix),
        )
        options.validate()
        return options

    @classmethod
    def from_file(cls, file_path: str) -> "LoaderOptions":
        """Create options from a JSON or YAML file"""
        return cls.from_dict(load_config_file(file_path))

    def validate(self) -> bool:
        """Validate the options"""
        if not isinstance(self.pessimistic_access_control, bool):
            raise ConfigurationError("pessimistic_access_control must be a boolean")
        if not isinstance(self.serialize_interactive, bool):
            raise ConfigurationError("serialize_interactive must be a boolean")
        if self.max_concurrency is not None and (
            not isinstance(self.max_concurrency, int) or self.max_concurrency < 1
        ):
            raise ConfigurationError(
                "max_concurrency must be a positive integer",
                {"max_concurrency": self.max_concurrency},
            )
        return True
