"""
Core module initialization
"""

from .config import LoaderOptions
from .errors import *
from .types import *

__all__ = ["LoaderOptions"]
