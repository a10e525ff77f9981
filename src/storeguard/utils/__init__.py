"""Utility functions and helpers for Storeguard."""

from .clock import as_utc, utc_now
from .exceptions import ConfigurationError, StoreguardError

__all__ = [
    "ConfigurationError",
    "StoreguardError",
    "as_utc",
    "utc_now",
]
