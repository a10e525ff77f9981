"""Configuration module for Storeguard."""

from storeguard.config.settings import Settings, get_settings
from storeguard.config.validation import validate_configuration, validate_or_raise

__all__ = ["Settings", "get_settings", "validate_configuration", "validate_or_raise"]
