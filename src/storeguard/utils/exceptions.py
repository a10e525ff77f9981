"""Custom exceptions for Storeguard."""


class StoreguardError(Exception):
    """Base exception for all Storeguard errors."""

    pass


class ConfigurationError(StoreguardError):
    """Error in configuration or settings."""

    pass
