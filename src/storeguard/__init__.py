"""Storeguard: data retention and subject-rights compliance for the store backend."""

__version__ = "0.1.0"
