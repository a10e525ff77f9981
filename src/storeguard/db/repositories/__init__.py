"""Database repositories for clean data access."""

from .base import BaseRepository
from .customer import CustomerRepository
from .token import DeletionTokenRepository

__all__ = [
    "BaseRepository",
    "CustomerRepository",
    "DeletionTokenRepository",
]
