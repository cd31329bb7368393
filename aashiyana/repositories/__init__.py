"""
Repository layer for data access operations.
"""

from aashiyana.repositories.base import BaseRepository
from aashiyana.repositories.property import PropertyRepository, PropertyFilters
from aashiyana.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "PropertyRepository",
    "PropertyFilters",
    "UserRepository",
]
