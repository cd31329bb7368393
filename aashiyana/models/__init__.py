"""
Database models for the Aashiyana API.
Includes User, Property, and PropertyImage models.
"""

from aashiyana.models.user import User, UserRole
from aashiyana.models.property import Property, PropertyType, PropertyStatus
from aashiyana.models.image import PropertyImage, normalize_image_record

__all__ = [
    "User",
    "UserRole",
    "Property",
    "PropertyType",
    "PropertyStatus",
    "PropertyImage",
    "normalize_image_record",
]
