"""
Pydantic schemas for request/response validation and serialization.
JSON keys are camelCase; Python attributes stay snake_case.
"""

from aashiyana.schemas.common import CamelModel
from aashiyana.schemas.user import UserResponse, ProfileUpdate
from aashiyana.schemas.auth import (
    PhoneAuthRequest,
    PasswordLoginRequest,
    CheckAuthMethodRequest,
    AuthResponse,
    PasswordLoginResponse,
    AuthMethodResponse,
)
from aashiyana.schemas.property import (
    LocationSchema,
    LocationUpdate,
    PropertyCreate,
    PropertyUpdate,
    PropertyImageResponse,
    LocationResponse,
    PropertyResponse,
    PropertyListResponse,
    ImageCleanupResponse,
    PropertyDeleteResponse,
    FavoriteResponse,
    ImageReorderRequest,
)

__all__ = [
    "CamelModel",
    "UserResponse",
    "ProfileUpdate",
    "PhoneAuthRequest",
    "PasswordLoginRequest",
    "CheckAuthMethodRequest",
    "AuthResponse",
    "PasswordLoginResponse",
    "AuthMethodResponse",
    "LocationSchema",
    "LocationUpdate",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyImageResponse",
    "LocationResponse",
    "PropertyResponse",
    "PropertyListResponse",
    "ImageCleanupResponse",
    "PropertyDeleteResponse",
    "FavoriteResponse",
    "ImageReorderRequest",
]
