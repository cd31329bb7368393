"""
Pydantic schemas for user profile requests and responses.
"""

from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from aashiyana.models.user import UserRole
from aashiyana.schemas.common import CamelModel


class UserResponse(CamelModel):
    """User as returned by the API. The password hash is never included."""

    id: str = Field(..., description="User unique identifier")
    firebase_uid: str = Field(..., description="Identity provider subject id")
    phone: str = Field(..., description="Verified phone number")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Contact email")
    aadhaar: Optional[str] = Field(None, description="Aadhaar number")
    role: UserRole = Field(..., description="User role")
    is_active: bool = Field(..., description="Whether the account is active")
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own profile."""

    name: Optional[str] = Field(
        None,
        min_length=2,
        max_length=100,
        description="Display name",
        examples=["Asha Verma"]
    )

    email: Optional[EmailStr] = Field(
        None,
        description="Contact email",
        examples=["asha@example.com"]
    )

    aadhaar: Optional[str] = Field(
        None,
        pattern=r"^\d{12}$",
        description="12-digit Aadhaar number",
        examples=["123412341234"]
    )

    @field_validator("name", "aadhaar", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        if v is not None:
            return v.lower().strip()
        return v
