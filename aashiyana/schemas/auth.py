"""
Pydantic schemas for authentication requests and responses.
"""

from pydantic import EmailStr, Field, field_validator
from typing import List, Optional
from aashiyana.schemas.common import CamelModel
from aashiyana.schemas.user import UserResponse


class PhoneAuthRequest(CamelModel):
    """Sign-in with an identity-provider ID token obtained after OTP verification."""

    id_token: Optional[str] = Field(
        None,
        description="ID token from the identity provider"
    )
    name: Optional[str] = Field(None, max_length=100, description="Display name for new accounts")
    aadhaar: Optional[str] = Field(None, pattern=r"^\d{12}$", description="12-digit Aadhaar number")
    email: Optional[EmailStr] = Field(None, description="Contact email")
    password: Optional[str] = Field(
        None,
        min_length=6,
        max_length=72,
        description="Optional password enabling the password login"
    )

    @field_validator("name", "aadhaar", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class PasswordLoginRequest(CamelModel):
    """Legacy phone + password login."""

    phone: str = Field(..., min_length=6, max_length=32, examples=["+919876543210"])
    password: str = Field(..., min_length=1, max_length=72)


class CheckAuthMethodRequest(CamelModel):
    phone: str = Field(..., min_length=6, max_length=32, examples=["+919876543210"])


class AuthResponse(CamelModel):
    """Result of a phone sign-in."""

    success: bool = True
    message: str
    user: UserResponse
    is_new_user: bool


class PasswordLoginResponse(CamelModel):
    success: bool = True
    message: str
    user: UserResponse
    token: str


class AuthMethodResponse(CamelModel):
    success: bool = True
    phone: str
    exists: bool
    methods: List[str]
