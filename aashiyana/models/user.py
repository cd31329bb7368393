"""
User model keyed by the identity provider's subject id.
Handles phone-verified accounts, optional legacy passwords and soft deletion.
"""

from sqlalchemy import String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from aashiyana.database import Base
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
from datetime import datetime
import enum
from typing import Optional

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserRole(str, enum.Enum):
    """User role enumeration."""
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """
    User account created on first verified phone sign-in.
    The subject id and phone number are fixed once the account exists.
    """

    __tablename__ = "users"

    firebase_uid: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
        index=True,
        comment="Subject id issued by the identity provider"
    )

    phone: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
        comment="Verified phone number in E.164 form"
    )

    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Optional contact email"
    )

    aadhaar: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="Optional Aadhaar number"
    )

    hashed_password: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Bcrypt hash for the legacy password login"
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        nullable=False,
        default=UserRole.USER,
        comment="User role"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="False once the account is soft deleted"
    )

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft deletion timestamp"
    )

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, phone={self.phone}, role={self.role})>"

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Returns:
            Normalized email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email, check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    @classmethod
    def hash_password(cls, password: str) -> str:
        """Hash a password using bcrypt."""
        if not password or len(password) < 6:
            raise ValueError("Password must be at least 6 characters long")

        return pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        """
        Verify a password against the stored hash.
        Accounts without a password never match.
        """
        if not self.hashed_password:
            return False
        return pwd_context.verify(password, self.hashed_password)

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)

    def owns(self, owner_id: str) -> bool:
        """Check whether this user is the owner of a listing."""
        return self.id == owner_id

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excluding the password hash).
        """
        return {
            "id": self.id,
            "firebase_uid": self.firebase_uid,
            "phone": self.phone,
            "name": self.name,
            "email": self.email,
            "aadhaar": self.aadhaar,
            "role": self.role.value,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
