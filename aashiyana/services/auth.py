"""
Authentication service.
Phone sign-in through the identity provider, the legacy password login and
resolution of bearer tokens to user accounts.
"""

from typing import Optional, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from aashiyana.identity import TokenVerifier
from aashiyana.models.user import User, UserRole
from aashiyana.repositories.user import UserRepository
from aashiyana.utils.exceptions import (
    BadRequestError,
    InactiveUserError,
    InvalidCredentialsError,
    UnknownUserError,
    UserNotFoundError,
)
import logging

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"name", "email", "aadhaar"}


class AuthService:
    """
    Authentication service over the injected token verifier.
    """

    def __init__(self, db_session: AsyncSession, token_verifier: TokenVerifier):
        self.db = db_session
        self.token_verifier = token_verifier
        self.user_repo = UserRepository(db_session)

    async def authenticate(self, token: str) -> User:
        """
        Resolve a bearer token to an active user.

        Raises:
            TokenExpiredError / InvalidTokenError: If verification fails
            UnknownUserError: If no account matches the token subject
            InactiveUserError: If the account was deactivated
        """
        identity = await self.token_verifier.verify(token)

        user = await self.user_repo.find_by_firebase_uid(identity.subject_id)
        if user is None:
            logger.info(f"Verified token for unknown subject {identity.subject_id}")
            raise UnknownUserError()
        if not user.is_active:
            raise InactiveUserError()

        return user

    async def login_with_phone(
        self,
        id_token: str,
        name: Optional[str] = None,
        aadhaar: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Tuple[User, bool]:
        """
        Sign in with an identity-provider token, registering on first use.

        Returns:
            (user, is_new_user)

        Raises:
            BadRequestError: If the token or its phone number is missing
            TokenExpiredError / InvalidTokenError: If verification fails
            InactiveUserError: If the account was deactivated
        """
        if not id_token:
            raise BadRequestError("Firebase ID token is required.")

        identity = await self.token_verifier.verify(id_token)
        if not identity.phone_number:
            raise BadRequestError("Invalid token. Phone number not found.")

        user = await self.user_repo.find_by_firebase_uid(identity.subject_id)
        if user is not None:
            if not user.is_active:
                raise InactiveUserError()
            if name and name != user.name:
                user = await self.user_repo.update(user.id, {"name": name})
            logger.info(f"User {user.id} signed in with phone")
            return user, False

        try:
            user = await self.user_repo.create({
                "firebase_uid": identity.subject_id,
                "phone": identity.phone_number,
                "name": name,
                "aadhaar": aadhaar,
                "email": email,
                "password": password,
                "role": UserRole.USER,
            })
        except ValueError as e:
            raise BadRequestError(str(e))

        logger.info(f"Registered user {user.id} for phone {user.phone}")
        return user, True

    async def login_with_password(self, phone: str, password: str) -> Tuple[User, str]:
        """
        Legacy phone + password login.

        Returns:
            (user, bearer token accepted by the configured verifier)

        Raises:
            InvalidCredentialsError: If the phone or password is wrong
        """
        user = await self.user_repo.find_by_phone(phone)
        if user is None or not user.verify_password(password):
            logger.info(f"Password login failed for {phone}")
            raise InvalidCredentialsError()
        if not user.is_active:
            raise InactiveUserError()

        token = await self.token_verifier.issue_token(
            user.firebase_uid, {"phone_number": user.phone}
        )
        logger.info(f"User {user.id} signed in with password")
        return user, token

    async def check_auth_method(self, phone: str) -> Dict[str, Any]:
        """Which sign-in methods are available for a phone number."""
        user = await self.user_repo.find_by_phone(phone)
        methods = ["otp"]
        if user is not None and user.has_password:
            methods.append("password")
        return {"phone": phone, "exists": user is not None, "methods": methods}

    async def update_profile(self, user: User, patch: Dict[str, Any]) -> User:
        """
        Update the caller's own profile. Only name, email and aadhaar change.
        """
        changes = {key: value for key, value in patch.items() if key in PROFILE_FIELDS}
        try:
            updated = await self.user_repo.update(user.id, changes)
        except ValueError as e:
            raise BadRequestError(str(e))
        if updated is None:
            raise UserNotFoundError(user.id)
        return updated
