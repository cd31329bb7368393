"""
Identity token verification.

Everything that needs to know who sent a request goes through TokenVerifier,
so the managed identity provider can be swapped for self-issued JWTs in
development and tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol
from jose import ExpiredSignatureError, JWTError, jwt
from firebase_admin import auth as firebase_auth
from aashiyana.config import Settings
from aashiyana.firebase import get_firebase_app
from aashiyana.utils.exceptions import InvalidTokenError, TokenExpiredError
import logging

logger = logging.getLogger(__name__)


class VerifiedIdentity:
    """Result of a successful token verification."""

    def __init__(self, subject_id: str, phone_number: Optional[str] = None,
                 claims: Optional[Dict[str, Any]] = None):
        self.subject_id = subject_id
        self.phone_number = phone_number
        self.claims = claims or {}

    def __repr__(self) -> str:
        return f"<VerifiedIdentity(subject_id={self.subject_id})>"


class TokenVerifier(Protocol):
    """Verifies bearer tokens and issues tokens for password logins."""

    async def verify(self, token: str) -> VerifiedIdentity:
        """
        Raises:
            TokenExpiredError: If the token is past its expiry
            InvalidTokenError: For any other rejection
        """
        ...

    async def issue_token(self, subject_id: str, claims: Optional[Dict[str, Any]] = None) -> str:
        ...


class JWTTokenVerifier:
    """
    Self-issued HS256 tokens. ``sub`` carries the subject id and
    ``phone_number`` the verified phone.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    async def verify(self, token: str) -> VerifiedIdentity:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.debug(f"Rejected token: {e}")
            raise InvalidTokenError()

        subject_id = payload.get("sub")
        if not subject_id:
            raise InvalidTokenError()

        return VerifiedIdentity(
            subject_id=subject_id,
            phone_number=payload.get("phone_number"),
            claims=payload,
        )

    async def issue_token(self, subject_id: str, claims: Optional[Dict[str, Any]] = None,
                          expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode = {
            **(claims or {}),
            "sub": subject_id,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)


class FirebaseTokenVerifier:
    """
    Firebase Auth ID tokens. The SDK calls block, so they run in a worker
    thread. One attempt per request, no caching.
    """

    def __init__(self, app):
        self.app = app

    async def verify(self, token: str) -> VerifiedIdentity:
        try:
            decoded = await asyncio.to_thread(firebase_auth.verify_id_token, token, app=self.app)
        except firebase_auth.ExpiredIdTokenError:
            raise TokenExpiredError()
        except (firebase_auth.InvalidIdTokenError, ValueError) as e:
            logger.info(f"Firebase rejected ID token: {e}")
            raise InvalidTokenError()
        except Exception as e:
            logger.error(f"Firebase token verification failed: {e}")
            raise InvalidTokenError("Not authorized. Token verification failed.")

        return VerifiedIdentity(
            subject_id=decoded["uid"],
            phone_number=decoded.get("phone_number"),
            claims=decoded,
        )

    async def issue_token(self, subject_id: str, claims: Optional[Dict[str, Any]] = None) -> str:
        token = await asyncio.to_thread(
            firebase_auth.create_custom_token, subject_id, claims or None, app=self.app
        )
        return token.decode("utf-8") if isinstance(token, bytes) else token


def build_token_verifier(settings: Settings) -> TokenVerifier:
    """Pick the verifier named by ``settings.identity_provider``."""
    if settings.identity_provider == "firebase":
        return FirebaseTokenVerifier(get_firebase_app(settings))

    return JWTTokenVerifier(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )
