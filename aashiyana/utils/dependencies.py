"""
FastAPI dependency injection utilities for authentication and database sessions.
Everything is resolved from the AppContext stored on the application state.
"""

from typing import AsyncIterator, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from aashiyana.context import AppContext
from aashiyana.models.property import Property
from aashiyana.models.user import User
from aashiyana.services.auth import AuthService
from aashiyana.services.image import ImageService
from aashiyana.services.property import PropertyService
from aashiyana.utils.exceptions import MissingTokenError


# HTTP Bearer token security scheme; a missing header is reported by get_current_user
security = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    """The process-wide context created by the application factory."""
    return request.app.state.context


async def get_db(context: AppContext = Depends(get_context)) -> AsyncIterator[AsyncSession]:
    """One session per request."""
    async for session in context.database.session():
        yield session


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context)
) -> AuthService:
    return AuthService(db, context.token_verifier)


def get_image_service(context: AppContext = Depends(get_context)) -> ImageService:
    return ImageService(context.storage, context.settings)


async def get_property_service(
    db: AsyncSession = Depends(get_db),
    image_service: ImageService = Depends(get_image_service),
    context: AppContext = Depends(get_context)
) -> PropertyService:
    return PropertyService(db, image_service, context.search)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get the authenticated user from the bearer token.

    Returns:
        Current User object, also stored on ``request.state.user``

    Raises:
        MissingTokenError: If no bearer token was sent
        TokenExpiredError / InvalidTokenError: If verification fails
        UnknownUserError: If no account matches the token subject
        InactiveUserError: If the account was deactivated
    """
    if not credentials or not credentials.credentials:
        raise MissingTokenError()

    user = await auth_service.authenticate(credentials.credentials)
    request.state.user = user
    return user


def require_owned_property(action: str = "update"):
    """
    Dependency factory loading the property addressed by ``property_id``
    and checking that the caller owns it.

    It has no body parameters, so ownership is decided before the payload
    is looked at.
    """
    async def owned_property_dependency(
        property_id: str,
        current_user: User = Depends(get_current_user),
        property_service: PropertyService = Depends(get_property_service)
    ) -> Property:
        return await property_service.get_owned_property(property_id, current_user, action)

    return owned_property_dependency
