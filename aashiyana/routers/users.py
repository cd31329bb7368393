"""
Profile endpoints for the signed-in user.
"""

from fastapi import APIRouter, Depends

from aashiyana.models.user import User
from aashiyana.schemas.user import ProfileUpdate, UserResponse
from aashiyana.services.auth import AuthService
from aashiyana.utils.dependencies import get_auth_service, get_current_user


router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/profile",
    response_model=UserResponse,
    summary="Get my profile"
)
async def get_profile(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update my profile",
    description="Only name, email and aadhaar can be changed"
)
async def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    """
    Fields left out of the body keep their value. Phone, role and the
    identity-provider id cannot be changed here.
    """
    updated = await auth_service.update_profile(current_user, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(updated)
