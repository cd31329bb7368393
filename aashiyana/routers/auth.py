"""
Authentication endpoints: phone sign-in, legacy password login and the
sign-in method probe used by the client before showing a login form.
"""

from fastapi import APIRouter, Depends, Response, status

from aashiyana.schemas.auth import (
    AuthMethodResponse,
    AuthResponse,
    CheckAuthMethodRequest,
    PasswordLoginRequest,
    PasswordLoginResponse,
    PhoneAuthRequest,
)
from aashiyana.schemas.user import UserResponse
from aashiyana.services.auth import AuthService
from aashiyana.utils.dependencies import get_auth_service


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/phone",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in with a verified phone",
    description="Exchange an identity-provider ID token for the local account; creates it on first use",
    responses={201: {"model": AuthResponse, "description": "Account registered"}}
)
async def phone_sign_in(
    body: PhoneAuthRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    """
    Sign in or register with a phone-verified ID token.

    The ID token comes from the identity provider after the OTP check on
    the client. The phone number inside the token becomes the account's
    phone; ``name``, ``aadhaar``, ``email`` and ``password`` are only used
    when the account is created (a changed name is also applied on login).

    Returns:
        200 with ``isNewUser: false`` for an existing account,
        201 with ``isNewUser: true`` for a new registration

    Raises:
        BadRequestError: If the token is missing or carries no phone number
        TokenExpiredError / InvalidTokenError: If the token is rejected
    """
    user, is_new = await auth_service.login_with_phone(
        body.id_token,
        name=body.name,
        aadhaar=body.aadhaar,
        email=body.email,
        password=body.password,
    )

    if is_new:
        response.status_code = status.HTTP_201_CREATED
    return AuthResponse(
        message="Registration successful" if is_new else "Login successful",
        user=UserResponse.model_validate(user),
        is_new_user=is_new,
    )


@router.post(
    "/login/password",
    response_model=PasswordLoginResponse,
    summary="Sign in with phone and password"
)
async def password_login(
    body: PasswordLoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> PasswordLoginResponse:
    """
    Legacy login for accounts that registered with a password.
    The returned token is accepted as a bearer token by every protected route.
    """
    user, token = await auth_service.login_with_password(body.phone, body.password)
    return PasswordLoginResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.post(
    "/check-auth-method",
    response_model=AuthMethodResponse,
    summary="Available sign-in methods for a phone"
)
async def check_auth_method(
    body: CheckAuthMethodRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthMethodResponse:
    result = await auth_service.check_auth_method(body.phone)
    return AuthMethodResponse(**result)
