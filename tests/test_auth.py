"""
Tests for identity verification, the authentication service and the
auth/profile endpoints.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from aashiyana.identity import JWTTokenVerifier
from aashiyana.repositories.user import UserRepository
from aashiyana.services.auth import AuthService
from aashiyana.utils.exceptions import (
    BadRequestError,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    UnknownUserError,
)
from tests.conftest import UserFactory, bearer_for


class TestJWTTokenVerifier:
    """Self-issued token verification."""

    async def test_round_trip_carries_subject_and_phone(self, token_verifier: JWTTokenVerifier):
        token = await token_verifier.issue_token("uid-1", {"phone_number": "+919800000001"})

        identity = await token_verifier.verify(token)

        assert identity.subject_id == "uid-1"
        assert identity.phone_number == "+919800000001"

    async def test_expired_token(self, token_verifier: JWTTokenVerifier):
        token = await token_verifier.issue_token("uid-1", expires_delta=timedelta(minutes=-5))

        with pytest.raises(TokenExpiredError):
            await token_verifier.verify(token)

    async def test_wrong_secret(self, token_verifier: JWTTokenVerifier):
        token = await JWTTokenVerifier("another-secret").issue_token("uid-1")

        with pytest.raises(InvalidTokenError):
            await token_verifier.verify(token)

    async def test_garbage_token(self, token_verifier: JWTTokenVerifier):
        with pytest.raises(InvalidTokenError):
            await token_verifier.verify("not-a-jwt")


class TestAuthService:
    """Phone sign-in, password login and token resolution."""

    @pytest.fixture
    def auth_service(self, db_session, token_verifier) -> AuthService:
        return AuthService(db_session, token_verifier)

    async def test_first_sign_in_registers(self, auth_service: AuthService, token_verifier):
        token = await token_verifier.issue_token("uid-new", {"phone_number": "+919811111111"})

        user, is_new = await auth_service.login_with_phone(token, name="Asha", aadhaar="123412341234")

        assert is_new is True
        assert user.firebase_uid == "uid-new"
        assert user.phone == "+919811111111"
        assert user.aadhaar == "123412341234"

    async def test_second_sign_in_updates_changed_name(self, auth_service: AuthService, token_verifier):
        token = await token_verifier.issue_token("uid-new", {"phone_number": "+919811111111"})
        await auth_service.login_with_phone(token, name="Asha")

        user, is_new = await auth_service.login_with_phone(token, name="Asha Verma")

        assert is_new is False
        assert user.name == "Asha Verma"

    async def test_missing_token(self, auth_service: AuthService):
        with pytest.raises(BadRequestError) as exc_info:
            await auth_service.login_with_phone("")
        assert exc_info.value.detail == "Firebase ID token is required."

    async def test_token_without_phone(self, auth_service: AuthService, token_verifier):
        token = await token_verifier.issue_token("uid-no-phone")

        with pytest.raises(BadRequestError) as exc_info:
            await auth_service.login_with_phone(token)
        assert exc_info.value.detail == "Invalid token. Phone number not found."

    async def test_authenticate_unknown_subject(self, auth_service: AuthService, token_verifier):
        token = await token_verifier.issue_token("nobody", {"phone_number": "+919800000009"})

        with pytest.raises(UnknownUserError):
            await auth_service.authenticate(token)

    async def test_password_login(self, auth_service: AuthService, user_repository: UserRepository, token_verifier):
        user = await UserFactory.create_user(user_repository, password="secret123")

        logged_in, token = await auth_service.login_with_password(user.phone, "secret123")
        identity = await token_verifier.verify(token)

        assert logged_in.id == user.id
        assert identity.subject_id == user.firebase_uid

    async def test_password_login_wrong_password(self, auth_service: AuthService, user_repository):
        user = await UserFactory.create_user(user_repository, password="secret123")

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login_with_password(user.phone, "wrong-one")

    async def test_password_login_without_stored_password(self, auth_service: AuthService, test_user):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login_with_password(test_user.phone, "anything")

    async def test_check_auth_method(self, auth_service: AuthService, user_repository):
        user = await UserFactory.create_user(user_repository, password="secret123")

        known = await auth_service.check_auth_method(user.phone)
        unknown = await auth_service.check_auth_method("+910000000000")

        assert known == {"phone": user.phone, "exists": True, "methods": ["otp", "password"]}
        assert unknown["exists"] is False
        assert unknown["methods"] == ["otp"]

    async def test_update_profile_only_touches_profile_fields(self, auth_service: AuthService, test_user):
        phone = test_user.phone

        updated = await auth_service.update_profile(test_user, {
            "name": "New Name",
            "email": "new@example.com",
            "phone": "+910000000000",
            "role": "admin",
        })

        assert updated.name == "New Name"
        assert updated.email == "new@example.com"
        assert updated.phone == phone


class TestAuthEndpoints:
    """POST /auth/*."""

    async def test_phone_sign_in_registers_then_logs_in(self, client: AsyncClient, token_verifier):
        token = await token_verifier.issue_token("uid-api", {"phone_number": "+919822222222"})

        first = await client.post("/auth/phone", json={"idToken": token, "name": "Ravi"})
        second = await client.post("/auth/phone", json={"idToken": token})

        assert first.status_code == 201
        body = first.json()
        assert body["success"] is True
        assert body["isNewUser"] is True
        assert body["message"] == "Registration successful"
        assert body["user"]["firebaseUid"] == "uid-api"
        assert "hashedPassword" not in body["user"]

        assert second.status_code == 200
        assert second.json()["isNewUser"] is False

    async def test_phone_sign_in_without_token(self, client: AsyncClient):
        response = await client.post("/auth/phone", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["message"] == "Firebase ID token is required."

    async def test_phone_sign_in_with_expired_token(self, client: AsyncClient, token_verifier):
        token = await token_verifier.issue_token(
            "uid-api", {"phone_number": "+919822222222"}, expires_delta=timedelta(minutes=-1)
        )

        response = await client.post("/auth/phone", json={"idToken": token})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Your session has expired. Please sign in again."

    async def test_password_login_and_use_token(self, client: AsyncClient, user_repository):
        user = await UserFactory.create_user(user_repository, password="secret123")

        response = await client.post("/auth/login/password", json={"phone": user.phone, "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["token"]

        profile = await client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})
        assert profile.status_code == 200
        assert profile.json()["id"] == user.id

    async def test_password_login_bad_credentials(self, client: AsyncClient, user_repository):
        user = await UserFactory.create_user(user_repository, password="secret123")

        response = await client.post("/auth/login/password", json={"phone": user.phone, "password": "nope"})

        assert response.status_code == 401

    async def test_check_auth_method(self, client: AsyncClient, test_user):
        response = await client.post("/auth/check-auth-method", json={"phone": test_user.phone})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "phone": test_user.phone,
            "exists": True,
            "methods": ["otp"],
        }


class TestProfileEndpoints:
    """GET/PUT /users/profile and the bearer checks in front of them."""

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/users/profile")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Not authorized, no token provided"

    async def test_non_bearer_scheme(self, client: AsyncClient):
        response = await client.get("/users/profile", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401

    async def test_unknown_user(self, client: AsyncClient, token_verifier):
        token = await token_verifier.issue_token("ghost", {"phone_number": "+919800000000"})

        response = await client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Not authorized, user not found"

    async def test_inactive_user(self, client: AsyncClient, user_repository, test_user, auth_headers):
        await user_repository.delete(test_user.id)

        response = await client.get("/users/profile", headers=auth_headers)

        assert response.status_code == 403

    async def test_get_profile(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get("/users/profile", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["phone"] == test_user.phone
        assert body["role"] == "user"
        assert "hashedPassword" not in body

    async def test_update_profile(self, client: AsyncClient, test_user, auth_headers):
        response = await client.put("/users/profile", headers=auth_headers, json={
            "name": "Updated Owner",
            "email": "Owner@Example.com",
            "phone": "+910000000000",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Updated Owner"
        assert body["email"] == "owner@example.com"
        assert body["phone"] == test_user.phone

    async def test_update_profile_rejects_bad_aadhaar(self, client: AsyncClient, auth_headers):
        response = await client.put("/users/profile", headers=auth_headers, json={"aadhaar": "12"})

        assert response.status_code == 400
        details = response.json()["error"]["details"]
        assert details[0]["field"] == "aadhaar"

    async def test_tokens_from_another_user_resolve_to_them(self, client, other_user, token_verifier):
        headers = await bearer_for(token_verifier, other_user)

        response = await client.get("/users/profile", headers=headers)

        assert response.json()["id"] == other_user.id
