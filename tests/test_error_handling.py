"""
Tests for the error envelope, the exception handlers and the request
context middleware.
"""

import json

from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from aashiyana.context import AppContext
from aashiyana.main import create_app
from aashiyana.services.error_handler import ErrorHandlerService
from aashiyana.utils.exceptions import PropertyOwnershipError, ValidationError
from tests.conftest import PropertyFactory, bearer_for


def body_of(response) -> dict:
    return json.loads(response.body)


class TestErrorEnvelope:
    """Response formatting helpers."""

    def test_format_error_response(self):
        envelope = ErrorHandlerService.format_error_response("NOT_FOUND", "Property not found", request_id="abc")

        assert envelope["success"] is False
        assert envelope["error"]["code"] == "NOT_FOUND"
        assert envelope["error"]["message"] == "Property not found"
        assert envelope["error"]["request_id"] == "abc"
        assert envelope["error"]["timestamp"].endswith("Z")
        assert "details" not in envelope["error"]

    def test_field_errors_strip_location_and_prefix(self):
        errors = [
            {"loc": ("body", "location", "pinCode"), "msg": "String should have at least 4 characters"},
            {"loc": ("query", "limit"), "msg": "Input should be a valid integer"},
            {"loc": ("imageIds",), "msg": "Value error, imageIds must not contain duplicates"},
            {"loc": (), "msg": "Field required"},
        ]

        assert ErrorHandlerService.field_errors(errors) == [
            {"field": "location.pinCode", "message": "String should have at least 4 characters"},
            {"field": "limit", "message": "Input should be a valid integer"},
            {"field": "imageIds", "message": "imageIds must not contain duplicates"},
            {"field": "body", "message": "Field required"},
        ]

    def test_api_exception_carries_field_details(self):
        exc = ValidationError(field_errors=[{"field": "title", "message": "too short"}])

        response = ErrorHandlerService.handle_api_exception(exc)

        assert response.status_code == 400
        assert body_of(response)["error"]["details"] == [{"field": "title", "message": "too short"}]

    def test_ownership_error(self):
        response = ErrorHandlerService.handle_api_exception(PropertyOwnershipError("update"))

        assert response.status_code == 401
        assert body_of(response)["error"]["code"] == "NOT_OWNER"
        assert response.headers["www-authenticate"] == "Bearer"


class TestDatabaseErrors:
    """SQLAlchemy failures."""

    def test_lost_version_race_is_conflict(self):
        response = ErrorHandlerService.handle_database_error(StaleDataError("version mismatch"))

        assert response.status_code == 409
        assert body_of(response)["error"]["code"] == "CONCURRENT_MODIFICATION"

    def test_unique_violation_is_conflict(self):
        exc = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed: users.phone"))

        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 409
        assert body_of(response)["error"]["message"] == "Constraint violation: Duplicate value for unique field"

    def test_other_failures_hide_internals(self):
        exc = OperationalError("SELECT ...", {}, Exception("connection refused on 10.0.0.5"))

        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 500
        assert body_of(response)["error"]["message"] == "Database operation failed"


class TestHandlersInApp:
    """Handlers wired into the application."""

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/nowhere")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "HTTP_404"

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/properties/missing", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.json()["error"]["request_id"] == "req-42"

    async def test_request_id_is_generated(self, client: AsyncClient):
        response = await client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 8

    async def test_unexpected_error_is_generic(self, context: AppContext):
        app = create_app(context=context)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "secret" not in body["error"]["message"]


class TestRequestSizeCap:
    """Body size cap, by Content-Length and while reading listing bodies."""

    @staticmethod
    def capped_app(max_request_size, settings, database, token_verifier, storage):
        context = AppContext(
            settings=settings.model_copy(update={"max_request_size": max_request_size}),
            database=database,
            token_verifier=token_verifier,
            storage=storage,
        )
        return create_app(context=context)

    async def test_rejects_oversized_body(self, settings, database, token_verifier, storage):
        app = self.capped_app(32, settings, database, token_verifier, storage)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/auth/check-auth-method", json={"phone": "+91" + "9" * 60})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "REQUEST_TOO_LARGE"

    async def test_rejects_oversized_chunked_listing(self, settings, database, token_verifier, storage, test_user):
        app = self.capped_app(256, settings, database, token_verifier, storage)
        payload = json.dumps(PropertyFactory.api_payload(amenities=["garden"] * 50)).encode()

        async def chunks():
            # Streamed without a Content-Length header
            yield payload[:128]
            yield payload[128:]

        headers = await bearer_for(token_verifier, test_user)
        headers["Content-Type"] = "application/json"
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/properties", headers=headers, content=chunks())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "REQUEST_TOO_LARGE"
