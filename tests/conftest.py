"""
Test configuration and fixtures for the Aashiyana API.
Every test gets a fresh in-memory database, a temporary upload directory and
an app wired through an explicit AppContext.
"""

import io
import uuid
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from aashiyana.config import Settings
from aashiyana.context import AppContext
from aashiyana.database import Database
from aashiyana.identity import JWTTokenVerifier
from aashiyana.main import create_app
from aashiyana.models.property import Property, PropertyType
from aashiyana.models.user import User
from aashiyana.repositories.property import PropertyRepository
from aashiyana.repositories.user import UserRepository
from aashiyana.services.image import ImageService, ImageUpload
from aashiyana.storage import LocalStorageBackend


TEST_SECRET = "test-secret-key"
PUBLIC_BASE_URL = "http://test/uploads"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="testing",
        database_url="sqlite+aiosqlite://",
        jwt_secret_key=TEST_SECRET,
        upload_dir=str(tmp_path / "uploads"),
        public_base_url=PUBLIC_BASE_URL,
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """In-memory sqlite shared by every session of the test."""
    db = Database(
        settings.database_url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_tables()
    yield db
    await db.drop_tables(allow=True)
    await db.dispose()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def token_verifier() -> JWTTokenVerifier:
    return JWTTokenVerifier(TEST_SECRET)


@pytest.fixture
def storage(settings: Settings) -> LocalStorageBackend:
    return LocalStorageBackend(settings.upload_dir, settings.public_base_url)


@pytest.fixture
def context(settings, database, token_verifier, storage) -> AppContext:
    return AppContext(
        settings=settings,
        database=database,
        token_verifier=token_verifier,
        storage=storage,
    )


@pytest.fixture
def app(context: AppContext):
    return create_app(context=context)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Repository and service fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def image_service(storage: LocalStorageBackend, settings: Settings) -> ImageService:
    return ImageService(storage, settings)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    def create_user_data(
        phone: Optional[str] = None,
        firebase_uid: Optional[str] = None,
        name: str = "Test User",
        password: Optional[str] = None,
        **extra
    ) -> dict:
        return {
            "firebase_uid": firebase_uid or f"uid-{uuid.uuid4().hex[:12]}",
            "phone": phone or f"+9198{uuid.uuid4().int % 10**8:08d}",
            "name": name,
            "password": password,
            **extra,
        }

    @staticmethod
    async def create_user(user_repo: UserRepository, **kwargs) -> User:
        return await user_repo.create(UserFactory.create_user_data(**kwargs))


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def location(**overrides) -> dict:
        return {
            "address": "42 MG Road, Camp Area",
            "city": "Pune",
            "state": "Maharashtra",
            "country": "India",
            "pin_code": "411001",
            **overrides,
        }

    @staticmethod
    def create_property_data(
        owner_id: str,
        title: str = "Sunny apartment near the river",
        price: Decimal = Decimal("2500000.00"),
        property_type: PropertyType = PropertyType.APARTMENT,
        city: str = "Pune",
        **extra
    ) -> dict:
        return {
            "title": title,
            "description": "Two bedroom apartment with a balcony and covered parking.",
            "price": price,
            "location": PropertyFactory.location(city=city),
            "property_type": property_type,
            "bedrooms": 2,
            "bathrooms": 2,
            "area": 950.0,
            "amenities": ["parking", "lift"],
            "owner_id": owner_id,
            **extra,
        }

    @staticmethod
    async def create_property(property_repo: PropertyRepository, owner_id: str, **kwargs) -> Property:
        return await property_repo.create(PropertyFactory.create_property_data(owner_id, **kwargs))

    @staticmethod
    def api_payload(**overrides) -> dict:
        """JSON body for POST /properties."""
        return {
            "title": "Sunny apartment near the river",
            "description": "Two bedroom apartment with a balcony and covered parking.",
            "price": 2500000,
            "location": {
                "address": "42 MG Road, Camp Area",
                "city": "Pune",
                "state": "Maharashtra",
                "country": "India",
                "pinCode": "411001",
            },
            "propertyType": "apartment",
            "bedrooms": 2,
            "bathrooms": 2,
            "area": 950,
            "amenities": ["parking", "lift"],
            **overrides,
        }


def make_image_bytes(fmt: str = "PNG", size=(64, 48), color=(200, 80, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_upload(filename: str = "photo.png", content_type: str = "image/png", data: Optional[bytes] = None) -> ImageUpload:
    return ImageUpload(filename, content_type, data if data is not None else make_image_bytes())


async def bearer_for(token_verifier: JWTTokenVerifier, user: User) -> dict:
    token = await token_verifier.issue_token(user.firebase_uid, {"phone_number": user.phone})
    return {"Authorization": f"Bearer {token}"}


# Common test fixtures
@pytest.fixture
async def test_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, name="Owner One")


@pytest.fixture
async def other_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, name="Someone Else")


@pytest.fixture
async def auth_headers(token_verifier: JWTTokenVerifier, test_user: User) -> dict:
    return await bearer_for(token_verifier, test_user)


@pytest.fixture
async def other_headers(token_verifier: JWTTokenVerifier, other_user: User) -> dict:
    return await bearer_for(token_verifier, other_user)


@pytest.fixture
async def test_property(property_repository: PropertyRepository, test_user: User) -> Property:
    return await PropertyFactory.create_property(property_repository, test_user.id)
