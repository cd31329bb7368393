"""
Configuration management using Pydantic settings.
Handles database URL, identity provider, object storage and upload limits.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    # Application configuration
    app_name: str = "Aashiyana Property API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/aashiyana"
    database_echo: bool = False

    # Identity provider: "jwt" for self-issued tokens, "firebase" for Firebase Auth
    identity_provider: str = "jwt"
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Firebase configuration
    firebase_project_id: Optional[str] = None
    firebase_credentials_path: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None

    # Object storage: "local" writes under upload_dir, "firebase" uses the bucket above
    storage_backend: str = "local"
    upload_dir: str = "./uploads"
    public_base_url: str = "http://localhost:8000/uploads"

    # Request and upload limits
    max_request_size: int = 10 * 1024 * 1024  # 10MB
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    max_upload_files: int = 10

    # Image re-encoding
    image_compression_enabled: bool = True
    image_target_size: int = 2 * 1024 * 1024  # 2MB
    image_max_width: int = 1024
    image_quality: int = 80

    # Pagination defaults
    default_page_size: int = 50
    max_page_size: int = 100

    # API configuration
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:5174"]

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("identity_provider")
    @classmethod
    def validate_identity_provider(cls, v):
        allowed = ["jwt", "firebase"]
        if v not in allowed:
            raise ValueError(f"Identity provider must be one of: {allowed}")
        return v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v):
        allowed = ["local", "firebase"]
        if v not in allowed:
            raise ValueError(f"Storage backend must be one of: {allowed}")
        return v

    @field_validator("image_quality")
    @classmethod
    def validate_image_quality(cls, v):
        if not 1 <= v <= 100:
            raise ValueError("Image quality must be between 1 and 100")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are read once per process; tests build their own instance.
    """
    return Settings()
