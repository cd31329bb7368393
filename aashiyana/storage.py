"""
Object storage backends for uploaded images.
Local disk for development and tests, a Firebase Storage bucket in deployment.
"""

import asyncio
from pathlib import Path
from typing import Protocol
from urllib.parse import quote
import aiofiles
import aiofiles.os
from google.api_core.exceptions import NotFound
from firebase_admin import storage as firebase_storage
from aashiyana.config import Settings
from aashiyana.firebase import get_firebase_app
import logging

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Operations the image pipeline needs from object storage."""

    async def save(self, path: str, data: bytes, content_type: str) -> None:
        ...

    async def make_public(self, path: str) -> str:
        """Make the object world-readable and return its public URL."""
        ...

    def internal_reference(self, path: str) -> str:
        """Reference usable by the backend itself when no public URL exists."""
        ...

    async def delete(self, path: str) -> bool:
        """Delete an object. Returns False if it was already gone."""
        ...


class LocalStorageBackend:
    """Files under ``upload_dir``, served from ``public_base_url``."""

    def __init__(self, upload_dir: str, public_base_url: str):
        self.base_dir = Path(upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        full_path = (self.base_dir / path).resolve()
        # Keep writes inside the upload directory
        if self.base_dir.resolve() not in full_path.parents:
            raise ValueError(f"Storage path escapes upload directory: {path}")
        return full_path

    async def save(self, path: str, data: bytes, content_type: str) -> None:
        file_path = self._resolve(path)
        await aiofiles.os.makedirs(file_path.parent, exist_ok=True)
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(data)

    async def make_public(self, path: str) -> str:
        if not await aiofiles.os.path.exists(self._resolve(path)):
            raise FileNotFoundError(path)
        return f"{self.public_base_url}/{quote(path)}"

    def internal_reference(self, path: str) -> str:
        return self._resolve(path).as_uri()

    async def delete(self, path: str) -> bool:
        file_path = self._resolve(path)
        if not await aiofiles.os.path.exists(file_path):
            return False
        await aiofiles.os.remove(file_path)
        return True


class FirebaseStorageBackend:
    """
    Blobs in a Firebase Storage (GCS) bucket. The client library is
    synchronous, so every call runs in a worker thread.
    """

    def __init__(self, bucket):
        self.bucket = bucket

    async def save(self, path: str, data: bytes, content_type: str) -> None:
        blob = self.bucket.blob(path)
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)

    async def make_public(self, path: str) -> str:
        blob = self.bucket.blob(path)
        await asyncio.to_thread(blob.make_public)
        return f"https://storage.googleapis.com/{self.bucket.name}/{quote(path)}"

    def internal_reference(self, path: str) -> str:
        return f"gs://{self.bucket.name}/{path}"

    async def delete(self, path: str) -> bool:
        blob = self.bucket.blob(path)
        try:
            await asyncio.to_thread(blob.delete)
        except NotFound:
            return False
        return True


def build_storage_backend(settings: Settings) -> StorageBackend:
    """Pick the backend named by ``settings.storage_backend``."""
    if settings.storage_backend == "firebase":
        app = get_firebase_app(settings)
        bucket = firebase_storage.bucket(settings.firebase_storage_bucket, app=app)
        logger.info(f"Using Firebase Storage bucket {bucket.name}")
        return FirebaseStorageBackend(bucket)

    return LocalStorageBackend(settings.upload_dir, settings.public_base_url)
