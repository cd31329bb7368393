"""
Image pipeline: intake checks, re-encoding, storage, publishing and cleanup.
"""

import asyncio
import io
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple
from PIL import Image
from aashiyana.config import Settings
from aashiyana.database import utcnow
from aashiyana.models.image import storage_path_from_url
from aashiyana.storage import StorageBackend
from aashiyana.utils.exceptions import FileSizeExceededError, UnsupportedFileTypeError
import logging

logger = logging.getLogger(__name__)

WEBP_CONTENT_TYPE = "image/webp"


class ImageUpload:
    """One image part taken off a multipart request."""

    def __init__(self, filename: Optional[str], content_type: Optional[str], data: bytes):
        self.filename = filename or "image"
        self.content_type = (content_type or "").lower()
        self.data = data

    @property
    def size(self) -> int:
        return len(self.data)


class UploadedImage:
    """Metadata of a stored image, ready to become a PropertyImage."""

    def __init__(self, id: str, url: str, storage_path: str, size: int,
                 original_name: str, order: int, uploaded_at: datetime):
        self.id = id
        self.url = url
        self.storage_path = storage_path
        self.size = size
        self.original_name = original_name
        self.order = order
        self.uploaded_at = uploaded_at


class ImageCleanupResult:
    """Outcome of a best-effort storage cleanup."""

    def __init__(self):
        self.success = 0
        self.failed = 0
        self.errors: List[str] = []

    def to_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed, "errors": list(self.errors)}


def _extension_for(upload: ImageUpload) -> str:
    suffix = Path(upload.filename).suffix.lstrip(".").lower()
    if not suffix and "/" in upload.content_type:
        suffix = upload.content_type.split("/", 1)[1]
    suffix = re.sub(r"[^a-z0-9]", "", suffix)
    return suffix or "bin"


class ImageService:
    """
    Turns uploaded image parts into stored, publicly reachable images.
    """

    def __init__(self, storage: StorageBackend, settings: Settings):
        self.storage = storage
        self.max_file_size = settings.max_file_size
        self.compression_enabled = settings.image_compression_enabled
        self.target_size = settings.image_target_size
        self.max_width = settings.image_max_width
        self.quality = settings.image_quality

    def validate_upload(self, upload: ImageUpload) -> None:
        """
        Raises:
            UnsupportedFileTypeError: If the part is not an image
            FileSizeExceededError: If the part is over the size limit
        """
        if not upload.content_type.startswith("image/"):
            raise UnsupportedFileTypeError(upload.content_type)
        if upload.size > self.max_file_size:
            raise FileSizeExceededError(upload.size, self.max_file_size)

    def _encode_webp(self, img: Image.Image) -> bytes:
        buffer = io.BytesIO()
        img.save(buffer, format="WEBP", quality=self.quality)
        return buffer.getvalue()

    def _reencode(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            has_alpha = "A" in img.getbands() or "transparency" in img.info
            img = img.convert("RGBA" if has_alpha else "RGB")

            encoded = self._encode_webp(img)
            if len(encoded) > self.target_size and img.width > self.max_width:
                height = max(1, round(img.height * self.max_width / img.width))
                resized = img.resize((self.max_width, height), Image.Resampling.LANCZOS)
                encoded = self._encode_webp(resized)
            return encoded

    async def compress(self, upload: ImageUpload) -> Tuple[bytes, str, str]:
        """
        Re-encode to WEBP, shrinking to ``image_max_width`` when still above
        the target size. Falls back to the original bytes on any failure.

        Returns:
            (data, content_type, file extension)
        """
        if self.compression_enabled:
            try:
                data = await asyncio.to_thread(self._reencode, upload.data)
                logger.debug(f"Re-encoded {upload.filename}: {upload.size} -> {len(data)} bytes")
                return data, WEBP_CONTENT_TYPE, "webp"
            except Exception as e:
                logger.warning(f"Image re-encoding failed for {upload.filename}, storing original: {e}")

        return upload.data, upload.content_type, _extension_for(upload)

    async def process_and_upload(self, upload: ImageUpload, path: str, order: int = 0,
                                 owner_id: Optional[str] = None) -> UploadedImage:
        """
        Compress, store and publish one image.

        The object lands at ``{path}/{owner_id}/{uuid}.{ext}``. When it cannot
        be made public the stored URL is the backend's internal reference.
        """
        self.validate_upload(upload)
        data, content_type, extension = await self.compress(upload)

        image_id = str(uuid.uuid4())
        prefix = f"{path.strip('/')}/{owner_id}" if owner_id else path.strip("/")
        storage_path = f"{prefix}/{image_id}.{extension}"

        await self.storage.save(storage_path, data, content_type)

        try:
            url = await self.storage.make_public(storage_path)
        except Exception as e:
            logger.warning(f"Could not make {storage_path} public, keeping internal reference: {e}")
            url = self.storage.internal_reference(storage_path)

        logger.info(f"Stored image {storage_path} ({len(data)} bytes)")
        return UploadedImage(
            id=image_id,
            url=url,
            storage_path=storage_path,
            size=len(data),
            original_name=upload.filename,
            order=order,
            uploaded_at=utcnow(),
        )

    async def process_images(self, uploads: List[ImageUpload], path: str,
                             owner_id: Optional[str] = None, start_order: int = 0) -> List[UploadedImage]:
        """
        Upload a batch concurrently. Any failure fails the whole batch;
        objects already stored by the other uploads are left in place.
        """
        if not uploads:
            return []

        return list(await asyncio.gather(*[
            self.process_and_upload(upload, path, start_order + index, owner_id)
            for index, upload in enumerate(uploads)
        ]))

    async def _delete_one(self, path: str) -> bool:
        # A missing object is already in the desired state
        await self.storage.delete(path)
        return True

    async def delete_images(self, paths: Iterable[str]) -> ImageCleanupResult:
        """
        Best-effort deletion of stored objects. Never raises.
        """
        result = ImageCleanupResult()
        paths = [path for path in paths if path]
        outcomes = await asyncio.gather(
            *[self._delete_one(path) for path in paths],
            return_exceptions=True,
        )

        for path, outcome in zip(paths, outcomes):
            if isinstance(outcome, Exception):
                result.failed += 1
                result.errors.append(f"{path}: {outcome}")
                logger.error(f"Failed to delete image {path}: {outcome}")
            else:
                result.success += 1

        return result

    @staticmethod
    def extract_storage_paths(images: Iterable[Any]) -> List[str]:
        """Storage paths of image records, recovering them from bucket URLs when absent."""
        paths = []
        for image in images:
            if isinstance(image, str):
                path = storage_path_from_url(image)
            elif isinstance(image, dict):
                path = (
                    image.get("storage_path")
                    or image.get("storagePath")
                    or image.get("path")
                    or storage_path_from_url(image.get("url") or "")
                )
            else:
                path = getattr(image, "storage_path", None) or storage_path_from_url(
                    getattr(image, "url", "") or ""
                )
            if path:
                paths.append(path)
        return paths
