"""
PropertyImage model: the single image record attached to a listing.
"""

from sqlalchemy import String, Integer, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from aashiyana.database import Base, utcnow, generate_id
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import urlparse, unquote

if TYPE_CHECKING:
    from aashiyana.models.property import Property


class PropertyImage(Base):
    """
    Stored image belonging to a property, in gallery order.
    """

    __tablename__ = "property_images"

    property_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Public URL, or an internal reference when publishing failed"
    )

    storage_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Object path inside the storage backend"
    )

    size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Stored size in bytes"
    )

    original_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Filename supplied by the uploader"
    )

    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Position in the listing gallery"
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the image was uploaded"
    )

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="images",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        """String representation of the property image."""
        return f"<PropertyImage(id={self.id}, property_id={self.property_id}, order={self.display_order})>"

    @property
    def order(self) -> int:
        return self.display_order

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "storage_path": self.storage_path,
            "size": self.size,
            "original_name": self.original_name,
            "order": self.display_order,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


GCS_PUBLIC_HOST = "storage.googleapis.com"


def storage_path_from_url(url: str) -> Optional[str]:
    """
    Recover the object path from a public bucket URL.
    Returns None for URLs that do not point at a bucket.
    """
    parsed = urlparse(url)
    if parsed.scheme == "gs":
        return unquote(parsed.path.lstrip("/")) or None
    if parsed.netloc != GCS_PUBLIC_HOST:
        return None
    # https://storage.googleapis.com/<bucket>/<path>
    parts = parsed.path.lstrip("/").split("/", 1)
    if len(parts) < 2 or not parts[1]:
        return None
    return unquote(parts[1])


def normalize_image_record(entry: Any, order: int) -> Dict[str, Any]:
    """
    Turn any historical image shape into the fields of one PropertyImage.

    Accepted shapes:
        - a bare URL string
        - a dict with url/path/storagePath/storage_path and
          originalname/originalName/original_name keys
        - an UploadedImage-like object with matching attributes

    Raises:
        ValueError: If no URL can be found in the entry
    """
    if isinstance(entry, str):
        return {
            "id": generate_id(),
            "url": entry,
            "storage_path": storage_path_from_url(entry),
            "size": 0,
            "original_name": None,
            "display_order": order,
            "uploaded_at": utcnow(),
        }

    if isinstance(entry, dict):
        # Client-supplied ids are replaced so a repeated id cannot clash
        image_id = generate_id()
    else:
        entry = dict(vars(entry))
        image_id = entry.get("id") or generate_id()

    url = entry.get("url")
    if not url:
        raise ValueError("Image entry has no url")

    storage_path = (
        entry.get("storage_path")
        or entry.get("storagePath")
        or entry.get("path")
        or storage_path_from_url(url)
    )
    original_name = (
        entry.get("original_name")
        or entry.get("originalName")
        or entry.get("originalname")
    )

    uploaded_at = entry.get("uploaded_at") or entry.get("uploadedAt") or utcnow()
    if isinstance(uploaded_at, str):
        uploaded_at = datetime.fromisoformat(uploaded_at.replace("Z", "+00:00"))

    return {
        "id": image_id,
        "url": url,
        "storage_path": storage_path,
        "size": int(entry.get("size") or 0),
        "original_name": original_name,
        "display_order": order,
        "uploaded_at": uploaded_at,
    }
