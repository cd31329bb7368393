"""
Property model for listings.
Handles listing data with a flattened location, pricing, counters and
soft deletion. The ORM version counter guards read-modify-write updates.
"""

from sqlalchemy import (
    String, Text, Integer, Float, Numeric, Boolean, DateTime, JSON,
    Enum as SQLEnum, Index, ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from aashiyana.database import Base
from datetime import datetime
from decimal import Decimal
import enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from aashiyana.models.image import PropertyImage


class PropertyType(str, enum.Enum):
    """Kinds of property that can be listed."""
    APARTMENT = "apartment"
    HOUSE = "house"
    LAND = "land"
    COMMERCIAL = "commercial"
    VILLA = "villa"


class PropertyStatus(str, enum.Enum):
    """Listing lifecycle. Moves from active to deleted only."""
    ACTIVE = "active"
    DELETED = "deleted"


LOCATION_FIELDS = {
    "address": "address",
    "city": "city",
    "state": "state",
    "country": "country",
    "pin_code": "pin_code",
    "latitude": "latitude",
    "longitude": "longitude",
}


class Property(Base):
    """
    Property listing owned by a single user.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Detailed listing description"
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=False,
        index=True,
        comment="Asking price"
    )

    # Location, exposed as a nested object by the API
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    pin_code: Mapped[str] = mapped_column(String(10), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        nullable=False,
        index=True,
        comment="Kind of property"
    )

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    area: Mapped[float] = mapped_column(Float, nullable=False, comment="Area in square feet")

    amenities: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered, de-duplicated amenity names"
    )

    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the user who owns this listing"
    )

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus),
        nullable=False,
        default=PropertyStatus.ACTIVE,
        index=True,
        comment="Listing lifecycle status"
    )

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft deletion timestamp"
    )

    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    slug: Mapped[str] = mapped_column(
        String(160),
        nullable=False,
        index=True,
        comment="URL-friendly title with a creation timestamp suffix"
    )

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favorites: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    images: Mapped[List["PropertyImage"]] = relationship(
        "PropertyImage",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PropertyImage.display_order"
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        """String representation of the property."""
        return f"<Property(id={self.id}, slug={self.slug}, price={self.price})>"

    @property
    def is_deleted(self) -> bool:
        return self.status == PropertyStatus.DELETED

    @property
    def location(self) -> dict:
        """Location fields as one nested object."""
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "pin_code": self.pin_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    def apply_location(self, location: dict) -> None:
        """Copy the provided location sub-fields onto the flattened columns."""
        for key, column in LOCATION_FIELDS.items():
            if key in location:
                setattr(self, column, location[key])

    def to_dict(self, include_images: bool = True) -> dict:
        """
        Field map of the listing with its id attached.

        Args:
            include_images: Whether to include the gallery records

        Returns:
            Dictionary representation of property
        """
        result = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": float(self.price),
            "location": self.location,
            "property_type": self.property_type.value,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "amenities": list(self.amenities or []),
            "owner_id": self.owner_id,
            "status": self.status.value,
            "is_featured": self.is_featured,
            "slug": self.slug,
            "views": self.views,
            "favorites": self.favorites,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }

        if include_images:
            result["images"] = [image.to_dict() for image in self.images]

        return result


# Listing queries filter by status first, then by one of these fields
status_price_index = Index(
    'idx_properties_status_price',
    Property.status,
    Property.price,
)

status_city_index = Index(
    'idx_properties_status_city',
    Property.status,
    Property.city,
    Property.price,
)

owner_status_index = Index(
    'idx_properties_owner_status',
    Property.owner_id,
    Property.status,
    Property.created_at.desc()
)
