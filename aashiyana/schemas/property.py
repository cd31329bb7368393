"""
Pydantic schemas for property listing requests and responses.
"""

from pydantic import Field, field_validator, model_validator
from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from decimal import Decimal
from aashiyana.models.property import PropertyType, PropertyStatus
from aashiyana.schemas.common import CamelModel


class LocationSchema(CamelModel):
    """Full location required when a listing is created."""

    address: str = Field(..., min_length=10, max_length=255, description="Street address")
    city: str = Field(..., min_length=2, max_length=100, description="City", examples=["Pune"])
    state: str = Field(..., min_length=2, max_length=100, description="State", examples=["Maharashtra"])
    country: str = Field("India", min_length=2, max_length=100, description="Country")
    pin_code: str = Field(..., min_length=4, max_length=10, description="Postal code", examples=["411001"])
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("address", "city", "state", "country", "pin_code", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            return v.strip()
        return v


def _not_null(v):
    # Omit a field to leave it unchanged; these columns cannot be cleared
    if v is None:
        raise ValueError("cannot be null")
    return v


class LocationUpdate(LocationSchema):
    """Partial location; only the supplied sub-fields change."""

    address: Optional[str] = Field(None, min_length=10, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    state: Optional[str] = Field(None, min_length=2, max_length=100)
    country: Optional[str] = Field(None, min_length=2, max_length=100)
    pin_code: Optional[str] = Field(None, min_length=4, max_length=10)

    @field_validator("address", "city", "state", "country", "pin_code", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)


def _split_amenities(v):
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


def _lower_enum(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


class PropertyCreate(CamelModel):
    """
    Listing creation body. Arrives as JSON or as multipart form fields,
    so amenities may be a comma separated string.
    """

    title: str = Field(
        ...,
        min_length=5,
        max_length=100,
        description="Listing title",
        examples=["Sunny 2BHK near the river"]
    )

    description: str = Field(
        ...,
        min_length=20,
        max_length=1000,
        description="Detailed listing description"
    )

    price: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2, description="Asking price")
    location: LocationSchema
    property_type: PropertyType = Field(..., description="Kind of property")
    bedrooms: int = Field(0, ge=0, le=100)
    bathrooms: float = Field(0, ge=0, le=100)
    area: float = Field(..., gt=0, description="Area in square feet")
    amenities: List[str] = Field(default_factory=list)
    is_featured: bool = False
    images: Optional[List[Union[str, Dict[str, Any]]]] = Field(
        None,
        description="Already hosted images as URLs or image objects"
    )

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("amenities", mode="before")
    @classmethod
    def parse_amenities(cls, v):
        if v is None:
            return []
        return _split_amenities(v)

    @field_validator("property_type", mode="before")
    @classmethod
    def normalize_property_type(cls, v):
        return _lower_enum(v)


class PropertyUpdate(CamelModel):
    """Partial listing update. Owner, status, counters and slug are not accepted."""

    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=20, max_length=1000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    location: Optional[LocationUpdate] = None
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(None, ge=0, le=100)
    bathrooms: Optional[float] = Field(None, ge=0, le=100)
    area: Optional[float] = Field(None, gt=0)
    amenities: Optional[List[str]] = None
    is_featured: Optional[bool] = None

    @field_validator(
        "title", "description", "price", "location", "property_type",
        "bedrooms", "bathrooms", "area", "is_featured",
        mode="before"
    )
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("amenities", mode="before")
    @classmethod
    def parse_amenities(cls, v):
        return _split_amenities(v)

    @field_validator("property_type", mode="before")
    @classmethod
    def normalize_property_type(cls, v):
        return _lower_enum(v)

    def to_patch(self) -> Dict[str, Any]:
        """Supplied fields only, with the nested location reduced the same way."""
        patch = self.model_dump(exclude_unset=True, exclude={"location"})
        if self.location is not None:
            patch["location"] = self.location.model_dump(exclude_unset=True)
        return patch


class PropertyImageResponse(CamelModel):
    id: str
    url: str
    storage_path: Optional[str] = None
    size: int = 0
    original_name: Optional[str] = None
    order: int
    uploaded_at: datetime


class LocationResponse(CamelModel):
    address: str
    city: str
    state: str
    country: str
    pin_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PropertyResponse(CamelModel):
    """Listing as returned by the API."""

    id: str
    title: str
    description: str
    price: float
    location: LocationResponse
    property_type: PropertyType
    bedrooms: int
    bathrooms: float
    area: float
    amenities: List[str]
    images: List[PropertyImageResponse]
    owner_id: str
    status: PropertyStatus
    is_featured: bool
    slug: str
    views: int
    favorites: int
    version: int
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class PropertyListResponse(CamelModel):
    """A page of listings. ``next_cursor`` feeds ``startAfter`` on the next call."""

    success: bool = True
    properties: List[PropertyResponse]
    count: int
    limit: int
    next_cursor: Optional[str] = None
    has_more: bool = False


class ImageCleanupResponse(CamelModel):
    success: int
    failed: int
    errors: List[str] = Field(default_factory=list)


class PropertyDeleteResponse(CamelModel):
    success: bool = True
    message: str
    image_cleanup: ImageCleanupResponse


class FavoriteResponse(CamelModel):
    success: bool = True
    property_id: str
    favorites: int


class ImageReorderRequest(CamelModel):
    image_ids: List[str] = Field(..., min_length=1, description="Every image id of the listing in the new order")

    @model_validator(mode="after")
    def check_unique(self):
        if len(set(self.image_ids)) != len(self.image_ids):
            raise ValueError("imageIds must not contain duplicates")
        return self
