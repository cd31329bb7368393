"""
Property listing endpoints: CRUD, filtering, search, favorites and gallery
maintenance.

Static and sub-resource paths are registered before ``/{id_or_slug}`` so
that they are never captured as a slug.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from decimal import Decimal
from typing import Optional

from aashiyana.context import AppContext
from aashiyana.middleware.uploads import parse_property_form, validate_fields
from aashiyana.models.property import Property, PropertyType
from aashiyana.models.user import User
from aashiyana.repositories.property import PropertyFilters
from aashiyana.schemas.property import (
    FavoriteResponse,
    ImageReorderRequest,
    PropertyCreate,
    PropertyDeleteResponse,
    PropertyListResponse,
    PropertyResponse,
    PropertyUpdate,
)
from aashiyana.services.property import PropertyPage, PropertyService
from aashiyana.utils.dependencies import (
    get_context,
    get_current_user,
    get_property_service,
    require_owned_property,
)
from aashiyana.utils.exceptions import BadRequestError


router = APIRouter(prefix="/properties", tags=["Properties"])


def listing_filters(
    context: AppContext = Depends(get_context),
    property_type: Optional[PropertyType] = Query(None, alias="propertyType", description="Kind of property"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0, description="Minimum price"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0, description="Maximum price"),
    bedrooms: Optional[int] = Query(None, ge=0, description="Exact number of bedrooms"),
    city: Optional[str] = Query(None, description="City, exact match"),
    featured: Optional[bool] = Query(None, description="Featured listings only"),
    owner_id: Optional[str] = Query(None, alias="ownerId", description="Listings of one owner"),
    order_by: str = Query("createdAt", alias="orderBy", description="Secondary sort field after price"),
    order_direction: str = Query("desc", alias="orderDirection", description="asc or desc"),
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped by the server"),
    start_after: Optional[str] = Query(None, alias="startAfter", description="Id of the last listing of the previous page"),
) -> PropertyFilters:
    """Query string to PropertyFilters. Limits above the server cap are clamped."""
    direction = order_direction.lower()
    if direction not in ("asc", "desc"):
        raise BadRequestError("orderDirection must be 'asc' or 'desc'")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise BadRequestError("minPrice cannot be greater than maxPrice")

    settings = context.settings
    return PropertyFilters(
        city=city,
        property_type=property_type,
        owner_id=owner_id,
        bedrooms=bedrooms,
        is_featured=featured,
        min_price=min_price,
        max_price=max_price,
        order_by=order_by,
        order_direction=direction,
        start_after=start_after,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
    )


def _page_response(page: PropertyPage) -> PropertyListResponse:
    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(item) for item in page.items],
        count=len(page.items),
        limit=page.limit,
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get(
    "",
    response_model=PropertyListResponse,
    summary="List properties",
    description="Active listings ordered by price, then by orderBy, with keyset pagination"
)
async def list_properties(
    filters: PropertyFilters = Depends(listing_filters),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    """
    Filters are equality matches except the price range. Pass ``nextCursor``
    of a page as ``startAfter`` to fetch the following page.
    """
    page = await property_service.list_properties(filters)
    return _page_response(page)


@router.get(
    "/search",
    response_model=PropertyListResponse,
    summary="Search properties",
    description="Case-insensitive text search over title and description"
)
async def search_properties(
    q: Optional[str] = Query(None, description="Search text"),
    filters: PropertyFilters = Depends(listing_filters),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    results = await property_service.search_properties(q or "", filters)
    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(item) for item in results],
        count=len(results),
        limit=filters.limit,
    )


@router.get(
    "/user/my-properties",
    response_model=PropertyListResponse,
    summary="List my properties",
    description="Active listings owned by the caller"
)
async def list_my_properties(
    filters: PropertyFilters = Depends(listing_filters),
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    page = await property_service.list_owner_properties(current_user, filters)
    return _page_response(page)


@router.post(
    "/{property_id}/favorite",
    response_model=FavoriteResponse,
    summary="Favorite a property"
)
async def add_favorite(
    property_id: str,
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> FavoriteResponse:
    property_obj = await property_service.add_favorite(property_id)
    return FavoriteResponse(property_id=property_obj.id, favorites=property_obj.favorites)


@router.delete(
    "/{property_id}/favorite",
    response_model=FavoriteResponse,
    summary="Remove a favorite"
)
async def remove_favorite(
    property_id: str,
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> FavoriteResponse:
    property_obj = await property_service.remove_favorite(property_id)
    return FavoriteResponse(property_id=property_obj.id, favorites=property_obj.favorites)


@router.delete(
    "/{property_id}/images/{image_id}",
    response_model=PropertyResponse,
    summary="Remove one image",
    description="Detach an image from the gallery and delete the stored object. Owner only."
)
async def remove_image(
    image_id: str,
    property_obj: Property = Depends(require_owned_property("update")),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    updated = await property_service.remove_image(property_obj, image_id)
    return PropertyResponse.model_validate(updated)


@router.put(
    "/{property_id}/images/reorder",
    response_model=PropertyResponse,
    summary="Reorder images",
    description="Body lists every image id of the listing in the new order. Owner only."
)
async def reorder_images(
    body: ImageReorderRequest,
    property_obj: Property = Depends(require_owned_property("update")),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    updated = await property_service.reorder_images(property_obj, body.image_ids)
    return PropertyResponse.model_validate(updated)


@router.get(
    "/{id_or_slug}",
    response_model=PropertyResponse,
    summary="Get a property",
    description="Look up a listing by slug, falling back to its id"
)
async def get_property(
    id_or_slug: str,
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.view_property(id_or_slug)
    return PropertyResponse.model_validate(property_obj)


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a property",
    description="multipart/form-data with up to ten image files under 'images', or JSON"
)
async def create_property(
    request: Request,
    current_user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Create a listing owned by the caller.

    ``location`` is a JSON object (a JSON string in multipart forms) and
    ``amenities`` may be a comma separated string. Uploaded images are
    re-encoded, stored and attached in upload order.

    Raises:
        ValidationError: If any field breaks the listing rules
        FileUploadError: If a part is not an image or there are too many
    """
    form = await parse_property_form(
        request, context.settings.max_upload_files, context.settings.max_request_size
    )
    payload = validate_fields(PropertyCreate, form.fields)

    property_obj = await property_service.create_property(
        payload.model_dump(exclude_none=True), form.files, current_user
    )
    return PropertyResponse.model_validate(property_obj)


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update a property",
    description="Partial update; new image files are appended to the gallery. Owner only."
)
async def update_property(
    request: Request,
    property_obj: Property = Depends(require_owned_property("update")),
    context: AppContext = Depends(get_context),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    form = await parse_property_form(
        request, context.settings.max_upload_files, context.settings.max_request_size
    )
    payload = validate_fields(PropertyUpdate, form.fields)

    updated = await property_service.update_property(property_obj, payload.to_patch(), form.files)
    return PropertyResponse.model_validate(updated)


@router.delete(
    "/{property_id}",
    response_model=PropertyDeleteResponse,
    summary="Delete a property",
    description="Soft delete; stored images are removed on a best-effort basis. Owner only."
)
async def delete_property(
    property_obj: Property = Depends(require_owned_property("delete")),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyDeleteResponse:
    cleanup = await property_service.delete_property(property_obj)
    return PropertyDeleteResponse(message="Property removed", image_cleanup=cleanup)
