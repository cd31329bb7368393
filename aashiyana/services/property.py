"""
Property service for managing listings.
Coordinates the repository with the image pipeline: uploads before writes,
best-effort storage cleanup after deletes.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from aashiyana.models.property import Property
from aashiyana.models.user import User
from aashiyana.repositories.property import PropertyRepository, PropertyFilters
from aashiyana.services.image import ImageService, ImageUpload
from aashiyana.services.search import PropertySearchBackend
from aashiyana.utils.exceptions import (
    BadRequestError,
    ImageNotFoundError,
    PropertyNotFoundError,
    PropertyOwnershipError,
    PropertyStatusError,
)
import logging

logger = logging.getLogger(__name__)

PROPERTY_IMAGE_PATH = "properties"


class PropertyPage:
    """One page of listings plus the continuation cursor."""

    def __init__(self, items: List[Property], limit: int, has_more: bool):
        self.items = items
        self.limit = limit
        self.has_more = has_more

    @property
    def next_cursor(self) -> Optional[str]:
        if self.has_more and self.items:
            return self.items[-1].id
        return None


class PropertyService:
    """
    Listing business logic: ownership, lifecycle and image handling.
    """

    def __init__(self, db_session: AsyncSession, image_service: ImageService,
                 search_backend: Optional[PropertySearchBackend] = None):
        self.db = db_session
        self.images = image_service
        self.property_repo = PropertyRepository(db_session, search_backend)

    @staticmethod
    def ensure_owner(property_obj: Property, user: User, action: str = "modify") -> None:
        """
        Raises:
            PropertyOwnershipError: If the user does not own the listing
        """
        if not user.owns(property_obj.owner_id):
            logger.info(f"User {user.id} tried to {action} property {property_obj.id}")
            raise PropertyOwnershipError(action)

    async def get_owned_property(self, property_id: str, user: User, action: str = "modify") -> Property:
        property_obj = await self.property_repo.find_by_id(property_id)
        if property_obj is None:
            raise PropertyNotFoundError(property_id)
        self.ensure_owner(property_obj, user, action)
        return property_obj

    async def create_property(self, data: Dict[str, Any], uploads: List[ImageUpload], owner: User) -> Property:
        """
        Upload the images, then store the listing owned by ``owner``.
        Images given in the body keep their place ahead of the uploaded files.
        """
        hosted = list(data.get("images") or [])
        uploaded = await self.images.process_images(
            uploads, PROPERTY_IMAGE_PATH, owner_id=owner.id, start_order=len(hosted)
        )

        create_data = {**data, "owner_id": owner.id, "images": hosted + uploaded}
        try:
            property_obj = await self.property_repo.create(create_data)
        except ValueError as e:
            raise BadRequestError(str(e))

        logger.info(f"Property created by user {owner.id}: {property_obj.id} with {len(uploaded)} images")
        return property_obj

    async def get_property(self, id_or_slug: str) -> Property:
        """
        Resolve by slug first, then by id.

        Raises:
            PropertyNotFoundError: If neither matches
        """
        property_obj = await self.property_repo.find_by_slug(id_or_slug)
        if property_obj is None:
            property_obj = await self.property_repo.find_by_id(id_or_slug)
        if property_obj is None:
            raise PropertyNotFoundError(id_or_slug)
        return property_obj

    async def view_property(self, id_or_slug: str) -> Property:
        """get_property for public reads; counts a view on active listings."""
        property_obj = await self.get_property(id_or_slug)
        if property_obj.is_deleted:
            return property_obj
        return await self.property_repo.increment_views(property_obj.id) or property_obj

    async def _page(self, filters: PropertyFilters, fetch) -> PropertyPage:
        # One extra row tells whether another page exists
        try:
            items = await fetch(filters.with_limit(filters.limit + 1))
        except ValueError as e:
            raise BadRequestError(str(e))
        has_more = len(items) > filters.limit
        return PropertyPage(items[:filters.limit], filters.limit, has_more)

    async def list_properties(self, filters: PropertyFilters) -> PropertyPage:
        return await self._page(filters, self.property_repo.find_all)

    async def search_properties(self, term: str, filters: PropertyFilters) -> List[Property]:
        """
        Raises:
            BadRequestError: If the search term is blank
        """
        if not term or not term.strip():
            raise BadRequestError("Search query is required")
        try:
            return await self.property_repo.search(term.strip(), filters)
        except ValueError as e:
            raise BadRequestError(str(e))

    async def list_owner_properties(self, owner: User, filters: PropertyFilters) -> PropertyPage:
        filters.owner_id = owner.id
        return await self._page(filters, self.property_repo.find_all)

    async def update_property(self, property_obj: Property, patch: Dict[str, Any],
                              uploads: List[ImageUpload]) -> Property:
        """
        Apply a partial update; new images are appended to the gallery.
        """
        if property_obj.is_deleted:
            raise PropertyStatusError("Deleted properties cannot be updated")

        if uploads:
            uploaded = await self.images.process_images(
                uploads,
                PROPERTY_IMAGE_PATH,
                owner_id=property_obj.owner_id,
                start_order=len(property_obj.images),
            )
            await self.property_repo.add_images(property_obj.id, uploaded)

        updated = await self.property_repo.update(property_obj.id, patch)
        if updated is None:
            raise PropertyNotFoundError(property_obj.id)
        return updated

    async def delete_property(self, property_obj: Property) -> Dict[str, Any]:
        """
        Soft delete the listing, then remove its images from storage.
        Cleanup failures are reported, not raised.
        """
        if property_obj.is_deleted:
            raise PropertyStatusError("Property is already deleted")

        storage_paths = self.images.extract_storage_paths(property_obj.images)
        await self.property_repo.delete(property_obj.id)

        cleanup = await self.images.delete_images(storage_paths)
        if cleanup.failed:
            logger.warning(f"Image cleanup for property {property_obj.id} left {cleanup.failed} objects")
        return cleanup.to_dict()

    async def remove_image(self, property_obj: Property, image_id: str) -> Property:
        removed = await self.property_repo.remove_image(property_obj.id, image_id)
        if removed is None:
            raise ImageNotFoundError(image_id)

        cleanup = await self.images.delete_images(self.images.extract_storage_paths([removed]))
        if cleanup.failed:
            logger.warning(f"Could not delete stored image {image_id}: {cleanup.errors}")
        return await self.property_repo.find_by_id(property_obj.id)

    async def reorder_images(self, property_obj: Property, image_ids: List[str]) -> Property:
        try:
            return await self.property_repo.reorder_images(property_obj.id, image_ids)
        except ValueError as e:
            raise BadRequestError(str(e))

    async def add_favorite(self, property_id: str) -> Property:
        property_obj = await self.property_repo.increment_favorites(property_id)
        if property_obj is None:
            raise PropertyNotFoundError(property_id)
        return property_obj

    async def remove_favorite(self, property_id: str) -> Property:
        property_obj = await self.property_repo.decrement_favorites(property_id)
        if property_obj is None:
            raise PropertyNotFoundError(property_id)
        return property_obj
