"""
Property repository for listing storage, filtering and keyset pagination.
Counter changes are issued as single UPDATE statements; every other write
goes through the ORM so the mapper's version check guards it.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, case, asc, desc
from aashiyana.repositories.base import BaseRepository
from aashiyana.models.property import Property, PropertyType, PropertyStatus, LOCATION_FIELDS
from aashiyana.models.image import PropertyImage, normalize_image_record
from aashiyana.models.user import User
from aashiyana.database import utcnow
from aashiyana.services.search import PropertySearchBackend, SubstringPropertySearch
from aashiyana.utils.slug import generate_slug
from typing import Optional, List, Dict, Any, Iterable
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50

# Accepts both the column name and its camelCase spelling from query strings
ORDERABLE_FIELDS = {
    "created_at": "created_at",
    "createdAt": "created_at",
    "updated_at": "updated_at",
    "updatedAt": "updated_at",
    "price": "price",
    "views": "views",
    "favorites": "favorites",
    "bedrooms": "bedrooms",
    "area": "area",
    "title": "title",
}

# Never taken from a caller-supplied patch
PROTECTED_FIELDS = {
    "id", "owner_id", "status", "slug", "views", "favorites", "version",
    "created_at", "updated_at", "deleted_at", "images",
}


def dedupe_amenities(amenities: Optional[Iterable[str]]) -> List[str]:
    """Strip, drop empties and duplicates, keep first-seen order."""
    result: List[str] = []
    for amenity in amenities or []:
        name = str(amenity).strip()
        if name and name not in result:
            result.append(name)
    return result


class PropertyFilters:
    """Filters, ordering and page window for listing queries."""

    def __init__(
        self,
        status: Optional[PropertyStatus] = PropertyStatus.ACTIVE,
        city: Optional[str] = None,
        property_type: Optional[PropertyType] = None,
        owner_id: Optional[str] = None,
        bedrooms: Optional[int] = None,
        is_featured: Optional[bool] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        order_by: str = "created_at",
        order_direction: str = "desc",
        start_after: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ):
        self.status = status
        self.city = city
        self.property_type = property_type
        self.owner_id = owner_id
        self.bedrooms = bedrooms
        self.is_featured = is_featured
        self.min_price = min_price
        self.max_price = max_price
        self.order_by = order_by
        self.order_direction = order_direction
        self.start_after = start_after
        self.limit = limit

    def with_limit(self, limit: int) -> "PropertyFilters":
        filters = PropertyFilters(**vars(self))
        filters.limit = limit
        return filters


class PropertyRepository(BaseRepository[Property]):
    """
    Repository for property listings.
    Substring search is delegated to a pluggable search backend.
    """

    def __init__(self, db: AsyncSession, search_backend: Optional[PropertySearchBackend] = None):
        super().__init__(Property, db)
        self.search_backend = search_backend or SubstringPropertySearch()

    async def create(self, data: Dict[str, Any]) -> Property:
        """
        Store a new listing.

        Args:
            data: Listing fields; ``location`` may be nested, ``images`` may
                hold any image shape accepted by normalize_image_record

        Returns:
            The stored listing with its identifier and images loaded

        Raises:
            ValueError: If the owner does not exist
        """
        data = dict(data)
        owner_id = data.get("owner_id")
        if not owner_id or await self.db.get(User, owner_id) is None:
            raise ValueError(f"Owner {owner_id} does not exist")

        location = data.pop("location", None) or {}
        status = data.pop("status", None) or PropertyStatus.ACTIVE
        images = data.pop("images", None) or []
        for key in PROTECTED_FIELDS - {"owner_id"}:
            data.pop(key, None)

        now = utcnow()
        property_obj = Property(
            **data,
            slug=generate_slug(data.get("title", "")),
            status=status,
            views=0,
            favorites=0,
            created_at=now,
            updated_at=now,
        )
        property_obj.apply_location(location)
        property_obj.amenities = dedupe_amenities(data.get("amenities"))
        property_obj.images = [
            PropertyImage(**normalize_image_record(entry, order))
            for order, entry in enumerate(images)
        ]

        try:
            self.db.add(property_obj)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create property: {e}")
            raise

        logger.info(f"Created property: {property_obj.slug} (ID: {property_obj.id})")
        return await self.find_by_id(property_obj.id)

    async def find_by_id(self, property_id: str) -> Optional[Property]:
        """Point lookup by id. Soft-deleted listings are returned too."""
        return await self.get_by_id(property_id)

    async def find_by_slug(self, slug: str) -> Optional[Property]:
        """Point lookup by slug. Soft-deleted listings are returned too."""
        return await self.get_by_field("slug", slug)

    async def find_all(self, filters: Optional[PropertyFilters] = None) -> List[Property]:
        """
        List listings matching the filters.

        Ordered by price ascending, then by the requested field and direction,
        then by id. ``start_after`` continues after the listing with that id.

        Raises:
            ValueError: If the order field is unknown or the cursor listing
                does not exist
        """
        filters = filters or PropertyFilters()

        field_name = ORDERABLE_FIELDS.get(filters.order_by)
        if field_name is None:
            raise ValueError(f"Cannot order by '{filters.order_by}'")
        descending = filters.order_direction.lower() == "desc"

        # (column, descending) in sort priority
        sort_keys = [(Property.price, descending if field_name == "price" else False)]
        if field_name != "price":
            sort_keys.append((getattr(Property, field_name), descending))
        sort_keys.append((Property.id, False))

        try:
            query = select(Property)

            conditions = self._build_filter_conditions(filters)
            if filters.start_after:
                cursor = await self.get_by_id(filters.start_after, load_relationships=False)
                if cursor is None:
                    raise ValueError(f"Unknown cursor '{filters.start_after}'")
                conditions.append(self._after_cursor(sort_keys, cursor))

            if conditions:
                query = query.where(and_(*conditions))

            query = query.order_by(
                *[desc(column) if is_desc else asc(column) for column, is_desc in sort_keys]
            )
            query = query.limit(max(1, filters.limit))

            result = await self.db.execute(query)
            properties = list(result.scalars().all())

            logger.debug(f"Property query returned {len(properties)} results")
            return properties
        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Failed to list properties: {e}")
            raise

    def _build_filter_conditions(self, filters: PropertyFilters) -> List:
        conditions = []

        if filters.status is not None:
            conditions.append(Property.status == filters.status)
        if filters.city:
            conditions.append(Property.city == filters.city)
        if filters.property_type is not None:
            conditions.append(Property.property_type == filters.property_type)
        if filters.owner_id:
            conditions.append(Property.owner_id == filters.owner_id)
        if filters.bedrooms is not None:
            conditions.append(Property.bedrooms == int(filters.bedrooms))
        if filters.is_featured is not None:
            conditions.append(Property.is_featured == filters.is_featured)

        if filters.min_price is not None:
            conditions.append(Property.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Property.price <= filters.max_price)

        return conditions

    @staticmethod
    def _after_cursor(sort_keys, cursor: Property):
        """
        Row-after-cursor condition for a lexicographic sort:
        k1 > v1 OR (k1 = v1 AND k2 > v2) OR ...
        """
        values = [getattr(cursor, column.key) for column, _ in sort_keys]
        clauses = []
        for i, (column, is_desc) in enumerate(sort_keys):
            equal_prefix = [sort_keys[j][0] == values[j] for j in range(i)]
            beyond = column < values[i] if is_desc else column > values[i]
            clauses.append(and_(*equal_prefix, beyond))
        return or_(*clauses)

    async def search(self, term: str, filters: Optional[PropertyFilters] = None) -> List[Property]:
        """Text search through the configured search backend."""
        return await self.search_backend.search(self, term, filters or PropertyFilters())

    async def update(self, property_id: str, patch: Dict[str, Any]) -> Optional[Property]:
        """
        Merge a patch into a listing.

        ``location`` merges field by field. A new title always produces a new
        slug. Protected fields in the patch are ignored.

        Returns:
            The updated listing, or None if it does not exist
        """
        property_obj = await self.find_by_id(property_id)
        if property_obj is None:
            return None

        changes: Dict[str, Any] = {}
        for key, value in patch.items():
            if key in PROTECTED_FIELDS:
                continue
            if key == "location":
                for sub_key, column in LOCATION_FIELDS.items():
                    if value and sub_key in value:
                        changes[column] = value[sub_key]
            elif key == "amenities":
                changes["amenities"] = dedupe_amenities(value)
            elif hasattr(Property, key):
                changes[key] = value

        if "title" in changes:
            changes["slug"] = generate_slug(changes["title"])
        changes["updated_at"] = utcnow()

        await self.apply_changes(property_obj, changes)
        logger.info(f"Updated property {property_id}: {sorted(changes)}")
        return await self.find_by_id(property_id)

    async def delete(self, property_id: str) -> bool:
        """
        Soft delete: mark the listing deleted and stamp deleted_at.

        Returns:
            False if the listing does not exist
        """
        property_obj = await self.find_by_id(property_id)
        if property_obj is None:
            return False

        now = utcnow()
        await self.apply_changes(property_obj, {
            "status": PropertyStatus.DELETED,
            "deleted_at": now,
            "updated_at": now,
        })
        logger.info(f"Soft deleted property {property_id}")
        return True

    async def _adjust_counter(self, property_id: str, column, value) -> Optional[Property]:
        try:
            stmt = (
                update(Property)
                .where(Property.id == property_id)
                # Counters do not count as an edit of the listing
                .values({column: value, Property.updated_at: Property.updated_at})
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to adjust {column.key} on property {property_id}: {e}")
            raise

        if result.rowcount == 0:
            return None
        return await self.find_by_id(property_id)

    async def increment_favorites(self, property_id: str) -> Optional[Property]:
        return await self._adjust_counter(property_id, Property.favorites, Property.favorites + 1)

    async def decrement_favorites(self, property_id: str) -> Optional[Property]:
        # Never below zero
        return await self._adjust_counter(
            property_id,
            Property.favorites,
            case((Property.favorites > 0, Property.favorites - 1), else_=0),
        )

    async def increment_views(self, property_id: str) -> Optional[Property]:
        return await self._adjust_counter(property_id, Property.views, Property.views + 1)

    async def add_images(self, property_id: str, images: List[Any]) -> Optional[Property]:
        """Append images after the current last one."""
        property_obj = await self.find_by_id(property_id)
        if property_obj is None:
            return None

        start = max((image.display_order for image in property_obj.images), default=-1) + 1
        try:
            for offset, entry in enumerate(images):
                property_obj.images.append(
                    PropertyImage(**normalize_image_record(entry, start + offset))
                )
            property_obj.updated_at = utcnow()
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to add images to property {property_id}: {e}")
            raise

        logger.info(f"Added {len(images)} images to property {property_id}")
        return await self.find_by_id(property_id)

    async def remove_image(self, property_id: str, image_id: str) -> Optional[Dict[str, Any]]:
        """
        Detach one image and close the gap in the gallery order.

        Returns:
            The removed image's record, or None if it is not on the listing
        """
        property_obj = await self.find_by_id(property_id)
        if property_obj is None:
            return None

        target = next((image for image in property_obj.images if image.id == image_id), None)
        if target is None:
            return None

        removed = target.to_dict()
        try:
            property_obj.images.remove(target)
            for order, image in enumerate(sorted(property_obj.images, key=lambda i: i.display_order)):
                image.display_order = order
            property_obj.updated_at = utcnow()
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to remove image {image_id} from property {property_id}: {e}")
            raise

        logger.info(f"Removed image {image_id} from property {property_id}")
        return removed

    async def reorder_images(self, property_id: str, image_ids: List[str]) -> Optional[Property]:
        """
        Apply a new gallery order.

        Raises:
            ValueError: If image_ids is not a permutation of the listing's images
        """
        property_obj = await self.find_by_id(property_id)
        if property_obj is None:
            return None

        current = {image.id: image for image in property_obj.images}
        if len(image_ids) != len(current) or set(image_ids) != set(current):
            raise ValueError("imageIds must list every image of the property exactly once")

        try:
            for order, image_id in enumerate(image_ids):
                current[image_id].display_order = order
            property_obj.updated_at = utcnow()
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to reorder images of property {property_id}: {e}")
            raise

        return await self.find_by_id(property_id)
