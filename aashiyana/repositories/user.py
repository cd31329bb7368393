"""
User repository for accounts created through phone verification.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, desc
from aashiyana.repositories.base import BaseRepository
from aashiyana.models.user import User, UserRole
from aashiyana.database import utcnow
from typing import Optional, List, Dict, Any
import logging

logger = logging.getLogger(__name__)

# Identity fields are fixed at creation and never patched
IMMUTABLE_FIELDS = {"id", "firebase_uid", "phone", "role", "created_at", "updated_at", "deleted_at"}


class UserRepository(BaseRepository[User]):
    """
    Repository for user accounts keyed by identity-provider subject id.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create(self, data: Dict[str, Any]) -> User:
        """
        Create a new user.

        Args:
            data: Must include firebase_uid and phone. Optional: name, email,
                aadhaar, password (stored hashed), role (defaults to user)

        Returns:
            Created user instance

        Raises:
            ValueError: If required fields are missing or already taken
        """
        data = dict(data)
        if not data.get("firebase_uid") or not data.get("phone"):
            raise ValueError("Firebase UID and phone number are required")

        if await self.find_by_firebase_uid(data["firebase_uid"]):
            raise ValueError(f"User with UID {data['firebase_uid']} already exists")
        if await self.find_by_phone(data["phone"]):
            raise ValueError(f"User with phone {data['phone']} already exists")

        password = data.pop("password", None)
        if password:
            data["hashed_password"] = User.hash_password(password)
        if data.get("email"):
            data["email"] = User.validate_email_format(data["email"])

        now = utcnow()
        create_data = {
            **data,
            "role": data.get("role") or UserRole.USER,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }

        user = await super().create(create_data)
        logger.info(f"Created user {user.id} for phone {user.phone}")
        return user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return await self.get_by_id(user_id)

    async def find_by_firebase_uid(self, firebase_uid: str) -> Optional[User]:
        return await self.get_by_field("firebase_uid", firebase_uid)

    async def find_by_phone(self, phone: str) -> Optional[User]:
        return await self.get_by_field("phone", phone)

    async def update(self, user_id: str, patch: Dict[str, Any]) -> Optional[User]:
        """
        Merge a patch into a user. Subject id, phone and role are stripped.

        Returns:
            Updated user, or None if it does not exist
        """
        user = await self.find_by_id(user_id)
        if user is None:
            return None

        changes = {
            key: value for key, value in patch.items()
            if key not in IMMUTABLE_FIELDS and hasattr(User, key)
        }
        if "password" in patch and patch["password"]:
            changes.pop("password", None)
            changes["hashed_password"] = User.hash_password(patch["password"])
        if changes.get("email"):
            changes["email"] = User.validate_email_format(changes["email"])
        changes["updated_at"] = utcnow()

        await self.apply_changes(user, changes)
        logger.info(f"Updated user {user_id}: {sorted(changes)}")
        return await self.find_by_id(user_id)

    async def delete(self, user_id: str) -> bool:
        """
        Soft delete: deactivate the account and stamp deleted_at.
        """
        user = await self.find_by_id(user_id)
        if user is None:
            return False

        now = utcnow()
        await self.apply_changes(user, {"is_active": False, "deleted_at": now, "updated_at": now})
        logger.info(f"Deactivated user {user_id}")
        return True

    async def find_all(self, limit: int = 50, start_after: Optional[str] = None) -> List[User]:
        """
        Newest users first, continuing after the user with id ``start_after``.

        Raises:
            ValueError: If the cursor user does not exist
        """
        try:
            query = select(User).order_by(desc(User.created_at), User.id)

            if start_after:
                cursor = await self.find_by_id(start_after)
                if cursor is None:
                    raise ValueError(f"Unknown cursor '{start_after}'")
                query = query.where(or_(
                    User.created_at < cursor.created_at,
                    and_(User.created_at == cursor.created_at, User.id > cursor.id),
                ))

            result = await self.db.execute(query.limit(limit))
            return list(result.scalars().all())
        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Failed to list users: {e}")
            raise
