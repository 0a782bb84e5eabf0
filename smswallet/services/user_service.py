"""
smswallet/services/user_service.py

Purpose: User record storage

- Find-or-create by phone number (race-safe upsert)
- Atomic session updates guarded by a version number
- Last interaction tracking
"""

from typing import Optional, Protocol, Tuple

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from smswallet.core.logging import get_logger, LogContext
from smswallet.db.mongo import get_users_collection
from smswallet.models.user import SessionState, User
from utils.time_utils import utcnow

logger = get_logger(__name__)


class UserStore(Protocol):
    """
    Keyed user record store with atomic per-document session updates.
    """

    async def find_or_create_user(self, phone: str) -> Tuple[User, bool]:
        ...

    async def get_user(self, phone: str) -> Optional[User]:
        ...

    async def save_session(
        self,
        phone: str,
        expected_version: int,
        new_state: SessionState,
        pin_hash: Optional[str] = None,
    ) -> bool:
        ...


class MongoUserStore:
    """
    UserStore backed by the `users` collection.
    """

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def users(self):
        return self._collection if self._collection is not None else get_users_collection()

    async def find_or_create_user(self, phone: str) -> Tuple[User, bool]:
        """
        Retrieves an existing user or creates a new one.

        Args:
            phone: E.164 phone number

        Returns:
            (user, created)
        """
        with LogContext(phone=phone):
            new_doc = User.new_document(phone)
            new_doc.pop("last_interaction")

            try:
                result = await self.users.update_one(
                    {"phone_number": phone},
                    {
                        "$setOnInsert": new_doc,
                        "$set": {"last_interaction": utcnow()},
                    },
                    upsert=True,
                )
                created = result.upserted_id is not None
            except DuplicateKeyError:
                # Another request inserted the same number first
                created = False

            doc = await self.users.find_one({"phone_number": phone})
            if created:
                logger.info("New user created", extra={"phone": phone})

            return User.from_document(doc), created

    async def get_user(self, phone: str) -> Optional[User]:
        doc = await self.users.find_one({"phone_number": phone})
        return User.from_document(doc) if doc else None

    async def save_session(
        self,
        phone: str,
        expected_version: int,
        new_state: SessionState,
        pin_hash: Optional[str] = None,
    ) -> bool:
        """
        Replaces the session state if nobody changed it since it was read.

        Args:
            phone: E.164 phone number
            expected_version: Version of the state the caller started from
            new_state: State to store (its version is bumped here)
            pin_hash: New PIN hash, stored in the same update when given

        Returns:
            False when another request updated the session first
        """
        stored = new_state.model_copy(update={"version": expected_version + 1})
        update = {
            "session_state": stored.to_document(),
            "last_interaction": utcnow(),
        }
        if pin_hash is not None:
            update["pin_hash"] = pin_hash

        # Documents written before versioning have no version field
        version_filter = (
            {"$in": [0, None]} if expected_version == 0 else expected_version
        )

        result = await self.users.find_one_and_update(
            {"phone_number": phone, "session_state.version": version_filter},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
            projection={"_id": 1},
        )

        if result is None:
            logger.info(
                "Session changed concurrently",
                extra={"phone": phone, "step": new_state.step.value},
            )
            return False

        logger.debug(
            f"Session saved (version {stored.version})",
            extra={"phone": phone, "step": stored.step.value},
        )
        return True
