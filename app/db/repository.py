"""
app/db/repository.py

Purpose: Write-through persistence for the seat store

- Reads the full snapshot at startup
- Applies one mutation delta per command
- Restores before-images if a delta fails half way
- Mongo implementation for production, memory implementation for tests/dev
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.logging import get_logger
from app.db.mongo import (
    get_users_collection,
    get_seats_collection,
    get_settings_collection,
    get_audit_collection,
)
from app.models.audit_record import AuditRecord
from app.models.library_settings import LibrarySettings
from app.models.seat import Seat
from app.models.user import User
from app.services.consistency import MutationDelta

logger = get_logger(__name__)


@dataclass
class BeforeImages:
    """
    State of everything a delta touches, as it was before the delta.
    A user mapped to None did not exist.
    """
    users: Dict[str, Optional[User]] = field(default_factory=dict)
    seats: Dict[int, Seat] = field(default_factory=dict)


class Repository(ABC):
    """Interface the store writes through to."""

    @abstractmethod
    async def load_users(self) -> List[User]:
        ...

    @abstractmethod
    async def load_seats(self) -> List[Seat]:
        ...

    @abstractmethod
    async def load_settings(self) -> Optional[LibrarySettings]:
        ...

    @abstractmethod
    async def load_audit(self) -> List[AuditRecord]:
        ...

    @abstractmethod
    async def insert_seats(self, seats: List[Seat]) -> None:
        ...

    @abstractmethod
    async def save_settings(self, library_settings: LibrarySettings) -> None:
        ...

    @abstractmethod
    async def apply(self, delta: MutationDelta, before: BeforeImages) -> None:
        ...


class MemoryRepository(Repository):
    """
    Keeps documents in process. Nothing survives a restart.
    """

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.seats: Dict[int, Seat] = {}
        self.settings: Optional[LibrarySettings] = None
        self.audit: List[AuditRecord] = []

    async def load_users(self) -> List[User]:
        return list(self.users.values())

    async def load_seats(self) -> List[Seat]:
        return sorted(self.seats.values(), key=lambda s: s.number)

    async def load_settings(self) -> Optional[LibrarySettings]:
        return self.settings

    async def load_audit(self) -> List[AuditRecord]:
        return list(self.audit)

    async def insert_seats(self, seats: List[Seat]) -> None:
        for seat in seats:
            self.seats[seat.number] = seat

    async def save_settings(self, library_settings: LibrarySettings) -> None:
        self.settings = library_settings

    async def apply(self, delta: MutationDelta, before: BeforeImages) -> None:
        for user in delta.upserted_users:
            self.users[user.id] = user
        for seat in delta.seats:
            self.seats[seat.number] = seat
        if delta.audit:
            self.audit.append(delta.audit)
        for user_id in delta.deleted_user_ids:
            self.users.pop(user_id, None)


class MongoRepository(Repository):
    """
    Writes each delta as a short sequence of single-document operations.

    Standalone MongoDB has no multi-document transactions, so a failure part
    way through is undone by writing the before-images back.
    """

    async def load_users(self) -> List[User]:
        cursor = get_users_collection().find({})
        return [User.from_document(doc) async for doc in cursor]

    async def load_seats(self) -> List[Seat]:
        cursor = get_seats_collection().find({}).sort("number", 1)
        return [Seat.from_document(doc) async for doc in cursor]

    async def load_settings(self) -> Optional[LibrarySettings]:
        doc = await get_settings_collection().find_one({})
        return LibrarySettings.from_document(doc) if doc else None

    async def load_audit(self) -> List[AuditRecord]:
        cursor = get_audit_collection().find({}).sort("deleted_at", 1)
        return [AuditRecord.from_document(doc) async for doc in cursor]

    async def insert_seats(self, seats: List[Seat]) -> None:
        if not seats:
            return
        try:
            await get_seats_collection().insert_many([s.to_document() for s in seats])
        except PyMongoError as e:
            raise PersistenceError("Could not initialize seats", details=str(e)) from e

    async def save_settings(self, library_settings: LibrarySettings) -> None:
        try:
            await get_settings_collection().replace_one({}, library_settings.to_document(), upsert=True)
        except PyMongoError as e:
            raise PersistenceError("Could not save settings", details=str(e)) from e

    async def apply(self, delta: MutationDelta, before: BeforeImages) -> None:
        users = get_users_collection()
        seats = get_seats_collection()
        audit = get_audit_collection()
        done: List[Tuple[str, object]] = []

        try:
            for user in delta.upserted_users:
                await users.replace_one({"user_id": user.id}, user.to_document(), upsert=True)
                done.append(("user", user.id))

            for seat in delta.seats:
                await seats.replace_one({"number": seat.number}, seat.to_document(), upsert=True)
                done.append(("seat", seat.number))

            if delta.audit:
                await audit.insert_one(delta.audit.to_document())
                done.append(("audit", delta.audit.id))

            for user_id in delta.deleted_user_ids:
                await users.delete_one({"user_id": user_id})
                done.append(("deleted", user_id))

        except PyMongoError as e:
            logger.error(f"Write-through failed after {len(done)} step(s): {e}", exc_info=True)
            await self._undo(done, before)
            raise PersistenceError("Could not persist change", details=str(e)) from e

    async def _undo(self, done: List[Tuple[str, object]], before: BeforeImages) -> None:
        users = get_users_collection()
        seats = get_seats_collection()
        audit = get_audit_collection()

        for kind, key in reversed(done):
            try:
                if kind in ("user", "deleted"):
                    previous = before.users.get(key)
                    if previous is None:
                        await users.delete_one({"user_id": key})
                    else:
                        await users.replace_one({"user_id": key}, previous.to_document(), upsert=True)
                elif kind == "seat":
                    await seats.replace_one({"number": key}, before.seats[key].to_document(), upsert=True)
                elif kind == "audit":
                    await audit.delete_one({"audit_id": key})
            except PyMongoError as e:
                logger.critical(f"Could not undo {kind} {key}: {e}", exc_info=True)


def build_repository() -> Repository:
    """Repository for the configured STORAGE_BACKEND."""
    if settings.uses_mongo:
        return MongoRepository()
    logger.warning("Using in-memory storage; data is lost on restart")
    return MemoryRepository()
