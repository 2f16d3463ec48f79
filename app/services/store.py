"""
app/services/store.py

Purpose: Authoritative in-process state for users, seats and settings

- Loads the snapshot from the repository at startup (seeding seats 1..N)
- One command per admin action: register, mark paid, move, edit, delete
- Single writer: every command holds one asyncio lock for
  validate -> write-through -> swap
- A failed write leaves the snapshot untouched
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError, InvalidFeeTransition
from app.core.logging import get_logger, LogContext
from app.db.repository import Repository, BeforeImages
from app.models.audit_record import AuditRecord
from app.models.library_settings import LibrarySettings
from app.models.seat import Seat
from app.models.user import User, FeeStatus
from app.services import consistency
from app.services.consistency import MutationDelta
from app.services.fee_service import calculate_next_due_date, determine_fee_status, effective_due_date
from app.services.fee_states import is_valid_transition
from utils.constants import (
    LOG_USER_REGISTERED,
    LOG_FEE_MARKED_PAID,
    LOG_FEE_STATUS_CHANGED,
    LOG_SEAT_CHANGED,
    LOG_USER_UPDATED,
    LOG_USER_DELETED,
    LOG_USER_DELETED_UNSEATED,
    SYSTEM_ACTOR,
)
from utils.time_utils import utcnow
from utils.validation_utils import normalize_email, normalize_id_number

logger = get_logger(__name__)

PROFILE_FIELDS = ("name", "email", "phone", "address", "id_type", "id_number", "id_upload")
PLACEMENT_FIELDS = ("slot", "seat_number")
EDITABLE_FIELDS = PROFILE_FIELDS + PLACEMENT_FIELDS + ("fee_status",)
REQUIRED_FIELDS = ("name", "email", "phone", "address", "slot", "fee_status")


class SeatStore:
    """
    Holds users, seats, settings and the deletion audit trail.

    Reads return the current snapshot without waiting on the writer lock.
    """

    def __init__(self, repository: Repository, total_seats: Optional[int] = None):
        self._repository = repository
        self._total_seats = total_seats or settings.TOTAL_SEATS
        self._lock = asyncio.Lock()

        self._users: Dict[str, User] = {}
        self._seats: Dict[int, Seat] = {}
        self._settings = LibrarySettings()
        self._audit: List[AuditRecord] = []
        self._loaded = False

    # ============================================================
    # STARTUP
    # ============================================================

    async def load(self) -> None:
        """
        Reads everything from the repository and seeds what is missing.
        """
        async with self._lock:
            users = await self._repository.load_users()
            seats = await self._repository.load_seats()
            library_settings = await self._repository.load_settings()
            audit = await self._repository.load_audit()

            existing = {seat.number for seat in seats}
            missing = [Seat(number=n) for n in range(1, self._total_seats + 1) if n not in existing]
            if missing:
                await self._repository.insert_seats(missing)
                logger.info(f"Initialized {len(missing)} seat(s)")

            if library_settings is None:
                library_settings = LibrarySettings()
                await self._repository.save_settings(library_settings)
                logger.info("Initialized default settings")

            self._users = {u.id: u for u in users}
            self._seats = {s.number: s for s in [*seats, *missing]}
            self._settings = library_settings
            self._audit = audit
            self._loaded = True

            problems = consistency.check_invariants(self._users.values(), self._seats.values())
            for problem in problems:
                logger.warning(f"Inconsistent data at startup: {problem}")

            logger.info(
                f"Store loaded: {len(self._users)} users, {len(self._seats)} seats, "
                f"{len(self._audit)} audit records"
            )

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    # ============================================================
    # READS
    # ============================================================

    @property
    def users(self) -> List[User]:
        return sorted(self._users.values(), key=lambda u: (u.registration_date, u.id))

    @property
    def seats(self) -> List[Seat]:
        return [self._seats[n] for n in sorted(self._seats)]

    @property
    def library_settings(self) -> LibrarySettings:
        return self._settings

    @property
    def audit(self) -> List[AuditRecord]:
        return list(self._audit)

    def get_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    def get_seat(self, number: int) -> Seat:
        seat = self._seats.get(number)
        if seat is None:
            raise NotFoundError(f"Seat {number} not found", details={"seat_number": number})
        return seat

    # ============================================================
    # COMMANDS
    # ============================================================

    async def register_user(self, data: Dict[str, Any], admin_id: Optional[str] = None) -> User:
        """
        Creates a user on a seat/slot pair that is free in that slot.

        Raises:
            ValidationError: bad payload, unknown slot or seat, duplicate email
            SeatConflict: someone already holds the seat in this slot
        """
        async with self._lock:
            now = utcnow()
            user = self._build_user(data, now)

            with LogContext(user_id=user.id, seat_number=user.seat_number, slot=user.slot):
                if user.fee_status == FeeStatus.EXPIRED:
                    raise ValidationError("A new registration cannot start as expired")

                if user.fee_status == FeeStatus.PAID:
                    user = user.model_copy(update={"next_due_date": self._next_due_date(user, now)})

                user = consistency.append_log(user, LOG_USER_REGISTERED, admin_id, now)
                delta = consistency.plan_registration(
                    user, self._seats, list(self._users.values()), self._settings
                )
                await self._commit(delta)

                logger.info(f"Registered {user.name} on seat {user.seat_number} ({user.slot})")
                return user

    async def mark_paid(self, user_id: str, admin_id: Optional[str] = None) -> User:
        """
        Marks the user's fee as paid and re-colours the paired seat.

        Repeating it changes nothing but the log, which gains one entry per call.
        """
        async with self._lock:
            user = self.get_user(user_id)
            with LogContext(user_id=user_id, admin_id=admin_id):
                paid = self._with_fee_status(user, FeeStatus.PAID, admin_id)
                paid = consistency.append_log(paid, LOG_FEE_MARKED_PAID, admin_id)
                await self._commit(consistency.plan_fee_change(paid, self._seats))

                logger.info(f"Fee marked as paid (was {user.fee_status.value})")
                return paid

    async def set_fee_status(self, user_id: str, status: FeeStatus, admin_id: Optional[str] = None) -> User:
        """
        Moves a user to `status` if the fee state machine allows it for this actor.
        Setting the current status again is a no-op (no log entry).
        """
        status = FeeStatus(status)
        async with self._lock:
            user = self.get_user(user_id)
            if user.fee_status == status:
                return user
            return await self._transition(user, status, admin_id)

    async def apply_calendar_status(self, user_id: str, now: Optional[datetime] = None) -> Tuple[User, bool]:
        """
        Moves a user to the status its due date implies, as the system actor.

        The target is worked out under the writer lock from the user as it is
        now, so a payment committed a moment earlier is never overwritten.
        Returns the user and whether a transition happened.
        """
        async with self._lock:
            user = self.get_user(user_id)
            target = determine_fee_status(effective_due_date(user), now)
            if user.fee_status == target or not is_valid_transition(user.fee_status, target, SYSTEM_ACTOR):
                return user, False
            return await self._transition(user, target, SYSTEM_ACTOR), True

    async def change_slot_or_seat(
        self,
        user_id: str,
        new_slot: Optional[str] = None,
        new_seat_number: Optional[int] = None,
        admin_id: Optional[str] = None
    ) -> User:
        """
        Moves a user to another seat and/or slot.

        The new pair is checked against every other user first; the old seat
        is released only once the move is known to be valid.
        """
        async with self._lock:
            user = self.get_user(user_id)
            slot = new_slot if new_slot is not None else user.slot
            seat_number = new_seat_number if new_seat_number is not None else user.seat_number

            if seat_number is None:
                raise ValidationError("A seat number is required", details={"user_id": user_id})

            if slot == user.slot and seat_number == user.seat_number:
                return user

            with LogContext(user_id=user_id, seat_number=seat_number, slot=slot):
                moved = user.model_copy(update={"slot": slot, "seat_number": seat_number})
                moved = consistency.append_log(
                    moved,
                    LOG_SEAT_CHANGED.format(
                        old_seat=user.seat_number, old_slot=user.slot,
                        new_seat=seat_number, new_slot=slot
                    ),
                    admin_id
                )
                delta = consistency.plan_move(
                    user, moved, self._seats, list(self._users.values()), self._settings
                )
                await self._commit(delta)

                logger.info(f"Moved from seat {user.seat_number} ({user.slot}) to {seat_number} ({slot})")
                return moved

    async def update_user(self, user_id: str, changes: Dict[str, Any], admin_id: Optional[str] = None) -> User:
        """
        Edits profile fields; placement and fee changes follow the same rules
        as the dedicated commands. One log entry listing the changed fields.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        async with self._lock:
            user = self.get_user(user_id)
            updates = self._normalize_changes(changes)
            changed_fields = [k for k, v in updates.items() if getattr(user, k) != v]
            if not changed_fields:
                return user

            with LogContext(user_id=user_id, admin_id=admin_id):
                users = list(self._users.values())
                if "email" in changed_fields:
                    consistency.validate_email_unique(updates["email"], users, exclude_user_id=user_id)

                updated = user.model_copy(update={k: updates[k] for k in changed_fields if k != "fee_status"})
                if "fee_status" in changed_fields:
                    updated = self._with_fee_status(updated, FeeStatus(updates["fee_status"]), admin_id)

                try:
                    updated = User.model_validate(updated.model_dump())
                except PydanticValidationError as e:
                    raise ValidationError("Invalid user data", details=e.errors()) from e

                updated = consistency.append_log(
                    updated, LOG_USER_UPDATED.format(fields=", ".join(changed_fields)), admin_id
                )

                if any(f in changed_fields for f in PLACEMENT_FIELDS):
                    if updated.seat_number is None:
                        raise ValidationError("A seat number is required", details={"user_id": user_id})
                    delta = consistency.plan_move(user, updated, self._seats, users, self._settings)
                else:
                    delta = consistency.plan_fee_change(updated, self._seats)

                await self._commit(delta)
                logger.info(f"User updated: {', '.join(changed_fields)}")
                return updated

    async def delete_user(self, user_id: str, admin_id: Optional[str] = None) -> AuditRecord:
        """
        Removes a user and frees its seat. The user's history, ending with the
        deletion entry, is kept as an audit record.
        """
        async with self._lock:
            user = self.get_user(user_id)
            with LogContext(user_id=user_id, seat_number=user.seat_number, admin_id=admin_id):
                if user.seat_number is not None:
                    action = LOG_USER_DELETED.format(seat_number=user.seat_number)
                else:
                    action = LOG_USER_DELETED_UNSEATED

                delta = consistency.plan_deletion(
                    user, action, admin_id, self._seats, list(self._users.values())
                )
                await self._commit(delta)

                logger.info(f"Deleted {user.name}; seat {user.seat_number} released")
                return delta.audit

    async def update_settings(self, partial: Dict[str, Any]) -> LibrarySettings:
        """
        Merges top-level keys into the settings document.

        A slot that still has members cannot be dropped from the pricing table.
        """
        async with self._lock:
            merged = {**self._settings.model_dump(), **partial}
            try:
                updated = LibrarySettings.model_validate(merged)
            except PydanticValidationError as e:
                raise ValidationError("Invalid settings data", details=e.errors()) from e

            in_use = {u.slot for u in self._users.values()}
            dropped = sorted(in_use - set(updated.slots))
            if dropped:
                raise ValidationError(
                    f"Slots still in use cannot be removed: {', '.join(dropped)}",
                    details={"slots": dropped}
                )

            await self._repository.save_settings(updated)
            self._settings = updated
            logger.info(f"Settings updated: {', '.join(sorted(partial)) or 'no fields'}")
            return updated

    # ============================================================
    # INTERNALS
    # ============================================================

    def _build_user(self, data: Dict[str, Any], now) -> User:
        payload = {k: v for k, v in data.items() if v is not None}
        payload.pop("id", None)
        payload.pop("logs", None)
        payload.setdefault("registration_date", now)
        if "email" in payload:
            payload["email"] = normalize_email(payload["email"])
        if "id_number" in payload:
            payload["id_number"] = normalize_id_number(payload["id_number"])
        if payload.get("seat_number") is None:
            raise ValidationError("A seat number is required to register")
        try:
            return User(**payload)
        except PydanticValidationError as e:
            raise ValidationError("Invalid user data", details=e.errors()) from e

    def _normalize_changes(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        cleared = sorted(
            k for k in REQUIRED_FIELDS
            if k in changes and (changes[k] is None or (isinstance(changes[k], str) and not changes[k].strip()))
        )
        if cleared:
            raise ValidationError(
                f"Fields cannot be cleared: {', '.join(cleared)}",
                details={"fields": cleared}
            )

        updates = dict(changes)
        if isinstance(updates.get("email"), str):
            updates["email"] = normalize_email(updates["email"])
        if "id_number" in updates:
            updates["id_number"] = normalize_id_number(updates["id_number"])
        if "fee_status" in updates:
            try:
                updates["fee_status"] = FeeStatus(updates["fee_status"])
            except ValueError as e:
                raise ValidationError(f"Unknown fee status '{updates['fee_status']}'") from e
        return updates

    def _with_fee_status(self, user: User, status: FeeStatus, admin_id: Optional[str]) -> User:
        if not is_valid_transition(user.fee_status, status, admin_id):
            raise InvalidFeeTransition(user.fee_status.value, status.value)

        updates: Dict[str, Any] = {"fee_status": status}
        if status == FeeStatus.PAID and user.fee_status != FeeStatus.PAID:
            updates["next_due_date"] = self._next_due_date(user, utcnow())
        return user.model_copy(update=updates)

    def _next_due_date(self, user: User, paid_at):
        return calculate_next_due_date(
            paid_at, user.registration_date, self._settings.slot_pricing, user.slot
        ).next_due_date

    async def _transition(self, user: User, status: FeeStatus, admin_id: Optional[str]) -> User:
        with LogContext(user_id=user.id, admin_id=admin_id):
            changed = self._with_fee_status(user, status, admin_id)
            changed = consistency.append_log(
                changed,
                LOG_FEE_STATUS_CHANGED.format(old=user.fee_status.value, new=status.value),
                admin_id
            )
            await self._commit(consistency.plan_fee_change(changed, self._seats))

            logger.info(f"Fee status {user.fee_status.value} -> {status.value}")
            return changed

    async def _commit(self, delta: MutationDelta) -> None:
        """
        Writes the delta through, then swaps it into the snapshot.
        """
        before = BeforeImages()
        for user in delta.upserted_users:
            before.users[user.id] = self._users.get(user.id)
        for user_id in delta.deleted_user_ids:
            before.users[user_id] = self._users.get(user_id)
        for seat in delta.seats:
            before.seats[seat.number] = self._seats[seat.number]

        await self._repository.apply(delta, before)

        for user in delta.upserted_users:
            self._users[user.id] = user
        for seat in delta.seats:
            self._seats[seat.number] = seat
        if delta.audit:
            self._audit.append(delta.audit)
        for user_id in delta.deleted_user_ids:
            self._users.pop(user_id, None)


# ============================================================
# APPLICATION INSTANCE
# ============================================================

_store: Optional[SeatStore] = None


def init_store(repository: Repository, total_seats: Optional[int] = None) -> SeatStore:
    """Creates the process-wide store (call load() afterwards)."""
    global _store
    _store = SeatStore(repository, total_seats)
    return _store


def get_store() -> SeatStore:
    """
    FastAPI dependency returning the process-wide store.

    Raises:
        RuntimeError: If the store has not been initialized
    """
    if _store is None:
        raise RuntimeError("Store not initialized. Call init_store() during startup.")
    return _store
