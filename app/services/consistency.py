"""
app/services/consistency.py

Purpose: Seat/user consistency rules

- Maps fee status to seat colour
- Per-slot availability (a seat is shared across slots)
- Validates registrations and moves before anything is written
- Plans the paired (User, Seat) delta for every mutation
- Invariant checker used by tests and the health endpoint

Everything here is pure: no I/O, no clock unless one is passed in.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from app.core.exceptions import SeatConflict, ValidationError
from app.models.audit_record import AuditRecord
from app.models.library_settings import LibrarySettings
from app.models.seat import Seat, SeatStatus
from app.models.user import User, UserLog, FeeStatus
from utils.time_utils import next_log_timestamp, utcnow
from utils.validation_utils import normalize_email


SEAT_STATUS_FOR_FEE: Dict[FeeStatus, SeatStatus] = {
    FeeStatus.PAID: SeatStatus.PAID,
    FeeStatus.DUE: SeatStatus.DUE,
    FeeStatus.EXPIRED: SeatStatus.EXPIRED,
}


@dataclass
class MutationDelta:
    """
    Everything one command changes, applied together or not at all.
    """
    upserted_users: List[User] = field(default_factory=list)
    deleted_user_ids: List[str] = field(default_factory=list)
    seats: List[Seat] = field(default_factory=list)
    audit: Optional[AuditRecord] = None

    @property
    def user(self) -> Optional[User]:
        return self.upserted_users[0] if self.upserted_users else None


def compute_seat_status(fee_status: FeeStatus) -> SeatStatus:
    return SEAT_STATUS_FOR_FEE[FeeStatus(fee_status)]


# ============================================================
# AVAILABILITY
# ============================================================

def occupant_in_slot(
    users: Iterable[User],
    seat_number: int,
    slot: str,
    exclude_user_id: Optional[str] = None
) -> Optional[User]:
    for user in users:
        if user.id == exclude_user_id:
            continue
        if user.seat_number == seat_number and user.slot == slot:
            return user
    return None


def is_available_for_slot(
    seat: Seat,
    users: Iterable[User],
    slot: str,
    exclude_user_id: Optional[str] = None
) -> bool:
    """
    True if nobody holds `seat` in `slot`.

    Occupants in other slots do not matter, and neither does `seat.status`.
    """
    return occupant_in_slot(users, seat.number, slot, exclude_user_id) is None


def occupants_of(users: Iterable[User], seat_number: int) -> List[User]:
    """All users on a seat across every slot, oldest registration first."""
    holders = [u for u in users if u.seat_number == seat_number]
    return sorted(holders, key=lambda u: (u.registration_date, u.id))


# ============================================================
# VALIDATION
# ============================================================

def validate_slot(slot: str, library_settings: LibrarySettings) -> None:
    if not slot or slot not in library_settings.slot_pricing:
        raise ValidationError(
            f"Unknown slot '{slot}'",
            details={"slot": slot, "allowed": library_settings.slots}
        )


def validate_seat_number(seat_number: Optional[int], seats: Dict[int, Seat]) -> None:
    if seat_number is None or seat_number not in seats:
        raise ValidationError(
            f"Seat {seat_number} does not exist",
            details={"seat_number": seat_number, "total_seats": len(seats)}
        )


def validate_email_unique(email: str, users: Iterable[User], exclude_user_id: Optional[str] = None) -> None:
    wanted = normalize_email(email)
    for user in users:
        if user.id != exclude_user_id and normalize_email(user.email) == wanted:
            raise ValidationError("Email already registered", details={"email": email})


def validate_registration(
    seat_number: int,
    slot: str,
    users: Iterable[User],
    exclude_user_id: Optional[str] = None
) -> None:
    """
    Raises SeatConflict if another user already holds the seat in this slot.
    """
    occupant = occupant_in_slot(users, seat_number, slot, exclude_user_id)
    if occupant is not None:
        raise SeatConflict(seat_number, slot, occupant.id)


# ============================================================
# SEAT IMAGES
# ============================================================

def bind_seat(seat: Seat, user: User) -> Seat:
    return seat.model_copy(update={
        "status": compute_seat_status(user.fee_status),
        "user_id": user.id,
    })


def release_seat(seat: Seat, departing_user_id: str, remaining_users: Iterable[User]) -> Seat:
    """
    Seat image after `departing_user_id` leaves it.

    If the seat was bound to someone else it is left alone. Otherwise it is
    rebound to the longest-standing occupant in another slot, or freed.
    """
    if seat.user_id != departing_user_id:
        return seat

    others = [u for u in occupants_of(remaining_users, seat.number) if u.id != departing_user_id]
    if others:
        return bind_seat(seat, others[0])

    return seat.model_copy(update={"status": SeatStatus.AVAILABLE, "user_id": None})


def refresh_seat(seat: Seat, user: User) -> Seat:
    """Re-colours a seat after its bound user's fee status changed."""
    if seat.user_id != user.id:
        return seat
    return bind_seat(seat, user)


# ============================================================
# LOGS
# ============================================================

def append_log(user: User, action: str, admin_id: Optional[str] = None, now: Optional[datetime] = None) -> User:
    """
    Returns a copy of `user` with one more log entry, never earlier than the last.
    """
    previous = user.last_log.timestamp if user.last_log else None
    entry = UserLog(
        action=action,
        timestamp=next_log_timestamp(previous, now or utcnow()),
        admin_id=admin_id
    )
    return user.model_copy(update={"logs": [*user.logs, entry]})


# ============================================================
# INVARIANTS
# ============================================================

def check_invariants(users: Iterable[User], seats: Iterable[Seat]) -> List[str]:
    """
    Reports every violation of the seat/user pairing rules.

    - a non-available seat is bound to exactly one existing user who sits on
      it and whose fee status maps to the seat's colour
    - an available seat has no back-reference and no occupant
    - within one slot a seat has at most one occupant
    """
    users = list(users)
    by_id = {u.id: u for u in users}
    problems: List[str] = []

    for seat in seats:
        holders = occupants_of(users, seat.number)

        if seat.is_available:
            if seat.user_id is not None:
                problems.append(f"seat {seat.number} is available but references user {seat.user_id}")
            if holders:
                problems.append(f"seat {seat.number} is available but held by {[u.id for u in holders]}")
            continue

        bound = by_id.get(seat.user_id) if seat.user_id else None
        if bound is None:
            problems.append(f"seat {seat.number} is {seat.status.value} without an existing user")
            continue
        if bound.seat_number != seat.number:
            problems.append(f"seat {seat.number} references user {bound.id} who sits on {bound.seat_number}")
        if compute_seat_status(bound.fee_status) != seat.status:
            problems.append(
                f"seat {seat.number} is {seat.status.value} but user {bound.id} is {bound.fee_status.value}"
            )

        slots_seen = set()
        for holder in holders:
            if holder.slot in slots_seen:
                problems.append(f"seat {seat.number} has two occupants in slot {holder.slot}")
            slots_seen.add(holder.slot)

    return problems


# ============================================================
# MUTATION PLANS
# ============================================================

def plan_registration(user: User, seats: Dict[int, Seat], users: List[User],
                      library_settings: LibrarySettings) -> MutationDelta:
    """
    Validates a new user and pairs it with its seat binding.
    """
    validate_slot(user.slot, library_settings)
    validate_seat_number(user.seat_number, seats)
    validate_email_unique(user.email, users)
    validate_registration(user.seat_number, user.slot, users)

    return MutationDelta(
        upserted_users=[user],
        seats=[bind_seat(seats[user.seat_number], user)],
    )


def plan_fee_change(user: User, seats: Dict[int, Seat]) -> MutationDelta:
    """
    `user` already carries its new fee status and log entry.
    """
    delta = MutationDelta(upserted_users=[user])
    if user.seat_number is not None and user.seat_number in seats:
        seat = seats[user.seat_number]
        refreshed = refresh_seat(seat, user)
        if refreshed != seat:
            delta.seats.append(refreshed)
    return delta


def plan_move(current: User, moved: User, seats: Dict[int, Seat], users: List[User],
              library_settings: LibrarySettings) -> MutationDelta:
    """
    Re-validates the new (seat, slot) pair, then releases the old binding and
    binds the new one.
    """
    validate_slot(moved.slot, library_settings)
    validate_seat_number(moved.seat_number, seats)
    validate_registration(moved.seat_number, moved.slot, users, exclude_user_id=current.id)

    delta = MutationDelta(upserted_users=[moved])
    others = [u for u in users if u.id != current.id]

    if current.seat_number is not None and current.seat_number != moved.seat_number:
        old_seat = seats.get(current.seat_number)
        if old_seat is not None:
            delta.seats.append(release_seat(old_seat, current.id, others))

    delta.seats.append(bind_seat(seats[moved.seat_number], moved))
    return delta


def plan_deletion(user: User, action: str, admin_id: Optional[str], seats: Dict[int, Seat],
                  users: List[User], now: Optional[datetime] = None) -> MutationDelta:
    """
    Frees the seat and moves the user's history into an audit record.
    """
    final = append_log(user, action, admin_id, now)
    audit = AuditRecord(
        user_id=user.id,
        user=final,
        entry=final.logs[-1],
        admin_id=admin_id,
        deleted_at=final.logs[-1].timestamp,
    )

    delta = MutationDelta(deleted_user_ids=[user.id], audit=audit)
    if user.seat_number is not None and user.seat_number in seats:
        others = [u for u in users if u.id != user.id]
        delta.seats.append(release_seat(seats[user.seat_number], user.id, others))
    return delta
