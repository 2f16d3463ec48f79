"""
app/services/projections.py

Purpose: Read-only views over the store snapshot

- Dashboard counts (users by fee status, free seats overall and per slot)
- Per-slot seat view and single-seat availability
- Paginated seat grid
- CSV export of users

Nothing here is stored; every view is recomputed from users and seats.
"""

import csv
import io
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.seat import Seat, SeatStatus
from app.models.user import User, FeeStatus
from app.services.consistency import compute_seat_status, occupant_in_slot
from app.services.fee_states import get_status_metadata
from utils.time_utils import format_date


CSV_HEADERS = ["Name", "Email", "Phone", "Seat Number", "Slot", "Fee Status", "Registration Date"]
AVAILABLE_COLOR = "gray"


@dataclass
class SlotOccupancy:
    occupied: int
    available: int


@dataclass
class DashboardStats:
    total_users: int
    paid_users: int
    due_users: int
    expired_users: int
    total_seats: int
    available_seats: int
    slots: Dict[str, SlotOccupancy] = field(default_factory=dict)


@dataclass
class SeatView:
    number: int
    status: SeatStatus
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def color(self) -> str:
        if self.status == SeatStatus.AVAILABLE:
            return AVAILABLE_COLOR
        return get_status_metadata(FeeStatus(self.status.value)).grid_color


@dataclass
class GridPage:
    seats: List[SeatView]
    page: int
    page_size: int
    total_pages: int
    total_seats: int
    show_all: bool = False


def count_by_status(users: Iterable[User]) -> Dict[FeeStatus, int]:
    counts = {status: 0 for status in FeeStatus}
    for user in users:
        counts[user.fee_status] += 1
    return counts


def get_stats(users: List[User], seats: List[Seat], slots: List[str]) -> DashboardStats:
    """
    Counts for the dashboard cards.

    `available_seats` counts seats nobody holds in any slot; the per-slot
    figures count seats free in that slot.
    """
    counts = count_by_status(users)
    held = {u.seat_number for u in users if u.seat_number is not None}

    per_slot = {}
    for slot in slots:
        occupied = len({u.seat_number for u in users if u.slot == slot and u.seat_number is not None})
        per_slot[slot] = SlotOccupancy(occupied=occupied, available=len(seats) - occupied)

    return DashboardStats(
        total_users=len(users),
        paid_users=counts[FeeStatus.PAID],
        due_users=counts[FeeStatus.DUE],
        expired_users=counts[FeeStatus.EXPIRED],
        total_seats=len(seats),
        available_seats=sum(1 for s in seats if s.number not in held),
        slots=per_slot,
    )


def seat_view(seat: Seat, users: List[User], slot: Optional[str] = None) -> SeatView:
    """
    A seat as seen from one slot (the occupant's colour there, or available).

    Without a slot the stored seat colour and binding are shown.
    """
    if slot is None:
        bound = next((u for u in users if u.id == seat.user_id), None) if seat.user_id else None
        return SeatView(
            number=seat.number,
            status=seat.status,
            user_id=seat.user_id,
            user_name=bound.name if bound else None,
        )

    occupant = occupant_in_slot(users, seat.number, slot)
    if occupant is None:
        return SeatView(number=seat.number, status=SeatStatus.AVAILABLE)
    return SeatView(
        number=seat.number,
        status=compute_seat_status(occupant.fee_status),
        user_id=occupant.id,
        user_name=occupant.name,
    )


def seats_for_slot(seats: List[Seat], users: List[User], slot: Optional[str] = None) -> List[SeatView]:
    return [seat_view(seat, users, slot) for seat in seats]


def seat_availability(seat: Seat, users: List[User], slots: List[str]) -> Dict[str, bool]:
    """Slot label -> whether the seat is free in that slot."""
    return {slot: occupant_in_slot(users, seat.number, slot) is None for slot in slots}


def seat_grid(
    seats: List[Seat],
    users: List[User],
    slot: Optional[str] = None,
    page: int = 0,
    page_size: Optional[int] = None,
    show_all: bool = False
) -> GridPage:
    """
    One page of the seat grid, pages counted from zero.

    Raises:
        ValidationError: page outside 0..total_pages-1
    """
    page_size = page_size or settings.SEATS_PER_PAGE
    views = seats_for_slot(seats, users, slot)
    total_pages = max(1, math.ceil(len(views) / page_size))

    if show_all:
        return GridPage(
            seats=views,
            page=0,
            page_size=len(views),
            total_pages=1,
            total_seats=len(views),
            show_all=True,
        )

    if page < 0 or page >= total_pages:
        raise ValidationError(
            f"Page {page} out of range",
            details={"page": page, "total_pages": total_pages}
        )

    start = page * page_size
    return GridPage(
        seats=views[start:start + page_size],
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_seats=len(views),
    )


def export_users_csv(users: Iterable[User]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for user in users:
        writer.writerow([
            user.name,
            user.email,
            user.phone,
            user.seat_number if user.seat_number is not None else "",
            user.slot,
            user.fee_status.value,
            format_date(user.registration_date),
        ])
    return buffer.getvalue()
