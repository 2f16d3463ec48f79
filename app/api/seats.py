"""
app/api/seats.py

Seat endpoints
==============

Read-only seat views. Without a slot the stored seat colour is shown; with a
slot every seat is coloured by its occupant in that slot.
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.schemas.seat import SeatOut, SeatGridOut, SeatAvailabilityOut
from app.services import projections
from app.services.consistency import validate_slot
from app.services.store import SeatStore, get_store

router = APIRouter(prefix="/seats", tags=["Seats"])


def seat_out(view: projections.SeatView) -> SeatOut:
    return SeatOut(
        number=view.number,
        status=view.status,
        color=view.color,
        user_id=view.user_id,
        user_name=view.user_name,
    )


@router.get("", response_model=List[SeatOut])
async def list_seats(slot: Optional[str] = Query(default=None), store: SeatStore = Depends(get_store)):
    if slot is not None:
        validate_slot(slot, store.library_settings)
    views = projections.seats_for_slot(store.seats, store.users, slot)
    return [seat_out(v) for v in views]


@router.get("/grid", response_model=SeatGridOut)
async def seat_grid(
    page: int = Query(default=0, ge=0),
    show_all: bool = Query(default=False),
    slot: Optional[str] = Query(default=None),
    store: SeatStore = Depends(get_store)
):
    if slot is not None:
        validate_slot(slot, store.library_settings)
    grid = projections.seat_grid(store.seats, store.users, slot=slot, page=page, show_all=show_all)
    return SeatGridOut(
        seats=[seat_out(v) for v in grid.seats],
        page=grid.page,
        page_size=grid.page_size,
        total_pages=grid.total_pages,
        total_seats=grid.total_seats,
        show_all=grid.show_all,
    )


@router.get("/{number}/availability", response_model=SeatAvailabilityOut)
async def seat_availability(
    number: int,
    slot: Optional[str] = Query(default=None),
    store: SeatStore = Depends(get_store)
):
    seat = store.get_seat(number)
    library_settings = store.library_settings
    if slot is not None:
        validate_slot(slot, library_settings)

    by_slot = projections.seat_availability(seat, store.users, library_settings.slots)
    return SeatAvailabilityOut(
        seat_number=number,
        slots=by_slot,
        available=by_slot[slot] if slot is not None else None,
    )
