"""
app/schemas/seat.py

Response models for seat, grid, dashboard and audit endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict

from app.models.seat import SeatStatus
from app.models.user import FeeStatus


class SeatOut(BaseModel):
    number: int
    status: SeatStatus
    color: str = Field(..., description="Grid colour for the status")
    user_id: Optional[str] = None
    user_name: Optional[str] = None


class SeatGridOut(BaseModel):
    """One page of the seat grid (pages counted from zero)."""

    seats: List[SeatOut]
    page: int
    page_size: int
    total_pages: int
    total_seats: int
    show_all: bool = False


class SeatAvailabilityOut(BaseModel):
    seat_number: int
    slots: Dict[str, bool] = Field(..., description="Slot label -> free in that slot")
    available: Optional[bool] = Field(default=None, description="Free in the requested slot")


class SlotOccupancyOut(BaseModel):
    occupied: int
    available: int


class StatsOut(BaseModel):
    total_users: int
    paid_users: int
    due_users: int
    expired_users: int
    total_seats: int
    available_seats: int
    slots: Dict[str, SlotOccupancyOut] = Field(default_factory=dict)


class AuditEntryOut(BaseModel):
    audit_id: str
    user_id: str
    name: str
    email: str
    seat_number: Optional[int] = None
    slot: str
    fee_status: FeeStatus
    action: str
    admin_id: Optional[str] = None
    deleted_at: datetime
