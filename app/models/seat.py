"""
app/models/seat.py

Purpose: Seat document model

- Fixed seat number (1..N)
- Colour status shown on the dashboard grid
- Back-reference to the bound user
"""

from pydantic import BaseModel
from enum import Enum
from typing import Optional


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    PAID = "paid"
    DUE = "due"
    EXPIRED = "expired"


class Seat(BaseModel):
    number: int
    status: SeatStatus = SeatStatus.AVAILABLE
    user_id: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.status == SeatStatus.AVAILABLE

    def to_document(self) -> dict:
        return {
            "number": self.number,
            "status": self.status.value,
            "user_id": self.user_id,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Seat":
        return cls(
            number=doc["number"],
            status=doc.get("status", SeatStatus.AVAILABLE),
            user_id=doc.get("user_id"),
        )
