"""
app/models/user.py

Purpose: User document model

- Contact details and identity document reference
- Seat number and booked slot
- Fee status and next due date
- Append-only action log
"""

from pydantic import BaseModel, Field
from enum import Enum
from typing import Optional, List
from datetime import datetime
import uuid


class FeeStatus(str, Enum):
    """Payment state of a member."""

    PAID = "paid"
    DUE = "due"
    EXPIRED = "expired"


class UserLog(BaseModel):
    """
    One immutable audit entry on a user.
    """
    action: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    admin_id: Optional[str] = None

    model_config = {"frozen": True}


def generate_user_id() -> str:
    return uuid.uuid4().hex


class User(BaseModel):
    """
    A registered library member.

    Instances held by the store are treated as immutable snapshots; every
    change produces a new copy via `model_copy(update=...)`.
    """
    id: str = Field(default_factory=generate_user_id)
    name: str
    email: str
    phone: str
    address: str
    seat_number: Optional[int] = None
    slot: str
    fee_status: FeeStatus = FeeStatus.DUE
    registration_date: datetime = Field(default_factory=datetime.utcnow)
    next_due_date: Optional[datetime] = None

    # Identity document
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    id_upload: Optional[str] = None

    logs: List[UserLog] = Field(default_factory=list)

    @property
    def last_log(self) -> Optional[UserLog]:
        return self.logs[-1] if self.logs else None

    def to_document(self) -> dict:
        """Serializes to the Mongo document shape (id stored as user_id)."""
        doc = self.model_dump(mode="python")
        doc["user_id"] = doc.pop("id")
        doc["fee_status"] = self.fee_status.value
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["id"] = data.pop("user_id")
        return cls(**data)
