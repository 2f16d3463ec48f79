"""
app/schemas/user.py

Request/response models for the user endpoints.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Literal

from app.models.user import FeeStatus, UserLog
from utils.validation_utils import validate_phone_number, validate_email, sanitize_input


def _check_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not validate_phone_number(v):
        raise ValueError("Invalid phone number")
    return v


def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not validate_email(v):
        raise ValueError("Invalid email address")
    return v.strip().lower()


class RegisterUserRequest(BaseModel):
    """Request schema for registering a member on a seat."""

    name: str = Field(..., min_length=1, max_length=100, description="Full name")
    email: str = Field(..., description="Email address (unique)")
    phone: str = Field(..., description="Indian mobile number")
    address: str = Field(..., min_length=1, description="Postal address")
    seat_number: int = Field(..., ge=1, description="Seat number")
    slot: str = Field(..., min_length=1, description="Configured slot label")
    fee_status: Literal["due", "paid"] = Field(default="due", description="Initial fee status")

    id_type: Optional[str] = Field(default=None, description="Identity document type")
    id_number: Optional[str] = Field(default=None, description="Identity document number")
    id_upload: Optional[str] = Field(default=None, description="URL of the uploaded document")

    admin_id: Optional[str] = Field(default=None, description="Acting admin")

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)

    @field_validator("name", "address")
    @classmethod
    def clean_text(cls, v: str) -> str:
        cleaned = sanitize_input(v)
        if not cleaned:
            raise ValueError("Must not be empty")
        return cleaned

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Asha Verma",
                "email": "asha@example.com",
                "phone": "9876543210",
                "address": "12 MG Road, Indore",
                "seat_number": 5,
                "slot": "Morning",
                "id_type": "Aadhaar",
                "id_number": "1234 5678 9012"
            }
        }


class UpdateUserRequest(BaseModel):
    """Partial update; only the fields sent are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = Field(default=None, min_length=1)
    seat_number: Optional[int] = Field(default=None, ge=1)
    slot: Optional[str] = None
    fee_status: Optional[FeeStatus] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    id_upload: Optional[str] = None

    admin_id: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"admin_id"})


class MarkPaidRequest(BaseModel):
    admin_id: Optional[str] = Field(default=None, description="Acting admin")


class ChangeSeatRequest(BaseModel):
    """Move a member to another seat and/or slot."""

    seat_number: Optional[int] = Field(default=None, ge=1)
    slot: Optional[str] = None
    admin_id: Optional[str] = None


class UserLogOut(BaseModel):
    action: str
    timestamp: datetime
    admin_id: Optional[str] = None

    @classmethod
    def from_log(cls, log: UserLog) -> "UserLogOut":
        return cls(action=log.action, timestamp=log.timestamp, admin_id=log.admin_id)


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    address: str
    seat_number: Optional[int] = None
    slot: str
    fee_status: FeeStatus
    registration_date: datetime
    next_due_date: Optional[datetime] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    id_upload: Optional[str] = None
    logs: List[UserLogOut] = Field(default_factory=list)


class FeeSummaryOut(BaseModel):
    current_status: FeeStatus
    next_due_date: datetime
    days_until_due: int
    current_amount: int
    outstanding_amount: int
    description: str


class DeletedUserOut(BaseModel):
    audit_id: str
    user_id: str
    seat_number: Optional[int] = None
    deleted_at: datetime
    admin_id: Optional[str] = None
