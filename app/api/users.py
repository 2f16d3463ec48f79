"""
app/api/users.py

User endpoints
==============

Admin actions on members. Each mutation goes through the seat store, then
the matching notification is sent; delivery problems come back as warnings.
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.core.logging import get_logger
from app.models.user import User, FeeStatus
from app.schemas.response import MutationResponse
from app.schemas.user import (
    RegisterUserRequest,
    UpdateUserRequest,
    MarkPaidRequest,
    ChangeSeatRequest,
    UserOut,
    UserLogOut,
    FeeSummaryOut,
    DeletedUserOut,
)
from app.services import notification_service
from app.services.fee_service import get_fee_summary
from app.services.store import SeatStore, get_store

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def to_out(user: User) -> UserOut:
    return UserOut.model_validate(user.model_dump())


@router.get("", response_model=List[UserOut])
async def list_users(
    slot: Optional[str] = Query(default=None),
    fee_status: Optional[FeeStatus] = Query(default=None),
    store: SeatStore = Depends(get_store)
):
    users = store.users
    if slot is not None:
        users = [u for u in users if u.slot == slot]
    if fee_status is not None:
        users = [u for u in users if u.fee_status == fee_status]
    return [to_out(u) for u in users]


@router.post("", response_model=MutationResponse[UserOut], status_code=201)
async def register_user(request: RegisterUserRequest, store: SeatStore = Depends(get_store)):
    data = request.model_dump(exclude={"admin_id"})
    user = await store.register_user(data, admin_id=request.admin_id)

    result = await notification_service.notify(
        notification_service.USER_REGISTERED, user, store.library_settings
    )
    return MutationResponse[UserOut](data=to_out(user), warnings=result.warnings)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str, store: SeatStore = Depends(get_store)):
    return to_out(store.get_user(user_id))


@router.put("/{user_id}", response_model=MutationResponse[UserOut])
async def update_user(user_id: str, request: UpdateUserRequest, store: SeatStore = Depends(get_store)):
    before = store.get_user(user_id)
    user = await store.update_user(user_id, request.changes(), admin_id=request.admin_id)

    warnings: List[str] = []
    if user is not before:
        event = notification_service.USER_UPDATED
        if user.fee_status == FeeStatus.PAID and before.fee_status != FeeStatus.PAID:
            event = notification_service.FEE_PAID
        result = await notification_service.notify(event, user, store.library_settings)
        warnings = result.warnings

    return MutationResponse[UserOut](data=to_out(user), warnings=warnings)


@router.delete("/{user_id}", response_model=MutationResponse[DeletedUserOut])
async def delete_user(
    user_id: str,
    admin_id: Optional[str] = Query(default=None),
    store: SeatStore = Depends(get_store)
):
    record = await store.delete_user(user_id, admin_id=admin_id)

    result = await notification_service.notify(
        notification_service.USER_DELETED, record.user, store.library_settings
    )
    return MutationResponse[DeletedUserOut](
        data=DeletedUserOut(
            audit_id=record.id,
            user_id=record.user_id,
            seat_number=record.user.seat_number,
            deleted_at=record.deleted_at,
            admin_id=record.admin_id,
        ),
        warnings=result.warnings
    )


@router.post("/{user_id}/mark-paid", response_model=MutationResponse[UserOut])
async def mark_paid(
    user_id: str,
    request: Optional[MarkPaidRequest] = None,
    store: SeatStore = Depends(get_store)
):
    admin_id = request.admin_id if request else None
    user = await store.mark_paid(user_id, admin_id=admin_id)

    result = await notification_service.notify(
        notification_service.FEE_PAID, user, store.library_settings
    )
    return MutationResponse[UserOut](data=to_out(user), warnings=result.warnings)


@router.put("/{user_id}/seat", response_model=MutationResponse[UserOut])
async def change_seat(user_id: str, request: ChangeSeatRequest, store: SeatStore = Depends(get_store)):
    before = store.get_user(user_id)
    user = await store.change_slot_or_seat(
        user_id,
        new_slot=request.slot,
        new_seat_number=request.seat_number,
        admin_id=request.admin_id
    )

    warnings: List[str] = []
    if user is not before:
        result = await notification_service.notify(
            notification_service.USER_UPDATED, user, store.library_settings
        )
        warnings = result.warnings

    return MutationResponse[UserOut](data=to_out(user), warnings=warnings)


@router.get("/{user_id}/logs", response_model=List[UserLogOut])
async def get_user_logs(user_id: str, store: SeatStore = Depends(get_store)):
    """Newest first."""
    user = store.get_user(user_id)
    return [UserLogOut.from_log(log) for log in reversed(user.logs)]


@router.get("/{user_id}/fee-summary", response_model=FeeSummaryOut)
async def get_user_fee_summary(user_id: str, store: SeatStore = Depends(get_store)):
    user = store.get_user(user_id)
    summary = get_fee_summary(user, store.library_settings.slot_pricing)
    return FeeSummaryOut(**summary.__dict__)
