"""
app/api/dashboard.py

Dashboard endpoints: counts, deleted-user audit trail and CSV export.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from typing import List, Optional

from app.schemas.seat import StatsOut, SlotOccupancyOut, AuditEntryOut
from app.services import projections
from app.services.store import SeatStore, get_store

router = APIRouter(tags=["Dashboard"])


@router.get("/stats", response_model=StatsOut)
async def get_stats(store: SeatStore = Depends(get_store)):
    stats = projections.get_stats(store.users, store.seats, store.library_settings.slots)
    return StatsOut(
        total_users=stats.total_users,
        paid_users=stats.paid_users,
        due_users=stats.due_users,
        expired_users=stats.expired_users,
        total_seats=stats.total_seats,
        available_seats=stats.available_seats,
        slots={slot: SlotOccupancyOut(**o.__dict__) for slot, o in stats.slots.items()},
    )


@router.get("/audit", response_model=List[AuditEntryOut])
async def get_audit(
    user_id: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    store: SeatStore = Depends(get_store)
):
    """Deleted users, most recent first."""
    records = [r for r in store.audit if user_id is None or r.user_id == user_id]
    records.sort(key=lambda r: r.deleted_at, reverse=True)
    return [
        AuditEntryOut(
            audit_id=r.id,
            user_id=r.user_id,
            name=r.user.name,
            email=r.user.email,
            seat_number=r.user.seat_number,
            slot=r.user.slot,
            fee_status=r.user.fee_status,
            action=r.entry.action,
            admin_id=r.admin_id,
            deleted_at=r.deleted_at,
        )
        for r in records[:limit]
    ]


@router.get("/export/csv")
async def export_csv(store: SeatStore = Depends(get_store)):
    return Response(
        content=projections.export_users_csv(store.users),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="users.csv"'},
    )
