"""
app/services/fee_service.py

Purpose: Fee cycle calculations

- Next due date, anchored on the member's registration day
- Date-derived fee status (paid / due / expired)
- Pro-rated and outstanding amounts
- Fee summary for the dashboard
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from app.core.config import settings
from app.models.user import User, FeeStatus
from utils.time_utils import utcnow, add_days, days_between


@dataclass
class FeeCalculation:
    next_due_date: datetime
    days_valid_for: int
    amount: int
    cycle: str  # "monthly" | "partial"
    description: str


@dataclass
class FeeSummary:
    current_status: FeeStatus
    next_due_date: datetime
    days_until_due: int
    current_amount: int
    outstanding_amount: int
    description: str


def calculate_next_due_date(
    payment_date: datetime,
    registration_date: datetime,
    slot_pricing: Dict[str, int],
    slot: str,
    cycle_days: Optional[int] = None
) -> FeeCalculation:
    """
    Calculates the next due date for a payment.

    Cycles are anchored on the registration day: paying on a cycle boundary
    buys a full cycle, paying mid-cycle only covers the rest of that cycle.

    Example (30-day cycle, registered on day 1):
        paid on day 1  -> valid 30 days
        paid on day 39 -> valid 21 days (cycle ends on day 60)
    """
    cycle_days = cycle_days or settings.FEE_CYCLE_DAYS
    days_since_start = days_between(registration_date, payment_date)
    into_cycle = days_since_start % cycle_days

    if into_cycle == 0:
        days_valid_for = cycle_days
        cycle = "monthly"
        description = "Full monthly cycle"
    else:
        days_valid_for = cycle_days - into_cycle
        cycle = "partial"
        description = f"Partial cycle - {days_valid_for} days to complete current cycle"

    return FeeCalculation(
        next_due_date=add_days(payment_date, days_valid_for),
        days_valid_for=days_valid_for,
        amount=slot_pricing.get(slot, 0),
        cycle=cycle,
        description=description
    )


def calculate_pro_rated_amount(full_amount: int, days_valid_for: int, cycle_days: Optional[int] = None) -> int:
    cycle_days = cycle_days or settings.FEE_CYCLE_DAYS
    return round(full_amount * days_valid_for / cycle_days)


# Worse status wins when the calendar and the stored status disagree
STATUS_SEVERITY = {FeeStatus.PAID: 0, FeeStatus.DUE: 1, FeeStatus.EXPIRED: 2}


def determine_fee_status(next_due_date: datetime, now: Optional[datetime] = None) -> FeeStatus:
    """
    Fee status implied by the calendar alone.

    Before the due day -> paid, on the due day -> due, after it -> expired.
    """
    remaining = days_between(now or utcnow(), next_due_date)
    if remaining > 0:
        return FeeStatus.PAID
    if remaining == 0:
        return FeeStatus.DUE
    return FeeStatus.EXPIRED


def calculate_days_until_due(next_due_date: datetime, now: Optional[datetime] = None) -> int:
    return days_between(now or utcnow(), next_due_date)


def calculate_outstanding_amount(status: FeeStatus, amount: int) -> int:
    return 0 if status == FeeStatus.PAID else amount


def effective_due_date(user: User, cycle_days: Optional[int] = None) -> datetime:
    """
    A member who has never paid falls due one cycle after registering.
    """
    if user.next_due_date:
        return user.next_due_date
    return add_days(user.registration_date, cycle_days or settings.FEE_CYCLE_DAYS)


def get_fee_summary(user: User, slot_pricing: Dict[str, int], now: Optional[datetime] = None) -> FeeSummary:
    """
    Fee position for the user page.

    The calendar can make the status worse than the stored one (a sweep
    that has not run yet) but never better.
    """
    now = now or utcnow()
    next_due_date = effective_due_date(user)
    calendar_status = determine_fee_status(next_due_date, now)
    current_status = max(calendar_status, user.fee_status, key=STATUS_SEVERITY.get)
    days_until_due = calculate_days_until_due(next_due_date, now)
    current_amount = slot_pricing.get(user.slot, 0)

    if current_status == FeeStatus.PAID:
        description = f"Payment up to date. Next due in {days_until_due} days."
    elif current_status == FeeStatus.DUE:
        description = "Payment due today." if days_until_due <= 0 else "Payment due."
    elif days_until_due < 0:
        description = f"Payment overdue by {abs(days_until_due)} days."
    else:
        description = "Payment overdue."

    return FeeSummary(
        current_status=current_status,
        next_due_date=next_due_date,
        days_until_due=days_until_due,
        current_amount=current_amount,
        outstanding_amount=calculate_outstanding_amount(current_status, current_amount),
        description=description
    )
