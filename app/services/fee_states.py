"""
app/services/fee_states.py

Purpose: Fee status state machine

- Allowed fee status transitions per actor (admin vs. due-date scheduler)
- Single source of truth for which changes are legal
- Metadata for each status (display name, grid colour)
"""

from typing import Dict, List, Optional
from dataclasses import dataclass

from app.models.user import FeeStatus
from utils.constants import SYSTEM_ACTOR


@dataclass
class FeeStatusMetadata:
    """
    Presentation details for one fee status.
    """
    name: FeeStatus
    display_name: str
    grid_color: str
    description: str = ""


FEE_STATUS_METADATA: Dict[FeeStatus, FeeStatusMetadata] = {
    FeeStatus.PAID: FeeStatusMetadata(
        name=FeeStatus.PAID,
        display_name="Paid",
        grid_color="green",
        description="Fee received for the current cycle"
    ),
    FeeStatus.DUE: FeeStatusMetadata(
        name=FeeStatus.DUE,
        display_name="Due",
        grid_color="yellow",
        description="Fee expected; new registrations start here"
    ),
    FeeStatus.EXPIRED: FeeStatusMetadata(
        name=FeeStatus.EXPIRED,
        display_name="Expired",
        grid_color="red",
        description="Due date passed without payment"
    ),
}


# Transitions an admin may apply by hand
ADMIN_TRANSITIONS: Dict[FeeStatus, List[FeeStatus]] = {
    FeeStatus.DUE: [
        FeeStatus.PAID,
    ],
    FeeStatus.EXPIRED: [
        FeeStatus.PAID,  # Reinstatement
    ],
    FeeStatus.PAID: [
        FeeStatus.PAID,  # Repeated mark-paid
    ],
}

# Transitions the due-date scheduler may push
SYSTEM_TRANSITIONS: Dict[FeeStatus, List[FeeStatus]] = {
    FeeStatus.PAID: [
        FeeStatus.DUE,
        FeeStatus.EXPIRED,  # Sweep missed the due day
    ],
    FeeStatus.DUE: [
        FeeStatus.EXPIRED,
    ],
    FeeStatus.EXPIRED: [],
}


def is_valid_transition(
    from_status: FeeStatus,
    to_status: FeeStatus,
    actor: Optional[str] = None
) -> bool:
    """
    Checks if a fee status transition is valid for the acting party.

    Args:
        from_status: Current status
        to_status: Target status
        actor: Admin id, or SYSTEM_ACTOR for the scheduler

    Returns:
        True if transition is allowed, False otherwise
    """
    table = SYSTEM_TRANSITIONS if actor == SYSTEM_ACTOR else ADMIN_TRANSITIONS
    return to_status in table.get(from_status, [])


def get_status_metadata(status: FeeStatus) -> FeeStatusMetadata:
    return FEE_STATUS_METADATA[status]
