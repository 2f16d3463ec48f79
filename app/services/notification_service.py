"""
app/services/notification_service.py

Purpose: Post-commit notification fan-out

- Maps a domain event to the member email and the admin Telegram alert
- Runs after the store has committed; never rolls anything back
- Delivery failures come back as warnings for the API response
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, List, Optional, Tuple

from app.core.exceptions import UpstreamFailure
from app.core.logging import get_logger, LogContext
from app.models.library_settings import LibrarySettings
from app.models.user import User
from app.services import telegram_service as telegram
from app.services.email_service import email_service
from app.services.fee_service import effective_due_date, calculate_days_until_due
from app.services.telegram_service import telegram_service

logger = get_logger(__name__)

USER_REGISTERED = "user_registered"
FEE_PAID = "fee_paid"
FEE_DUE = "fee_due"
FEE_OVERDUE = "fee_overdue"
USER_UPDATED = "user_updated"
USER_DELETED = "user_deleted"

EVENT_TYPES = (USER_REGISTERED, FEE_PAID, FEE_DUE, FEE_OVERDUE, USER_UPDATED, USER_DELETED)


@dataclass
class NotificationResult:
    event_type: str
    delivered: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings


def _check(channel: str, result: dict) -> bool:
    """True if delivered, False if the channel is not configured."""
    if result.get("skipped"):
        return False
    if not result.get("success"):
        raise UpstreamFailure(f"{channel} delivery failed", details=result.get("error"))
    return True


def _deliveries(event_type: str, user: User, library_settings: LibrarySettings,
                now: Optional[datetime]) -> List[Tuple[str, Awaitable[dict]]]:
    due_date = effective_due_date(user)
    days_left = calculate_days_until_due(due_date, now)
    amount = library_settings.slot_pricing.get(user.slot, 0)

    if event_type == USER_REGISTERED:
        return [
            ("email", email_service.send_welcome_email(library_settings, user)),
            ("telegram", telegram_service.send_to_enabled_bots(
                library_settings, telegram.build_new_user_message(user), "new_user")),
        ]
    if event_type == FEE_PAID:
        return [
            ("email", email_service.send_payment_confirmation(library_settings, user, amount)),
            ("telegram", telegram_service.send_to_enabled_bots(
                library_settings, telegram.build_fee_paid_message(user, amount), "fee_paid")),
        ]
    if event_type == FEE_DUE:
        return [
            ("email", email_service.send_due_date_reminder(library_settings, user, due_date)),
            ("telegram", telegram_service.send_to_enabled_bots(
                library_settings, telegram.build_fee_due_message(user, due_date, days_left), "fee_due")),
        ]
    if event_type == FEE_OVERDUE:
        return [
            ("telegram", telegram_service.send_to_enabled_bots(
                library_settings, telegram.build_fee_overdue_message(user, due_date, abs(days_left)),
                "fee_overdue")),
        ]
    # Admin alerts ride on the new_user subscription
    if event_type == USER_UPDATED:
        return [
            ("telegram", telegram_service.send_to_enabled_bots(
                library_settings, telegram.build_user_updated_message(user), "new_user")),
        ]
    if event_type == USER_DELETED:
        return [
            ("telegram", telegram_service.send_to_enabled_bots(
                library_settings, telegram.build_user_deleted_message(user), "new_user")),
        ]
    raise ValueError(f"Unknown notification event: {event_type}")


async def notify(
    event_type: str,
    user: User,
    library_settings: LibrarySettings,
    now: Optional[datetime] = None
) -> NotificationResult:
    """
    Sends every message belonging to `event_type`.

    Each channel is attempted independently; a failure is logged and
    reported in `warnings`.
    """
    result = NotificationResult(event_type=event_type)

    with LogContext(user_id=user.id, event_type=event_type):
        for channel, pending in _deliveries(event_type, user, library_settings, now):
            try:
                if _check(channel, await pending):
                    result.delivered.append(channel)
            except UpstreamFailure as e:
                logger.warning(f"{e.message}: {e.details}")
                result.warnings.append(f"{channel}: {e.details or e.message}")
            except Exception as e:
                logger.warning(f"{channel} notification raised: {e}", exc_info=True)
                result.warnings.append(f"{channel}: {e}")

    return result
