"""
app/api/notifications.py

Test hooks for the settings screen: send a test email or Telegram message
with the current configuration.
"""

from fastapi import APIRouter, Depends

from app.core.exceptions import ValidationError, UpstreamFailure
from app.core.logging import get_logger
from app.schemas.settings import TestEmailRequest, TestTelegramRequest, NotificationTestOut
from app.services.email_service import email_service
from app.services.telegram_service import telegram_service
from app.services.store import SeatStore, get_store
from utils.constants import TELEGRAM_BOT_TEST
from utils.time_utils import utcnow, format_timestamp

logger = get_logger(__name__)

router = APIRouter(prefix="/test", tags=["Notifications"])


@router.post("/email", response_model=NotificationTestOut)
async def test_email(request: TestEmailRequest, store: SeatStore = Depends(get_store)):
    library_settings = store.library_settings
    if not library_settings.has_email_config:
        raise ValidationError("Email service not configured. Please set email user and password first.")

    result = await email_service.send_test_email(library_settings, request.test_email)
    if not result["success"]:
        raise UpstreamFailure("Failed to send test email", details=result.get("error"))

    return NotificationTestOut(
        success=True,
        message=f"Test email sent to {request.test_email}",
        sent=1,
        total=1,
    )


@router.post("/telegram", response_model=NotificationTestOut)
async def test_telegram(request: TestTelegramRequest, store: SeatStore = Depends(get_store)):
    # A single bot from the form, before it is saved
    if request.bot_token and request.chat_id:
        result = await telegram_service.test_bot(request.bot_token, request.chat_id, request.options)
        if not result["success"]:
            raise UpstreamFailure("Failed to send Telegram test message", details=result.get("error"))
        return NotificationTestOut(success=True, message="Test message sent", sent=1, total=1)

    library_settings = store.library_settings
    if not library_settings.active_bots():
        raise ValidationError("No enabled Telegram bot with chat ids is configured")

    message = TELEGRAM_BOT_TEST.format(date=format_timestamp(utcnow()), silent="Per bot", protect="Per bot")
    result = await telegram_service.send_to_enabled_bots(library_settings, message, None)
    if result["sent"] == 0:
        raise UpstreamFailure("Failed to send Telegram test message", details=result.get("error"))

    return NotificationTestOut(
        success=result["success"],
        message=f"Test message sent to {result['sent']}/{result['total']} chat(s)",
        sent=result["sent"],
        total=result["total"],
        error=result.get("error"),
    )
