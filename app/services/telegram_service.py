"""
app/services/telegram_service.py

Purpose: Telegram Bot API notifications

- Sends HTML messages through every enabled bot subscribed to an event
- Supports the multi-bot list and the legacy single-bot settings
- Builds the admin alert messages (new user, fee due/paid/overdue, deleted, updated)
- Bot test message for the settings screen
"""

import httpx
from html import escape
from datetime import datetime
from typing import Dict, Any, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.models.library_settings import LibrarySettings, BotOptions
from app.models.user import User
from utils.constants import (
    TELEGRAM_NEW_USER,
    TELEGRAM_FEE_DUE,
    TELEGRAM_FEE_PAID,
    TELEGRAM_FEE_OVERDUE,
    TELEGRAM_USER_DELETED,
    TELEGRAM_USER_UPDATED,
    TELEGRAM_BOT_TEST,
)
from utils.time_utils import utcnow, format_date, format_timestamp

logger = get_logger(__name__)


class TelegramService:
    """Service for sending admin alerts via Telegram bots"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.default_server_url = settings.TELEGRAM_API_URL
        self.timeout = settings.TELEGRAM_TIMEOUT_SECONDS
        self._transport = transport

    async def send_message(
        self,
        bot_token: str,
        message: str,
        chat_id: str,
        options: Optional[BotOptions] = None
    ) -> Dict[str, Any]:
        """
        Sends one message to one chat

        Args:
            bot_token: Bot API token
            message: HTML message text
            chat_id: Target chat
            options: Silent / protected / thread / custom server

        Returns:
            {
                "success": True/False,
                "message_id": 123,
                "error": "Optional error message"
            }
        """
        options = options or BotOptions()
        server_url = (options.server_url or self.default_server_url).rstrip("/")
        url = f"{server_url}/bot{bot_token}/sendMessage"

        payload = {
            "chat_id": chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_notification": options.send_silently,
            "protect_content": options.protect_content,
        }
        if options.thread_id:
            payload["message_thread_id"] = options.thread_id

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(url, json=payload)

            if response.status_code == 200:
                result = response.json()
                message_id = (result.get("result") or {}).get("message_id")
                logger.info(f"✅ Telegram message sent to chat {chat_id}, message ID: {message_id}")
                return {"success": True, "message_id": message_id}

            logger.error(f"❌ Telegram API error for chat {chat_id}: {response.status_code} - {response.text}")
            return {
                "success": False,
                "error": f"Telegram API error: {response.status_code}"
            }

        except httpx.TimeoutException:
            logger.error(f"Telegram API timeout for chat {chat_id}")
            return {"success": False, "error": "Telegram API timeout"}
        except httpx.HTTPError as e:
            logger.error(f"Error sending Telegram message to chat {chat_id}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def send_to_enabled_bots(
        self,
        library_settings: LibrarySettings,
        message: str,
        notification_type: Optional[str]
    ) -> Dict[str, Any]:
        """
        Fans a message out to every enabled bot subscribed to `notification_type`
        (every enabled bot when it is None).

        Returns:
            {"success": all sent, "sent": n, "total": n, "error": first error}
        """
        bots = library_settings.active_bots(notification_type)
        if not bots:
            logger.debug(f"No enabled Telegram bots for {notification_type}")
            return {"success": True, "sent": 0, "total": 0, "skipped": True}

        sent = 0
        total = 0
        first_error = None

        for bot in bots:
            logger.info(f"📤 Sending {notification_type} via bot \"{bot.nickname}\" to {len(bot.chat_ids)} chat(s)")
            for chat_id in bot.chat_ids:
                total += 1
                result = await self.send_message(bot.bot_token, message, chat_id, bot.options)
                if result["success"]:
                    sent += 1
                elif first_error is None:
                    first_error = f"{bot.nickname}/{chat_id}: {result.get('error')}"

        logger.info(f"📊 Telegram {notification_type}: {sent}/{total} messages sent")
        return {
            "success": sent == total,
            "sent": sent,
            "total": total,
            "error": first_error,
        }

    async def test_bot(self, bot_token: str, chat_id: str, options: Optional[BotOptions] = None) -> Dict[str, Any]:
        options = options or BotOptions()
        message = TELEGRAM_BOT_TEST.format(
            date=format_timestamp(utcnow()),
            silent="Enabled" if options.send_silently else "Disabled",
            protect="Enabled" if options.protect_content else "Disabled",
        )
        return await self.send_message(bot_token, message, chat_id, options)


# ============================================================
# MESSAGE BUILDERS
# ============================================================

def build_new_user_message(user: User) -> str:
    return TELEGRAM_NEW_USER.format(
        name=escape(user.name),
        email=escape(user.email),
        phone=escape(user.phone),
        seat_number=user.seat_number,
        slot=escape(user.slot),
        date=format_timestamp(user.registration_date),
        fee_status=user.fee_status.value.upper(),
    )


def build_fee_due_message(user: User, due_date: datetime, days_left: int) -> str:
    return TELEGRAM_FEE_DUE.format(
        urgency="🚨" if days_left <= 1 else "⚠️",
        name=escape(user.name),
        seat_number=user.seat_number,
        slot=escape(user.slot),
        due_date=format_date(due_date),
        days_left=f"{days_left} {'day' if days_left == 1 else 'days'}",
    )


def build_fee_paid_message(user: User, amount: int) -> str:
    return TELEGRAM_FEE_PAID.format(
        name=escape(user.name),
        seat_number=user.seat_number,
        slot=escape(user.slot),
        amount=amount,
        due_date=format_date(user.next_due_date),
    )


def build_fee_overdue_message(user: User, due_date: datetime, days_overdue: int) -> str:
    return TELEGRAM_FEE_OVERDUE.format(
        name=escape(user.name),
        seat_number=user.seat_number,
        slot=escape(user.slot),
        due_date=format_date(due_date),
        days_overdue=days_overdue,
    )


def build_user_deleted_message(user: User) -> str:
    return TELEGRAM_USER_DELETED.format(
        name=escape(user.name),
        email=escape(user.email),
        seat_number=user.seat_number,
        slot=escape(user.slot),
        date=format_timestamp(utcnow()),
    )


def build_user_updated_message(user: User) -> str:
    return TELEGRAM_USER_UPDATED.format(
        name=escape(user.name),
        email=escape(user.email),
        seat_number=user.seat_number,
        slot=escape(user.slot),
        action=escape(user.last_log.action) if user.last_log else "User information modified",
    )


# Singleton instance
telegram_service = TelegramService()
