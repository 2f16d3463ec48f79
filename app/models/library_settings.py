"""
app/models/library_settings.py

Purpose: Library settings document

- Slot pricing and timing tables (the slot labels live here)
- Email provider / SMTP credentials and message templates
- Telegram bots with per-notification-type subscriptions
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal

from utils.constants import (
    DEFAULT_SLOT_PRICING,
    DEFAULT_SLOT_TIMINGS,
    DEFAULT_WELCOME_EMAIL_TEMPLATE,
    DEFAULT_DUE_DATE_EMAIL_TEMPLATE,
    DEFAULT_PAYMENT_CONFIRMATION_EMAIL_TEMPLATE,
    DEFAULT_TELEGRAM_BOT_NAME,
)


class BotNotifications(BaseModel):
    """Which event types a bot is subscribed to."""
    new_user: bool = True
    fee_due: bool = True
    fee_overdue: bool = True
    fee_paid: bool = True


class BotOptions(BaseModel):
    send_silently: bool = False
    protect_content: bool = False
    thread_id: Optional[str] = None
    server_url: Optional[str] = None


class TelegramBot(BaseModel):
    nickname: str
    bot_token: str
    chat_ids: List[str] = Field(default_factory=list)
    enabled: bool = True
    notifications: BotNotifications = Field(default_factory=BotNotifications)
    options: BotOptions = Field(default_factory=BotOptions)

    def subscribed_to(self, notification_type: str) -> bool:
        return bool(getattr(self.notifications, notification_type, False))


class LibrarySettings(BaseModel):
    """
    The single settings document. Mutated as a whole; never versioned.
    """
    slot_pricing: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_SLOT_PRICING))
    slot_timings: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_SLOT_TIMINGS))

    # Email
    email_provider: Literal["gmail", "outlook", "custom"] = "gmail"
    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_secure: Optional[bool] = None
    email_user: Optional[str] = None
    email_password: Optional[str] = None

    # Telegram (legacy single-bot fields)
    telegram_bot_token: Optional[str] = None
    telegram_chat_ids: List[str] = Field(default_factory=list)
    telegram_friendly_name: Optional[str] = None
    telegram_default_enabled: bool = True
    telegram_send_silently: bool = False
    telegram_protect_content: bool = False
    telegram_thread_id: Optional[str] = None
    telegram_server_url: Optional[str] = None

    # Telegram (multi-bot)
    telegram_bots: List[TelegramBot] = Field(default_factory=list)

    # Templates
    welcome_email_template: str = DEFAULT_WELCOME_EMAIL_TEMPLATE
    due_date_email_template: str = DEFAULT_DUE_DATE_EMAIL_TEMPLATE
    payment_confirmation_email_template: str = DEFAULT_PAYMENT_CONFIRMATION_EMAIL_TEMPLATE

    @property
    def slots(self) -> List[str]:
        """Configured slot labels, in table order."""
        return list(self.slot_pricing.keys())

    @property
    def has_email_config(self) -> bool:
        return bool(self.email_user and self.email_password)

    def legacy_bot(self) -> Optional[TelegramBot]:
        """
        The pre-multi-bot configuration expressed as a TelegramBot, if set.
        Subscribed to every notification type.
        """
        if not self.telegram_bot_token or not self.telegram_chat_ids:
            return None
        return TelegramBot(
            nickname=self.telegram_friendly_name or DEFAULT_TELEGRAM_BOT_NAME,
            bot_token=self.telegram_bot_token,
            chat_ids=list(self.telegram_chat_ids),
            enabled=self.telegram_default_enabled,
            options=BotOptions(
                send_silently=self.telegram_send_silently,
                protect_content=self.telegram_protect_content,
                thread_id=self.telegram_thread_id,
                server_url=self.telegram_server_url,
            ),
        )

    def active_bots(self, notification_type: Optional[str] = None) -> List[TelegramBot]:
        """
        Enabled bots with at least one chat id, optionally filtered to those
        subscribed to `notification_type`.
        """
        bots = list(self.telegram_bots)
        legacy = self.legacy_bot()
        if legacy:
            bots.append(legacy)

        return [
            bot for bot in bots
            if bot.enabled
            and bot.chat_ids
            and (notification_type is None or bot.subscribed_to(notification_type))
        ]

    def to_document(self) -> dict:
        return self.model_dump(mode="python")

    @classmethod
    def from_document(cls, doc: dict) -> "LibrarySettings":
        return cls(**{k: v for k, v in doc.items() if k != "_id"})
