"""
app/schemas/settings.py

Request/response models for the settings endpoints and notification tests.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Literal

from app.models.library_settings import TelegramBot, BotOptions
from utils.validation_utils import validate_email

PASSWORD_MASK = "********"


class UpdateSettingsRequest(BaseModel):
    """Partial settings update; only the fields sent are merged."""

    slot_pricing: Optional[Dict[str, int]] = None
    slot_timings: Optional[Dict[str, str]] = None

    email_provider: Optional[Literal["gmail", "outlook", "custom"]] = None
    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = Field(default=None, ge=1, le=65535)
    smtp_secure: Optional[bool] = None
    email_user: Optional[str] = None
    email_password: Optional[str] = None

    telegram_bot_token: Optional[str] = None
    telegram_chat_ids: Optional[List[str]] = None
    telegram_friendly_name: Optional[str] = None
    telegram_default_enabled: Optional[bool] = None
    telegram_send_silently: Optional[bool] = None
    telegram_protect_content: Optional[bool] = None
    telegram_thread_id: Optional[str] = None
    telegram_server_url: Optional[str] = None
    telegram_bots: Optional[List[TelegramBot]] = None

    welcome_email_template: Optional[str] = None
    due_date_email_template: Optional[str] = None
    payment_confirmation_email_template: Optional[str] = None

    @field_validator("slot_pricing")
    @classmethod
    def check_pricing(cls, v: Optional[Dict[str, int]]) -> Optional[Dict[str, int]]:
        if v is None:
            return v
        if not v:
            raise ValueError("At least one slot is required")
        if any(amount < 0 for amount in v.values()):
            raise ValueError("Slot prices cannot be negative")
        return v

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        # The masked value echoed back by the UI means "unchanged"
        if data.get("email_password") == PASSWORD_MASK:
            data.pop("email_password")
        return data


class TestEmailRequest(BaseModel):
    test_email: str = Field(..., description="Recipient of the test email")

    @field_validator("test_email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not validate_email(v):
            raise ValueError("Invalid email address")
        return v.strip()


class TestTelegramRequest(BaseModel):
    """Test a bot by token, or fall back to the configured bots when omitted."""

    bot_token: Optional[str] = None
    chat_id: Optional[str] = None
    options: BotOptions = Field(default_factory=BotOptions)


class NotificationTestOut(BaseModel):
    success: bool
    message: str
    sent: int = 0
    total: int = 0
    error: Optional[str] = None
