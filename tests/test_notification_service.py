import httpx

from app.models.library_settings import LibrarySettings, TelegramBot
from app.models.user import User
from app.services import notification_service
from app.services.telegram_service import telegram_service


def make_user():
    return User(name="Asha", email="asha@example.com", phone="9876543210",
                address="Indore", seat_number=5, slot="Morning")


async def test_nothing_configured_means_no_warnings():
    result = await notification_service.notify(
        notification_service.USER_REGISTERED, make_user(), LibrarySettings()
    )
    assert result.success
    assert result.delivered == []


async def test_telegram_failure_becomes_warning(monkeypatch):
    def handler(request):
        return httpx.Response(500, text="boom")

    monkeypatch.setattr(telegram_service, "_transport", httpx.MockTransport(handler))
    library_settings = LibrarySettings(
        telegram_bots=[TelegramBot(nickname="desk", bot_token="A", chat_ids=["1"])]
    )

    result = await notification_service.notify(notification_service.FEE_PAID, make_user(), library_settings)

    assert not result.success
    assert result.warnings[0].startswith("telegram:")


async def test_delivered_channels_are_reported(monkeypatch):
    def handler(request):
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    monkeypatch.setattr(telegram_service, "_transport", httpx.MockTransport(handler))
    library_settings = LibrarySettings(telegram_bot_token="T", telegram_chat_ids=["1"])

    result = await notification_service.notify(notification_service.USER_DELETED, make_user(), library_settings)

    assert result.delivered == ["telegram"]
    assert result.warnings == []
