import json

import httpx

from app.models.library_settings import LibrarySettings, TelegramBot, BotNotifications, BotOptions
from app.models.user import User
from app.services.telegram_service import (
    TelegramService,
    build_fee_due_message,
    build_new_user_message,
)


def recording_transport(status_code=200):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if status_code != 200:
            return httpx.Response(status_code, json={"ok": False, "description": "Bad Request: chat not found"})
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 42}})

    return httpx.MockTransport(handler), requests


def make_user():
    return User(
        name="Asha",
        email="asha@example.com",
        phone="9876543210",
        address="Indore",
        seat_number=5,
        slot="Morning",
    )


async def test_send_message_payload():
    transport, requests = recording_transport()
    service = TelegramService(transport=transport)

    result = await service.send_message(
        "TOKEN", "<b>hi</b>", "1001",
        BotOptions(send_silently=True, thread_id="7", server_url="https://tg.example.com/")
    )

    assert result == {"success": True, "message_id": 42}
    assert str(requests[0].url) == "https://tg.example.com/botTOKEN/sendMessage"
    payload = json.loads(requests[0].content)
    assert payload["chat_id"] == "1001"
    assert payload["parse_mode"] == "HTML"
    assert payload["disable_notification"] is True
    assert payload["protect_content"] is False
    assert payload["message_thread_id"] == "7"


async def test_send_message_api_error():
    transport, _ = recording_transport(status_code=400)
    service = TelegramService(transport=transport)

    result = await service.send_message("TOKEN", "hi", "1001")

    assert result["success"] is False
    assert "400" in result["error"]


async def test_fan_out_respects_subscriptions():
    transport, requests = recording_transport()
    service = TelegramService(transport=transport)
    library_settings = LibrarySettings(
        telegram_bots=[
            TelegramBot(nickname="desk", bot_token="A", chat_ids=["1", "2"]),
            TelegramBot(nickname="owner", bot_token="B", chat_ids=["3"],
                        notifications=BotNotifications(fee_due=False)),
            TelegramBot(nickname="off", bot_token="C", chat_ids=["4"], enabled=False),
        ]
    )

    result = await service.send_to_enabled_bots(library_settings, "reminder", "fee_due")

    assert result["success"] is True
    assert result["sent"] == 2
    assert {json.loads(r.content)["chat_id"] for r in requests} == {"1", "2"}


async def test_legacy_bot_is_included():
    transport, requests = recording_transport()
    service = TelegramService(transport=transport)
    library_settings = LibrarySettings(telegram_bot_token="LEGACY", telegram_chat_ids=["9"])

    result = await service.send_to_enabled_bots(library_settings, "hello", "new_user")

    assert result["sent"] == 1
    assert "/botLEGACY/" in str(requests[0].url)


async def test_no_bots_is_skipped():
    service = TelegramService(transport=recording_transport()[0])
    result = await service.send_to_enabled_bots(LibrarySettings(), "hello", "new_user")
    assert result["skipped"] is True


def test_message_builders():
    user = make_user()
    assert "NEW USER REGISTRATION" in build_new_user_message(user)
    assert "#5" in build_new_user_message(user)

    urgent = build_fee_due_message(user, user.registration_date, 1)
    assert urgent.startswith("🚨")
    assert "1 day" in urgent
    assert build_fee_due_message(user, user.registration_date, 3).startswith("⚠️")


def test_message_builders_escape_html():
    user = make_user().model_copy(update={"name": "Asha & <Ravi>"})

    message = build_new_user_message(user)

    assert "Asha &amp; &lt;Ravi&gt;" in message
    assert "<Ravi>" not in message
