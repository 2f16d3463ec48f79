import aiosmtplib
import pytest

from app.models.library_settings import LibrarySettings
from app.models.user import User
from app.services.email_service import (
    EmailService,
    render_template,
    resolve_smtp_config,
)


@pytest.fixture
def sent(monkeypatch):
    messages = []

    async def fake_send(message, **kwargs):
        messages.append((message, kwargs))

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    return messages


def configured(**overrides):
    data = {"email_user": "desk@gmail.com", "email_password": "app-password"}
    data.update(overrides)
    return LibrarySettings(**data)


def test_render_template():
    text = render_template("Hi {{name}}, seat {{seatNumber}} {{unknown}}", {"name": "Asha", "seatNumber": 5})
    assert text == "Hi Asha, seat 5 {{unknown}}"


def test_smtp_presets_and_custom():
    gmail = resolve_smtp_config(configured())
    assert (gmail.host, gmail.port, gmail.secure) == ("smtp.gmail.com", 587, False)

    custom = resolve_smtp_config(configured(
        email_provider="custom", smtp_host="mail.example.com", smtp_port=465, smtp_secure=True
    ))
    assert (custom.host, custom.port, custom.secure) == ("mail.example.com", 465, True)

    assert resolve_smtp_config(configured(email_provider="custom")) is None
    assert resolve_smtp_config(LibrarySettings()) is None


async def test_welcome_email_uses_template(sent):
    user = User(name="Asha", email="asha@example.com", phone="9876543210",
                address="Indore", seat_number=5, slot="Morning")
    library_settings = configured(welcome_email_template="Welcome {{name}} to seat {{seatNumber}} ({{slot}})")

    result = await EmailService().send_welcome_email(library_settings, user)

    assert result == {"success": True}
    message, kwargs = sent[0]
    assert message["To"] == "asha@example.com"
    assert message.get_payload(decode=True).decode() == "Welcome Asha to seat 5 (Morning)"
    assert kwargs["hostname"] == "smtp.gmail.com"
    assert kwargs["start_tls"] is True


async def test_unconfigured_email_is_skipped(sent):
    result = await EmailService().send_test_email(LibrarySettings(), "x@example.com")
    assert result["skipped"] is True
    assert sent == []


async def test_smtp_failure_is_reported(monkeypatch):
    async def failing_send(message, **kwargs):
        raise aiosmtplib.SMTPException("auth failed")

    monkeypatch.setattr(aiosmtplib, "send", failing_send)

    result = await EmailService().send_test_email(configured(), "x@example.com")

    assert result["success"] is False
    assert "auth failed" in result["error"]
