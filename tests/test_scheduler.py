from datetime import timedelta

from app.models.user import FeeStatus
from app.services import notification_service
from app.services.scheduler import DueDateScheduler
from tests.conftest import user_data
from utils.constants import SYSTEM_ACTOR
from utils.time_utils import utcnow


async def test_unpaid_member_expires_after_first_cycle(store):
    now = utcnow()
    user = await store.register_user(user_data(registration_date=now - timedelta(days=40)))

    report = await DueDateScheduler(store).run_once(now)

    expired = store.get_user(user.id)
    assert expired.fee_status == FeeStatus.EXPIRED
    assert expired.last_log.action == "Fee status changed from due to expired"
    assert expired.last_log.admin_id == SYSTEM_ACTOR
    assert report.transitions == 1
    assert report.overdue_alerts == 1


async def test_paid_member_walks_through_reminder_due_and_expiry(store):
    now = utcnow()
    user = await store.register_user(user_data(registration_date=now - timedelta(days=5)))
    paid = await store.mark_paid(user.id)
    assert paid.next_due_date.date() == (now + timedelta(days=25)).date()

    scheduler = DueDateScheduler(store)

    report = await scheduler.run_once(paid.next_due_date - timedelta(days=3))
    assert report.reminders == 1
    assert store.get_user(user.id).fee_status == FeeStatus.PAID

    report = await scheduler.run_once(paid.next_due_date)
    assert store.get_user(user.id).fee_status == FeeStatus.DUE
    assert report.transitions == 1
    assert report.reminders == 1

    report = await scheduler.run_once(paid.next_due_date + timedelta(days=1))
    assert store.get_user(user.id).fee_status == FeeStatus.EXPIRED
    assert report.overdue_alerts == 1


async def test_sweep_never_reinstates(store):
    user = await store.register_user(user_data())
    await store.set_fee_status(user.id, FeeStatus.EXPIRED, admin_id=SYSTEM_ACTOR)

    report = await DueDateScheduler(store).run_once(utcnow())

    assert store.get_user(user.id).fee_status == FeeStatus.EXPIRED
    assert report.transitions == 0


async def test_status_before_and_after_run(store):
    scheduler = DueDateScheduler(store, interval_hours=24)
    assert scheduler.get_status()["last_check_time"] is None

    await scheduler.run_once()

    status = scheduler.get_status()
    assert status["is_running"] is False
    assert status["next_check_time"] - status["last_check_time"] == timedelta(hours=24)


async def test_payment_during_sweep_is_not_expired(store, monkeypatch):
    now = utcnow()
    registered = now - timedelta(days=40)
    first = await store.register_user(user_data(registration_date=registered))
    second = await store.register_user(
        user_data(email="ravi@example.com", seat_number=6, registration_date=registered))
    paid_ids = []

    async def notify_and_pay(event_type, user, library_settings, now=None):
        # An admin takes the other member's fee while the alert is out
        if not paid_ids:
            other = second.id if user.id == first.id else first.id
            await store.mark_paid(other, admin_id="admin-1")
            paid_ids.append(other)
        return notification_service.NotificationResult(event_type=event_type)

    monkeypatch.setattr(notification_service, "notify", notify_and_pay)

    report = await DueDateScheduler(store).run_once(now)

    paid = store.get_user(paid_ids[0])
    assert paid.fee_status == FeeStatus.PAID
    assert paid.last_log.action == "Fee marked as paid"
    assert report.transitions == 1
    assert report.overdue_alerts == 1


async def test_member_deleted_during_sweep_is_skipped(store, monkeypatch):
    now = utcnow()
    registered = now - timedelta(days=40)
    first = await store.register_user(user_data(registration_date=registered))
    second = await store.register_user(
        user_data(email="ravi@example.com", seat_number=6, registration_date=registered))

    async def notify_and_delete(event_type, user, library_settings, now=None):
        other = second.id if user.id == first.id else first.id
        if other in [u.id for u in store.users]:
            await store.delete_user(other, admin_id="admin-1")
        return notification_service.NotificationResult(event_type=event_type)

    monkeypatch.setattr(notification_service, "notify", notify_and_delete)

    report = await DueDateScheduler(store).run_once(now)

    assert report.checked == 1
    assert report.errors == []
    assert len(store.users) == 1
