import asyncio
from datetime import timedelta

import pytest

from app.core.exceptions import (
    SeatConflict,
    ValidationError,
    NotFoundError,
    InvalidFeeTransition,
    PersistenceError,
)
from app.db.repository import MemoryRepository
from app.models.seat import SeatStatus
from app.models.user import FeeStatus
from app.services import projections
from app.services.consistency import check_invariants
from app.services.store import SeatStore
from tests.conftest import user_data
from utils.constants import SYSTEM_ACTOR
from utils.time_utils import utcnow


def assert_consistent(store):
    assert check_invariants(store.users, store.seats) == []


async def test_load_seeds_seats_and_settings(store, repository):
    assert [s.number for s in store.seats] == list(range(1, 21))
    assert all(s.status == SeatStatus.AVAILABLE for s in store.seats)
    assert repository.settings is not None
    assert "Morning" in store.library_settings.slots


async def test_load_keeps_existing_data(repository):
    first = SeatStore(repository, total_seats=20)
    await first.load()
    user = await first.register_user(user_data())

    second = SeatStore(repository, total_seats=20)
    await second.load()

    assert second.get_user(user.id).email == "asha@example.com"
    assert second.get_seat(5).user_id == user.id
    assert len(second.seats) == 20


async def test_register_user_defaults(store):
    user = await store.register_user(user_data(email="Asha@Example.com "), admin_id="admin-1")

    assert user.fee_status == FeeStatus.DUE
    assert user.email == "asha@example.com"
    assert [log.action for log in user.logs] == ["User registered"]
    assert user.logs[0].admin_id == "admin-1"

    seat = store.get_seat(5)
    assert seat.status == SeatStatus.DUE
    assert seat.user_id == user.id
    assert_consistent(store)


async def test_register_marks_seat_taken_only_in_its_slot(store):
    await store.register_user(user_data())

    availability = projections.seat_availability(store.get_seat(5), store.users, store.library_settings.slots)
    assert availability["Morning"] is False
    assert all(free for slot, free in availability.items() if slot != "Morning")


async def test_register_conflict_in_same_slot(store):
    holder = await store.register_user(user_data())

    with pytest.raises(SeatConflict) as exc:
        await store.register_user(user_data(email="other@example.com"))

    assert exc.value.occupant_id == holder.id
    assert len(store.users) == 1
    assert_consistent(store)


async def test_register_same_seat_other_slot(store):
    await store.register_user(user_data(slot="Evening"))
    user = await store.register_user(user_data(email="other@example.com", slot="Morning"))

    assert user.seat_number == 5
    assert len(store.users) == 2
    assert_consistent(store)


@pytest.mark.parametrize("overrides", [
    {"slot": "Midnight"},
    {"seat_number": 21},
    {"seat_number": None},
    {"fee_status": "expired"},
])
async def test_register_rejects_invalid_input(store, overrides):
    with pytest.raises(ValidationError):
        await store.register_user(user_data(**overrides))
    assert store.users == []


async def test_register_rejects_duplicate_email(store):
    await store.register_user(user_data())
    with pytest.raises(ValidationError):
        await store.register_user(user_data(email="ASHA@example.com", seat_number=6))


async def test_register_as_paid_sets_due_date(store):
    user = await store.register_user(user_data(fee_status="paid"))

    assert user.fee_status == FeeStatus.PAID
    assert user.next_due_date is not None
    assert store.get_seat(5).status == SeatStatus.PAID


async def test_mark_paid_twice_equals_once_plus_log(store):
    user = await store.register_user(user_data())

    once = await store.mark_paid(user.id, admin_id="admin-1")
    twice = await store.mark_paid(user.id, admin_id="admin-1")

    assert once.fee_status == twice.fee_status == FeeStatus.PAID
    assert once.next_due_date == twice.next_due_date
    assert len(twice.logs) == len(once.logs) + 1
    assert store.get_seat(5).status == SeatStatus.PAID
    assert_consistent(store)


async def test_mark_paid_unknown_user(store):
    with pytest.raises(NotFoundError):
        await store.mark_paid("missing")


async def test_system_cannot_mark_paid(store):
    user = await store.register_user(user_data())
    with pytest.raises(InvalidFeeTransition):
        await store.mark_paid(user.id, admin_id=SYSTEM_ACTOR)


async def test_set_fee_status_checks_actor(store):
    user = await store.register_user(user_data())

    with pytest.raises(InvalidFeeTransition):
        await store.set_fee_status(user.id, FeeStatus.EXPIRED, admin_id="admin-1")

    expired = await store.set_fee_status(user.id, FeeStatus.EXPIRED, admin_id=SYSTEM_ACTOR)
    assert expired.fee_status == FeeStatus.EXPIRED
    assert expired.last_log.action == "Fee status changed from due to expired"
    assert store.get_seat(5).status == SeatStatus.EXPIRED
    assert_consistent(store)


async def test_set_same_fee_status_is_noop(store):
    user = await store.register_user(user_data())
    same = await store.set_fee_status(user.id, FeeStatus.DUE, admin_id=SYSTEM_ACTOR)
    assert same.logs == user.logs


async def test_change_seat_releases_old_seat(store):
    user = await store.register_user(user_data())

    moved = await store.change_slot_or_seat(user.id, new_seat_number=9, admin_id="admin-1")

    assert moved.seat_number == 9
    assert moved.last_log.action == "Seat changed from 5 (Morning) to 9 (Morning)"
    assert store.get_seat(5).status == SeatStatus.AVAILABLE
    assert store.get_seat(9).user_id == user.id
    assert_consistent(store)


async def test_change_slot_on_same_seat(store):
    user = await store.register_user(user_data())

    moved = await store.change_slot_or_seat(user.id, new_slot="Evening")

    assert moved.slot == "Evening"
    assert store.get_seat(5).user_id == user.id
    assert_consistent(store)


async def test_change_seat_conflict_leaves_state(store):
    await store.register_user(user_data(seat_number=9, email="holder@example.com"))
    user = await store.register_user(user_data())

    with pytest.raises(SeatConflict):
        await store.change_slot_or_seat(user.id, new_seat_number=9)

    assert store.get_user(user.id).seat_number == 5
    assert store.get_seat(5).user_id == user.id
    assert_consistent(store)


async def test_change_to_same_place_is_noop(store):
    user = await store.register_user(user_data())
    same = await store.change_slot_or_seat(user.id, new_slot="Morning", new_seat_number=5)
    assert len(same.logs) == 1


async def test_delete_frees_seat_for_every_slot(store):
    user = await store.register_user(user_data(seat_number=12))

    record = await store.delete_user(user.id, admin_id="admin-1")

    with pytest.raises(NotFoundError):
        store.get_user(user.id)
    seat = store.get_seat(12)
    assert seat.status == SeatStatus.AVAILABLE
    assert seat.user_id is None
    availability = projections.seat_availability(seat, store.users, store.library_settings.slots)
    assert all(availability.values())

    assert store.audit == [record]
    assert record.entry.action == "User deleted by admin - Seat 12 freed"
    assert record.user.logs[-1] == record.entry
    assert record.admin_id == "admin-1"
    assert_consistent(store)


async def test_delete_rebinds_seat_to_remaining_occupant(store):
    morning = await store.register_user(user_data())
    evening = await store.register_user(user_data(email="eve@example.com", slot="Evening"))
    assert store.get_seat(5).user_id == evening.id

    await store.mark_paid(morning.id)
    await store.delete_user(evening.id)

    seat = store.get_seat(5)
    assert seat.user_id == morning.id
    assert seat.status == SeatStatus.PAID
    assert_consistent(store)


async def test_update_user_profile_fields(store):
    user = await store.register_user(user_data())

    updated = await store.update_user(user.id, {"name": "Asha V", "phone": "9123456780"}, admin_id="admin-1")

    assert updated.name == "Asha V"
    assert updated.last_log.action == "User updated: name, phone"
    assert len(updated.logs) == 2


async def test_update_user_routes_fee_and_seat_changes(store):
    user = await store.register_user(user_data())

    updated = await store.update_user(user.id, {"fee_status": "paid", "seat_number": 7})

    assert updated.fee_status == FeeStatus.PAID
    assert updated.next_due_date is not None
    assert store.get_seat(7).status == SeatStatus.PAID
    assert store.get_seat(5).status == SeatStatus.AVAILABLE
    assert len(updated.logs) == 2
    assert_consistent(store)


async def test_update_user_rejects_unknown_fields(store):
    user = await store.register_user(user_data())
    with pytest.raises(ValidationError):
        await store.update_user(user.id, {"logs": []})


@pytest.mark.parametrize("changes", [{"email": None}, {"name": "  "}, {"slot": None}])
async def test_update_user_cannot_clear_required_fields(store, changes):
    user = await store.register_user(user_data())

    with pytest.raises(ValidationError) as exc:
        await store.update_user(user.id, changes)

    assert exc.value.details == {"fields": list(changes)}
    kept = store.get_user(user.id)
    assert kept.email == "asha@example.com"
    assert len(kept.logs) == 1


async def test_update_user_without_changes_is_noop(store):
    user = await store.register_user(user_data())
    same = await store.update_user(user.id, {"name": user.name})
    assert same.logs == user.logs


async def test_update_settings_merges(store):
    updated = await store.update_settings({"email_user": "desk@example.com"})

    assert updated.email_user == "desk@example.com"
    assert updated.slot_pricing == store.library_settings.slot_pricing


async def test_update_settings_keeps_slots_in_use(store):
    await store.register_user(user_data(slot="Evening"))

    with pytest.raises(ValidationError):
        await store.update_settings({"slot_pricing": {"Morning": 1000}})

    assert "Evening" in store.library_settings.slots


async def test_log_timestamps_never_go_backwards(store):
    user = await store.register_user(user_data(registration_date=utcnow()))
    after = await store.mark_paid(user.id)
    after = await store.change_slot_or_seat(after.id, new_seat_number=6)

    stamps = [log.timestamp for log in after.logs]
    assert stamps == sorted(stamps)


class FailingRepository(MemoryRepository):
    def __init__(self):
        super().__init__()
        self.fail = False

    async def apply(self, delta, before):
        if self.fail:
            raise PersistenceError("disk on fire")
        await super().apply(delta, before)


async def test_failed_write_leaves_snapshot_untouched():
    repository = FailingRepository()
    store = SeatStore(repository, total_seats=10)
    await store.load()
    user = await store.register_user(user_data())

    repository.fail = True
    with pytest.raises(PersistenceError):
        await store.delete_user(user.id)
    with pytest.raises(PersistenceError):
        await store.register_user(user_data(email="two@example.com", seat_number=6))

    assert store.get_user(user.id) == user
    assert store.get_seat(5).user_id == user.id
    assert store.get_seat(6).status == SeatStatus.AVAILABLE
    assert store.audit == []
    assert_consistent(store)


async def test_registration_date_in_past_is_kept(store):
    past = utcnow() - timedelta(days=40)
    user = await store.register_user(user_data(registration_date=past))
    assert user.registration_date == past


async def test_concurrent_registrations_for_one_seat(store):
    results = await asyncio.gather(
        store.register_user(user_data(email="a@example.com")),
        store.register_user(user_data(email="b@example.com")),
        return_exceptions=True,
    )

    conflicts = [r for r in results if isinstance(r, SeatConflict)]
    registered = [r for r in results if not isinstance(r, Exception)]
    assert len(conflicts) == 1
    assert len(registered) == 1
    assert [u.id for u in store.users] == [registered[0].id]
    assert store.get_seat(5).user_id == registered[0].id
    assert_consistent(store)
