from datetime import datetime, timedelta

import pytest

from app.core.exceptions import SeatConflict, ValidationError
from app.models.library_settings import LibrarySettings
from app.models.seat import Seat, SeatStatus
from app.models.user import User, FeeStatus
from app.services import consistency
from app.services.fee_states import is_valid_transition
from utils.constants import SYSTEM_ACTOR

BASE = datetime(2024, 1, 1, 9, 0)


def make_user(user_id, seat_number=5, slot="Morning", fee_status=FeeStatus.DUE, days=0):
    return User(
        id=user_id,
        name=user_id.title(),
        email=f"{user_id}@example.com",
        phone="9876543210",
        address="Indore",
        seat_number=seat_number,
        slot=slot,
        fee_status=fee_status,
        registration_date=BASE + timedelta(days=days),
    )


def seats(n=10):
    return {i: Seat(number=i) for i in range(1, n + 1)}


def test_seat_status_follows_fee_status():
    assert consistency.compute_seat_status(FeeStatus.PAID) == SeatStatus.PAID
    assert consistency.compute_seat_status(FeeStatus.DUE) == SeatStatus.DUE
    assert consistency.compute_seat_status(FeeStatus.EXPIRED) == SeatStatus.EXPIRED


def test_availability_is_per_slot():
    users = [make_user("a", slot="Morning")]
    seat = Seat(number=5, status=SeatStatus.DUE, user_id="a")

    assert consistency.is_available_for_slot(seat, users, "Morning") is False
    assert consistency.is_available_for_slot(seat, users, "Evening") is True
    assert consistency.is_available_for_slot(seat, users, "Morning", exclude_user_id="a") is True


def test_availability_ignores_stored_status():
    seat = Seat(number=5, status=SeatStatus.PAID, user_id="ghost")
    assert consistency.is_available_for_slot(seat, [], "Morning") is True


def test_validate_registration():
    users = [make_user("a")]
    with pytest.raises(SeatConflict):
        consistency.validate_registration(5, "Morning", users)
    consistency.validate_registration(5, "Evening", users)
    consistency.validate_registration(6, "Morning", users)


def test_validate_slot_and_seat_number():
    library_settings = LibrarySettings()
    with pytest.raises(ValidationError):
        consistency.validate_slot("Night", library_settings)
    with pytest.raises(ValidationError):
        consistency.validate_seat_number(11, seats())
    consistency.validate_slot("24Hour", library_settings)
    consistency.validate_seat_number(10, seats())


def test_release_rebinds_to_oldest_other_occupant():
    older = make_user("older", slot="Evening", fee_status=FeeStatus.PAID, days=0)
    newer = make_user("newer", slot="Afternoon", days=2)
    leaving = make_user("leaving", slot="Morning", days=5)
    seat = Seat(number=5, status=SeatStatus.DUE, user_id="leaving")

    released = consistency.release_seat(seat, "leaving", [older, newer, leaving])

    assert released.user_id == "older"
    assert released.status == SeatStatus.PAID


def test_release_frees_seat_without_other_occupants():
    seat = Seat(number=5, status=SeatStatus.DUE, user_id="a")
    released = consistency.release_seat(seat, "a", [make_user("a")])
    assert released.status == SeatStatus.AVAILABLE
    assert released.user_id is None


def test_release_of_unbound_user_leaves_seat():
    seat = Seat(number=5, status=SeatStatus.DUE, user_id="b")
    assert consistency.release_seat(seat, "a", []) == seat


def test_append_log_is_monotonic():
    user = make_user("a")
    first = consistency.append_log(user, "one", now=BASE + timedelta(hours=2))
    second = consistency.append_log(first, "two", now=BASE)

    assert second.logs[-1].timestamp == first.logs[-1].timestamp
    assert user.logs == []


def test_check_invariants_reports_problems():
    users = [make_user("a", fee_status=FeeStatus.PAID)]
    good = [Seat(number=5, status=SeatStatus.PAID, user_id="a")]
    assert consistency.check_invariants(users, good) == []

    wrong_colour = [Seat(number=5, status=SeatStatus.DUE, user_id="a")]
    assert consistency.check_invariants(users, wrong_colour)

    dangling = [Seat(number=5, status=SeatStatus.AVAILABLE)]
    assert consistency.check_invariants(users, dangling)

    double = [make_user("a"), make_user("b")]
    problems = consistency.check_invariants(double, [Seat(number=5, status=SeatStatus.DUE, user_id="a")])
    assert any("two occupants" in p for p in problems)


def test_plan_move_validates_before_releasing():
    users = [make_user("a", seat_number=5), make_user("b", seat_number=6)]
    current = {s.number: s for s in seats().values()}
    current[5] = Seat(number=5, status=SeatStatus.DUE, user_id="a")
    current[6] = Seat(number=6, status=SeatStatus.DUE, user_id="b")

    with pytest.raises(SeatConflict):
        consistency.plan_move(users[0], users[0].model_copy(update={"seat_number": 6}),
                              current, users, LibrarySettings())

    delta = consistency.plan_move(users[0], users[0].model_copy(update={"seat_number": 7}),
                                  current, users, LibrarySettings())
    by_number = {s.number: s for s in delta.seats}
    assert by_number[5].status == SeatStatus.AVAILABLE
    assert by_number[7].user_id == "a"


def test_plan_deletion_builds_audit():
    user = make_user("a")
    current = seats()
    current[5] = Seat(number=5, status=SeatStatus.DUE, user_id="a")

    delta = consistency.plan_deletion(user, "User deleted by admin - Seat 5 freed", "admin", current, [user])

    assert delta.deleted_user_ids == ["a"]
    assert delta.audit.user.logs[-1].action == "User deleted by admin - Seat 5 freed"
    assert delta.seats[0].status == SeatStatus.AVAILABLE


@pytest.mark.parametrize("from_status,to_status,actor,allowed", [
    (FeeStatus.DUE, FeeStatus.PAID, "admin", True),
    (FeeStatus.EXPIRED, FeeStatus.PAID, "admin", True),
    (FeeStatus.PAID, FeeStatus.PAID, None, True),
    (FeeStatus.PAID, FeeStatus.DUE, "admin", False),
    (FeeStatus.DUE, FeeStatus.EXPIRED, "admin", False),
    (FeeStatus.PAID, FeeStatus.DUE, SYSTEM_ACTOR, True),
    (FeeStatus.DUE, FeeStatus.EXPIRED, SYSTEM_ACTOR, True),
    (FeeStatus.EXPIRED, FeeStatus.PAID, SYSTEM_ACTOR, False),
])
def test_fee_transitions(from_status, to_status, actor, allowed):
    assert is_valid_transition(from_status, to_status, actor) is allowed
