import pytest

from app.core.exceptions import ValidationError
from app.models.seat import Seat, SeatStatus
from app.models.user import User, FeeStatus
from app.services import projections


def make_user(user_id, seat_number, slot, fee_status=FeeStatus.DUE):
    return User(id=user_id, name=user_id.title(), email=f"{user_id}@example.com", phone="9876543210",
                address="Indore", seat_number=seat_number, slot=slot, fee_status=fee_status)


SEATS = [Seat(number=n) for n in range(1, 115)]
USERS = [
    make_user("a", 1, "Morning", FeeStatus.PAID),
    make_user("b", 1, "Evening"),
    make_user("c", 2, "Morning", FeeStatus.EXPIRED),
]


def test_stats():
    stats = projections.get_stats(USERS, SEATS, ["Morning", "Evening", "24Hour"])

    assert stats.total_users == 3
    assert (stats.paid_users, stats.due_users, stats.expired_users) == (1, 1, 1)
    assert stats.total_seats == 114
    assert stats.available_seats == 112
    assert stats.slots["Morning"].occupied == 2
    assert stats.slots["Evening"].available == 113
    assert stats.slots["24Hour"].occupied == 0


def test_seat_view_for_slot():
    views = projections.seats_for_slot(SEATS[:3], USERS, "Morning")
    assert [v.status for v in views] == [SeatStatus.PAID, SeatStatus.EXPIRED, SeatStatus.AVAILABLE]

    evening = projections.seats_for_slot(SEATS[:3], USERS, "Evening")
    assert evening[0].user_id == "b"
    assert evening[1].status == SeatStatus.AVAILABLE


def test_grid_pages():
    first = projections.seat_grid(SEATS, USERS, page=0, page_size=60)
    second = projections.seat_grid(SEATS, USERS, page=1, page_size=60)

    assert first.total_pages == second.total_pages == 2
    assert [v.number for v in first.seats] == list(range(1, 61))
    assert [v.number for v in second.seats] == list(range(61, 115))

    with pytest.raises(ValidationError):
        projections.seat_grid(SEATS, USERS, page=2, page_size=60)


def test_grid_show_all():
    grid = projections.seat_grid(SEATS, USERS, page=5, page_size=60, show_all=True)
    assert len(grid.seats) == 114
    assert grid.total_pages == 1


def test_csv_export():
    lines = projections.export_users_csv(USERS[:1]).splitlines()
    assert lines[0] == "Name,Email,Phone,Seat Number,Slot,Fee Status,Registration Date"
    assert lines[1].startswith("A,a@example.com,9876543210,1,Morning,paid,")


def test_grid_colours():
    views = projections.seats_for_slot(SEATS[:3], USERS, "Morning")
    assert [v.color for v in views] == ["green", "red", "gray"]
