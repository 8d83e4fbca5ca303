from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from travelhub.trips.grouping import (
    compute_layovers, group_status, leg_arrival, leg_departure, order_legs,
    parse_clock, partition_by_trip_group, select_current_segment
)

DAY = date(2026, 5, 20)


def leg(departure_time, arrival_time=None, departure_date=DAY, arrival_date=None,
        to_location="Pune", status="confirmed", **extra):
    return SimpleNamespace(
        departure_date=departure_date,
        departure_time=departure_time,
        arrival_date=arrival_date,
        arrival_time=arrival_time,
        to_location=to_location,
        status=status,
        **extra
    )


def booking(booking_id, trip_group_id=None):
    return SimpleNamespace(id=booking_id, trip_group_id=trip_group_id)


def test_partition_is_disjoint_cover():
    bookings = [
        booking("b1", "g1"), booking("b2"), booking("b3", "g1"),
        booking("b4", "g2"), booking("b5"), booking("b6", "g2"),
    ]

    groups = partition_by_trip_group(bookings)

    assert list(groups) == ["g1", "b2", "g2", "b5"]
    members = [b.id for group in groups.values() for b in group]
    assert sorted(members) == sorted(b.id for b in bookings)
    assert len(members) == len(set(members))
    assert [b.id for b in groups["g1"]] == ["b1", "b3"]


def test_order_legs_by_date_then_time():
    late = leg("07:00", departure_date=DAY + timedelta(days=1))
    morning = leg("06:15")
    evening = leg("19:40")

    assert order_legs([late, evening, morning]) == [morning, evening, late]


def test_parse_clock():
    assert parse_clock("08:05") == (datetime(2026, 1, 1, 8, 5).time(), 0)
    assert parse_clock("00:15 +1")[1] == 1
    assert parse_clock(None)[1] == 0
    with pytest.raises(ValueError):
        parse_clock("quarter past eight")


def test_leg_arrival_defaults_to_departure_day_with_offset():
    overnight = leg("22:00", "06:00 +1")

    assert leg_departure(overnight) == datetime(2026, 5, 20, 22, 0)
    assert leg_arrival(overnight) == datetime(2026, 5, 21, 6, 0)


def test_layovers_between_consecutive_legs():
    legs = [
        leg("08:15", "10:20", to_location="Delhi"),
        leg("13:00", "15:30", to_location="Jaipur"),
    ]

    layovers = compute_layovers(legs)

    assert len(layovers) == 1
    assert layovers[0].after_segment == 1
    assert layovers[0].location == "Delhi"
    assert layovers[0].minutes == 160
    assert layovers[0].label == "2h 40m"


def test_layover_after_overnight_leg():
    legs = [
        leg("22:00", "06:00 +1", to_location="Chennai"),
        leg("08:30", departure_date=DAY + timedelta(days=1)),
    ]

    assert compute_layovers(legs)[0].minutes == 150


def test_overlapping_legs_have_negative_layover_without_label():
    legs = [leg("08:00", "12:00"), leg("11:00", "13:00")]

    layover = compute_layovers(legs)[0]
    assert layover.minutes == -60
    assert layover.label is None


class TestCurrentSegment:
    T0 = datetime(2026, 5, 20, 8, 0)
    T1 = datetime(2026, 5, 20, 13, 0)
    T2 = datetime(2026, 5, 21, 9, 30)

    @pytest.fixture
    def legs(self):
        return [
            leg("08:00"),
            leg("13:00"),
            leg("09:30", departure_date=DAY + timedelta(days=1)),
        ]

    def test_before_first_departure(self, legs):
        assert select_current_segment(legs, self.T0 - timedelta(minutes=1)) == 0

    def test_after_first_departure(self, legs):
        assert select_current_segment(legs, self.T0 + timedelta(minutes=1)) == 1

    def test_between_second_and_last(self, legs):
        assert select_current_segment(legs, self.T1 + timedelta(hours=2)) == 2

    def test_after_last_departure(self, legs):
        assert select_current_segment(legs, self.T2 + timedelta(minutes=1)) is None

    def test_at_last_departure(self, legs):
        assert select_current_segment(legs, self.T2) is None

    def test_single_leg(self):
        only = [leg("08:00")]
        assert select_current_segment(only, self.T0 - timedelta(seconds=1)) == 0
        assert select_current_segment(only, self.T0) is None

    def test_no_legs(self):
        assert select_current_segment([], self.T0) is None


@pytest.mark.parametrize("statuses, expected", [
    (["cancelled", "cancelled"], "cancelled"),
    (["cancelled", "confirmed"], "confirmed"),
    (["completed", "cancelled"], "completed"),
    (["confirmed"], "confirmed"),
])
def test_group_status(statuses, expected):
    assert group_status([leg("08:00", status=s) for s in statuses]) == expected
