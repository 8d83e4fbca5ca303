"""Pure helpers for ordering legs and grouping bookings into trips.

Legs are any objects exposing departure_date, departure_time, arrival_date and
arrival_time: ORM rows, request items or views.
"""
import re
from collections import OrderedDict
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?:\s*\+(\d+))?$")


class Layover(BaseModel):
    """Gap between the arrival of one leg and the departure of the next"""
    after_segment: int
    location: str
    minutes: int
    label: Optional[str] = None


def parse_clock(value: Optional[str]) -> Tuple[time, int]:
    """Parse 'HH:MM' or 'HH:MM +N' into a time and a day offset; blank means midnight"""
    if not value:
        return time(0, 0), 0
    match = CLOCK_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Unrecognised clock time: {value!r}")
    hour, minute, days = match.groups()
    return time(int(hour), int(minute)), int(days or 0)


def leg_departure(leg) -> datetime:
    clock, days = parse_clock(leg.departure_time)
    return datetime.combine(leg.departure_date, clock) + timedelta(days=days)


def leg_arrival(leg) -> datetime:
    arrival_date = getattr(leg, "arrival_date", None) or leg.departure_date
    clock, days = parse_clock(getattr(leg, "arrival_time", None) or leg.departure_time)
    return datetime.combine(arrival_date, clock) + timedelta(days=days)


def order_legs(legs: Sequence) -> list:
    """Sort legs by departure date and time; ties keep their input order"""
    return sorted(legs, key=leg_departure)


def trip_group_key(booking) -> str:
    return booking.trip_group_id or booking.id


def partition_by_trip_group(bookings: Sequence) -> Dict[str, list]:
    """Group bookings by trip_group_id, falling back to the booking's own id"""
    groups: Dict[str, list] = OrderedDict()
    for booking in bookings:
        groups.setdefault(trip_group_key(booking), []).append(booking)
    return groups


def format_layover(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


def compute_layovers(ordered_legs: Sequence) -> List[Layover]:
    """Layover i runs from the arrival of leg i to the departure of leg i+1"""
    layovers = []
    for index in range(len(ordered_legs) - 1):
        current, following = ordered_legs[index], ordered_legs[index + 1]
        gap = leg_departure(following) - leg_arrival(current)
        minutes = int(gap.total_seconds() // 60)
        layovers.append(Layover(
            after_segment=index + 1,
            location=current.to_location,
            minutes=minutes,
            label=format_layover(minutes) if minutes >= 0 else None
        ))
    return layovers


def select_current_segment(ordered_legs: Sequence, now: datetime) -> Optional[int]:
    """
    Index of the leg that is current at `now`, or None once the trip is over.

    A leg is current while it is the next departure, or once the previous
    leg has departed and it has not.
    """
    departures = [leg_departure(leg) for leg in ordered_legs]
    for index, departure in enumerate(departures):
        if now < departure:
            return index
        if index < len(departures) - 1 and departure <= now < departures[index + 1]:
            return index + 1
    return None


def group_status(members: Sequence) -> str:
    """cancelled when every member is, confirmed while any is, otherwise completed"""
    statuses = {member.status for member in members}
    if statuses == {"cancelled"}:
        return "cancelled"
    if "confirmed" in statuses:
        return "confirmed"
    return "completed"
