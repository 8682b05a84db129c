"""Builds slot availability from raw per-slot booking aggregates."""

from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from src.fleet_booking.domain.exceptions import InvalidInputError
from src.fleet_booking.domain.value_objects.time_slot import (
    DEFAULT_TIME_LABELS,
    SlotAvailability,
    SlotCount,
)


BusinessDayPredicate = Callable[[date], bool]


def aggregate_slot_counts(slot_counts: Iterable[SlotCount]) -> Dict[Tuple[date, str], int]:
    """Sum raw counts per (date, time); repeated rows for one slot add up."""
    booked: Dict[Tuple[date, str], int] = defaultdict(int)
    for slot_count in slot_counts:
        booked[(slot_count.date, slot_count.time)] += slot_count.count
    return booked


def build_slot_availability(
    slot_counts: Iterable[SlotCount],
    ceiling: int,
    target_date: date,
    time_labels: Sequence[str] = DEFAULT_TIME_LABELS
) -> List[SlotAvailability]:
    """One SlotAvailability per time label for a single date."""
    return build_multi_day_availability(slot_counts, ceiling, [target_date], time_labels)


def build_multi_day_availability(
    slot_counts: Iterable[SlotCount],
    ceiling: int,
    dates: Iterable[date],
    time_labels: Sequence[str] = DEFAULT_TIME_LABELS
) -> List[SlotAvailability]:
    """
    Availability for every time label of every date, in chronological order.

    Dates absent from the raw input are at full capacity. Capacity is clamped
    into [0, ceiling] so an over-booked slot reads as full, never negative.
    """
    if ceiling < 1:
        raise InvalidInputError(f"Capacity ceiling must be at least 1, got {ceiling}")

    booked = aggregate_slot_counts(slot_counts)
    availability = []
    for slot_date in sorted(set(dates)):
        for label in time_labels:
            booked_count = booked.get((slot_date, label), 0)
            available = min(ceiling, max(0, ceiling - booked_count))
            availability.append(
                SlotAvailability(
                    date=slot_date,
                    time=label,
                    available_capacity=available,
                    total_capacity=ceiling
                )
            )
    return availability


def filter_bookable_slots(
    slots: Iterable[SlotAvailability],
    is_business_day: Optional[BusinessDayPredicate] = None,
    now: Optional[datetime] = None
) -> List[SlotAvailability]:
    """Drop slots on closed days, slots that already started and full slots."""
    bookable = []
    for slot in slots:
        if slot.is_fully_booked:
            continue
        if is_business_day is not None and not is_business_day(slot.date):
            continue
        if now is not None and slot.slot.starts_at <= now:
            continue
        bookable.append(slot)
    return bookable
