"""Derives per-group ordering constraints from upstream bookings."""

from collections import OrderedDict
from typing import Iterable, List, Sequence

from src.fleet_booking.domain.entities.booking import Booking
from src.fleet_booking.domain.value_objects.allocation import VehicleGroupConstraint
from src.fleet_booking.domain.value_objects.time_slot import DEFAULT_TIME_LABELS, Slot


def derive_group_constraints(
    upstream_bookings: Iterable[Booking],
    time_labels: Sequence[str] = DEFAULT_TIME_LABELS
) -> List[VehicleGroupConstraint]:
    """
    One constraint per distinct upstream slot actually used.

    Buckets are numbered 1..n in chronological order, so a fleet split across
    several slots or days becomes several independent groups, each carrying
    only the vehicles that passed through its slot.
    """
    active = [booking for booking in upstream_bookings if booking.is_active]
    active.sort(key=lambda booking: booking.slot.sort_key(time_labels))

    buckets: "OrderedDict[Slot, int]" = OrderedDict()
    for booking in active:
        buckets[booking.slot] = buckets.get(booking.slot, 0) + booking.vehicle_count

    return [
        VehicleGroupConstraint(
            vehicle_group=ordinal,
            vehicle_count=vehicle_count,
            constraint_date=slot.date,
            constraint_time=slot.time
        )
        for ordinal, (slot, vehicle_count) in enumerate(buckets.items(), start=1)
    ]
