"""Greedy earliest-feasible distribution of a fleet across time slots."""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

from src.fleet_booking.domain.exceptions import InfeasibleAllocationError, InvalidInputError
from src.fleet_booking.domain.value_objects.allocation import (
    SuggestedAssignment,
    VehicleGroupConstraint,
    total_assigned,
    total_constrained,
)
from src.fleet_booking.domain.value_objects.time_slot import (
    DEFAULT_TIME_LABELS,
    Slot,
    SlotAvailability,
)


def validate_vehicle_count(vehicle_count: int) -> None:
    """Reject non-integer and non-positive vehicle counts."""
    if isinstance(vehicle_count, bool) or not isinstance(vehicle_count, int):
        raise InvalidInputError(f"Vehicle count must be an integer, got {vehicle_count!r}")
    if vehicle_count <= 0:
        raise InvalidInputError(f"Vehicle count must be positive, got {vehicle_count}")


def sort_slots(
    slots: Iterable[SlotAvailability],
    time_labels: Sequence[str] = DEFAULT_TIME_LABELS
) -> List[SlotAvailability]:
    """Earliest date first, then earliest label in the daily sequence."""
    return sorted(slots, key=lambda slot: slot.slot.sort_key(time_labels))


def allocate_vehicles(
    vehicle_count: int,
    available_slots: Iterable[SlotAvailability],
    constraints: Iterable[VehicleGroupConstraint] = (),
    max_capacity: Optional[int] = None,
    time_labels: Sequence[str] = DEFAULT_TIME_LABELS
) -> List[SuggestedAssignment]:
    """
    Distribute vehicles over slots, earliest first.

    Constrained groups are placed one after another in vehicle_group order,
    each only into slots strictly after its own upstream slot. Vehicles not
    covered by any constraint go last and accept any slot. Capacity used by
    an earlier group in this call is not offered again to a later one.

    Returns the assignments in the order they were made. When the slots
    cannot hold every vehicle the partial accumulation is returned; compare
    total_assigned() with vehicle_count to detect it.

    Args:
        vehicle_count: Number of vehicles to place
        available_slots: Snapshot of slot availability to place them in
        constraints: Upstream placement of fleet sub-groups, if any
        max_capacity: Per-slot ceiling for the service
        time_labels: Ordered daily time labels of the service

    Raises:
        InvalidInputError: If vehicle_count is not a positive integer, or the
            constraints cover more vehicles than requested.
    """
    validate_vehicle_count(vehicle_count)
    if max_capacity is not None and max_capacity < 1:
        raise InvalidInputError(f"Max capacity must be at least 1, got {max_capacity}")

    groups = sorted(constraints, key=lambda constraint: constraint.vehicle_group)
    covered = total_constrained(groups)
    if covered > vehicle_count:
        raise InvalidInputError(
            f"Constraints cover {covered} vehicles but only {vehicle_count} were requested"
        )

    free = _usable_capacity(sort_slots(available_slots, time_labels), max_capacity)

    assignments: List[SuggestedAssignment] = []
    for group in groups:
        eligible = [slot for slot in free if group.permits(slot)]
        assignments.extend(_fill(group.vehicle_count, eligible, free, group.vehicle_group))

    unconstrained = vehicle_count - covered
    if unconstrained > 0:
        assignments.extend(_fill(unconstrained, list(free), free, None))

    return assignments


def require_complete(assignments: List[SuggestedAssignment], vehicle_count: int) -> List[SuggestedAssignment]:
    """Return the assignments if they place every vehicle, raise otherwise."""
    allocated = total_assigned(assignments)
    if allocated < vehicle_count:
        raise InfeasibleAllocationError(
            f"Only {allocated} of {vehicle_count} vehicles could be placed in the available slots",
            requested=vehicle_count,
            allocated=allocated
        )
    return assignments


def _usable_capacity(
    ordered: List[SlotAvailability],
    max_capacity: Optional[int]
) -> "OrderedDict[Slot, int]":
    """Free capacity per slot in chronological order; first entry wins on duplicates."""
    free: "OrderedDict[Slot, int]" = OrderedDict()
    for slot in ordered:
        if slot.slot in free:
            continue
        usable = slot.available_capacity
        if max_capacity is not None:
            usable = min(usable, max_capacity)
        free[slot.slot] = max(0, usable)
    return free


def _fill(
    vehicle_count: int,
    eligible: List[Slot],
    free: Dict[Slot, int],
    vehicle_group: Optional[int]
) -> List[SuggestedAssignment]:
    """Walk eligible slots once, taking as much of each as still needed."""
    assignments = []
    remaining = vehicle_count
    for slot in eligible:
        if remaining == 0:
            break
        to_book = min(remaining, free[slot])
        if to_book > 0:
            assignments.append(
                SuggestedAssignment(
                    date=slot.date,
                    time=slot.time,
                    vehicle_count=to_book,
                    vehicle_group=vehicle_group
                )
            )
            free[slot] -= to_book
            remaining -= to_book
    return assignments
