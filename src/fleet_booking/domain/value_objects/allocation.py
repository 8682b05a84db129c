"""Allocation value objects: vehicle group constraints and suggested assignments."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from src.fleet_booking.domain.value_objects.time_slot import Slot


@dataclass(frozen=True)
class VehicleGroupConstraint:
    """Where a fleet sub-group landed in an upstream service.

    Vehicles of the group may only be placed in slots strictly after
    (constraint_date, constraint_time) for the next service.
    """

    vehicle_group: int
    vehicle_count: int
    constraint_date: date
    constraint_time: str

    def __post_init__(self) -> None:
        """Validate constraint data."""
        if self.vehicle_group < 1:
            raise ValueError("Vehicle group must be a positive ordinal")
        if self.vehicle_count < 1:
            raise ValueError("Vehicle count must be at least 1")

    @property
    def slot(self) -> Slot:
        """Get the upstream slot this group occupied."""
        return Slot(self.constraint_date, self.constraint_time)

    def permits(self, candidate: Slot) -> bool:
        """Check if the group may be placed in the candidate slot, whatever labels each service uses."""
        return candidate.starts_after(self.slot)


@dataclass(frozen=True)
class SuggestedAssignment:
    """Allocator output: a number of vehicles proposed for one slot."""

    date: date
    time: str
    vehicle_count: int
    vehicle_group: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate assignment data."""
        if self.vehicle_count < 1:
            raise ValueError("Assignment must carry at least one vehicle")

    @property
    def slot(self) -> Slot:
        """Get the slot address."""
        return Slot(self.date, self.time)


def total_assigned(assignments: Iterable[SuggestedAssignment]) -> int:
    """Sum the vehicles carried by a sequence of assignments."""
    return sum(assignment.vehicle_count for assignment in assignments)


def total_constrained(constraints: Iterable[VehicleGroupConstraint]) -> int:
    """Sum the vehicles covered by a set of constraints."""
    return sum(constraint.vehicle_count for constraint in constraints)
