"""Distribution suggestion returned to the presentation layer."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Tuple

from src.fleet_booking.domain.value_objects.allocation import (
    SuggestedAssignment,
    VehicleGroupConstraint,
    total_assigned,
)
from src.fleet_booking.domain.value_objects.service_type import ServiceType


class SuggestionStatus(Enum):
    """Outcome of an automatic distribution attempt."""
    SAME_DAY = "same_day"
    MULTI_DAY = "multi_day"
    INFEASIBLE = "infeasible"
    STALE_CAPACITY = "stale_capacity"


@dataclass(frozen=True)
class DistributionSuggestion:
    """Advisory schedule for a fleet, or the reason none could be offered."""

    service: ServiceType
    vehicle_count: int
    status: SuggestionStatus
    advisory: str
    assignments: Tuple[SuggestedAssignment, ...] = ()
    constraints: Tuple[VehicleGroupConstraint, ...] = ()
    searched_dates: Tuple[date, ...] = field(default_factory=tuple)

    @property
    def is_available(self) -> bool:
        """Check if the suggestion can be offered for acceptance."""
        return self.status in (SuggestionStatus.SAME_DAY, SuggestionStatus.MULTI_DAY)

    @property
    def requires_manual_selection(self) -> bool:
        """Check if the customer has to pick slots by hand."""
        return not self.is_available

    @property
    def allocated_count(self) -> int:
        """Get the number of vehicles the suggestion places."""
        return total_assigned(self.assignments)

    @property
    def is_split(self) -> bool:
        """Check if the fleet is spread over more than one slot."""
        return len(self.assignments) > 1

    def dates(self) -> List[date]:
        """Get the distinct dates used by the suggestion, in order."""
        return sorted({assignment.date for assignment in self.assignments})
