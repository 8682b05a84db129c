"""Fixed business parameters consumed by the allocation engine."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Sequence, Tuple

from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import DEFAULT_TIME_LABELS, parse_time_label


DEFAULT_CAPACITY_CEILINGS: Dict[ServiceType, int] = {
    ServiceType.WEIGHING: 12,
    ServiceType.INSPECTION: 12,
    ServiceType.REGISTRATION: 5,
}

DEFAULT_CAPACITY = 5
MULTI_DAY_WINDOW_DAYS = 7


@dataclass(frozen=True)
class SchedulingPolicy:
    """Per-service time label sequences, capacity ceilings and search window."""

    capacity_ceilings: Dict[ServiceType, int] = field(
        default_factory=lambda: dict(DEFAULT_CAPACITY_CEILINGS)
    )
    time_labels: Dict[ServiceType, Tuple[str, ...]] = field(default_factory=dict)
    default_time_labels: Tuple[str, ...] = DEFAULT_TIME_LABELS
    default_capacity: int = DEFAULT_CAPACITY
    multi_day_window_days: int = MULTI_DAY_WINDOW_DAYS

    def __post_init__(self) -> None:
        """Validate policy data."""
        if self.default_capacity < 1:
            raise ValueError("Default capacity must be at least 1")
        if any(ceiling < 1 for ceiling in self.capacity_ceilings.values()):
            raise ValueError("Capacity ceilings must be at least 1")
        if self.multi_day_window_days < 0:
            raise ValueError("Multi-day window cannot be negative")
        if not self.default_time_labels:
            raise ValueError("At least one time slot is required")
        for labels in [self.default_time_labels, *self.time_labels.values()]:
            times = [parse_time_label(label) for label in labels]
            if any(later <= earlier for earlier, later in zip(times, times[1:])):
                raise ValueError(f"Time slots must be in chronological order: {', '.join(labels)}")

    def ceiling_for(self, service: ServiceType) -> int:
        """Get the max vehicles per slot for a service."""
        return self.capacity_ceilings.get(service, self.default_capacity)

    def labels_for(self, service: ServiceType) -> Tuple[str, ...]:
        """Get the ordered daily time labels for a service."""
        return tuple(self.time_labels.get(service, self.default_time_labels))

    def search_window(self, target_date: date) -> List[date]:
        """Target date plus the following window days, in order."""
        return [target_date + timedelta(days=offset) for offset in range(self.multi_day_window_days + 1)]

    @classmethod
    def from_settings(cls, settings) -> "SchedulingPolicy":
        """Build a policy from application settings."""
        labels: Sequence[str] = tuple(settings.time_slots)
        return cls(
            capacity_ceilings={
                ServiceType.WEIGHING: settings.weighing_capacity,
                ServiceType.INSPECTION: settings.inspection_capacity,
                ServiceType.REGISTRATION: settings.registration_capacity,
            },
            default_time_labels=tuple(labels),
            default_capacity=settings.default_capacity,
            multi_day_window_days=settings.multi_day_window_days,
        )
