"""Time slot value objects for capacity-constrained scheduling."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Sequence, Tuple

from src.fleet_booking.domain.exceptions import InvalidInputError


DEFAULT_TIME_LABELS: Tuple[str, ...] = (
    "08:30 AM",
    "09:30 AM",
    "10:30 AM",
    "11:30 AM",
    "12:30 PM",
    "01:30 PM",
    "02:30 PM",
)

TIME_LABEL_FORMAT = "%I:%M %p"


def parse_time_label(label: str) -> time:
    """Convert a label such as '01:30 PM' into a time of day."""
    try:
        return datetime.strptime(label.strip(), TIME_LABEL_FORMAT).time()
    except (AttributeError, ValueError) as e:
        raise InvalidInputError(f"Invalid time label: {label}") from e


def time_label_index(label: str, time_labels: Sequence[str] = DEFAULT_TIME_LABELS) -> int:
    """Get the position of a label in the daily sequence."""
    try:
        return list(time_labels).index(label)
    except ValueError as e:
        raise InvalidInputError(f"Unknown time slot: {label}") from e


def next_time_label(label: str, time_labels: Sequence[str] = DEFAULT_TIME_LABELS) -> Optional[str]:
    """Get the label that follows the given one, or None at the end of the day."""
    if label not in time_labels:
        return None
    index = list(time_labels).index(label)
    if index >= len(time_labels) - 1:
        return None
    return time_labels[index + 1]


def parse_slot_date(value: "str | date") -> date:
    """Parse a YYYY-MM-DD date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid date format: {value}") from e


@dataclass(frozen=True)
class Slot:
    """Immutable (date, time label) address of service capacity."""

    date: date
    time: str

    def sort_key(self, time_labels: Sequence[str] = DEFAULT_TIME_LABELS) -> Tuple[date, int]:
        """Chronological ordering key: date first, then position in the day."""
        return (self.date, time_label_index(self.time, time_labels))

    @property
    def starts_at(self) -> datetime:
        """Get start datetime combining date and time label."""
        return datetime.combine(self.date, parse_time_label(self.time))

    def starts_after(self, other: "Slot") -> bool:
        """Compare by clock time, for slots of services with different label sequences."""
        return self.starts_at > other.starts_at

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.time}"


@dataclass(frozen=True)
class SlotCount:
    """Raw aggregate of booked vehicles in one slot, as read from persistence."""

    date: date
    time: str
    count: int


@dataclass(frozen=True)
class SlotAvailability:
    """Immutable value object representing remaining capacity in a slot."""

    date: date
    time: str
    available_capacity: int
    total_capacity: int

    def __post_init__(self) -> None:
        """Validate availability data."""
        if self.total_capacity < 1:
            raise ValueError("Total capacity must be at least 1")
        if self.available_capacity < 0:
            raise ValueError("Available capacity cannot be negative")
        if self.available_capacity > self.total_capacity:
            raise ValueError("Available capacity cannot exceed total capacity")

    @property
    def slot(self) -> Slot:
        """Get the slot address."""
        return Slot(self.date, self.time)

    @property
    def booked_count(self) -> int:
        """Get number of vehicles already booked."""
        return self.total_capacity - self.available_capacity

    @property
    def is_fully_booked(self) -> bool:
        """Check if slot is fully booked."""
        return self.available_capacity == 0

    def can_hold(self, vehicle_count: int) -> bool:
        """Check if the slot has room for the given number of vehicles."""
        return 0 < vehicle_count <= self.available_capacity

    def with_reservation(self, vehicle_count: int) -> "SlotAvailability":
        """Create a new SlotAvailability with vehicles taken out of it."""
        if vehicle_count > self.available_capacity:
            raise ValueError("Cannot reserve more vehicles than available capacity")

        return SlotAvailability(
            date=self.date,
            time=self.time,
            available_capacity=self.available_capacity - vehicle_count,
            total_capacity=self.total_capacity
        )
