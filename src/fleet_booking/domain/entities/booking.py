"""Booking entity for a service slot reservation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4
from typing import Optional

from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot


class BookingStatus(Enum):
    """Booking status enumeration."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking:
    """Booking entity: a number of vehicles reserved in one slot for one service."""

    def __init__(
        self,
        appointment_id: UUID,
        service: ServiceType,
        scheduled_date: date,
        scheduled_time: str,
        vehicle_count: int = 1,
        booking_id: Optional[UUID] = None,
        status: BookingStatus = BookingStatus.CONFIRMED,
        location: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        if vehicle_count < 1:
            raise ValueError("Vehicle count must be at least 1")

        self._id = booking_id or uuid4()
        self._appointment_id = appointment_id
        self._service = service
        self._scheduled_date = scheduled_date
        self._scheduled_time = scheduled_time
        self._vehicle_count = vehicle_count
        self._status = status
        self._location = location
        self._created_at = created_at or datetime.utcnow()
        self._updated_at = updated_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        """Get booking ID."""
        return self._id

    @property
    def appointment_id(self) -> UUID:
        """Get owning appointment ID."""
        return self._appointment_id

    @property
    def service(self) -> ServiceType:
        """Get booked service."""
        return self._service

    @property
    def scheduled_date(self) -> date:
        """Get scheduled date."""
        return self._scheduled_date

    @property
    def scheduled_time(self) -> str:
        """Get scheduled time label."""
        return self._scheduled_time

    @property
    def slot(self) -> Slot:
        """Get the slot address of the booking."""
        return Slot(self._scheduled_date, self._scheduled_time)

    @property
    def vehicle_count(self) -> int:
        """Get number of vehicles in the booking."""
        return self._vehicle_count

    @property
    def status(self) -> BookingStatus:
        """Get booking status."""
        return self._status

    @property
    def location(self) -> Optional[str]:
        """Get service location."""
        return self._location

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    @property
    def is_active(self) -> bool:
        """Check if the booking occupies capacity."""
        return self._status == BookingStatus.CONFIRMED

    def moved_to(self, scheduled_date: date, scheduled_time: str) -> "Booking":
        """Create a copy of the booking placed in another slot."""
        if not self.is_active:
            raise ValueError("Only confirmed bookings can be moved")
        if self.slot == Slot(scheduled_date, scheduled_time):
            raise ValueError("Booking is already scheduled in that slot")

        return Booking(
            appointment_id=self._appointment_id,
            service=self._service,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            vehicle_count=self._vehicle_count,
            booking_id=self._id,
            status=self._status,
            location=self._location,
            created_at=self._created_at,
            updated_at=datetime.utcnow()
        )

    def cancel(self) -> None:
        """Cancel the booking."""
        if self._status == BookingStatus.CANCELLED:
            raise ValueError("Booking is already cancelled")
        self._status = BookingStatus.CANCELLED
        self._updated_at = datetime.utcnow()

    def __eq__(self, other: object) -> bool:
        """Check equality based on booking ID."""
        if not isinstance(other, Booking):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on booking ID."""
        return hash(self._id)

    def __str__(self) -> str:
        """String representation."""
        return (
            f"Booking({self._id}, {self._service.value}, {self.slot}, "
            f"{self._vehicle_count} vehicles, {self._status.value})"
        )
