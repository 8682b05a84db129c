"""Port interfaces for repositories (Dependency Inversion Principle)."""

from abc import ABC, abstractmethod
from datetime import date
from typing import AsyncContextManager, Collection, List, Optional, Sequence, Tuple, TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.fleet_booking.domain.entities.appointment import Appointment
    from src.fleet_booking.domain.entities.booking import Booking
    from src.fleet_booking.domain.value_objects.service_type import ServiceType
    from src.fleet_booking.domain.value_objects.time_slot import Slot, SlotCount


class BookingRepository(ABC):
    """Port interface for service booking repository."""

    @abstractmethod
    async def save(self, booking: "Booking") -> "Booking":
        """Save a booking (create or update)."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional["Booking"]:
        """Find booking by ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_appointment(
        self,
        appointment_id: UUID,
        service: Optional["ServiceType"] = None
    ) -> List["Booking"]:
        """Find bookings of an appointment, optionally for one service."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_service_date(self, service: "ServiceType", slot_date: date) -> List["Booking"]:
        """Find confirmed bookings of a service on a date."""
        raise NotImplementedError

    @abstractmethod
    async def find_slot_counts(
        self,
        service: "ServiceType",
        start_date: date,
        end_date: date
    ) -> List["SlotCount"]:
        """Aggregate confirmed vehicle counts per slot for a date range (inclusive)."""
        raise NotImplementedError

    @abstractmethod
    async def count_committed_vehicles(
        self,
        service: "ServiceType",
        slot_date: date,
        slot_time: str,
        exclude_booking_ids: Collection[UUID] = ()
    ) -> int:
        """Sum confirmed vehicles in one slot, ignoring the given bookings."""
        raise NotImplementedError

    @abstractmethod
    def lock_slots(self, slots: Sequence[Tuple["ServiceType", "Slot"]]) -> AsyncContextManager[None]:
        """Serialise writers of the given slots until the context exits."""
        raise NotImplementedError


class AppointmentRepository(ABC):
    """Port interface for appointment repository."""

    @abstractmethod
    async def save(self, appointment: "Appointment") -> "Appointment":
        """Save an appointment and the status of its bookings."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, appointment_id: UUID) -> Optional["Appointment"]:
        """Find appointment by ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_reference_number(self, reference_number: str) -> Optional["Appointment"]:
        """Find appointment by reference number."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_cancellation_token(self, token: str) -> Optional["Appointment"]:
        """Find appointment by cancellation token."""
        raise NotImplementedError


class BusinessCalendar(ABC):
    """Port interface for the business-day predicate supplied by the environment."""

    @abstractmethod
    def is_business_day(self, day: date) -> bool:
        """Check if slots can be offered on the given date."""
        raise NotImplementedError
