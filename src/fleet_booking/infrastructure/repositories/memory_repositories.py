"""In-memory repository implementations for testing and development."""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Collection, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from src.fleet_booking.application.ports.repositories import AppointmentRepository, BookingRepository
from src.fleet_booking.domain.entities.appointment import Appointment
from src.fleet_booking.domain.entities.booking import Booking
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot, SlotCount


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of booking repository."""

    def __init__(self):
        self._bookings: Dict[UUID, Booking] = {}
        # One lock for every slot; writers are rare enough in memory
        self._write_lock = asyncio.Lock()

    async def save(self, booking: Booking) -> Booking:
        """Save a booking."""
        self._bookings[booking.id] = booking
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID."""
        return self._bookings.get(booking_id)

    async def find_by_appointment(
        self,
        appointment_id: UUID,
        service: Optional[ServiceType] = None
    ) -> List[Booking]:
        """Find bookings of an appointment, optionally for one service."""
        return [
            booking for booking in self._bookings.values()
            if booking.appointment_id == appointment_id
            and (service is None or booking.service == service)
        ]

    async def find_by_service_date(self, service: ServiceType, slot_date: date) -> List[Booking]:
        """Find confirmed bookings of a service on a date."""
        return [
            booking for booking in self._bookings.values()
            if booking.service == service
            and booking.scheduled_date == slot_date
            and booking.is_active
        ]

    async def find_slot_counts(self, service: ServiceType, start_date: date, end_date: date) -> List[SlotCount]:
        """Aggregate confirmed vehicle counts per slot for a date range (inclusive)."""
        totals: Dict[Tuple[date, str], int] = defaultdict(int)
        for booking in self._bookings.values():
            if (booking.service == service
                    and booking.is_active
                    and start_date <= booking.scheduled_date <= end_date):
                totals[(booking.scheduled_date, booking.scheduled_time)] += booking.vehicle_count

        return [
            SlotCount(date=slot_date, time=slot_time, count=count)
            for (slot_date, slot_time), count in totals.items()
        ]

    async def count_committed_vehicles(
        self,
        service: ServiceType,
        slot_date: date,
        slot_time: str,
        exclude_booking_ids: Collection[UUID] = ()
    ) -> int:
        """Sum confirmed vehicles in one slot, ignoring the given bookings."""
        return sum(
            booking.vehicle_count for booking in self._bookings.values()
            if booking.service == service
            and booking.scheduled_date == slot_date
            and booking.scheduled_time == slot_time
            and booking.is_active
            and booking.id not in exclude_booking_ids
        )

    @asynccontextmanager
    async def lock_slots(self, slots: Sequence[Tuple[ServiceType, Slot]]) -> AsyncIterator[None]:
        """Serialise writers until the context exits."""
        async with self._write_lock:
            yield

    def clear(self) -> None:
        """Remove all bookings."""
        self._bookings.clear()


class InMemoryAppointmentRepository(AppointmentRepository):
    """In-memory implementation of appointment repository sharing a booking store."""

    def __init__(self, booking_repository: InMemoryBookingRepository):
        self._appointments: Dict[UUID, Appointment] = {}
        self._booking_repository = booking_repository

    async def save(self, appointment: Appointment) -> Appointment:
        """Save an appointment and the status of its bookings."""
        self._appointments[appointment.id] = appointment
        for booking in appointment.bookings:
            await self._booking_repository.save(booking)
        return await self._with_bookings(appointment)

    async def find_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        """Find appointment by ID."""
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            return None
        return await self._with_bookings(appointment)

    async def find_by_reference_number(self, reference_number: str) -> Optional[Appointment]:
        """Find appointment by reference number."""
        for appointment in self._appointments.values():
            if appointment.reference_number == reference_number:
                return await self._with_bookings(appointment)
        return None

    async def find_by_cancellation_token(self, token: str) -> Optional[Appointment]:
        """Find appointment by cancellation token."""
        for appointment in self._appointments.values():
            if appointment.cancellation_token == token:
                return await self._with_bookings(appointment)
        return None

    async def _with_bookings(self, appointment: Appointment) -> Appointment:
        """Copy of the appointment carrying its current bookings from the booking store."""
        bookings = await self._booking_repository.find_by_appointment(appointment.id)
        return Appointment(
            customer_name=appointment.customer_name,
            customer_email=appointment.customer_email,
            number_of_vehicles=appointment.number_of_vehicles,
            services_requested=appointment.services_requested,
            appointment_id=appointment.id,
            reference_number=appointment.reference_number,
            cancellation_token=appointment.cancellation_token,
            customer_phone=appointment.customer_phone,
            company_name=appointment.company_name,
            notes=appointment.notes,
            status=appointment.status,
            bookings=bookings,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at
        )
