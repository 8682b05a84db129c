"""Booking service implementing use cases for fleet appointments."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence
from uuid import UUID

from ..ports.repositories import AppointmentRepository, BookingRepository, BusinessCalendar
from .capacity_guard import CapacityGuard
from ...domain.entities.appointment import Appointment, AppointmentStatus
from ...domain.entities.booking import Booking
from ...domain.exceptions import InvalidInputError
from ...domain.services.constraints import derive_group_constraints
from ...domain.services.ordering import validate_selection, validate_service_sequence
from ...domain.value_objects.allocation import SuggestedAssignment, total_assigned
from ...domain.value_objects.scheduling_policy import SchedulingPolicy
from ...domain.value_objects.service_type import ServiceType
from ...domain.value_objects.time_slot import Slot, time_label_index
from ...infrastructure.logging import get_logger


@dataclass(frozen=True)
class SlotSelection:
    """A customer's choice of slot and vehicle count for one service."""

    service: ServiceType
    date: date
    time: str
    vehicle_count: int = 1
    location: Optional[str] = None

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.time)


class BookingService:
    """Application service for appointment and booking management."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        appointment_repository: AppointmentRepository,
        policy: Optional[SchedulingPolicy] = None,
        calendar: Optional[BusinessCalendar] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._booking_repository = booking_repository
        self._appointment_repository = appointment_repository
        self._policy = policy or SchedulingPolicy()
        self._calendar = calendar
        self._clock = clock or datetime.now
        self._capacity_guard = CapacityGuard(booking_repository, self._policy)
        self._logger = get_logger(__name__)

    async def create_appointment(
        self,
        customer_name: str,
        customer_email: str,
        number_of_vehicles: int,
        selections: Sequence[SlotSelection],
        customer_phone: Optional[str] = None,
        company_name: Optional[str] = None,
        notes: Optional[str] = None,
        services_requested: Optional[Sequence[ServiceType]] = None
    ) -> Appointment:
        """
        Create an appointment with its service bookings in one guarded commit.

        services_requested may name further services to be booked later with
        book_service; every selected service is requested implicitly.
        """
        if not selections:
            raise InvalidInputError("At least one service booking is required")
        if number_of_vehicles < 1:
            raise InvalidInputError("At least 1 vehicle required")

        selected = self._services_in_order(selections)
        for service in selected:
            chosen = [selection for selection in selections if selection.service == service]
            self._ensure_whole_fleet(service, sum(s.vehicle_count for s in chosen), number_of_vehicles)
        for selection in selections:
            self._ensure_bookable(selection.service, selection.slot, selection.vehicle_count)

        validate_service_sequence([(s.service, s.slot, s.vehicle_count) for s in selections])

        services = sorted(set(services_requested or ()) | set(selected), key=lambda service: service.position)
        appointment = Appointment(
            customer_name=customer_name,
            customer_email=customer_email,
            number_of_vehicles=number_of_vehicles,
            services_requested=services,
            customer_phone=customer_phone,
            company_name=company_name,
            notes=notes
        )
        bookings = [
            Booking(
                appointment_id=appointment.id,
                service=selection.service,
                scheduled_date=selection.date,
                scheduled_time=selection.time,
                vehicle_count=selection.vehicle_count,
                location=selection.location
            )
            for selection in selections
        ]

        saved = await self._capacity_guard.commit(
            bookings,
            before_write=lambda: self._appointment_repository.save(appointment)
        )
        for booking in saved:
            appointment.add_booking(booking)

        self._logger.info(
            "Appointment created",
            extra={
                "reference_number": appointment.reference_number,
                "vehicle_count": number_of_vehicles,
                "services": [service.value for service in services]
            }
        )
        return appointment

    async def book_service(
        self,
        appointment_id: UUID,
        service: ServiceType,
        assignments: Sequence[SuggestedAssignment]
    ) -> List[Booking]:
        """
        Book a further service for an existing appointment.

        Accepts either an accepted suggestion or a manual selection. Vehicles
        must land after the slot their sub-group used in the latest earlier
        service that has been booked.
        """
        appointment = await self._get_active_appointment(appointment_id)
        if service not in appointment.services_requested:
            raise InvalidInputError(f"Service not requested: {service.display_name}")
        if appointment.bookings_for(service):
            raise InvalidInputError(f"{service.display_name} is already booked for this appointment")

        self._ensure_whole_fleet(service, total_assigned(assignments), appointment.number_of_vehicles)
        for assignment in assignments:
            self._ensure_bookable(service, assignment.slot, assignment.vehicle_count)

        previous = appointment.constraining_service(service)
        if previous is not None:
            constraints = derive_group_constraints(
                appointment.bookings_for(previous), self._policy.labels_for(previous)
            )
            validate_selection(assignments, constraints)

        bookings = [
            Booking(
                appointment_id=appointment.id,
                service=service,
                scheduled_date=assignment.date,
                scheduled_time=assignment.time,
                vehicle_count=assignment.vehicle_count
            )
            for assignment in assignments
        ]
        self._validate_appointment_sequence(appointment.bookings, bookings)

        return await self._capacity_guard.commit(bookings)

    async def reschedule_booking(self, booking_id: UUID, new_date: date, new_time: str) -> Booking:
        """Move a booking to another slot of the same service."""
        booking = await self._booking_repository.find_by_id(booking_id)
        if booking is None:
            raise InvalidInputError(f"Booking not found: {booking_id}")

        self._ensure_bookable(booking.service, Slot(new_date, new_time), booking.vehicle_count)
        try:
            moved = booking.moved_to(new_date, new_time)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        siblings = await self._booking_repository.find_by_appointment(booking.appointment_id)
        self._validate_appointment_sequence(
            [sibling for sibling in siblings if sibling.id != booking.id],
            [moved]
        )

        saved = await self._capacity_guard.commit([moved])
        self._logger.info(
            "Booking rescheduled",
            extra={"booking_id": str(booking_id), "from_slot": str(booking.slot), "to_slot": str(moved.slot)}
        )
        return saved[0]

    async def find_shift_candidates(self, service: ServiceType, slot_date: date, freed_time: str) -> List[Booking]:
        """Later bookings on the same day that would fit into a freed earlier slot."""
        labels = self._policy.labels_for(service)
        freed_index = time_label_index(freed_time, labels)
        committed = await self._booking_repository.count_committed_vehicles(service, slot_date, freed_time)
        free = self._policy.ceiling_for(service) - committed
        if free <= 0:
            return []

        bookings = await self._booking_repository.find_by_service_date(service, slot_date)
        candidates = [
            booking for booking in bookings
            if booking.is_active
            and time_label_index(booking.scheduled_time, labels) > freed_index
            and booking.vehicle_count <= free
        ]
        return sorted(candidates, key=lambda booking: (booking.slot.sort_key(labels), booking.created_at))

    async def shift_booking(self, booking_id: UUID, target_time: str) -> Booking:
        """Move a booking into an earlier slot on the same day."""
        booking = await self._booking_repository.find_by_id(booking_id)
        if booking is None:
            raise InvalidInputError(f"Booking not found: {booking_id}")

        labels = self._policy.labels_for(booking.service)
        if time_label_index(target_time, labels) >= time_label_index(booking.scheduled_time, labels):
            raise InvalidInputError("A booking can only be shifted to an earlier slot on the same day")

        return await self.reschedule_booking(booking_id, booking.scheduled_date, target_time)

    async def cancel_appointment(self, cancellation_token: str) -> Appointment:
        """Cancel an appointment and release its capacity."""
        appointment = await self._appointment_repository.find_by_cancellation_token(cancellation_token)
        if appointment is None:
            raise InvalidInputError("Appointment not found for cancellation token")

        try:
            appointment.cancel()
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        saved = await self._appointment_repository.save(appointment)
        self._logger.info(
            "Appointment cancelled",
            extra={"reference_number": appointment.reference_number}
        )
        return saved

    async def get_appointment(self, appointment_id: UUID) -> Optional[Appointment]:
        """Get a specific appointment by ID."""
        return await self._appointment_repository.find_by_id(appointment_id)

    async def get_appointment_by_reference(self, reference_number: str) -> Optional[Appointment]:
        """Get a specific appointment by reference number."""
        return await self._appointment_repository.find_by_reference_number(reference_number.strip().upper())

    async def _get_active_appointment(self, appointment_id: UUID) -> Appointment:
        appointment = await self._appointment_repository.find_by_id(appointment_id)
        if appointment is None:
            raise InvalidInputError(f"Appointment not found: {appointment_id}")
        if appointment.status != AppointmentStatus.CONFIRMED:
            raise InvalidInputError("Appointment is cancelled")
        return appointment

    def _ensure_bookable(self, service: ServiceType, slot: Slot, vehicle_count: int) -> None:
        """Reject unknown labels, closed days, slots already started and oversized requests."""
        time_label_index(slot.time, self._policy.labels_for(service))
        if vehicle_count < 1:
            raise InvalidInputError("Vehicle count must be at least 1")
        if vehicle_count > self._policy.ceiling_for(service):
            raise InvalidInputError(
                f"{vehicle_count} vehicles exceed the {service.display_name} limit of "
                f"{self._policy.ceiling_for(service)} per time slot"
            )
        if self._calendar is not None and not self._calendar.is_business_day(slot.date):
            raise InvalidInputError(f"{slot.date.isoformat()} is not a business day")
        if slot.starts_at <= self._clock():
            raise InvalidInputError(f"Time slot {slot} is in the past")

    @staticmethod
    def _ensure_whole_fleet(service: ServiceType, scheduled: int, number_of_vehicles: int) -> None:
        if scheduled != number_of_vehicles:
            raise InvalidInputError(
                f"{service.display_name} schedules {scheduled} vehicles but the appointment has {number_of_vehicles}"
            )

    def _validate_appointment_sequence(self, existing: Iterable[Booking], proposed: Iterable[Booking]) -> None:
        placements = [
            (booking.service, booking.slot, booking.vehicle_count)
            for booking in list(existing) + list(proposed)
            if booking.is_active
        ]
        validate_service_sequence(placements)

    @staticmethod
    def _services_in_order(selections: Sequence[SlotSelection]) -> List[ServiceType]:
        return sorted({selection.service for selection in selections}, key=lambda service: service.position)
