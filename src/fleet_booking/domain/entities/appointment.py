"""Appointment entity grouping a customer's fleet bookings across services."""

import secrets
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from src.fleet_booking.domain.entities.booking import Booking
from src.fleet_booking.domain.value_objects.service_type import ServiceType


class AppointmentStatus(Enum):
    """Appointment status enumeration."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def generate_reference_number(now: Optional[datetime] = None) -> str:
    """Generate a customer-facing reference such as REQ-20250301-042."""
    stamp = (now or datetime.utcnow()).strftime("%Y%m%d")
    return f"REQ-{stamp}-{secrets.randbelow(1000):03d}"


def generate_cancellation_token() -> str:
    """Generate a 64-character hex token for cancellation links."""
    return secrets.token_hex(32)


class Appointment:
    """Appointment entity for one customer's multi-service fleet visit."""

    def __init__(
        self,
        customer_name: str,
        customer_email: str,
        number_of_vehicles: int,
        services_requested: List[ServiceType],
        appointment_id: Optional[UUID] = None,
        reference_number: Optional[str] = None,
        cancellation_token: Optional[str] = None,
        customer_phone: Optional[str] = None,
        company_name: Optional[str] = None,
        notes: Optional[str] = None,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        bookings: Optional[List[Booking]] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        if number_of_vehicles < 1:
            raise ValueError("At least 1 vehicle required")
        if not services_requested:
            raise ValueError("At least one service must be selected")

        self._id = appointment_id or uuid4()
        self._reference_number = reference_number or generate_reference_number()
        self._cancellation_token = cancellation_token or generate_cancellation_token()
        self._customer_name = customer_name
        self._customer_email = customer_email
        self._customer_phone = customer_phone
        self._company_name = company_name
        self._number_of_vehicles = number_of_vehicles
        self._services_requested = list(services_requested)
        self._notes = notes
        self._status = status
        self._bookings: List[Booking] = list(bookings or [])
        self._created_at = created_at or datetime.utcnow()
        self._updated_at = updated_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        """Get appointment ID."""
        return self._id

    @property
    def reference_number(self) -> str:
        """Get reference number."""
        return self._reference_number

    @property
    def cancellation_token(self) -> str:
        """Get cancellation token."""
        return self._cancellation_token

    @property
    def customer_name(self) -> str:
        return self._customer_name

    @property
    def customer_email(self) -> str:
        return self._customer_email

    @property
    def customer_phone(self) -> Optional[str]:
        return self._customer_phone

    @property
    def company_name(self) -> Optional[str]:
        return self._company_name

    @property
    def number_of_vehicles(self) -> int:
        """Get fleet size."""
        return self._number_of_vehicles

    @property
    def services_requested(self) -> List[ServiceType]:
        """Get requested services."""
        return list(self._services_requested)

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    @property
    def status(self) -> AppointmentStatus:
        """Get appointment status."""
        return self._status

    @property
    def bookings(self) -> List[Booking]:
        """Get all bookings of the appointment."""
        return list(self._bookings)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def bookings_for(self, service: ServiceType) -> List[Booking]:
        """Get the confirmed bookings for one service."""
        return [
            booking for booking in self._bookings
            if booking.service == service and booking.is_active
        ]

    def constraining_service(self, service: ServiceType) -> Optional[ServiceType]:
        """
        The latest requested service before the given one that has confirmed bookings.

        Services still waiting to be booked are skipped, so their vehicles are
        ordered against whatever was actually booked before them.
        """
        earlier = [
            other for other in self._services_requested
            if other.position < service.position and self.bookings_for(other)
        ]
        if not earlier:
            return None
        return max(earlier, key=lambda other: other.position)

    def add_booking(self, booking: Booking) -> None:
        """Attach a booking to the appointment."""
        if self._status == AppointmentStatus.CANCELLED:
            raise ValueError("Cannot add bookings to a cancelled appointment")
        if booking.appointment_id != self._id:
            raise ValueError("Booking belongs to another appointment")
        if booking.service not in self._services_requested:
            raise ValueError(f"Service not requested: {booking.service.display_name}")
        self._bookings.append(booking)
        self._updated_at = datetime.utcnow()

    def cancel(self) -> None:
        """Cancel the appointment and release all of its bookings."""
        if self._status == AppointmentStatus.CANCELLED:
            raise ValueError("Appointment is already cancelled")
        for booking in self._bookings:
            if booking.is_active:
                booking.cancel()
        self._status = AppointmentStatus.CANCELLED
        self._updated_at = datetime.utcnow()

    def __eq__(self, other: object) -> bool:
        """Check equality based on appointment ID."""
        if not isinstance(other, Appointment):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on appointment ID."""
        return hash(self._id)

    def __str__(self) -> str:
        """String representation."""
        return f"Appointment({self._reference_number}, {self._number_of_vehicles} vehicles, {self._status.value})"
