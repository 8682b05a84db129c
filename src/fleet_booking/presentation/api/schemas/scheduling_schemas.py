"""Pydantic schemas for scheduling API requests and responses."""

from datetime import date as Date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.fleet_booking.domain.entities.appointment import Appointment
from src.fleet_booking.domain.entities.booking import Booking
from src.fleet_booking.domain.value_objects.allocation import SuggestedAssignment, VehicleGroupConstraint
from src.fleet_booking.domain.value_objects.suggestion import DistributionSuggestion
from src.fleet_booking.domain.value_objects.time_slot import SlotAvailability, SlotCount


class SlotAvailabilityResponse(BaseModel):
    """Remaining capacity of one slot."""
    date: Date
    time: str
    available_capacity: int
    total_capacity: int
    booked_count: int
    is_fully_booked: bool


class SlotCountResponse(BaseModel):
    """Raw count of booked vehicles in one slot."""
    date: Date
    time: str
    count: int


class AvailabilityResponse(BaseModel):
    """Availability of a service over a date range."""
    service: str
    start_date: Date
    end_date: Date
    slots: List[SlotAvailabilityResponse]
    slot_counts: List[SlotCountResponse]


class ConstraintSchema(BaseModel):
    """Where a vehicle sub-group landed in the previous service."""
    vehicle_group: int
    vehicle_count: int
    constraint_date: Date
    constraint_time: str

    def to_domain(self) -> VehicleGroupConstraint:
        return VehicleGroupConstraint(
            vehicle_group=self.vehicle_group,
            vehicle_count=self.vehicle_count,
            constraint_date=self.constraint_date,
            constraint_time=self.constraint_time
        )


class AssignmentSchema(BaseModel):
    """A number of vehicles placed in one slot."""
    date: Date
    time: str
    vehicle_count: int
    vehicle_group: Optional[int] = None

    def to_domain(self) -> SuggestedAssignment:
        return SuggestedAssignment(
            date=self.date,
            time=self.time,
            vehicle_count=self.vehicle_count,
            vehicle_group=self.vehicle_group
        )


class DistributionRequest(BaseModel):
    """Request an automatic distribution for a service."""
    service: str = Field(..., description="Service code or display name")
    vehicle_count: int = Field(..., description="Number of vehicles to place")
    target_date: Date = Field(..., description="Preferred date")
    constraints: List[ConstraintSchema] = Field(default_factory=list)
    require_complete: bool = Field(False, description="Fail with 422 instead of returning an infeasible suggestion")


class StaggerRequest(BaseModel):
    """Request a downstream schedule for an existing appointment."""
    appointment_id: UUID
    service: str = Field(..., description="Downstream service to schedule")
    target_date: Date
    upstream_service: Optional[str] = Field(None, description="Defaults to the previous requested service")


class SuggestionResponse(BaseModel):
    """Advisory distribution, or the reason none could be offered."""
    service: str
    vehicle_count: int
    status: str
    advisory: str
    is_available: bool
    requires_manual_selection: bool
    is_split: bool
    allocated_count: int
    assignments: List[AssignmentSchema]
    constraints: List[ConstraintSchema]
    searched_dates: List[Date]


class SlotSelectionRequest(BaseModel):
    """A chosen slot for one service."""
    service: str
    date: Date
    time: str
    vehicle_count: int = 1
    location: Optional[str] = Field(None, max_length=200)


class CreateAppointmentRequest(BaseModel):
    """Request to create an appointment with its service bookings."""
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: str = Field(..., min_length=3, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=30)
    company_name: Optional[str] = Field(None, max_length=200)
    number_of_vehicles: int
    notes: Optional[str] = Field(None, max_length=1000)
    bookings: List[SlotSelectionRequest]
    services_requested: List[str] = Field(default_factory=list, description="Services to book later, besides those in bookings")

    @field_validator('customer_email')
    @classmethod
    def validate_email(cls, v):
        """Validate e-mail shape."""
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError('Invalid e-mail address')
        return v.lower()

    @field_validator('customer_name')
    @classmethod
    def validate_name(cls, v):
        """Validate customer name."""
        if not v.strip():
            raise ValueError('Customer name cannot be empty')
        return v.strip()


class BookServiceRequest(BaseModel):
    """Book a further service for an appointment."""
    service: str
    assignments: List[AssignmentSchema] = Field(..., min_length=1)


class CancelAppointmentRequest(BaseModel):
    """Cancel an appointment by its token."""
    cancellation_token: str = Field(..., min_length=1)


class RescheduleRequest(BaseModel):
    """Move a booking to another slot."""
    date: Date
    time: str


class ShiftRequest(BaseModel):
    """Move a booking into an earlier slot of the same day."""
    time: str


class BookingResponse(BaseModel):
    """Response model for a service booking."""
    id: UUID
    appointment_id: UUID
    service: str
    scheduled_date: Date
    scheduled_time: str
    vehicle_count: int
    location: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime


class AppointmentResponse(BaseModel):
    """Response model for an appointment."""
    id: UUID
    reference_number: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    company_name: Optional[str]
    number_of_vehicles: int
    services_requested: List[str]
    notes: Optional[str]
    status: str
    bookings: List[BookingResponse]
    created_at: datetime
    updated_at: datetime


class AppointmentCreatedResponse(AppointmentResponse):
    """Appointment response carrying the cancellation token, returned only on creation."""
    cancellation_token: str


def availability_to_response(slot: SlotAvailability) -> SlotAvailabilityResponse:
    return SlotAvailabilityResponse(
        date=slot.date,
        time=slot.time,
        available_capacity=slot.available_capacity,
        total_capacity=slot.total_capacity,
        booked_count=slot.booked_count,
        is_fully_booked=slot.is_fully_booked
    )


def slot_count_to_response(slot_count: SlotCount) -> SlotCountResponse:
    return SlotCountResponse(date=slot_count.date, time=slot_count.time, count=slot_count.count)


def suggestion_to_response(suggestion: DistributionSuggestion) -> SuggestionResponse:
    return SuggestionResponse(
        service=suggestion.service.value,
        vehicle_count=suggestion.vehicle_count,
        status=suggestion.status.value,
        advisory=suggestion.advisory,
        is_available=suggestion.is_available,
        requires_manual_selection=suggestion.requires_manual_selection,
        is_split=suggestion.is_split,
        allocated_count=suggestion.allocated_count,
        assignments=[
            AssignmentSchema(
                date=assignment.date,
                time=assignment.time,
                vehicle_count=assignment.vehicle_count,
                vehicle_group=assignment.vehicle_group
            )
            for assignment in suggestion.assignments
        ],
        constraints=[
            ConstraintSchema(
                vehicle_group=constraint.vehicle_group,
                vehicle_count=constraint.vehicle_count,
                constraint_date=constraint.constraint_date,
                constraint_time=constraint.constraint_time
            )
            for constraint in suggestion.constraints
        ],
        searched_dates=list(suggestion.searched_dates)
    )


def booking_to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        appointment_id=booking.appointment_id,
        service=booking.service.value,
        scheduled_date=booking.scheduled_date,
        scheduled_time=booking.scheduled_time,
        vehicle_count=booking.vehicle_count,
        location=booking.location,
        status=booking.status.value,
        created_at=booking.created_at,
        updated_at=booking.updated_at
    )


def appointment_to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(**_appointment_fields(appointment))


def appointment_to_created_response(appointment: Appointment) -> AppointmentCreatedResponse:
    return AppointmentCreatedResponse(
        cancellation_token=appointment.cancellation_token,
        **_appointment_fields(appointment)
    )


def _appointment_fields(appointment: Appointment) -> dict:
    return {
        "id": appointment.id,
        "reference_number": appointment.reference_number,
        "customer_name": appointment.customer_name,
        "customer_email": appointment.customer_email,
        "customer_phone": appointment.customer_phone,
        "company_name": appointment.company_name,
        "number_of_vehicles": appointment.number_of_vehicles,
        "services_requested": [service.value for service in appointment.services_requested],
        "notes": appointment.notes,
        "status": appointment.status.value,
        "bookings": [booking_to_response(booking) for booking in appointment.bookings],
        "created_at": appointment.created_at,
        "updated_at": appointment.updated_at,
    }
