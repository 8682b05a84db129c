"""Appointment endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from src.fleet_booking.application.services.booking_service import SlotSelection
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.infrastructure.services import get_service_factory
from ..schemas.scheduling_schemas import (
    AppointmentCreatedResponse,
    AppointmentResponse,
    BookingResponse,
    BookServiceRequest,
    CancelAppointmentRequest,
    CreateAppointmentRequest,
    appointment_to_created_response,
    appointment_to_response,
    booking_to_response,
)

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(request: CreateAppointmentRequest) -> AppointmentCreatedResponse:
    """Create an appointment with bookings for each requested service."""
    selections = [
        SlotSelection(
            service=ServiceType.parse(selection.service),
            date=selection.date,
            time=selection.time,
            vehicle_count=selection.vehicle_count,
            location=selection.location
        )
        for selection in request.bookings
    ]

    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        appointment = await booking_service.create_appointment(
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            number_of_vehicles=request.number_of_vehicles,
            selections=selections,
            customer_phone=request.customer_phone,
            company_name=request.company_name,
            notes=request.notes,
            services_requested=[ServiceType.parse(service) for service in request.services_requested]
        )

    return appointment_to_created_response(appointment)


@router.post("/cancel")
async def cancel_appointment(request: CancelAppointmentRequest) -> AppointmentResponse:
    """Cancel an appointment using its cancellation token."""
    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        appointment = await booking_service.cancel_appointment(request.cancellation_token)

    return appointment_to_response(appointment)


@router.get("/{reference_number}")
async def get_appointment(
    reference_number: str = Path(..., description="Reference number such as REQ-20250301-042")
) -> AppointmentResponse:
    """Get appointment by reference number."""
    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        appointment = await booking_service.get_appointment_by_reference(reference_number)

    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")

    return appointment_to_response(appointment)


@router.post("/{appointment_id}/bookings", status_code=status.HTTP_201_CREATED)
async def book_service(
    request: BookServiceRequest,
    appointment_id: UUID = Path(..., description="Appointment ID")
) -> List[BookingResponse]:
    """Book a further service for an appointment from a suggestion or a manual selection."""
    service = ServiceType.parse(request.service)

    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        bookings = await booking_service.book_service(
            appointment_id,
            service,
            [assignment.to_domain() for assignment in request.assignments]
        )

    return [booking_to_response(booking) for booking in bookings]
