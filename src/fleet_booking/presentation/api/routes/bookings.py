"""Service booking endpoints: reschedule and shift into freed slots."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Path, Query

from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import parse_slot_date
from src.fleet_booking.infrastructure.services import get_service_factory
from ..schemas.scheduling_schemas import (
    BookingResponse,
    RescheduleRequest,
    ShiftRequest,
    booking_to_response,
)

router = APIRouter()


@router.get("/shift-candidates")
async def get_shift_candidates(
    service: str = Query(..., description="Service code or display name"),
    date: str = Query(..., description="Date in YYYY-MM-DD format"),
    time: str = Query(..., description="Freed time slot, e.g. 09:30 AM")
) -> List[BookingResponse]:
    """List later bookings of the same day that fit into a freed slot."""
    service_type = ServiceType.parse(service)
    slot_date = parse_slot_date(date)

    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        candidates = await booking_service.find_shift_candidates(service_type, slot_date, time)

    return [booking_to_response(booking) for booking in candidates]


@router.post("/{booking_id}/reschedule")
async def reschedule_booking(
    request: RescheduleRequest,
    booking_id: UUID = Path(..., description="Booking ID")
) -> BookingResponse:
    """Move a booking to another slot of the same service."""
    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        booking = await booking_service.reschedule_booking(booking_id, request.date, request.time)

    return booking_to_response(booking)


@router.post("/{booking_id}/shift")
async def shift_booking(
    request: ShiftRequest,
    booking_id: UUID = Path(..., description="Booking ID")
) -> BookingResponse:
    """Move a booking into an earlier slot of the same day."""
    service_factory = get_service_factory()
    async with service_factory.get_booking_service() as booking_service:
        booking = await booking_service.shift_booking(booking_id, request.time)

    return booking_to_response(booking)
