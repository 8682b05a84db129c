"""Slot availability endpoints."""

from typing import Optional

from fastapi import APIRouter, Query

from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import parse_slot_date
from src.fleet_booking.infrastructure.services import get_service_factory
from ..schemas.scheduling_schemas import (
    AvailabilityResponse,
    availability_to_response,
    slot_count_to_response,
)

router = APIRouter()


@router.get("")
async def get_availability(
    service: str = Query(..., description="Service code or display name"),
    start_date: str = Query(..., description="Date in YYYY-MM-DD format"),
    end_date: Optional[str] = Query(None, description="Date in YYYY-MM-DD format, defaults to start_date")
) -> AvailabilityResponse:
    """Get remaining capacity for every slot of a service over a date range."""
    service_type = ServiceType.parse(service)
    start = parse_slot_date(start_date)
    end = parse_slot_date(end_date) if end_date else start

    service_factory = get_service_factory()
    async with service_factory.get_suggestion_service() as suggestion_service:
        slot_counts = await suggestion_service.get_slot_counts(service_type, start, end)
        slots = await suggestion_service.get_availability(service_type, start, end)

    return AvailabilityResponse(
        service=service_type.value,
        start_date=start,
        end_date=end,
        slots=[availability_to_response(slot) for slot in slots],
        slot_counts=[slot_count_to_response(slot_count) for slot_count in slot_counts]
    )
