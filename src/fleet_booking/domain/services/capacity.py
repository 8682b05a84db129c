"""Capacity check applied at commit time."""

from src.fleet_booking.domain.exceptions import StaleCapacityError
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot


def ensure_slot_capacity(
    service: ServiceType,
    slot: Slot,
    requested: int,
    ceiling: int,
    committed: int
) -> int:
    """
    Reject a write when requested > ceiling - committed.

    Returns the capacity left in the slot after the write.
    """
    available = max(0, ceiling - committed)
    if requested > available:
        raise StaleCapacityError(
            f"Insufficient capacity for {service.display_name} at {slot.time} on "
            f"{slot.date.isoformat()}. Need {requested} slots but only {available} available.",
            service=service.value,
            slot_date=slot.date,
            slot_time=slot.time,
            requested=requested,
            available=available
        )
    return available - requested
