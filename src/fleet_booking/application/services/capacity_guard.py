"""Commit-time capacity guard: the final check before bookings are written."""

from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from src.fleet_booking.application.ports.repositories import BookingRepository
from src.fleet_booking.domain.entities.booking import Booking
from src.fleet_booking.domain.exceptions import StaleCapacityError
from src.fleet_booking.domain.services.capacity import ensure_slot_capacity
from src.fleet_booking.domain.value_objects.scheduling_policy import SchedulingPolicy
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot
from src.fleet_booking.infrastructure.logging import get_logger, log_business_rule_violation


class CapacityGuard:
    """
    Re-validates slot capacity inside the write and persists only if it fits.

    Suggestions are advisory; this is the only check that holds under
    concurrent writers, because it aggregates and writes while the slot
    locks of the repository are held.
    """

    def __init__(self, booking_repository: BookingRepository, policy: SchedulingPolicy):
        self._booking_repository = booking_repository
        self._policy = policy
        self._logger = get_logger(__name__)

    async def commit(
        self,
        bookings: Sequence[Booking],
        before_write: Optional[Callable[[], Awaitable[object]]] = None
    ) -> List[Booking]:
        """
        Persist the bookings if every target slot still has room.

        Bookings that already exist (reschedule, shift) are excluded from the
        aggregate so their own vehicles are not counted twice. Several
        bookings of the batch landing in the same slot are summed.

        before_write runs once every slot has been checked and before any
        booking is saved, for records the bookings depend on.

        Raises:
            StaleCapacityError: If any slot cannot hold its requested vehicles.
                Nothing from the batch is written in that case.
        """
        if not bookings:
            return []

        keys = self._slot_keys(bookings)
        batch_ids = {booking.id for booking in bookings}

        async with self._booking_repository.lock_slots(keys):
            pending: Dict[Tuple[ServiceType, Slot], int] = defaultdict(int)
            for booking in bookings:
                key = (booking.service, booking.slot)
                committed = await self._booking_repository.count_committed_vehicles(
                    booking.service,
                    booking.scheduled_date,
                    booking.scheduled_time,
                    exclude_booking_ids=batch_ids
                )
                try:
                    ensure_slot_capacity(
                        booking.service,
                        booking.slot,
                        booking.vehicle_count,
                        self._policy.ceiling_for(booking.service),
                        committed + pending[key]
                    )
                except StaleCapacityError as e:
                    log_business_rule_violation(
                        self._logger,
                        "slot_capacity",
                        str(e),
                        service=booking.service.value,
                        slot=str(booking.slot),
                        requested=e.requested,
                        available=e.available
                    )
                    raise
                pending[key] += booking.vehicle_count

            if before_write is not None:
                await before_write()

            saved = []
            for booking in bookings:
                saved.append(await self._booking_repository.save(booking))

        self._logger.info(
            "Bookings committed",
            extra={"booking_count": len(saved), "slots": [str(slot) for _, slot in keys]}
        )
        return saved

    def _slot_keys(self, bookings: Sequence[Booking]) -> List[Tuple[ServiceType, Slot]]:
        """Distinct (service, slot) pairs in a stable order for lock acquisition."""
        keys = {(booking.service, booking.slot) for booking in bookings}
        return sorted(
            keys,
            key=lambda key: (key[0].position, key[1].sort_key(self._policy.labels_for(key[0])))
        )
