"""Suggestion service: availability queries and automatic fleet distribution."""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from src.fleet_booking.application.ports.repositories import (
    AppointmentRepository,
    BookingRepository,
    BusinessCalendar,
)
from src.fleet_booking.domain.exceptions import InvalidInputError
from src.fleet_booking.domain.services.allocator import (
    allocate_vehicles,
    require_complete,
    validate_vehicle_count,
)
from src.fleet_booking.domain.services.availability import (
    build_multi_day_availability,
    filter_bookable_slots,
)
from src.fleet_booking.domain.services.constraints import derive_group_constraints
from src.fleet_booking.domain.value_objects.allocation import (
    SuggestedAssignment,
    VehicleGroupConstraint,
    total_assigned,
)
from src.fleet_booking.domain.value_objects.scheduling_policy import SchedulingPolicy
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.suggestion import DistributionSuggestion, SuggestionStatus
from src.fleet_booking.domain.value_objects.time_slot import Slot, SlotAvailability, SlotCount
from src.fleet_booking.infrastructure.logging import (
    get_logger,
    log_allocation_outcome,
    log_business_rule_violation,
)

MAX_AVAILABILITY_RANGE_DAYS = 62


class SuggestionService:
    """Application service proposing where a fleet should go for a service."""

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
        self._logger = get_logger(__name__)

    async def get_slot_counts(self, service: ServiceType, start_date: date, end_date: date) -> List[SlotCount]:
        """Get raw per-slot aggregates for a date range."""
        if end_date < start_date:
            raise InvalidInputError("End date must not be before start date")
        return await self._booking_repository.find_slot_counts(service, start_date, end_date)

    async def get_availability(self, service: ServiceType, start_date: date, end_date: date) -> List[SlotAvailability]:
        """Get availability of every slot in a date range, including full ones."""
        slot_counts = await self.get_slot_counts(service, start_date, end_date)
        span = (end_date - start_date).days
        if span > MAX_AVAILABILITY_RANGE_DAYS:
            raise InvalidInputError(f"Date range cannot exceed {MAX_AVAILABILITY_RANGE_DAYS} days")
        dates = [start_date + timedelta(days=offset) for offset in range(span + 1)]
        return build_multi_day_availability(
            slot_counts,
            self._policy.ceiling_for(service),
            dates,
            self._policy.labels_for(service)
        )

    async def derive_constraints(self, appointment_id: UUID, upstream_service: ServiceType) -> List[VehicleGroupConstraint]:
        """Derive per-group constraints from the upstream service's committed bookings."""
        bookings = await self._booking_repository.find_by_appointment(appointment_id, upstream_service)
        return derive_group_constraints(bookings, self._policy.labels_for(upstream_service))

    async def suggest_distribution(
        self,
        service: ServiceType,
        vehicle_count: int,
        target_date: date,
        constraints: Sequence[VehicleGroupConstraint] = (),
        strict: bool = False
    ) -> DistributionSuggestion:
        """
        Propose a distribution on the target date, widening to the search window if needed.

        The result is re-validated against fresh aggregates before it is
        returned; a proposal that no longer fits is discarded rather than
        adjusted.

        Raises:
            InfeasibleAllocationError: If strict and the window cannot hold
                every vehicle. Otherwise an INFEASIBLE suggestion is returned.
        """
        validate_vehicle_count(vehicle_count)
        constraints = tuple(constraints)
        labels = self._policy.labels_for(service)
        ceiling = self._policy.ceiling_for(service)

        same_day = await self._bookable_availability(service, [target_date])
        assignments = allocate_vehicles(vehicle_count, same_day, constraints, ceiling, labels)
        searched: Tuple[date, ...] = (target_date,)
        status = SuggestionStatus.SAME_DAY

        if total_assigned(assignments) < vehicle_count:
            window = self._policy.search_window(target_date)
            widened = await self._bookable_availability(service, window)
            assignments = allocate_vehicles(vehicle_count, widened, constraints, ceiling, labels)
            searched = tuple(window)
            status = SuggestionStatus.MULTI_DAY

            if total_assigned(assignments) < vehicle_count:
                if strict:
                    require_complete(assignments, vehicle_count)
                return self._infeasible(service, vehicle_count, constraints, searched, widened, assignments)

        stale_slot = await self._find_stale_slot(service, assignments)
        if stale_slot is not None:
            advisory = (
                f"Slot {stale_slot} filled up while your suggestion was prepared. "
                "Please choose your time slots manually."
            )
            log_business_rule_violation(
                self._logger, "stale_capacity", advisory, service=service.value, slot=str(stale_slot)
            )
            return DistributionSuggestion(
                service=service,
                vehicle_count=vehicle_count,
                status=SuggestionStatus.STALE_CAPACITY,
                advisory=advisory,
                constraints=constraints,
                searched_dates=searched
            )

        log_allocation_outcome(
            self._logger, service.value, status.value, vehicle_count, total_assigned(assignments),
            assignment_count=len(assignments)
        )
        return DistributionSuggestion(
            service=service,
            vehicle_count=vehicle_count,
            status=status,
            advisory=self._success_advisory(status, vehicle_count, assignments, target_date),
            assignments=tuple(assignments),
            constraints=constraints,
            searched_dates=searched
        )

    async def suggest_stagger(
        self,
        appointment_id: UUID,
        downstream_service: ServiceType,
        target_date: date,
        upstream_service: Optional[ServiceType] = None
    ) -> DistributionSuggestion:
        """
        Propose the downstream service schedule for an appointment's fleet.

        Each upstream sub-group may only be placed after the slot it used in
        the upstream service. Upstream defaults to the latest requested service
        before the downstream one that has already been booked.
        """
        appointment = await self._appointment_repository.find_by_id(appointment_id)
        if appointment is None:
            raise InvalidInputError(f"Appointment not found: {appointment_id}")
        if downstream_service not in appointment.services_requested:
            raise InvalidInputError(f"Service not requested: {downstream_service.display_name}")
        if appointment.bookings_for(downstream_service):
            raise InvalidInputError(f"{downstream_service.display_name} is already booked for this appointment")

        upstream = upstream_service or appointment.constraining_service(downstream_service)
        constraints: List[VehicleGroupConstraint] = []
        if upstream is not None:
            constraints = await self.derive_constraints(appointment_id, upstream)

        return await self.suggest_distribution(
            downstream_service,
            appointment.number_of_vehicles,
            target_date,
            constraints
        )

    async def _bookable_availability(self, service: ServiceType, dates: Sequence[date]) -> List[SlotAvailability]:
        """Availability for the dates, without closed days, started slots or full slots."""
        start_date, end_date = min(dates), max(dates)
        slot_counts = await self._booking_repository.find_slot_counts(service, start_date, end_date)
        availability = build_multi_day_availability(
            slot_counts,
            self._policy.ceiling_for(service),
            dates,
            self._policy.labels_for(service)
        )
        is_business_day = self._calendar.is_business_day if self._calendar else None
        return filter_bookable_slots(availability, is_business_day, self._clock())

    async def _find_stale_slot(self, service: ServiceType, assignments: Sequence[SuggestedAssignment]) -> Optional[Slot]:
        """Re-read every proposed slot and return the first one that no longer fits."""
        requested: Dict[Slot, int] = defaultdict(int)
        for assignment in assignments:
            requested[assignment.slot] += assignment.vehicle_count

        ceiling = self._policy.ceiling_for(service)
        for slot, vehicle_count in requested.items():
            committed = await self._booking_repository.count_committed_vehicles(service, slot.date, slot.time)
            if vehicle_count > ceiling - committed:
                return slot
        return None

    def _infeasible(
        self,
        service: ServiceType,
        vehicle_count: int,
        constraints: Tuple[VehicleGroupConstraint, ...],
        searched: Tuple[date, ...],
        widened: List[SlotAvailability],
        assignments: List[SuggestedAssignment]
    ) -> DistributionSuggestion:
        """Build the hard-failure outcome, naming what limited the search."""
        allocated = total_assigned(assignments)
        window = f"{searched[0].isoformat()} to {searched[-1].isoformat()}"

        unconstrained = allocate_vehicles(
            vehicle_count, widened, (), self._policy.ceiling_for(service), self._policy.labels_for(service)
        )
        if constraints and total_assigned(unconstrained) >= vehicle_count:
            advisory = (
                f"Only {allocated} of {vehicle_count} vehicles fit in {service.display_name} slots "
                f"after your previous service bookings between {window}. Please choose your time slots manually."
            )
        else:
            advisory = (
                f"{service.display_name} capacity is exhausted: only {allocated} of {vehicle_count} "
                f"vehicles fit between {window}. Please choose a later date."
            )

        log_allocation_outcome(
            self._logger, service.value, SuggestionStatus.INFEASIBLE.value, vehicle_count, allocated,
            searched_from=searched[0].isoformat(), searched_to=searched[-1].isoformat()
        )
        return DistributionSuggestion(
            service=service,
            vehicle_count=vehicle_count,
            status=SuggestionStatus.INFEASIBLE,
            advisory=advisory,
            constraints=constraints,
            searched_dates=searched
        )

    @staticmethod
    def _success_advisory(
        status: SuggestionStatus,
        vehicle_count: int,
        assignments: Sequence[SuggestedAssignment],
        target_date: date
    ) -> str:
        if len(assignments) == 1:
            only = assignments[0]
            return f"All {vehicle_count} vehicles fit at {only.time} on {only.date.isoformat()}."
        if status == SuggestionStatus.SAME_DAY:
            return f"Your {vehicle_count} vehicles are split across {len(assignments)} time slots on {target_date.isoformat()}."
        days = len({assignment.date for assignment in assignments})
        return (
            f"Not enough capacity on {target_date.isoformat()}; your {vehicle_count} vehicles are "
            f"split across {len(assignments)} time slots over {days} days."
        )
