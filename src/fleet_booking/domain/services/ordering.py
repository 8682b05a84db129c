"""Cross-service ordering checks for manual selections and new appointments."""

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from src.fleet_booking.domain.exceptions import ConstraintViolationError
from src.fleet_booking.domain.value_objects.allocation import SuggestedAssignment, VehicleGroupConstraint
from src.fleet_booking.domain.value_objects.service_type import SERVICE_ORDER, ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot


def _vehicle_sequence(placements: Iterable[Tuple[Slot, int]]) -> List[Slot]:
    """Expand (slot, count) pairs into one chronologically sorted slot per vehicle."""
    vehicles: List[Slot] = []
    for slot, count in sorted(placements, key=lambda item: item[0].starts_at):
        vehicles.extend([slot] * count)
    return vehicles


def find_ordering_violation(
    upstream: Iterable[Tuple[Slot, int]],
    downstream: Iterable[Tuple[Slot, int]]
) -> "Tuple[Slot, Slot] | None":
    """
    Match the k-th earliest downstream vehicle with the k-th earliest upstream one.

    Returns the first (upstream, downstream) pair where the downstream slot is
    not strictly later, or None. Downstream vehicles beyond the upstream count
    are unconstrained. Slots are compared by start time, since each service
    may use its own label sequence.
    """
    earlier = _vehicle_sequence(upstream)
    later = _vehicle_sequence(downstream)
    for upstream_slot, downstream_slot in zip(earlier, later):
        if not downstream_slot.starts_after(upstream_slot):
            return upstream_slot, downstream_slot
    return None


def validate_selection(
    selection: Iterable[SuggestedAssignment],
    constraints: Iterable[VehicleGroupConstraint]
) -> None:
    """
    Reject a manual selection that places vehicles at or before their upstream slot.

    Entries tagged with a vehicle_group are checked against that group's
    constraint; untagged entries are matched to the groups chronologically.
    """
    selection = list(selection)
    constraints = list(constraints)
    by_group = {constraint.vehicle_group: constraint for constraint in constraints}

    untagged = []
    for entry in selection:
        if entry.vehicle_group is None:
            untagged.append(entry)
            continue
        constraint = by_group.get(entry.vehicle_group)
        if constraint is None:
            raise ConstraintViolationError(f"Unknown vehicle group: {entry.vehicle_group}")
        if not constraint.permits(entry.slot):
            raise ConstraintViolationError(
                f"Vehicle group {entry.vehicle_group} cannot be scheduled at {entry.slot}; "
                f"it must come after {constraint.slot}"
            )

    if not untagged:
        return

    tagged_groups = {entry.vehicle_group for entry in selection if entry.vehicle_group is not None}
    open_constraints = [c for c in constraints if c.vehicle_group not in tagged_groups]
    violation = find_ordering_violation(
        [(c.slot, c.vehicle_count) for c in open_constraints],
        [(entry.slot, entry.vehicle_count) for entry in untagged]
    )
    if violation is not None:
        upstream_slot, downstream_slot = violation
        raise ConstraintViolationError(
            f"Selected slot {downstream_slot} must be after the previous service slot {upstream_slot}"
        )


def validate_service_sequence(
    placements: Iterable[Tuple[ServiceType, Slot, int]]
) -> None:
    """
    Check every present service is scheduled after the one before it.

    Services are compared in processing order, skipping services that are
    not part of the request.
    """
    by_service: Dict[ServiceType, List[Tuple[Slot, int]]] = defaultdict(list)
    for service, slot, count in placements:
        by_service[service].append((slot, count))

    present = [service for service in SERVICE_ORDER if service in by_service]
    for previous, current in zip(present, present[1:]):
        violation = find_ordering_violation(by_service[previous], by_service[current])
        if violation is not None:
            upstream_slot, downstream_slot = violation
            raise ConstraintViolationError(
                f"Service {current.display_name} at {downstream_slot} must be scheduled after "
                f"{previous.display_name} at {upstream_slot} for the same vehicle group"
            )
