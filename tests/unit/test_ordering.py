"""Unit tests for cross-service ordering validation."""

import pytest
from datetime import date

from src.fleet_booking.domain.exceptions import ConstraintViolationError
from src.fleet_booking.domain.services.ordering import (
    find_ordering_violation,
    validate_selection,
    validate_service_sequence,
)
from src.fleet_booking.domain.value_objects.allocation import SuggestedAssignment, VehicleGroupConstraint
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot

MONDAY = date(2030, 3, 4)
TUESDAY = date(2030, 3, 5)


def slot(slot_time, slot_date=MONDAY):
    return Slot(slot_date, slot_time)


class TestFindOrderingViolation:
    """Test cases for per-vehicle ordering checks."""

    def test_strictly_later_passes(self):
        """Test downstream vehicles after their upstream slot are accepted."""
        assert find_ordering_violation([(slot("08:30 AM"), 3)], [(slot("09:30 AM"), 3)]) is None

    def test_same_slot_is_a_violation(self):
        """Test the same slot does not count as later."""
        violation = find_ordering_violation(
            [(slot("08:30 AM"), 3)],
            [(slot("08:30 AM"), 1), (slot("09:30 AM"), 2)]
        )

        assert violation == (slot("08:30 AM"), slot("08:30 AM"))

    def test_vehicles_matched_in_order(self):
        """Test the k-th earliest downstream vehicle follows the k-th earliest upstream one."""
        upstream = [(slot("08:30 AM"), 2), (slot("10:30 AM"), 2)]

        assert find_ordering_violation(upstream, [(slot("09:30 AM"), 2), (slot("11:30 AM"), 2)]) is None
        assert find_ordering_violation(
            upstream, [(slot("09:30 AM"), 3), (slot("11:30 AM"), 1)]
        ) == (slot("10:30 AM"), slot("09:30 AM"))

    def test_next_day_is_later(self):
        """Test an earlier label on a later day is after the upstream slot."""
        assert find_ordering_violation(
            [(slot("02:30 PM"), 1)], [(slot("08:30 AM", TUESDAY), 1)]
        ) is None


class TestValidateSelection:
    """Test cases for manual selection validation."""

    constraints = [
        VehicleGroupConstraint(1, 3, MONDAY, "08:30 AM"),
        VehicleGroupConstraint(2, 2, MONDAY, "10:30 AM"),
    ]

    def test_tagged_selection_passes(self):
        """Test entries tagged with their group are checked against it."""
        validate_selection(
            [
                SuggestedAssignment(MONDAY, "09:30 AM", 3, vehicle_group=1),
                SuggestedAssignment(MONDAY, "11:30 AM", 2, vehicle_group=2),
            ],
            self.constraints
        )

    def test_tagged_entry_at_upstream_slot_fails(self):
        """Test a group cannot be placed at its own upstream slot."""
        with pytest.raises(ConstraintViolationError, match="Vehicle group 2"):
            validate_selection(
                [
                    SuggestedAssignment(MONDAY, "09:30 AM", 3, vehicle_group=1),
                    SuggestedAssignment(MONDAY, "10:30 AM", 2, vehicle_group=2),
                ],
                self.constraints
            )

    def test_unknown_group(self):
        """Test entries naming a missing group are rejected."""
        with pytest.raises(ConstraintViolationError, match="Unknown vehicle group"):
            validate_selection([SuggestedAssignment(MONDAY, "09:30 AM", 1, vehicle_group=5)], self.constraints)

    def test_untagged_selection_passes(self):
        """Test untagged entries are matched to groups chronologically."""
        validate_selection(
            [SuggestedAssignment(MONDAY, "11:30 AM", 5)],
            self.constraints
        )

    def test_untagged_selection_before_constraint_fails(self):
        """Test untagged vehicles may not precede the upstream slot of their match."""
        with pytest.raises(ConstraintViolationError, match="must be after"):
            validate_selection(
                [SuggestedAssignment(MONDAY, "08:30 AM", 5)],
                self.constraints
            )

    def test_no_constraints(self):
        """Test any selection is accepted for a first service."""
        validate_selection([SuggestedAssignment(MONDAY, "08:30 AM", 5)], [])


class TestValidateServiceSequence:
    """Test cases for appointment-wide ordering."""

    def test_ordered_services_pass(self):
        """Test weighing, inspection and registration in order are accepted."""
        validate_service_sequence([
            (ServiceType.WEIGHING, slot("08:30 AM"), 2),
            (ServiceType.INSPECTION, slot("09:30 AM"), 2),
            (ServiceType.REGISTRATION, slot("10:30 AM"), 2),
        ])

    def test_downstream_before_upstream_fails(self):
        """Test inspection before weighing is rejected."""
        with pytest.raises(ConstraintViolationError, match="Vehicle Inspection"):
            validate_service_sequence([
                (ServiceType.WEIGHING, slot("09:30 AM"), 2),
                (ServiceType.INSPECTION, slot("08:30 AM"), 2),
            ])

    def test_skipped_service(self):
        """Test services not requested are skipped in the comparison."""
        validate_service_sequence([
            (ServiceType.WEIGHING, slot("08:30 AM"), 1),
            (ServiceType.REGISTRATION, slot("09:30 AM"), 1),
        ])

    def test_last_pair_checked(self):
        """Test registration must follow inspection too."""
        with pytest.raises(ConstraintViolationError, match="Vehicle Registration"):
            validate_service_sequence([
                (ServiceType.WEIGHING, slot("08:30 AM"), 1),
                (ServiceType.INSPECTION, slot("09:30 AM"), 1),
                (ServiceType.REGISTRATION, slot("09:30 AM"), 1),
            ])

    def test_services_with_different_labels(self):
        """Test slots of services with their own label sequences are compared by start time."""
        validate_service_sequence([
            (ServiceType.INSPECTION, slot("08:30 AM"), 2),
            (ServiceType.REGISTRATION, slot("09:00 AM"), 2),
        ])
        with pytest.raises(ConstraintViolationError, match="Vehicle Registration"):
            validate_service_sequence([
                (ServiceType.INSPECTION, slot("09:30 AM"), 2),
                (ServiceType.REGISTRATION, slot("09:00 AM"), 2),
            ])
