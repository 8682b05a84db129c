"""Unit tests for the distribution allocator."""

import pytest
from datetime import date

from src.fleet_booking.domain.exceptions import InfeasibleAllocationError, InvalidInputError
from src.fleet_booking.domain.services.allocator import (
    allocate_vehicles,
    require_complete,
    sort_slots,
    validate_vehicle_count,
)
from src.fleet_booking.domain.services.availability import build_multi_day_availability
from src.fleet_booking.domain.value_objects.allocation import (
    SuggestedAssignment,
    VehicleGroupConstraint,
    total_assigned,
)
from src.fleet_booking.domain.value_objects.time_slot import Slot, SlotAvailability, SlotCount

MONDAY = date(2030, 3, 4)
TUESDAY = date(2030, 3, 5)


def availability(slot_date, slot_time, available, total=12):
    return SlotAvailability(slot_date, slot_time, available_capacity=available, total_capacity=total)


def full_day(slot_date, ceiling=12, booked=None):
    counts = [SlotCount(slot_date, label, count) for label, count in (booked or {}).items()]
    return build_multi_day_availability(counts, ceiling, [slot_date])


class TestValidateVehicleCount:
    """Test cases for vehicle count validation."""

    @pytest.mark.parametrize("value", [0, -1, True, 2.5, "3", None])
    def test_invalid_counts(self, value):
        """Test non-positive and non-integer counts are rejected."""
        with pytest.raises(InvalidInputError):
            validate_vehicle_count(value)

    def test_valid_count(self):
        """Test a positive integer passes."""
        validate_vehicle_count(1)


class TestAllocateVehicles:
    """Test cases for allocate_vehicles."""

    def test_split_across_slots(self):
        """Test 5 vehicles with 2 seats left at 08:30 spill into 09:30."""
        slots = [availability(MONDAY, "08:30 AM", 2), availability(MONDAY, "09:30 AM", 12)]

        assignments = allocate_vehicles(5, slots, max_capacity=12)

        assert assignments == [
            SuggestedAssignment(MONDAY, "08:30 AM", 2),
            SuggestedAssignment(MONDAY, "09:30 AM", 3),
        ]

    def test_single_slot_when_it_fits(self):
        """Test the fleet stays together when the earliest slot can hold it."""
        assignments = allocate_vehicles(5, full_day(MONDAY), max_capacity=12)

        assert assignments == [SuggestedAssignment(MONDAY, "08:30 AM", 5)]

    def test_input_order_does_not_matter(self):
        """Test slots are considered earliest first regardless of input order."""
        slots = [
            availability(MONDAY, "01:30 PM", 12),
            availability(MONDAY, "09:30 AM", 3),
            availability(MONDAY, "10:30 AM", 12),
        ]

        assignments = allocate_vehicles(4, slots)

        assert assignments == [
            SuggestedAssignment(MONDAY, "09:30 AM", 3),
            SuggestedAssignment(MONDAY, "10:30 AM", 1),
        ]

    def test_full_slots_are_skipped(self):
        """Test no assignment lands in a slot without capacity."""
        slots = full_day(MONDAY, booked={"08:30 AM": 12})

        assignments = allocate_vehicles(3, slots, max_capacity=12)

        assert assignments == [SuggestedAssignment(MONDAY, "09:30 AM", 3)]

    def test_max_capacity_caps_each_slot(self):
        """Test the ceiling limits what one slot can take."""
        slots = [availability(MONDAY, "08:30 AM", 12), availability(MONDAY, "09:30 AM", 12)]

        assignments = allocate_vehicles(8, slots, max_capacity=5)

        assert assignments == [
            SuggestedAssignment(MONDAY, "08:30 AM", 5),
            SuggestedAssignment(MONDAY, "09:30 AM", 3),
        ]

    def test_partial_result_when_capacity_runs_out(self):
        """Test the accumulated assignments are returned when not everything fits."""
        slots = full_day(MONDAY, booked={label: 10 for label in
                                         ("08:30 AM", "09:30 AM", "10:30 AM", "11:30 AM",
                                          "12:30 PM", "01:30 PM", "02:30 PM")})

        assignments = allocate_vehicles(20, slots, max_capacity=12)

        assert total_assigned(assignments) == 14
        assert len(assignments) == 7

    def test_no_slots(self):
        """Test an empty snapshot yields nothing."""
        assert allocate_vehicles(3, []) == []

    def test_lossless_when_capacity_suffices(self):
        """Test every vehicle is placed whenever total capacity allows it."""
        slots = full_day(MONDAY) + full_day(TUESDAY)

        for vehicle_count in range(1, 50):
            assignments = allocate_vehicles(vehicle_count, slots, max_capacity=12)
            assert total_assigned(assignments) == vehicle_count

    def test_deterministic(self):
        """Test identical inputs give identical outputs."""
        slots = full_day(MONDAY, booked={"08:30 AM": 7, "10:30 AM": 11}) + full_day(TUESDAY)
        constraints = [VehicleGroupConstraint(1, 4, MONDAY, "08:30 AM")]

        first = allocate_vehicles(9, slots, constraints, 12)
        second = allocate_vehicles(9, list(reversed(slots)), constraints, 12)

        assert first == second

    def test_invalid_max_capacity(self):
        """Test a ceiling below one is rejected."""
        with pytest.raises(InvalidInputError, match="Max capacity"):
            allocate_vehicles(3, full_day(MONDAY), max_capacity=0)

    def test_invalid_vehicle_count(self):
        """Test zero vehicles are rejected."""
        with pytest.raises(InvalidInputError):
            allocate_vehicles(0, full_day(MONDAY))

    def test_constraints_cannot_exceed_request(self):
        """Test constraints covering more vehicles than requested are rejected."""
        constraints = [VehicleGroupConstraint(1, 4, MONDAY, "08:30 AM")]

        with pytest.raises(InvalidInputError, match="Constraints cover 4 vehicles"):
            allocate_vehicles(3, full_day(MONDAY), constraints)


class TestAllocateWithConstraints:
    """Test cases for constrained allocation."""

    def test_group_placed_after_its_upstream_slot(self):
        """Test 3 vehicles weighed at 08:30 are inspected from 09:30 on."""
        constraints = [VehicleGroupConstraint(1, 3, MONDAY, "08:30 AM")]

        assignments = allocate_vehicles(3, full_day(MONDAY) + full_day(TUESDAY), constraints, 12)

        assert assignments == [SuggestedAssignment(MONDAY, "09:30 AM", 3, vehicle_group=1)]
        upstream = Slot(MONDAY, "08:30 AM")
        assert all(assignment.slot.starts_after(upstream) for assignment in assignments)

    def test_upstream_label_unknown_downstream(self):
        """Test a constraint is compared by clock time when the services use different labels."""
        registration_labels = ("09:00 AM", "10:00 AM", "11:00 AM")
        slots = build_multi_day_availability([], 5, [MONDAY], registration_labels)
        constraints = [VehicleGroupConstraint(1, 2, MONDAY, "08:30 AM")]

        assignments = allocate_vehicles(2, slots, constraints, 5, registration_labels)

        assert assignments == [SuggestedAssignment(MONDAY, "09:00 AM", 2, vehicle_group=1)]

    def test_downstream_label_between_upstream_labels(self):
        """Test a 10:00 AM slot counts as after 09:30 AM and not after 10:30 AM."""
        registration_labels = ("09:00 AM", "10:00 AM", "11:00 AM")
        slots = build_multi_day_availability([], 5, [MONDAY], registration_labels)
        constraints = [
            VehicleGroupConstraint(1, 1, MONDAY, "09:30 AM"),
            VehicleGroupConstraint(2, 1, MONDAY, "10:30 AM"),
        ]

        assignments = allocate_vehicles(2, slots, constraints, 5, registration_labels)

        assert assignments == [
            SuggestedAssignment(MONDAY, "10:00 AM", 1, vehicle_group=1),
            SuggestedAssignment(MONDAY, "11:00 AM", 1, vehicle_group=2),
        ]

    def test_group_moves_to_next_day(self):
        """Test a group goes to the next day when later same-day slots are full."""
        booked = {label: 12 for label in ("09:30 AM", "10:30 AM", "11:30 AM", "12:30 PM", "01:30 PM", "02:30 PM")}
        slots = full_day(MONDAY, booked=booked) + full_day(TUESDAY)
        constraints = [VehicleGroupConstraint(1, 3, MONDAY, "08:30 AM")]

        assignments = allocate_vehicles(3, slots, constraints, 12)

        assert assignments == [SuggestedAssignment(TUESDAY, "08:30 AM", 3, vehicle_group=1)]

    def test_groups_keep_their_own_constraint(self):
        """Test each group is staggered behind its own upstream slot, leftovers go earliest."""
        constraints = [
            VehicleGroupConstraint(2, 3, MONDAY, "10:30 AM"),
            VehicleGroupConstraint(1, 2, MONDAY, "08:30 AM"),
        ]

        assignments = allocate_vehicles(6, full_day(MONDAY), constraints, 12)

        assert assignments == [
            SuggestedAssignment(MONDAY, "09:30 AM", 2, vehicle_group=1),
            SuggestedAssignment(MONDAY, "11:30 AM", 3, vehicle_group=2),
            SuggestedAssignment(MONDAY, "08:30 AM", 1, vehicle_group=None),
        ]

    def test_capacity_shared_between_groups(self):
        """Test seats taken by an earlier group are not offered to a later one."""
        slots = [
            availability(MONDAY, "08:30 AM", 0),
            availability(MONDAY, "09:30 AM", 0),
            availability(MONDAY, "10:30 AM", 3),
            availability(MONDAY, "11:30 AM", 12),
        ]
        constraints = [
            VehicleGroupConstraint(1, 2, MONDAY, "09:30 AM"),
            VehicleGroupConstraint(2, 2, MONDAY, "08:30 AM"),
        ]

        assignments = allocate_vehicles(4, slots, constraints, 12)

        assert assignments == [
            SuggestedAssignment(MONDAY, "10:30 AM", 2, vehicle_group=1),
            SuggestedAssignment(MONDAY, "10:30 AM", 1, vehicle_group=2),
            SuggestedAssignment(MONDAY, "11:30 AM", 1, vehicle_group=2),
        ]

    def test_no_slot_after_constraint(self):
        """Test a group whose upstream slot is the last of the window cannot be placed."""
        constraints = [VehicleGroupConstraint(1, 3, MONDAY, "02:30 PM")]

        assignments = allocate_vehicles(3, full_day(MONDAY), constraints, 12)

        assert assignments == []


class TestSortSlots:
    """Test cases for sort_slots."""

    def test_chronological(self):
        """Test label order is used within a day."""
        slots = [
            availability(TUESDAY, "08:30 AM", 1),
            availability(MONDAY, "12:30 PM", 1),
            availability(MONDAY, "01:30 PM", 1),
        ]

        ordered = sort_slots(slots)

        assert [(slot.date, slot.time) for slot in ordered] == [
            (MONDAY, "12:30 PM"),
            (MONDAY, "01:30 PM"),
            (TUESDAY, "08:30 AM"),
        ]


class TestRequireComplete:
    """Test cases for require_complete."""

    def test_complete(self):
        """Test complete assignments pass through."""
        assignments = [SuggestedAssignment(MONDAY, "08:30 AM", 3)]

        assert require_complete(assignments, 3) == assignments

    def test_incomplete(self):
        """Test a short allocation raises with the counts."""
        with pytest.raises(InfeasibleAllocationError) as exc_info:
            require_complete([SuggestedAssignment(MONDAY, "08:30 AM", 2)], 5)

        assert exc_info.value.requested == 5
        assert exc_info.value.allocated == 2
