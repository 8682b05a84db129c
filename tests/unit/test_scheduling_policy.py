"""Unit tests for service types and the scheduling policy."""

import pytest
from datetime import date

from src.fleet_booking.domain.exceptions import InvalidInputError
from src.fleet_booking.domain.value_objects.scheduling_policy import SchedulingPolicy
from src.fleet_booking.domain.value_objects.service_type import SERVICE_ORDER, ServiceType
from src.fleet_booking.domain.value_objects.time_slot import DEFAULT_TIME_LABELS
from src.fleet_booking.presentation.api.config import Settings


class TestServiceType:
    """Test cases for ServiceType enum."""

    def test_processing_order(self):
        """Test weighing comes first and registration last."""
        assert SERVICE_ORDER == [ServiceType.WEIGHING, ServiceType.INSPECTION, ServiceType.REGISTRATION]
        assert ServiceType.WEIGHING.position == 0
        assert ServiceType.REGISTRATION.position == 2

    def test_previous(self):
        """Test upstream service lookup."""
        assert ServiceType.WEIGHING.previous() is None
        assert ServiceType.INSPECTION.previous() == ServiceType.WEIGHING
        assert ServiceType.REGISTRATION.previous() == ServiceType.INSPECTION

    @pytest.mark.parametrize("value,expected", [
        ("weighing", ServiceType.WEIGHING),
        (" INSPECTION ", ServiceType.INSPECTION),
        ("Vehicle Registration/Customer Service Center", ServiceType.REGISTRATION),
        (ServiceType.WEIGHING, ServiceType.WEIGHING),
    ])
    def test_parse(self, value, expected):
        """Test parsing codes and display names."""
        assert ServiceType.parse(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "painting"])
    def test_parse_invalid(self, value):
        """Test unknown services are rejected."""
        with pytest.raises(InvalidInputError):
            ServiceType.parse(value)


class TestSchedulingPolicy:
    """Test cases for SchedulingPolicy."""

    def test_default_ceilings(self):
        """Test per-service vehicle limits."""
        policy = SchedulingPolicy()

        assert policy.ceiling_for(ServiceType.WEIGHING) == 12
        assert policy.ceiling_for(ServiceType.INSPECTION) == 12
        assert policy.ceiling_for(ServiceType.REGISTRATION) == 5

    def test_missing_ceiling_uses_default(self):
        """Test services without a configured ceiling fall back to the default."""
        policy = SchedulingPolicy(capacity_ceilings={ServiceType.WEIGHING: 12}, default_capacity=4)

        assert policy.ceiling_for(ServiceType.REGISTRATION) == 4

    def test_labels_for(self):
        """Test per-service label override."""
        policy = SchedulingPolicy(time_labels={ServiceType.REGISTRATION: ("09:30 AM", "10:30 AM")})

        assert policy.labels_for(ServiceType.WEIGHING) == DEFAULT_TIME_LABELS
        assert policy.labels_for(ServiceType.REGISTRATION) == ("09:30 AM", "10:30 AM")

    def test_search_window(self):
        """Test the window covers the target date and the following seven days."""
        window = SchedulingPolicy().search_window(date(2030, 3, 4))

        assert len(window) == 8
        assert window[0] == date(2030, 3, 4)
        assert window[-1] == date(2030, 3, 11)

    @pytest.mark.parametrize("kwargs", [
        {"default_capacity": 0},
        {"capacity_ceilings": {ServiceType.WEIGHING: 0}},
        {"multi_day_window_days": -1},
        {"default_time_labels": ()},
        {"default_time_labels": ("09:30 AM", "08:30 AM")},
        {"time_labels": {ServiceType.REGISTRATION: ("morning",)}},
    ])
    def test_invalid_policy(self, kwargs):
        """Test invalid parameters are rejected."""
        with pytest.raises(ValueError):
            SchedulingPolicy(**kwargs)

    def test_from_settings(self):
        """Test building the policy from application settings."""
        settings = Settings(
            _env_file=None,
            time_slots="08:30 AM,09:30 AM",
            weighing_capacity=6,
            inspection_capacity=7,
            registration_capacity=3,
            default_capacity=2,
            multi_day_window_days=3
        )

        policy = SchedulingPolicy.from_settings(settings)

        assert policy.ceiling_for(ServiceType.WEIGHING) == 6
        assert policy.ceiling_for(ServiceType.INSPECTION) == 7
        assert policy.ceiling_for(ServiceType.REGISTRATION) == 3
        assert policy.default_capacity == 2
        assert policy.labels_for(ServiceType.WEIGHING) == ("08:30 AM", "09:30 AM")
        assert len(policy.search_window(date(2030, 3, 4))) == 4
