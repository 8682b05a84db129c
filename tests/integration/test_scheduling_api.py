"""Integration tests for the scheduling API."""

import asyncio
import pytest
import pytest_asyncio
from datetime import date, datetime
from uuid import uuid4

import httpx

from src.fleet_booking.domain.entities.booking import Booking
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.infrastructure.services import InMemoryServiceFactory, set_service_factory
from src.fleet_booking.presentation.api.main import create_app

API = "/api/v1"
MONDAY = "2030-03-04"


def fixed_clock():
    return datetime(2030, 3, 4, 7, 0)


def appointment_payload(bookings, number_of_vehicles=5, **extra):
    payload = {
        "customer_name": "Fleet Co",
        "customer_email": "Fleet@Example.com",
        "number_of_vehicles": number_of_vehicles,
        "bookings": bookings,
    }
    payload.update(extra)
    return payload


def selection(service, time, vehicle_count, slot_date=MONDAY):
    return {"service": service, "date": slot_date, "time": time, "vehicle_count": vehicle_count}


class TestSchedulingAPI:
    """Integration tests against the app with in-memory storage."""

    @pytest.fixture
    def factory(self):
        factory = InMemoryServiceFactory(clock=fixed_clock)
        set_service_factory(factory)
        yield factory
        set_service_factory(None)

    @pytest_asyncio.fixture
    async def client(self, factory):
        """Create test HTTP client."""
        transport = httpx.ASGITransport(app=create_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test health check endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "fleet-booking"}

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, client):
        """Test the correlation ID header is returned."""
        response = await client.get("/", headers={"X-Correlation-ID": "req-42"})

        assert response.headers["X-Correlation-ID"] == "req-42"

    @pytest.mark.asyncio
    async def test_availability(self, client, factory):
        """Test every slot of the day is listed with its remaining capacity."""
        await factory.booking_repository.save(
            Booking(uuid4(), ServiceType.WEIGHING, date(2030, 3, 4), "08:30 AM", 10)
        )

        response = await client.get(f"{API}/availability", params={"service": "weighing", "start_date": MONDAY})

        assert response.status_code == 200
        data = response.json()
        assert len(data["slots"]) == 7
        assert data["slots"][0]["available_capacity"] == 2
        assert data["slots"][0]["booked_count"] == 10
        assert data["slot_counts"] == [{"date": MONDAY, "time": "08:30 AM", "count": 10}]

    @pytest.mark.asyncio
    async def test_availability_bad_input(self, client):
        """Test malformed dates and unknown services are rejected."""
        bad_date = await client.get(f"{API}/availability", params={"service": "weighing", "start_date": "03/04/2030"})
        bad_service = await client.get(f"{API}/availability", params={"service": "washing", "start_date": MONDAY})

        assert bad_date.status_code == 400
        assert bad_date.json()["type"] == "validation_error"
        assert bad_service.status_code == 400

    @pytest.mark.asyncio
    async def test_distribution(self, client):
        """Test a distribution suggestion for an empty day."""
        response = await client.post(
            f"{API}/suggestions/distribution",
            json={"service": "Vehicle Weighing", "vehicle_count": 5, "target_date": MONDAY}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "same_day"
        assert data["is_available"] is True
        assert data["assignments"] == [
            {"date": MONDAY, "time": "08:30 AM", "vehicle_count": 5, "vehicle_group": None}
        ]

    @pytest.mark.asyncio
    async def test_distribution_invalid_count(self, client):
        """Test a zero vehicle count is a validation error."""
        response = await client.post(
            f"{API}/suggestions/distribution",
            json={"service": "weighing", "vehicle_count": 0, "target_date": MONDAY}
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    @pytest.mark.asyncio
    async def test_distribution_require_complete(self, client, factory):
        """Test strict requests get 422 when the window is full."""
        for offset in range(8):
            for label in ("08:30 AM", "09:30 AM", "10:30 AM", "11:30 AM", "12:30 PM", "01:30 PM", "02:30 PM"):
                await factory.booking_repository.save(
                    Booking(uuid4(), ServiceType.REGISTRATION, date(2030, 3, 4 + offset), label, 5)
                )

        payload = {"service": "registration", "vehicle_count": 2, "target_date": MONDAY}
        relaxed = await client.post(f"{API}/suggestions/distribution", json=payload)
        strict = await client.post(f"{API}/suggestions/distribution", json={**payload, "require_complete": True})

        assert relaxed.status_code == 200
        assert relaxed.json()["status"] == "infeasible"
        assert relaxed.json()["requires_manual_selection"] is True
        assert strict.status_code == 422
        assert strict.json()["type"] == "infeasible_allocation"
        assert strict.json()["allocated"] == 0

    @pytest.mark.asyncio
    async def test_appointment_flow(self, client):
        """Test create, stagger, book and look up an appointment."""
        created = await client.post(
            f"{API}/appointments",
            json=appointment_payload(
                [selection("weighing", "08:30 AM", 3), selection("weighing", "09:30 AM", 2)],
                services_requested=["inspection"]
            )
        )
        assert created.status_code == 201
        appointment = created.json()
        assert appointment["customer_email"] == "fleet@example.com"
        assert appointment["services_requested"] == ["weighing", "inspection"]
        assert len(appointment["cancellation_token"]) == 64

        stagger = await client.post(
            f"{API}/suggestions/stagger",
            json={"appointment_id": appointment["id"], "service": "inspection", "target_date": MONDAY}
        )
        assert stagger.status_code == 200
        suggestion = stagger.json()
        assert [(a["time"], a["vehicle_count"], a["vehicle_group"]) for a in suggestion["assignments"]] == [
            ("09:30 AM", 3, 1),
            ("10:30 AM", 2, 2),
        ]

        booked = await client.post(
            f"{API}/appointments/{appointment['id']}/bookings",
            json={"service": "inspection", "assignments": suggestion["assignments"]}
        )
        assert booked.status_code == 201
        assert len(booked.json()) == 2

        found = await client.get(f"{API}/appointments/{appointment['reference_number']}")
        assert found.status_code == 200
        assert len(found.json()["bookings"]) == 4
        assert "cancellation_token" not in found.json()

    @pytest.mark.asyncio
    async def test_book_service_before_upstream(self, client):
        """Test a manual selection at the weighing slot is rejected."""
        created = await client.post(
            f"{API}/appointments",
            json=appointment_payload([selection("weighing", "08:30 AM", 5)], services_requested=["inspection"])
        )

        response = await client.post(
            f"{API}/appointments/{created.json()['id']}/bookings",
            json={
                "service": "inspection",
                "assignments": [{"date": MONDAY, "time": "08:30 AM", "vehicle_count": 5}]
            }
        )

        assert response.status_code == 400
        assert response.json()["type"] == "constraint_violation"

    @pytest.mark.asyncio
    async def test_concurrent_last_seats(self, client, factory):
        """Test two customers racing for the last 2 of 12 seats: one wins, one gets 409."""
        await factory.booking_repository.save(
            Booking(uuid4(), ServiceType.WEIGHING, date(2030, 3, 4), "08:30 AM", 10)
        )
        payload = appointment_payload([selection("weighing", "08:30 AM", 2)], number_of_vehicles=2)

        responses = await asyncio.gather(
            client.post(f"{API}/appointments", json=payload),
            client.post(f"{API}/appointments", json=payload)
        )

        assert sorted(response.status_code for response in responses) == [201, 409]
        rejected = next(response for response in responses if response.status_code == 409).json()
        assert rejected["type"] == "stale_capacity"
        assert rejected["available"] == 0
        assert rejected["requested"] == 2
        assert await factory.booking_repository.count_committed_vehicles(
            ServiceType.WEIGHING, date(2030, 3, 4), "08:30 AM"
        ) == 12

    @pytest.mark.asyncio
    async def test_cancel_releases_capacity(self, client):
        """Test cancelling frees the slot again."""
        created = await client.post(f"{API}/appointments", json=appointment_payload([selection("weighing", "08:30 AM", 5)]))

        cancelled = await client.post(
            f"{API}/appointments/cancel",
            json={"cancellation_token": created.json()["cancellation_token"]}
        )
        availability = await client.get(f"{API}/availability", params={"service": "weighing", "start_date": MONDAY})

        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"
        assert availability.json()["slots"][0]["available_capacity"] == 12

    @pytest.mark.asyncio
    async def test_reschedule_and_shift(self, client):
        """Test a booking can be moved later and shifted back into a freed slot."""
        created = await client.post(f"{API}/appointments", json=appointment_payload([selection("weighing", "08:30 AM", 5)]))
        booking_id = created.json()["bookings"][0]["id"]

        moved = await client.post(
            f"{API}/bookings/{booking_id}/reschedule",
            json={"date": MONDAY, "time": "11:30 AM"}
        )
        assert moved.status_code == 200
        assert moved.json()["scheduled_time"] == "11:30 AM"

        candidates = await client.get(
            f"{API}/bookings/shift-candidates",
            params={"service": "weighing", "date": MONDAY, "time": "08:30 AM"}
        )
        assert [candidate["id"] for candidate in candidates.json()] == [booking_id]

        shifted = await client.post(f"{API}/bookings/{booking_id}/shift", json={"time": "08:30 AM"})
        assert shifted.status_code == 200
        assert shifted.json()["scheduled_time"] == "08:30 AM"

    @pytest.mark.asyncio
    async def test_unknown_reference(self, client):
        """Test looking up a missing appointment returns 404."""
        response = await client.get(f"{API}/appointments/REQ-20300304-999")

        assert response.status_code == 404
