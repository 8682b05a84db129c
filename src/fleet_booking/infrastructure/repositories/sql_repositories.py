"""SQLAlchemy repository implementations."""

import hashlib
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Collection, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.fleet_booking.infrastructure.logging import (
    get_logger,
    log_database_operation
)

from src.fleet_booking.application.ports.repositories import AppointmentRepository, BookingRepository
from src.fleet_booking.domain.entities.appointment import Appointment
from src.fleet_booking.domain.entities.booking import Booking, BookingStatus
from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.domain.value_objects.time_slot import Slot, SlotCount
from src.fleet_booking.infrastructure.database.models import AppointmentModel, ServiceBookingModel


def slot_lock_key(service: ServiceType, slot: Slot) -> int:
    """Stable signed 64-bit key identifying a slot for advisory locking."""
    digest = hashlib.sha256(f"{service.value}|{slot.date.isoformat()}|{slot.time}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class SQLAlchemyBookingRepository(BookingRepository):
    """SQLAlchemy implementation of booking repository."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._logger = get_logger(__name__)

    async def save(self, booking: Booking) -> Booking:
        """Save a booking to the database."""
        log_database_operation(self._logger, "UPSERT", "service_bookings", booking_id=str(booking.id))

        existing = await self._session.get(ServiceBookingModel, booking.id)
        if existing:
            existing.scheduled_date = booking.scheduled_date
            existing.scheduled_time = booking.scheduled_time
            existing.vehicle_count = booking.vehicle_count
            existing.location = booking.location
            existing.status = booking.status
            existing.updated_at = datetime.utcnow()
        else:
            self._session.add(ServiceBookingModel(
                id=booking.id,
                appointment_id=booking.appointment_id,
                service=booking.service,
                scheduled_date=booking.scheduled_date,
                scheduled_time=booking.scheduled_time,
                vehicle_count=booking.vehicle_count,
                location=booking.location,
                status=booking.status,
                created_at=booking.created_at,
                updated_at=datetime.utcnow()
            ))

        await self._session.flush()
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID."""
        model = await self._session.get(ServiceBookingModel, booking_id)
        if not model:
            return None
        return self._model_to_entity(model)

    async def find_by_appointment(
        self,
        appointment_id: UUID,
        service: Optional[ServiceType] = None
    ) -> List[Booking]:
        """Find bookings of an appointment, optionally for one service."""
        stmt = select(ServiceBookingModel).where(ServiceBookingModel.appointment_id == appointment_id)
        if service is not None:
            stmt = stmt.where(ServiceBookingModel.service == service)
        stmt = stmt.order_by(ServiceBookingModel.created_at)

        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def find_by_service_date(self, service: ServiceType, slot_date: date) -> List[Booking]:
        """Find confirmed bookings of a service on a date."""
        stmt = select(ServiceBookingModel).where(
            and_(
                ServiceBookingModel.service == service,
                ServiceBookingModel.scheduled_date == slot_date,
                ServiceBookingModel.status == BookingStatus.CONFIRMED
            )
        ).order_by(ServiceBookingModel.created_at)

        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def find_slot_counts(self, service: ServiceType, start_date: date, end_date: date) -> List[SlotCount]:
        """Aggregate confirmed vehicle counts per slot for a date range (inclusive)."""
        log_database_operation(
            self._logger,
            "SELECT",
            "service_bookings",
            service=service.value,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat()
        )

        stmt = select(
            ServiceBookingModel.scheduled_date,
            ServiceBookingModel.scheduled_time,
            func.sum(ServiceBookingModel.vehicle_count)
        ).where(
            and_(
                ServiceBookingModel.service == service,
                ServiceBookingModel.status == BookingStatus.CONFIRMED,
                ServiceBookingModel.scheduled_date >= start_date,
                ServiceBookingModel.scheduled_date <= end_date
            )
        ).group_by(
            ServiceBookingModel.scheduled_date,
            ServiceBookingModel.scheduled_time
        )

        result = await self._session.execute(stmt)
        return [
            SlotCount(date=slot_date, time=slot_time, count=int(count or 0))
            for slot_date, slot_time, count in result.all()
        ]

    async def count_committed_vehicles(
        self,
        service: ServiceType,
        slot_date: date,
        slot_time: str,
        exclude_booking_ids: Collection[UUID] = ()
    ) -> int:
        """Sum confirmed vehicles in one slot, ignoring the given bookings."""
        conditions = [
            ServiceBookingModel.service == service,
            ServiceBookingModel.status == BookingStatus.CONFIRMED,
            ServiceBookingModel.scheduled_date == slot_date,
            ServiceBookingModel.scheduled_time == slot_time
        ]
        if exclude_booking_ids:
            conditions.append(ServiceBookingModel.id.notin_(list(exclude_booking_ids)))

        stmt = select(func.coalesce(func.sum(ServiceBookingModel.vehicle_count), 0)).where(and_(*conditions))
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    @asynccontextmanager
    async def lock_slots(self, slots: Sequence[Tuple[ServiceType, Slot]]) -> AsyncIterator[None]:
        """
        Take transaction-scoped advisory locks on the slots.

        Locks are released when the session's transaction ends, so the
        aggregate read and the insert happen under the same lock. Keys are
        taken in the order given to avoid deadlocks between writers. Other
        dialects get no locking.
        """
        if self._session.bind.dialect.name == "postgresql":
            for service, slot in slots:
                await self._session.execute(select(func.pg_advisory_xact_lock(slot_lock_key(service, slot))))
        yield

    def _model_to_entity(self, model: ServiceBookingModel) -> Booking:
        """Convert database model to domain entity."""
        return Booking(
            booking_id=model.id,
            appointment_id=model.appointment_id,
            service=model.service,
            scheduled_date=model.scheduled_date,
            scheduled_time=model.scheduled_time,
            vehicle_count=model.vehicle_count,
            status=model.status,
            location=model.location,
            created_at=model.created_at,
            updated_at=model.updated_at
        )


class SQLAlchemyAppointmentRepository(AppointmentRepository):
    """SQLAlchemy implementation of appointment repository."""

    def __init__(self, session: AsyncSession, booking_repository: SQLAlchemyBookingRepository):
        self._session = session
        self._booking_repository = booking_repository
        self._logger = get_logger(__name__)

    async def save(self, appointment: Appointment) -> Appointment:
        """Save an appointment and the status of its bookings."""
        log_database_operation(
            self._logger, "UPSERT", "appointments", reference_number=appointment.reference_number
        )

        existing = await self._session.get(AppointmentModel, appointment.id)
        if existing:
            existing.status = appointment.status
            existing.notes = appointment.notes
            existing.updated_at = datetime.utcnow()
        else:
            self._session.add(AppointmentModel(
                id=appointment.id,
                reference_number=appointment.reference_number,
                cancellation_token=appointment.cancellation_token,
                customer_name=appointment.customer_name,
                customer_email=appointment.customer_email,
                customer_phone=appointment.customer_phone,
                company_name=appointment.company_name,
                number_of_vehicles=appointment.number_of_vehicles,
                services_requested=[service.value for service in appointment.services_requested],
                notes=appointment.notes,
                status=appointment.status,
                created_at=appointment.created_at,
                updated_at=datetime.utcnow()
            ))
        await self._session.flush()

        for booking in appointment.bookings:
            await self._booking_repository.save(booking)
        return appointment

    async def find_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        """Find appointment by ID."""
        model = await self._session.get(AppointmentModel, appointment_id)
        if not model:
            return None
        return await self._model_to_entity(model)

    async def find_by_reference_number(self, reference_number: str) -> Optional[Appointment]:
        """Find appointment by reference number."""
        return await self._find_one(AppointmentModel.reference_number == reference_number)

    async def find_by_cancellation_token(self, token: str) -> Optional[Appointment]:
        """Find appointment by cancellation token."""
        return await self._find_one(AppointmentModel.cancellation_token == token)

    async def _find_one(self, condition) -> Optional[Appointment]:
        result = await self._session.execute(select(AppointmentModel).where(condition))
        model = result.scalar_one_or_none()
        if not model:
            return None
        return await self._model_to_entity(model)

    async def _model_to_entity(self, model: AppointmentModel) -> Appointment:
        """Convert database model to domain entity, loading its bookings."""
        bookings = await self._booking_repository.find_by_appointment(model.id)
        return Appointment(
            appointment_id=model.id,
            reference_number=model.reference_number,
            cancellation_token=model.cancellation_token,
            customer_name=model.customer_name,
            customer_email=model.customer_email,
            customer_phone=model.customer_phone,
            company_name=model.company_name,
            number_of_vehicles=model.number_of_vehicles,
            services_requested=[ServiceType(value) for value in model.services_requested],
            notes=model.notes,
            status=model.status,
            bookings=bookings,
            created_at=model.created_at,
            updated_at=model.updated_at
        )
