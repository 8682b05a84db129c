"""SQLAlchemy database models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Date, Integer, Text, Enum as SQLEnum, ForeignKey, Index, JSON
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from sqlalchemy.orm import declarative_base, relationship

from src.fleet_booking.domain.entities.appointment import AppointmentStatus
from src.fleet_booking.domain.entities.booking import BookingStatus
from src.fleet_booking.domain.value_objects.service_type import ServiceType

Base = declarative_base()


class AppointmentModel(Base):
    """SQLAlchemy model for customer appointments."""

    __tablename__ = "appointments"

    # Primary key
    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)

    # Customer-facing identifiers
    reference_number = Column(String(20), nullable=False, unique=True, index=True)
    cancellation_token = Column(String(64), nullable=False, unique=True, index=True)

    # Customer details
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(30), nullable=True)
    company_name = Column(String(200), nullable=True)

    # Fleet details
    number_of_vehicles = Column(Integer, nullable=False)
    services_requested = Column(JSON, nullable=False)  # list of service codes
    notes = Column(Text, nullable=True)

    status = Column(SQLEnum(AppointmentStatus, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=AppointmentStatus.CONFIRMED)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bookings = relationship("ServiceBookingModel", back_populates="appointment", lazy="selectin")

    def __repr__(self) -> str:
        return f"<AppointmentModel(id={self.id}, reference_number='{self.reference_number}', status='{self.status}')>"


class ServiceBookingModel(Base):
    """SQLAlchemy model for vehicles booked into one service slot."""

    __tablename__ = "service_bookings"
    __table_args__ = (
        Index("ix_service_bookings_slot", "service", "scheduled_date", "scheduled_time"),
    )

    # Primary key
    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)

    appointment_id = Column(PostgresUUID(as_uuid=True), ForeignKey('appointments.id'), nullable=False, index=True)

    # Slot address
    service = Column(SQLEnum(ServiceType, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(8), nullable=False)  # time label such as "08:30 AM"

    vehicle_count = Column(Integer, nullable=False, default=1)
    location = Column(String(200), nullable=True)
    status = Column(SQLEnum(BookingStatus, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=BookingStatus.CONFIRMED)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    appointment = relationship("AppointmentModel", back_populates="bookings")

    def __repr__(self) -> str:
        return (
            f"<ServiceBookingModel(id={self.id}, service='{self.service}', "
            f"slot='{self.scheduled_date} {self.scheduled_time}', vehicles={self.vehicle_count})>"
        )
