"""Dependency injection and service factory."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Callable, Optional, Tuple

from src.fleet_booking.application.ports.repositories import AppointmentRepository, BookingRepository
from src.fleet_booking.application.services.booking_service import BookingService
from src.fleet_booking.application.services.suggestion_service import SuggestionService
from src.fleet_booking.domain.value_objects.scheduling_policy import SchedulingPolicy
from src.fleet_booking.infrastructure.calendar import ConfiguredBusinessCalendar
from src.fleet_booking.infrastructure.database.connection import DatabaseManager
from src.fleet_booking.infrastructure.logging import get_logger
from src.fleet_booking.infrastructure.repositories.memory_repositories import (
    InMemoryAppointmentRepository,
    InMemoryBookingRepository
)
from src.fleet_booking.infrastructure.repositories.sql_repositories import (
    SQLAlchemyAppointmentRepository,
    SQLAlchemyBookingRepository
)
from src.fleet_booking.presentation.api.config import get_settings

logger = get_logger(__name__)


class ServiceFactory:
    """Factory for creating application services with proper dependencies."""

    def __init__(
        self,
        database_url: str,
        policy: Optional[SchedulingPolicy] = None,
        calendar: Optional[ConfiguredBusinessCalendar] = None,
        clock: Optional[Callable[[], datetime]] = None,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20
    ):
        self.database_manager = DatabaseManager(
            database_url, echo=echo, pool_size=pool_size, max_overflow=max_overflow
        )
        self.policy = policy or SchedulingPolicy()
        self.calendar = calendar or ConfiguredBusinessCalendar()
        self.clock = clock
        self._connected = False

    async def initialize(self):
        """Initialize the service factory."""
        if not self._connected:
            await self.database_manager.connect()
            self._connected = True

    async def shutdown(self):
        """Shutdown the service factory."""
        if self._connected:
            await self.database_manager.disconnect()
            self._connected = False

    @asynccontextmanager
    async def repositories(self) -> AsyncGenerator[Tuple[BookingRepository, AppointmentRepository], None]:
        """Repositories sharing one session, committed when the block exits."""
        async with self.database_manager.get_session() as session:
            booking_repo = SQLAlchemyBookingRepository(session)
            yield booking_repo, SQLAlchemyAppointmentRepository(session, booking_repo)

    @asynccontextmanager
    async def get_suggestion_service(self) -> AsyncGenerator[SuggestionService, None]:
        """Get suggestion service with repositories."""
        async with self.repositories() as (booking_repo, appointment_repo):
            yield SuggestionService(
                booking_repository=booking_repo,
                appointment_repository=appointment_repo,
                policy=self.policy,
                calendar=self.calendar,
                clock=self.clock
            )

    @asynccontextmanager
    async def get_booking_service(self) -> AsyncGenerator[BookingService, None]:
        """Get booking service with repositories."""
        async with self.repositories() as (booking_repo, appointment_repo):
            yield BookingService(
                booking_repository=booking_repo,
                appointment_repository=appointment_repo,
                policy=self.policy,
                calendar=self.calendar,
                clock=self.clock
            )


class InMemoryServiceFactory(ServiceFactory):
    """Service factory keeping all data in process memory."""

    def __init__(
        self,
        policy: Optional[SchedulingPolicy] = None,
        calendar: Optional[ConfiguredBusinessCalendar] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        super().__init__("memory://", policy=policy, calendar=calendar, clock=clock)
        self.booking_repository = InMemoryBookingRepository()
        self.appointment_repository = InMemoryAppointmentRepository(self.booking_repository)

    async def initialize(self):
        """Nothing to connect."""
        self._connected = True

    async def shutdown(self):
        """Nothing to disconnect."""
        self._connected = False

    @asynccontextmanager
    async def repositories(self) -> AsyncGenerator[Tuple[BookingRepository, AppointmentRepository], None]:
        yield self.booking_repository, self.appointment_repository


# Global service factory instance
_service_factory: ServiceFactory | None = None


def create_service_factory(settings) -> ServiceFactory:
    """Build the factory selected by settings.storage_backend."""
    policy = SchedulingPolicy.from_settings(settings)
    calendar = ConfiguredBusinessCalendar(settings.closed_weekdays, settings.closed_dates)

    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage")
        return InMemoryServiceFactory(policy=policy, calendar=calendar)
    if settings.storage_backend != "sql":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    return ServiceFactory(
        settings.database_url,
        policy=policy,
        calendar=calendar,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow
    )


def get_service_factory() -> ServiceFactory:
    """Get the global service factory instance."""
    global _service_factory

    if _service_factory is None:
        _service_factory = create_service_factory(get_settings())

    return _service_factory


def set_service_factory(factory: Optional[ServiceFactory]) -> None:
    """Replace the global service factory, or reset it with None."""
    global _service_factory
    _service_factory = factory


async def initialize_services():
    """Initialize application services."""
    factory = get_service_factory()
    await factory.initialize()


async def shutdown_services():
    """Shutdown application services."""
    factory = get_service_factory()
    await factory.shutdown()
