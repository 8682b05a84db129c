"""Script to initialize database tables."""

import asyncio

from src.fleet_booking.infrastructure.database.connection import DatabaseManager
from src.fleet_booking.infrastructure.database.models import Base
from src.fleet_booking.infrastructure.logging import get_logger, setup_logging_from_env
from src.fleet_booking.presentation.api.config import get_settings

logger = get_logger(__name__)


async def create_tables():
    """Create the appointments and service_bookings tables."""
    database_manager = DatabaseManager.from_settings(get_settings())
    await database_manager.connect()

    try:
        async with database_manager.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created", extra={"tables": sorted(Base.metadata.tables)})

    except Exception:
        logger.exception("Error creating tables")
        raise
    finally:
        await database_manager.disconnect()


if __name__ == "__main__":
    setup_logging_from_env()
    asyncio.run(create_tables())
