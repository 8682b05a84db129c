"""Async engine and per-unit-of-work transactions."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.fleet_booking.infrastructure.logging import get_logger

logger = get_logger(__name__)

ASYNC_DRIVER_SCHEME = "postgresql+asyncpg://"


def to_async_url(database_url: str) -> str:
    """Point a plain postgresql:// URL at the asyncpg driver."""
    if database_url.startswith("postgresql://"):
        return ASYNC_DRIVER_SCHEME + database_url[len("postgresql://"):]
    return database_url


class DatabaseManager:
    """Owns the async engine and hands out one transaction per unit of work."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_pre_ping: bool = True
    ):
        self._database_url = to_async_url(database_url)
        self._engine_options = {
            "echo": echo,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": pool_pre_ping,
        }
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings) -> "DatabaseManager":
        return cls(
            settings.database_url,
            echo=settings.debug,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping
        )

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine; calling it again is a no-op."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(self._database_url, **self._engine_options)
        self._session_factory = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info(
            "Database engine created",
            extra={"database": self._engine.url.render_as_string(hide_password=True)}
        )

    async def disconnect(self) -> None:
        if self._engine is None:
            return

        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session bound to a single transaction.

        The transaction commits when the block exits normally and rolls back
        on any exception. Advisory slot locks taken inside it are held until
        then.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._session_factory() as session:
            async with session.begin():
                yield session

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine
