"""Database configuration and connection management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from redis.asyncio import Redis
from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pumpflix.config import settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s",
        }
    )


def build_engine(database_url: str, **overrides) -> AsyncEngine:
    """Create an async engine with pool options suited to the backend."""
    options = {"echo": settings.database_echo, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_recycle=3600,  # Recycle connections every hour
        )
    options.update(overrides)
    return create_async_engine(database_url, **options)


class DatabaseManager:
    """Connection manager for the relational database and Redis."""

    def __init__(self):
        self.postgres_engine: Optional[AsyncEngine] = None
        self.async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None
        self.redis_client: Optional[Redis] = None

    async def initialize(self) -> None:
        """Initialize all connections."""
        logger.info("Initializing database connections...")

        await self._init_postgres()
        await self._init_redis()

        logger.info("All database connections initialized successfully")

    async def _init_postgres(self) -> None:
        """Initialize the relational database connection."""
        try:
            self.postgres_engine = build_engine(settings.database_url)
            self.async_session_maker = async_sessionmaker(
                self.postgres_engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.postgres_engine.begin() as conn:
                await conn.execute(text("SELECT 1"))

            logger.info("Database connection established")

        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise

    async def _init_redis(self) -> None:
        """Initialize Redis connection."""
        try:
            self.redis_client = Redis.from_url(
                settings.redis_url,
                password=settings.redis_password,
                max_connections=settings.redis_max_connections,
                decode_responses=True,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            await self.redis_client.ping()

            logger.info("Redis connection established")

        except Exception as e:
            logger.warning("Redis not available, skipping initialization", error=str(e))
            self.redis_client = None

    async def create_all(self) -> None:
        """Create all tables (local development and tests)."""
        if not self.postgres_engine:
            raise RuntimeError("Database not initialized")
        async with self.postgres_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close all connections."""
        logger.info("Closing database connections...")

        if self.postgres_engine:
            await self.postgres_engine.dispose()
            logger.info("Database connection closed")

        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Redis connection closed")

        logger.info("All database connections closed")

    async def health_check(self) -> dict:
        """Perform health check on all backends."""
        health_status = {
            "database": {"status": "unknown", "error": None},
            "redis": {"status": "unknown", "error": None},
        }

        try:
            if self.postgres_engine:
                async with self.postgres_engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                health_status["database"]["status"] = "healthy"
        except Exception as e:
            health_status["database"]["status"] = "unhealthy"
            health_status["database"]["error"] = str(e)

        try:
            if self.redis_client:
                await self.redis_client.ping()
                health_status["redis"]["status"] = "healthy"
            else:
                health_status["redis"]["status"] = "disabled"
        except Exception as e:
            health_status["redis"]["status"] = "unhealthy"
            health_status["redis"]["error"] = str(e)

        return health_status

    @asynccontextmanager
    async def get_postgres_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an async database session."""
        if not self.async_session_maker:
            raise RuntimeError("Database not initialized")

        async with self.async_session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()


# Global database manager instance
db_manager = DatabaseManager()


# Dependency for FastAPI
async def get_postgres_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting a database session."""
    async with db_manager.get_postgres_session() as session:
        yield session


async def get_redis() -> Optional[Redis]:
    """FastAPI dependency for the Redis client (None when unavailable)."""
    return db_manager.redis_client


# Import models to ensure they are registered with SQLAlchemy
import pumpflix.organizations.models  # noqa
import pumpflix.auth.models  # noqa
import pumpflix.workflows.models  # noqa
import pumpflix.templates.models  # noqa
import pumpflix.executions.models  # noqa
import pumpflix.credentials.models  # noqa
import pumpflix.billing.models  # noqa
import pumpflix.notifications.models  # noqa
import pumpflix.exports.models  # noqa
import pumpflix.ai.models  # noqa
import pumpflix.realtime.models  # noqa
import pumpflix.audit.models  # noqa
