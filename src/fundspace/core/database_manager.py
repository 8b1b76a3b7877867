"""Database manager with transaction support and utilities."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Dict, Any
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy import text
from sqlalchemy.pool import StaticPool
import structlog

from .config import Settings, get_settings
from .exceptions import BaseFundspaceException, ConnectionError, TransactionError

logger = structlog.get_logger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


class DatabaseManager:
    """Database manager with transaction support and health checks."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize database manager."""
        self.settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory = None
        self._initialized = False

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    async def initialize(self) -> None:
        """Initialize database engine and session factory."""
        if self._initialized:
            return

        url = self.settings.database_url
        engine_kwargs: Dict[str, Any] = {"echo": self.settings.debug, "future": True}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(url):
                # One shared connection, otherwise each session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(pool_size=20, max_overflow=30, pool_pre_ping=True, pool_recycle=3600)

        try:
            self._engine = create_async_engine(url, **engine_kwargs)
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            self._initialized = True
            logger.info("Database manager initialized successfully", url=url.split("///")[0])

        except Exception as e:
            logger.error("Failed to initialize database manager", error=str(e))
            raise ConnectionError(f"Database initialization failed: {str(e)}")

    async def shutdown(self) -> None:
        """Shutdown database connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._initialized = False
            logger.info("Database manager shutdown complete")

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for database transactions with automatic rollback on error.

        Application exceptions raised inside the block propagate unchanged;
        anything else is wrapped in ``TransactionError``.
        """
        if not self._initialized:
            await self.initialize()
        session = self._session_factory()

        try:
            async with session.begin():
                logger.debug("Transaction started")
                yield session
            logger.debug("Transaction committed successfully")

        except BaseFundspaceException as e:
            logger.warning("Transaction rolled back due to error", error=str(e))
            raise
        except Exception as e:
            logger.warning("Transaction rolled back due to error", error=str(e))
            raise TransactionError(f"Transaction failed: {str(e)}") from e
        finally:
            await session.close()

    async def create_all(self) -> None:
        """Create every table registered on the declarative base."""
        from ..models.database import Base

        if not self._initialized:
            await self.initialize()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def drop_all(self) -> None:
        """Drop every table registered on the declarative base."""
        from ..models.database import Base

        if not self._initialized:
            await self.initialize()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped")

    async def health_check(self) -> Dict[str, Any]:
        """Perform database health check."""
        try:
            async with self.transaction() as session:
                result = await session.execute(text("SELECT 1 as health_check"))
                row = result.fetchone()

                if not row or row[0] != 1:
                    return {
                        "status": "unhealthy",
                        "database": "disconnected",
                        "error": "Health check query failed"
                    }

                return {
                    "status": "healthy",
                    "database": "connected",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }

        except Exception as e:
            return {
                "status": "unhealthy",
                "database": "error",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
