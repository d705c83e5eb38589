# catalogo_api/core/db.py
from __future__ import annotations

import asyncio
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from catalogo_api.core.config import Settings
from catalogo_api.core.errors import DatabaseConnectionError, error_message
from catalogo_api.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    # QueuePool arranca vacío (mínimo 0) y nunca pasa de db_pool_max conexiones
    return create_async_engine(
        settings.database_url_resolved,
        pool_size=settings.db_pool_max,
        max_overflow=0,
        pool_timeout=settings.db_pool_acquire_timeout_s,
        pool_recycle=settings.db_pool_recycle_seconds,
        pool_pre_ping=True,
    )


class Database:
    """
    Owner of the process-wide connection pool.

    One instance is created by `create_app()` and stored on `app.state`;
    handlers receive it through `catalogo_api.core.deps`. The engine is built
    lazily on the first `get_pool()` call so the service can start (and
    report through /health) while SQL Server is unreachable.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    async def get_pool(self) -> AsyncEngine:
        """
        Return the shared engine, creating and verifying it on first use.

        A failed first connection is not memoized: the engine is disposed and
        the next call tries again.
        """
        if self._engine is not None:
            return self._engine

        async with self._lock:
            if self._engine is None:
                engine: Optional[AsyncEngine] = None
                try:
                    # URL mal formada o dialecto sin instalar fallan aquí
                    engine = build_engine(self._settings)
                    async with engine.connect():
                        pass
                except (SQLAlchemyError, OSError, ImportError) as exc:
                    if engine is not None:
                        await engine.dispose()
                    message = error_message(exc)
                    logger.error("Database connection failed: %s", message)
                    raise DatabaseConnectionError(message) from exc

                logger.info(
                    "Database pool ready (server=%s db=%s max=%s)",
                    self._settings.db_server,
                    self._settings.db_name,
                    self._settings.db_pool_max,
                )
                self._engine = engine

        return self._engine

    async def dispose(self) -> None:
        if self._engine is None:
            return None
        engine, self._engine = self._engine, None
        await engine.dispose()
        logger.info("Database pool closed")
