"""
Switchboard — Database Bootstrap
==================================

What:  Declarative Base, the Database connection handle and connect().
How:   connect() builds an async SQLAlchemy engine from the configured URL,
       proves it can reach the database (creating the tables when asked),
       registers the "User" schema and hands back a Database handle.
Who:   Anything that needs to read or write users. The HTTP app does not
       connect; the two halves of the project share no runtime state.
When:  Once per process, or once per test. Each call returns a new handle;
       the caller owns it and should dispose() it.

Bootstrap sequence:
    ┌──────────────┐   ┌────────────────────┐   ┌──────────────┐   ┌────────┐
    │ create_async │──▶│ first connection   │──▶│ register     │──▶│ return │
    │ _engine(url) │   │ create_all/SELECT 1│   │ "User"       │   │ handle │
    └──────────────┘   └────────────────────┘   └──────────────┘   └────────┘
           │                     │
           └───── any failure ───┴──▶ engine disposed, DatabaseConnectionError
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional, TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from switchboard.config import Settings, settings as default_settings
from switchboard.exceptions import DatabaseConnectionError

if TYPE_CHECKING:
    from switchboard.registry import SchemaRegistry

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all Switchboard ORM models; shares one MetaData."""


@dataclass
class Database:
    """
    A live database connection handle.

    Attributes:
        url:             Parsed connection URL (render with masked password)
        engine:          The async engine owning the connection pool
        session_factory: Builds AsyncSession objects bound to `engine`

    Concurrent use is governed by SQLAlchemy's pool; nothing here adds
    locking. Use one session per unit of work.
    """

    url: URL
    engine: AsyncEngine
    session_factory: async_sessionmaker = field(repr=False)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Unit-of-work session: commits on success, rolls back on error,
        always closes.

        Example:
            async with db.session() as session:
                user = await user_service.create_user(session, payload)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()

    def __repr__(self) -> str:
        return f"<Database(url='{self.url.render_as_string(hide_password=True)}')>"


def _engine_options(url: URL, config: Settings) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "pool_pre_ping": config.db_pool_pre_ping,
        "echo": config.log_level == "DEBUG",
    }
    # SQLite uses a single-file pool that rejects sizing arguments.
    if url.get_backend_name() != "sqlite":
        options["pool_size"] = config.db_pool_size
        options["max_overflow"] = config.db_max_overflow
        options["pool_recycle"] = 3600
    return options


async def _prepare(engine: AsyncEngine, create_tables: bool) -> None:
    async with engine.begin() as conn:
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
        else:
            await conn.execute(text("SELECT 1"))


async def connect(
    config: Optional[Settings] = None,
    *,
    registry: Optional["SchemaRegistry"] = None,
) -> Database:
    """
    Open a database connection and return its handle.

    What:    Validates the URL, opens a first connection, makes sure the User
             schema is registered and returns a fresh Database handle.
    Who:     Application start-up code, scripts and tests.

    Args:
        config:   Settings carrying database_url and pool options
                  (default: the process-wide settings)
        registry: Where to register "User" (default: switchboard.registry.schemas)

    Returns:
        A new Database handle. Calling connect() again returns another one;
        "User" stays registered exactly once.

    Raises:
        DatabaseConnectionError: URL malformed, driver missing, endpoint
            unreachable or db_connect_timeout exceeded. Not retried.
    """
    from switchboard.registry import register_user_schema, schemas

    config = config or default_settings
    registry = registry if registry is not None else schemas

    try:
        url = make_url(config.database_url)
    except ArgumentError as e:
        logger.error("Malformed database URL: %s", str(e))
        raise DatabaseConnectionError(
            message="The configured database URL is malformed",
            context={"error_type": type(e).__name__},
        ) from e

    masked = url.render_as_string(hide_password=True)

    try:
        engine = create_async_engine(url, **_engine_options(url, config))
    except (SQLAlchemyError, ImportError) as e:
        logger.error("Cannot create engine for %s: %s", masked, str(e))
        raise DatabaseConnectionError(
            message=f"No usable async driver for '{url.drivername}'",
            context={"url": masked, "error_type": type(e).__name__},
        ) from e

    timeout = config.db_connect_timeout
    try:
        if timeout is None:
            await _prepare(engine, config.db_create_tables)
        else:
            try:
                await asyncio.wait_for(
                    _prepare(engine, config.db_create_tables),
                    timeout=timeout,
                )
            except asyncio.TimeoutError as e:
                logger.error("Timed out connecting to %s after %gs", masked, timeout)
                raise DatabaseConnectionError(
                    message=f"Timed out connecting to the database after {timeout:g}s",
                    context={"url": masked, "timeout": timeout},
                ) from e
    except DatabaseConnectionError:
        await engine.dispose()
        raise
    except (SQLAlchemyError, OSError) as e:
        await engine.dispose()
        logger.error("Database unreachable at %s: %s", masked, str(e))
        raise DatabaseConnectionError(
            message="The database is unreachable",
            context={"url": masked, "error_type": type(e).__name__},
        ) from e

    register_user_schema(registry)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info("Connected to %s", masked)
    return Database(url=url, engine=engine, session_factory=session_factory)
