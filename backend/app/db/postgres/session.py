"""
PostgreSQL database session configuration with error handling.

- Connection pooling with pre-ping for stale connection detection
- Statement caching (prepared_statement_cache_size)
- SQLAlchemy errors mapped onto EVCompare database exceptions
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import (
    TimeoutError as SQLAlchemyTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.exceptions import (
    PostgresConnectionException,
    PostgresException,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Connection Pool Configuration
# =============================================================================

POOL_SIZE = 5
MAX_OVERFLOW = 10
POOL_RECYCLE = 1800  # seconds
POOL_TIMEOUT = 30  # seconds

# =============================================================================
# Engine Configuration
# =============================================================================

connect_args = {
    "prepared_statement_cache_size": 100,
    "command_timeout": 60,
}

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=POOL_SIZE,
    max_overflow=MAX_OVERFLOW,
    pool_recycle=POOL_RECYCLE,
    pool_timeout=POOL_TIMEOUT,
    pool_pre_ping=True,
    connect_args=connect_args,
    execution_options={
        "isolation_level": "READ COMMITTED",
    },
)

logger.info(f"Database engine initialized with pool_size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}")

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session with error handling.

    Usage:
        @router.get("/vehicles")
        async def list_vehicles(db: AsyncSession = Depends(get_db)):
            ...

    Raises:
        PostgresConnectionException: When unable to connect to database
        PostgresException: For other database errors
    """
    session: AsyncSession | None = None
    try:
        session = async_session_maker()
        yield session
        await session.commit()

    except OperationalError as e:
        logger.error(
            "PostgreSQL connection error",
            extra={
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
            exc_info=True,
        )
        if session:
            await session.rollback()
        raise PostgresConnectionException(original_error=e)

    except IntegrityError as e:
        logger.warning(
            "PostgreSQL integrity error",
            extra={
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
        )
        if session:
            await session.rollback()
        raise PostgresException(
            message="A data integrity error occurred.",
            details={"constraint_violation": True},
            original_error=e,
        )

    except SQLAlchemyTimeoutError as e:
        logger.error(
            "PostgreSQL timeout error",
            extra={
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
        )
        if session:
            await session.rollback()
        raise PostgresException(
            message="The database operation timed out.",
            details={"timeout": True},
            original_error=e,
        )

    except (DBAPIError, SQLAlchemyError) as e:
        logger.error(
            "SQLAlchemy error",
            extra={
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
            exc_info=True,
        )
        if session:
            await session.rollback()
        raise PostgresException(original_error=e)

    except Exception:
        if session:
            await session.rollback()
        raise

    finally:
        if session:
            await session.close()


async def dispose_engine() -> None:
    """
    Dispose of the engine and all connections.

    Call this during application shutdown.
    """
    await engine.dispose()
    logger.info("Database engine disposed")


async def check_database_connection() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


async def get_pool_status() -> dict[str, Any]:
    """Current connection pool statistics."""
    pool: Any = engine.pool
    return {
        "pool_size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
    }
