from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from starlette.exceptions import HTTPException
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from lunapos.core.config import settings
import logging

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    """Pool settings per environment (NullPool for tests and SQLite files)."""
    if settings.ENVIRONMENT == "test" or settings.is_sqlite:
        return {"poolclass": NullPool}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


# Async engine for application use
async_engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG and settings.ENVIRONMENT == "development",
    **_engine_options()
)

# Async session for application
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

Base = declarative_base()


# Async dependency for application endpoints
async def get_async_db() -> AsyncSession:
    """Yield an async database session for a single request."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except HTTPException:
            await session.rollback()
            raise
        except Exception as e:
            logger.error(f"Database error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables() -> None:
    """Create missing tables (development and tests; there is no migration tool)."""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
