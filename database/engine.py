import logging
from typing import AsyncGenerator

from sqlalchemy import BigInteger, Integer
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from core.config import settings
from core.errors import StoreUnavailable

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    # in-memory sqlite must share one connection across sessions
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True}


db_engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    **_engine_options(settings.database_url),
)


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def commit_or_raise(db: AsyncSession) -> None:
    """
    Commit the current unit of work or roll all of it back.

    Integrity violations propagate unchanged so callers can translate them;
    connectivity failures become StoreUnavailable.
    """
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    except (OperationalError, DBAPIError) as exc:
        await db.rollback()
        logger.error(f"Store failure during commit: {type(exc).__name__}", exc_info=True)
        raise StoreUnavailable() from exc


# Function to initialize the database (create tables)
async def init_db():
    # register models on the metadata before create_all
    import database.models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()


# BIGINT primary keys only autoincrement on sqlite as INTEGER
BigIntId = BigInteger().with_variant(Integer, "sqlite")
