import logging

from sqlalchemy import BigInteger, Integer, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

logger = logging.getLogger(__name__)

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


def create_engine_for_url(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine, enabling FK enforcement on SQLite."""
    engine = create_async_engine(url, echo=echo, **kwargs)

    if engine.dialect.name == "sqlite":
        # ON DELETE CASCADE / SET NULL are no-ops unless foreign keys are on
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


db_engine = create_engine_for_url(settings.database_url, echo=settings.database_echo)
logger.info("Database engine configured for dialect %s", db_engine.dialect.name)


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


# Dependency giving background work its own sessions after the request ends
def get_session_factory() -> async_sessionmaker:
    return AsyncSessionLocal


# Function to initialize the database (create tables)
async def init_db(engine: AsyncEngine | None = None):
    # Import models so every table is registered on Base.metadata
    import database.models  # noqa: F401

    async with (engine or db_engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()
