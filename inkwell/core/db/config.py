from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    async_sessionmaker,
    AsyncAttrs,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from inkwell.core.config import database_logger, settings


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    In-memory SQLite shares one connection so every session sees the same
    database. Server databases get a bounded, pre-pinged pool.
    """
    if url.startswith("sqlite"):
        if ":memory:" in url or url.endswith("://"):
            return create_async_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(
            url, echo=echo, connect_args={"check_same_thread": False}
        )

    return create_async_engine(
        url,
        echo=echo,
        pool_size=20,  # Increase pool size for concurrent connections
        max_overflow=30,  # Allow overflow connections
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,  # Recycle connections every hour
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        autobegin=True,
    )


async_engine: AsyncEngine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = create_session_factory(async_engine)


# Base class for declarative_base
class Base(AsyncAttrs, DeclarativeBase):
    pass


async def init_db(engine: AsyncEngine = async_engine) -> None:
    """
    Initializes the database by creating all the tables defined in the metadata.

    Returns:
        None
    """
    # Register mapped tables on Base.metadata before create_all.
    from inkwell.core.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    database_logger.info("Database tables created")


async def dispose_db(engine: AsyncEngine = async_engine) -> None:
    """
    Dispose the database connection pool.

    Returns:
        None
    """
    await engine.dispose()
    database_logger.info("Database engine disposed")
