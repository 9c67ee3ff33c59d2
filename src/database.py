"""Database engine, declarative base and request-scoped sessions."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def get_async_database_url(url: str) -> str:
    """Convert a standard PostgreSQL URL to an async-compatible URL.

    Hosting providers hand out URLs in the format postgresql://...
    asyncpg requires postgresql+asyncpg://...
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str | None = None, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given (or configured) database URL."""
    return create_async_engine(
        get_async_database_url(url or settings.database_url),
        echo=echo,
        pool_pre_ping=True,
    )


async_engine = build_engine(echo=settings.debug)

async_session_factory = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session.

    The session is committed when the request handler returns normally and
    rolled back if it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
