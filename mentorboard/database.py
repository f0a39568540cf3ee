"""Async SQLAlchemy engine, session factory and declarative base"""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from mentorboard import config

# Deployments hand us a plain postgresql:// URL; the async engine needs asyncpg
DATABASE_URL = config.DATABASE_URL
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = "postgresql+asyncpg://" + DATABASE_URL[len("postgresql://"):]


def build_engine(url: str = DATABASE_URL, **kwargs):
    """
    Create the async engine.

    Pool sizing only applies to server databases; SQLite (tests, local demos)
    keeps the dialect's default pool.
    """
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 20)
        kwargs.setdefault("max_overflow", 30)
        # Hourly recycle, pings catch connections dropped by the server
        kwargs.setdefault("pool_recycle", 3600)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=False, **kwargs)


engine = build_engine()

# Attributes stay loaded after commit so routers can serialize returned rows
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session dependency.

    Services commit their own units of work; anything left pending when the
    request fails is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
