"""
Async database engine, session factory and declarative base
"""
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def _engine_kwargs() -> dict:
    kwargs = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    # sqlite (tests, local dev) has no connection pool sizing
    if not settings.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return kwargs


engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def create_async_engine_and_session_for_celery():
    """
    Build an engine and session factory bound to the current event loop.
    Celery tasks run each job in a fresh loop, so they cannot share the
    module-level engine.
    """
    task_engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs())
    session_factory = async_sessionmaker(
        bind=task_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return task_engine, session_factory
