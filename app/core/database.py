from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings


# ── Base class for all models ─────────────────────────────────────────
class Base(DeclarativeBase):
    pass


# ── Async Engine ──────────────────────────────────────────────────────
# Built on first use, not at import, so the app (and its tests) can start
# without a reachable database.
@lru_cache()
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,   # Set DEBUG=false in .env to stop SQL logs
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,    # Drops stale connections before use
    )


# ── Session Factory ───────────────────────────────────────────────────
@lru_cache()
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def create_tables() -> None:
    # Import models so they register on Base.metadata
    from app.models import otp_code, profile, user  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
