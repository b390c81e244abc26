"""Local SQLite storage: engine, sessions and schema creation."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from fund_tracker.config import DATABASE_URL


class Base(DeclarativeBase):
    """Declarative base for the watchlist, holding, alert and cache tables."""


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows stay readable after commit; routes serialise them afterwards
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_async_engine(DATABASE_URL, echo=False)
async_session_factory = make_session_factory(engine)


async def get_db():
    """Yield one session per request."""
    async with async_session_factory() as session:
        yield session


async def create_tables(bind: AsyncEngine) -> None:
    """Create any missing tables on ``bind``; existing rows are left alone."""
    from fund_tracker.models import announcement, cache, fund, holding  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db():
    await create_tables(engine)


async def close_db():
    await engine.dispose()
