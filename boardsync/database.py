from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from boardsync.config import settings
from boardsync.middleware import install_query_counter


class Base(DeclarativeBase):
    pass


def create_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """
    Build an async engine for the primary store and register the
    per-event SQL statement counter on it.

    Tests pass an in-memory SQLite URL; production uses ``DATABASE_URL``.
    """
    kwargs.setdefault("echo", settings.DEBUG)
    engine = create_async_engine(url or settings.DATABASE_URL, **kwargs)
    install_query_counter(engine)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
