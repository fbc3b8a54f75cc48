"""Async engine and session factories for the backend database."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


class Backend:
    """Engine plus session factory for one backend database URL."""

    def __init__(self, url: str | None = None, echo: bool | None = None):
        self.engine: AsyncEngine = create_async_engine(
            url or settings.backend_url or "sqlite+aiosqlite:///estate.db",
            echo=settings.echo_sql if echo is None else echo,
        )
        self._session = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> Backend:
        """Create a Backend from a pre-built engine (useful for testing)."""
        backend = cls.__new__(cls)
        backend.engine = engine
        backend._session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        return backend

    def session(self) -> AsyncSession:
        return self._session()

    async def dispose(self):
        await self.engine.dispose()


backend = Backend()


def get_backend() -> Backend:
    """FastAPI dependency returning the active backend."""
    return backend


async def get_db():
    """FastAPI dependency that yields an async session."""
    async with backend.session() as session:
        yield session
