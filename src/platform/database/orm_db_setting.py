"""
SQLAlchemy async engine and session management

Provides:
1. Base: declarative base for every ORM model
2. Database: lazily built engine + session maker, injected through the DI container

SQLite (aiosqlite) is supported for local runs and tests:
- foreign keys are switched on per connection so ON DELETE CASCADE holds
- ":memory:" URLs share a single connection (StaticPool) so every session sees the same data
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


class Database:
    """
    Owns the async engine for one database URL.

    Usage:
        database = Database()
        async with database.session() as session:
            ...
    """

    def __init__(self, *, url: str | None = None, echo: bool | None = None) -> None:
        self._url = url or settings.DATABASE_URL_ASYNC
        self._echo = settings.DB_ECHO if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self._url.startswith('sqlite')

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_maker

    def _create_engine(self) -> AsyncEngine:
        engine_kwargs: dict[str, Any] = {'echo': self._echo, 'future': True}
        if self.is_sqlite:
            engine_kwargs['connect_args'] = {'check_same_thread': False}
            if ':memory:' in self._url:
                engine_kwargs['poolclass'] = StaticPool
        else:
            engine_kwargs['pool_pre_ping'] = settings.DB_POOL_PRE_PING

        engine = create_async_engine(self._url, **engine_kwargs)
        if self.is_sqlite:
            event.listen(engine.sync_engine, 'connect', _enable_sqlite_foreign_keys)
        Logger.base.info(f'🔗 [DB] Engine created for {engine.url.render_as_string()}')
        return engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session context manager (rolls back on exception, closes on exit)"""
        async with self.session_maker() as session:
            yield session

    async def create_tables(self) -> None:
        """Create every table registered on Base.metadata if missing"""
        import src.service.table_reservation.driven_adapter.model  # noqa: F401  registers models

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
