"""
Unit of Work Pattern - one database session = one atomic transaction

Architecture:
- UoW owns the session lifecycle and commit/rollback
- Repositories share the UoW session, so every read and write inside one
  `async with uow:` block belongs to the same transaction
- Leaving the block without commit rolls everything back
- Data store failures leave the block translated into the platform error taxonomy
"""

from __future__ import annotations

import abc
from types import TracebackType
from typing import TYPE_CHECKING, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import Database
from src.platform.exception.exceptions import ConflictError, InternalError
from src.platform.logging.loguru_io import Logger


if TYPE_CHECKING:
    from src.service.table_reservation.app.interface.i_reservation_command_repo import (
        IReservationCommandRepo,
    )
    from src.service.table_reservation.app.interface.i_reservation_query_repo import (
        IReservationQueryRepo,
    )
    from src.service.table_reservation.app.interface.i_table_query_repo import ITableQueryRepo


class AbstractUnitOfWork(abc.ABC):
    """
    Abstract Unit of Work for the booking engine

    Usage:
        async with uow:
            reservation = await uow.reservation_command_repo.create(...)
            await uow.commit()
    """

    reservation_command_repo: IReservationCommandRepo
    reservation_query_repo: IReservationQueryRepo
    table_query_repo: ITableQueryRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.rollback()
        if isinstance(exc, IntegrityError):
            raise ConflictError(f'Data store integrity violation: {exc.orig}') from exc
        if isinstance(exc, SQLAlchemyError):
            raise InternalError(f'Data store failure: {type(exc).__name__}') from exc

    async def commit(self) -> None:
        """Commit the transaction"""
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """SQLAlchemy implementation: opens a fresh session per `async with` block"""

    def __init__(self, database: Database) -> None:
        self.database = database
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> AbstractUnitOfWork:
        from src.service.table_reservation.driven_adapter.repo.reservation_command_repo_impl import (
            ReservationCommandRepoImpl,
        )
        from src.service.table_reservation.driven_adapter.repo.reservation_query_repo_impl import (
            ReservationQueryRepoImpl,
        )
        from src.service.table_reservation.driven_adapter.repo.table_query_repo_impl import (
            TableQueryRepoImpl,
        )

        self.session = self.database.session_maker()

        # Repositories share the transaction's session
        self.reservation_command_repo = ReservationCommandRepoImpl(session=self.session)
        self.reservation_query_repo = ReservationQueryRepoImpl(session=self.session)
        self.table_query_repo = TableQueryRepoImpl(session=self.session)
        return await super().__aenter__()

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self.session is not None:
                await self.session.close()
                self.session = None

    async def _commit(self) -> None:
        if self.session is None:
            raise InternalError('commit() called outside of `async with uow`')
        await self.session.commit()

    async def rollback(self) -> None:
        if self.session is None:
            return
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            # Connection already broken; the original failure is what the caller sees
            Logger.base.warning(f'⚠️ [UOW] Rollback failed: {type(e).__name__}: {e}')


def unit_of_work_factory(database: Database) -> Callable[[], AbstractUnitOfWork]:
    """Build a zero-argument factory handing out a fresh UoW per transaction"""

    def _factory() -> AbstractUnitOfWork:
        return SqlAlchemyUnitOfWork(database)

    return _factory
