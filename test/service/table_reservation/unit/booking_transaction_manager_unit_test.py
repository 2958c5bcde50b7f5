"""
Unit tests for BookingTransactionManager

Repositories are AsyncMocks behind a fake unit of work; the cache is the
in-memory store, so cache behaviour is observed directly.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.platform.cache.cache_key_builder import CacheKeyBuilder
from src.platform.cache.in_memory_cache_store import InMemoryCacheStore
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import (
    CacheConfigurationError,
    NotFoundError,
    ValidationError,
)
from src.service.table_reservation.app.command.booking_transaction_manager import (
    BookingTransactionManager,
)
from src.service.table_reservation.app.dto.reservation_input import (
    CreateReservationInput,
    ReservationPatch,
)
from src.service.table_reservation.app.dto.reservation_search_criteria import (
    ReservationSearchCriteria,
)
from src.service.table_reservation.app.interface.i_reservation_command_repo import (
    IReservationCommandRepo,
)
from src.service.table_reservation.app.interface.i_reservation_query_repo import (
    IReservationQueryRepo,
)
from src.service.table_reservation.app.interface.i_table_query_repo import ITableQueryRepo
from src.service.table_reservation.domain.entity.reservation_entity import Reservation
from src.service.table_reservation.domain.entity.table_entity import Table
from src.service.table_reservation.domain.enum.reservation_status import ReservationStatus


SIX_PM = datetime(2024, 6, 1, 18, tzinfo=timezone.utc)


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self) -> None:
        self.reservation_command_repo = AsyncMock(spec=IReservationCommandRepo)
        self.reservation_query_repo = AsyncMock(spec=IReservationQueryRepo)
        self.table_query_repo = AsyncMock(spec=ITableQueryRepo)
        self.reservation_query_repo.find_conflict_candidates.return_value = []
        self.commits = 0
        self.rollbacks = 0

    async def _commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


def _stored(reservation_id: int = 1, **overrides) -> Reservation:
    fields = {
        'id': reservation_id,
        'guests_count': 2,
        'time': SIX_PM,
        'name': 'Ann',
        'phone': '555-0100',
        'tables': [5],
        'status': ReservationStatus.CONFIRMED,
        'created_at': SIX_PM,
        'updated_at': SIX_PM,
    }
    fields.update(overrides)
    return Reservation(**fields)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


@pytest.fixture
def manager(
    uow: FakeUnitOfWork, cache_store: InMemoryCacheStore, key_builder: CacheKeyBuilder
) -> BookingTransactionManager:
    return BookingTransactionManager(
        uow_factory=lambda: uow, cache_store=cache_store, key_builder=key_builder
    )


class TestBookingTransactionManager:
    @pytest.mark.unit
    def test_construction_without_cache_store_fails_fast(self, uow: FakeUnitOfWork) -> None:
        with pytest.raises(CacheConfigurationError):
            BookingTransactionManager(uow_factory=lambda: uow, cache_store=None)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_validate_tables_empty_is_a_no_op(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        await manager.validate_tables([])

        uow.table_query_repo.list_by_ids.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_validate_tables_reports_missing_ids(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        # Given: only table 5 exists
        uow.table_query_repo.list_by_ids.return_value = [Table(id=5, table_number=5, capacity=4)]

        # When / Then
        with pytest.raises(ValidationError, match=r'\[7\]'):
            await manager.validate_tables([5, 7])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_with_missing_table_writes_nothing(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        # Given
        uow.table_query_repo.list_by_ids.return_value = []

        # When
        with pytest.raises(ValidationError):
            await manager.create_reservation(
                CreateReservationInput(
                    guests_count=2, time=SIX_PM, name='Ann', phone='555', tables=[99]
                )
            )

        # Then
        uow.reservation_command_repo.create.assert_not_awaited()
        assert uow.commits == 0
        assert uow.rollbacks == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_excludes_new_row_from_conflicts_and_commits(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        # Given
        uow.table_query_repo.list_by_ids.return_value = [Table(id=5, table_number=5, capacity=4)]
        uow.reservation_command_repo.create.return_value = _stored(reservation_id=3)

        # When
        result = await manager.create_reservation(
            CreateReservationInput(guests_count=2, time=SIX_PM, name='Ann', phone='555', tables=[5])
        )

        # Then
        assert result.reservation.id == 3
        assert result.conflicts == []
        assert uow.commits == 1
        candidates_call = uow.reservation_query_repo.find_conflict_candidates.await_args
        assert candidates_call.kwargs['exclude_reservation_id'] == 3
        assert candidates_call.kwargs['table_ids'] == [5]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_by_id_is_memoized_per_id(
        self,
        manager: BookingTransactionManager,
        uow: FakeUnitOfWork,
        cache_store: InMemoryCacheStore,
    ) -> None:
        # Given
        uow.reservation_query_repo.get_by_id.return_value = _stored()

        # When
        first = await manager.get_by_id(1)
        second = await manager.get_by_id(1)

        # Then
        assert first == second == _stored()
        assert uow.reservation_query_repo.get_by_id.await_count == 1
        assert await cache_store.keys() == ['v1:get_reservation_by_id_[1]']

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_by_id_reloads_over_a_malformed_cache_entry(
        self,
        manager: BookingTransactionManager,
        uow: FakeUnitOfWork,
        cache_store: InMemoryCacheStore,
    ) -> None:
        # Given
        await cache_store.set('v1:get_reservation_by_id_[1]', {'id': 1}, 60)
        uow.reservation_query_repo.get_by_id.return_value = _stored()

        # When
        reservation = await manager.get_by_id(1)

        # Then
        assert reservation == _stored()
        assert uow.reservation_query_repo.get_by_id.await_count == 1
        assert await cache_store.get('v1:get_reservation_by_id_[1]') == _stored().to_dict()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_by_id_not_found_is_not_cached(
        self,
        manager: BookingTransactionManager,
        uow: FakeUnitOfWork,
        cache_store: InMemoryCacheStore,
    ) -> None:
        uow.reservation_query_repo.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await manager.get_by_id(1)

        assert await cache_store.keys() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_search_builds_page_and_is_memoized(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        # Given: 21 matches, page size 10
        uow.reservation_query_repo.search.return_value = ([_stored()], 21)
        criteria = ReservationSearchCriteria(page=3, page_size=10)

        # When
        page = await manager.search(criteria)
        await manager.search(ReservationSearchCriteria(page=3, page_size=10))

        # Then
        assert page.total_count == 21
        assert page.total_pages == 3
        assert page.page == 3
        assert uow.reservation_query_repo.search.await_count == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_without_tables_skips_conflict_check(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        # Given
        uow.reservation_query_repo.get_by_id.return_value = _stored()
        uow.reservation_command_repo.update.side_effect = (
            lambda *, reservation, replace_tables: reservation
        )

        # When
        result = await manager.update(1, ReservationPatch(comments='late'))

        # Then
        assert result.reservation.comments == 'late'
        assert result.conflicts == []
        uow.reservation_query_repo.find_conflict_candidates.assert_not_awaited()
        assert uow.reservation_command_repo.update.await_args.kwargs['replace_tables'] is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_tables_checks_conflicts_excluding_itself(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        # Given: another reservation on table 2 at the same time
        uow.reservation_query_repo.get_by_id.return_value = _stored()
        uow.table_query_repo.list_by_ids.return_value = [Table(id=2, table_number=2, capacity=4)]
        uow.reservation_command_repo.update.side_effect = (
            lambda *, reservation, replace_tables: reservation
        )
        uow.reservation_query_repo.find_conflict_candidates.return_value = [
            _stored(reservation_id=8, tables=[2])
        ]

        # When
        result = await manager.update_tables(1, [2])

        # Then
        assert result.reservation.tables == [2]
        assert [conflict.reservation_id for conflict in result.conflicts] == [8]
        call = uow.reservation_query_repo.find_conflict_candidates.await_args
        assert call.kwargs['exclude_reservation_id'] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_time_reports_no_conflicts(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        uow.reservation_query_repo.get_by_id.return_value = _stored()
        uow.reservation_command_repo.update.side_effect = (
            lambda *, reservation, replace_tables: reservation
        )

        result = await manager.update_time(1, datetime(2024, 6, 1, 20, tzinfo=timezone.utc))

        assert result.reservation.time.hour == 20
        assert result.conflicts == []
        uow.reservation_query_repo.find_conflict_candidates.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_missing_reservation_raises_not_found_and_keeps_cache(
        self,
        manager: BookingTransactionManager,
        uow: FakeUnitOfWork,
        cache_store: InMemoryCacheStore,
    ) -> None:
        # Given
        await cache_store.set('v1:search_reservations_[{}]', {'cached': True}, 60)
        uow.reservation_query_repo.get_by_id.return_value = None

        # When
        with pytest.raises(NotFoundError):
            await manager.update_status(1, ReservationStatus.CANCELLED)

        # Then: failed writes never invalidate
        assert await cache_store.has('v1:search_reservations_[{}]') is True
        assert uow.commits == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_evicts_per_id_key_and_search_prefix_after_commit(
        self,
        manager: BookingTransactionManager,
        uow: FakeUnitOfWork,
        cache_store: InMemoryCacheStore,
    ) -> None:
        # Given: cached entries for reservation 1, reservation 2 and a search
        for key in (
            'v1:get_reservation_by_id_[1]',
            'v1:get_reservation_by_id_[2]',
            'v1:search_reservations_[{"page":1}]',
        ):
            await cache_store.set(key, {'cached': True}, 60)
        uow.reservation_command_repo.delete.return_value = True

        # When
        await manager.delete(1)

        # Then
        assert uow.commits == 1
        assert await cache_store.keys() == ['v1:get_reservation_by_id_[2]']

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_missing_reservation_raises_not_found(
        self, manager: BookingTransactionManager, uow: FakeUnitOfWork
    ) -> None:
        uow.reservation_command_repo.delete.return_value = False

        with pytest.raises(NotFoundError):
            await manager.delete(42)

        assert uow.commits == 0
