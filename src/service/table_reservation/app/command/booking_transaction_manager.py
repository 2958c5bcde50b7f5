"""
Booking Transaction Manager

Every operation runs in exactly one unit of work (one data store transaction).

Reads go through the cache-aside wrappers:
- get_by_id  -> per-id key
- search     -> key under the search prefix

Writes (create / update* / delete) are wrapped by invalidators, so the order is
always: commit -> evict per-id key -> evict search prefix -> return.
A caller that sees a write return will never read the pre-write value from
this cache afterwards (other concurrent readers may, until TTL).

Conflicts are advisory: they are computed inside the write's transaction and
returned with the result; they never block the write.
"""

from datetime import datetime
from typing import Callable, Iterable, List, Optional

from opentelemetry import trace

from src.platform.cache.cache_invalidation import (
    InvalidateByKeys,
    InvalidateByPrefix,
    InvalidatingOperation,
)
from src.platform.cache.cache_key_builder import CacheKeyBuilder
from src.platform.cache.cached_operation import CachedOperation
from src.platform.cache.i_cache_store import ICacheStore
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError, ValidationError
from src.platform.logging.loguru_io import Logger
from src.service.table_reservation.app.dto.reservation_input import (
    CreateReservationInput,
    GuestInfo,
    ReservationPatch,
)
from src.service.table_reservation.app.dto.reservation_result import (
    ReservationPage,
    ReservationWithConflicts,
)
from src.service.table_reservation.app.dto.reservation_search_criteria import (
    ReservationSearchCriteria,
)
from src.service.table_reservation.app.reservation_cache_keys import (
    GET_RESERVATION_BY_ID,
    SEARCH_RESERVATIONS,
    ReservationCacheKeys,
)
from src.service.table_reservation.domain.conflict_detector import (
    booking_window_end,
    check_conflicts,
)
from src.service.table_reservation.domain.entity.reservation_entity import Reservation
from src.service.table_reservation.domain.enum.allergy import Allergy
from src.service.table_reservation.domain.enum.reservation_status import ReservationStatus
from src.service.table_reservation.domain.value_object.conflict_record import ConflictRecord


class BookingTransactionManager:
    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        cache_store: Optional[ICacheStore],
        key_builder: Optional[CacheKeyBuilder] = None,
        cache_ttl_seconds: Optional[int] = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.cache_keys = ReservationCacheKeys(key_builder or CacheKeyBuilder())
        self.tracer = trace.get_tracer(__name__)

        # Reads
        self._cached_get_by_id: CachedOperation[Reservation] = CachedOperation(
            self._load_by_id,
            cache_store=cache_store,
            name=GET_RESERVATION_BY_ID,
            key_fn=self.cache_keys.by_id,
            ttl_seconds=cache_ttl_seconds,
            encode=Reservation.to_dict,
            decode=Reservation.from_dict,
        )
        self._cached_search: CachedOperation[ReservationPage] = CachedOperation(
            self._load_page,
            cache_store=cache_store,
            name=SEARCH_RESERVATIONS,
            key_fn=self.cache_keys.search,
            ttl_seconds=cache_ttl_seconds,
            encode=ReservationPage.to_dict,
            decode=ReservationPage.from_dict,
        )

        # Writes
        evict_reservation = InvalidateByKeys(self.cache_keys.for_reservation)
        evict_searches = InvalidateByPrefix(self.cache_keys.search_prefix)
        self._create: InvalidatingOperation[ReservationWithConflicts] = InvalidatingOperation(
            self._create_in_transaction,
            cache_store=cache_store,
            strategies=[evict_searches],
        )
        self._update: InvalidatingOperation[ReservationWithConflicts] = InvalidatingOperation(
            self._update_in_transaction,
            cache_store=cache_store,
            strategies=[evict_reservation, evict_searches],
        )
        self._delete: InvalidatingOperation[None] = InvalidatingOperation(
            self._delete_in_transaction,
            cache_store=cache_store,
            strategies=[evict_reservation, evict_searches],
        )

    # ── Tables & conflicts ───────────────────────────────────────────────

    async def _validate_tables(self, uow: AbstractUnitOfWork, table_ids: Iterable[int]) -> None:
        requested = sorted(set(table_ids))
        if not requested:
            return

        existing = await uow.table_query_repo.list_by_ids(table_ids=requested)
        missing = sorted(set(requested) - {table.id for table in existing})
        if missing:
            raise ValidationError(f'Tables not found: {missing}')

    async def _check_conflicts(
        self,
        uow: AbstractUnitOfWork,
        *,
        table_ids: List[int],
        start: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[ConflictRecord]:
        if not table_ids:
            return []

        candidates = await uow.reservation_query_repo.find_conflict_candidates(
            table_ids=table_ids,
            end=booking_window_end(start),
            exclude_reservation_id=exclude_reservation_id,
        )
        return check_conflicts(
            candidates,
            table_ids=table_ids,
            start=start,
            exclude_reservation_id=exclude_reservation_id,
        )

    @Logger.io
    async def validate_tables(self, table_ids: Iterable[int]) -> None:
        """
        Raises:
            ValidationError: when any id has no matching table
        """
        table_ids = list(table_ids)
        if not table_ids:
            return
        async with self.uow_factory() as uow:
            await self._validate_tables(uow, table_ids)

    @Logger.io
    async def check_conflicts(
        self,
        table_ids: Iterable[int],
        start: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[ConflictRecord]:
        async with self.uow_factory() as uow:
            return await self._check_conflicts(
                uow,
                table_ids=sorted(set(table_ids)),
                start=start,
                exclude_reservation_id=exclude_reservation_id,
            )

    # ── Reads ────────────────────────────────────────────────────────────

    async def _load_by_id(self, reservation_id: int) -> Reservation:
        async with self.uow_factory() as uow:
            reservation = await uow.reservation_query_repo.get_by_id(
                reservation_id=reservation_id
            )

        if reservation is None:
            raise NotFoundError('Reservation not found')
        return reservation

    async def _load_page(self, criteria: ReservationSearchCriteria) -> ReservationPage:
        async with self.uow_factory() as uow:
            items, total_count = await uow.reservation_query_repo.search(criteria=criteria)

        return ReservationPage.build(
            items=items,
            total_count=total_count,
            page=criteria.page,
            page_size=criteria.page_size,
        )

    @Logger.io
    async def get_by_id(self, reservation_id: int) -> Reservation:
        return await self._cached_get_by_id(reservation_id)

    @Logger.io
    async def search(
        self, criteria: Optional[ReservationSearchCriteria] = None
    ) -> ReservationPage:
        return await self._cached_search(criteria or ReservationSearchCriteria())

    # ── Writes ───────────────────────────────────────────────────────────

    async def _create_in_transaction(
        self, reservation_input: CreateReservationInput
    ) -> ReservationWithConflicts:
        async with self.uow_factory() as uow:
            await self._validate_tables(uow, reservation_input.tables)

            reservation = Reservation.create(
                guests_count=reservation_input.guests_count,
                time=reservation_input.time,
                name=reservation_input.name,
                phone=reservation_input.phone,
                email=reservation_input.email,
                allergies=reservation_input.allergies,
                status=reservation_input.status,
                comments=reservation_input.comments,
                tables=reservation_input.tables,
            )
            created = await uow.reservation_command_repo.create(reservation=reservation)

            # The new row is visible to this transaction, so it is excluded by id
            conflicts = await self._check_conflicts(
                uow,
                table_ids=created.tables,
                start=created.time,
                exclude_reservation_id=created.id,
            )
            await uow.commit()

        return ReservationWithConflicts(reservation=created, conflicts=conflicts)

    async def _update_in_transaction(
        self, reservation_id: int, patch: ReservationPatch, check_conflicts: bool
    ) -> ReservationWithConflicts:
        async with self.uow_factory() as uow:
            existing = await uow.reservation_query_repo.get_by_id(reservation_id=reservation_id)
            if existing is None:
                raise NotFoundError('Reservation not found')

            if patch.tables is not None:
                await self._validate_tables(uow, patch.tables)

            updated = await uow.reservation_command_repo.update(
                reservation=existing.revise(**patch.changes()),
                replace_tables=patch.tables is not None,
            )

            conflicts: List[ConflictRecord] = []
            if check_conflicts and patch.tables is not None:
                conflicts = await self._check_conflicts(
                    uow,
                    table_ids=updated.tables,
                    start=updated.time,
                    exclude_reservation_id=updated.id,
                )
            await uow.commit()

        return ReservationWithConflicts(reservation=updated, conflicts=conflicts)

    async def _delete_in_transaction(self, reservation_id: int) -> None:
        async with self.uow_factory() as uow:
            deleted = await uow.reservation_command_repo.delete(reservation_id=reservation_id)
            if not deleted:
                raise NotFoundError('Reservation not found')
            await uow.commit()

    @Logger.io
    async def create_reservation(
        self, reservation_input: CreateReservationInput
    ) -> ReservationWithConflicts:
        with self.tracer.start_as_current_span(
            'booking.create_reservation',
            attributes={
                'reservation.tables': list(reservation_input.tables),
                'reservation.time': reservation_input.time.isoformat(),
            },
        ) as span:
            result = await self._create(reservation_input)
            span.set_attribute('reservation.id', result.reservation.id or 0)
            span.set_attribute('conflict_count', len(result.conflicts))

        Logger.base.info(f'📝 [BOOKING] Created reservation {result.reservation.id}')
        if result.has_conflicts:
            Logger.base.warning(
                f'⚠️ [BOOKING] Reservation {result.reservation.id} overlaps '
                f'{[conflict.reservation_id for conflict in result.conflicts]}'
            )
        return result

    @Logger.io
    async def perform_update(
        self, reservation_id: int, patch: ReservationPatch, check_conflicts: bool = False
    ) -> ReservationWithConflicts:
        """
        Apply the fields present in patch in one transaction.

        `patch.tables`, when given, replaces the table set. Conflicts are only
        computed when check_conflicts is set AND the patch carries tables.

        Raises:
            NotFoundError: reservation does not exist
            ValidationError: patch.tables references a missing table
        """
        with self.tracer.start_as_current_span(
            'booking.perform_update',
            attributes={'reservation.id': reservation_id, 'check_conflicts': check_conflicts},
        ):
            result = await self._update(reservation_id, patch, check_conflicts)

        Logger.base.info(f'✏️ [BOOKING] Updated reservation {reservation_id}')
        return result

    async def update(self, reservation_id: int, patch: ReservationPatch) -> ReservationWithConflicts:
        return await self.perform_update(reservation_id, patch, bool(patch.tables))

    async def update_status(
        self, reservation_id: int, status: ReservationStatus
    ) -> ReservationWithConflicts:
        return await self.perform_update(reservation_id, ReservationPatch(status=status), False)

    async def update_time(self, reservation_id: int, time: datetime) -> ReservationWithConflicts:
        # No tables in the patch, so no conflicts are reported
        return await self.perform_update(reservation_id, ReservationPatch(time=time), True)

    async def update_tables(
        self, reservation_id: int, table_ids: Iterable[int]
    ) -> ReservationWithConflicts:
        return await self.perform_update(
            reservation_id, ReservationPatch(tables=list(table_ids)), True
        )

    async def update_guest_info(
        self, reservation_id: int, guest_info: GuestInfo
    ) -> ReservationWithConflicts:
        return await self.perform_update(
            reservation_id, ReservationPatch.from_guest_info(guest_info), False
        )

    async def update_comment(self, reservation_id: int, comments: str) -> ReservationWithConflicts:
        return await self.perform_update(reservation_id, ReservationPatch(comments=comments), False)

    async def update_allergies(
        self, reservation_id: int, allergies: Iterable[Allergy]
    ) -> ReservationWithConflicts:
        return await self.perform_update(
            reservation_id, ReservationPatch(allergies=list(allergies)), False
        )

    @Logger.io
    async def delete(self, reservation_id: int) -> None:
        """
        Raises:
            NotFoundError: reservation does not exist
        """
        await self._delete(reservation_id)
        Logger.base.info(f'🗑️ [BOOKING] Deleted reservation {reservation_id}')
