from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from src.platform.logging.loguru_io import Logger
from src.service.table_reservation.app.dto.reservation_search_criteria import (
    ReservationSearchCriteria,
)
from src.service.table_reservation.app.interface.i_reservation_query_repo import (
    IReservationQueryRepo,
)
from src.service.table_reservation.domain.entity.reservation_entity import (
    Reservation,
    ensure_utc,
)
from src.service.table_reservation.driven_adapter.model.reservation_model import ReservationModel
from src.service.table_reservation.driven_adapter.model.restaurant_table_model import (
    RestaurantTableModel,
)
from src.service.table_reservation.driven_adapter.repo.reservation_model_mapper import (
    to_reservation,
)


class ReservationQueryRepoImpl(IReservationQueryRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _build_filters(criteria: ReservationSearchCriteria) -> List[ColumnElement[Any]]:
        conditions: List[ColumnElement[Any]] = []

        if criteria.name:
            conditions.append(ReservationModel.name.icontains(criteria.name, autoescape=True))
        if criteria.email:
            conditions.append(ReservationModel.email.icontains(criteria.email, autoescape=True))
        if criteria.phone:
            conditions.append(ReservationModel.phone.icontains(criteria.phone, autoescape=True))
        if criteria.status is not None:
            conditions.append(ReservationModel.status == criteria.status.value)

        # A range, when given, replaces the exact guest count
        if criteria.guests_count_min is not None or criteria.guests_count_max is not None:
            if criteria.guests_count_min is not None:
                conditions.append(ReservationModel.guests_count >= criteria.guests_count_min)
            if criteria.guests_count_max is not None:
                conditions.append(ReservationModel.guests_count <= criteria.guests_count_max)
        elif criteria.guests_count is not None:
            conditions.append(ReservationModel.guests_count == criteria.guests_count)

        if criteria.time_start is not None:
            conditions.append(ReservationModel.time >= ensure_utc(criteria.time_start))
        if criteria.time_end is not None:
            conditions.append(ReservationModel.time <= ensure_utc(criteria.time_end))

        if criteria.tables:
            conditions.append(
                ReservationModel.tables.any(RestaurantTableModel.id.in_(criteria.tables))
            )

        if criteria.allergies:
            # JSON array text always quotes each value, so '"FISH"' never matches "SHELLFISH"
            allergies_text = cast(ReservationModel.allergies, String)
            conditions.append(
                or_(*(allergies_text.contains(f'"{allergy.value}"') for allergy in criteria.allergies))
            )

        return conditions

    @Logger.io
    async def get_by_id(self, *, reservation_id: int) -> Optional[Reservation]:
        result = await self.session.execute(
            select(ReservationModel).where(ReservationModel.id == reservation_id)
        )
        db_reservation = result.scalar_one_or_none()

        if not db_reservation:
            return None

        return to_reservation(db_reservation)

    @Logger.io
    async def search(
        self, *, criteria: ReservationSearchCriteria
    ) -> Tuple[List[Reservation], int]:
        conditions = self._build_filters(criteria)

        total_count = await self.session.scalar(
            select(func.count()).select_from(ReservationModel).where(*conditions)
        )

        sort_column = getattr(ReservationModel, criteria.sort_by)
        ordering = sort_column.desc() if criteria.sort_order == 'desc' else sort_column.asc()
        result = await self.session.execute(
            select(ReservationModel)
            .where(*conditions)
            .order_by(ordering, ReservationModel.id.asc())
            .offset(criteria.offset)
            .limit(criteria.page_size)
        )

        items = [to_reservation(db_reservation) for db_reservation in result.scalars().all()]
        return items, total_count or 0

    @Logger.io
    async def find_conflict_candidates(
        self,
        *,
        table_ids: List[int],
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[Reservation]:
        if not table_ids:
            return []

        stmt = select(ReservationModel).where(
            ReservationModel.is_active.is_(True),
            ReservationModel.tables.any(RestaurantTableModel.id.in_(table_ids)),
            ReservationModel.time < ensure_utc(end),
        )
        if exclude_reservation_id is not None:
            stmt = stmt.where(ReservationModel.id != exclude_reservation_id)

        result = await self.session.execute(
            stmt.order_by(ReservationModel.time, ReservationModel.id)
        )
        return [to_reservation(db_reservation) for db_reservation in result.scalars().all()]
