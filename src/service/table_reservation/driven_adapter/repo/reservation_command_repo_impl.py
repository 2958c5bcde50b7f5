from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.table_reservation.app.interface.i_reservation_command_repo import (
    IReservationCommandRepo,
)
from src.service.table_reservation.domain.entity.reservation_entity import Reservation
from src.service.table_reservation.driven_adapter.model.reservation_model import ReservationModel
from src.service.table_reservation.driven_adapter.model.restaurant_table_model import (
    RestaurantTableModel,
)
from src.service.table_reservation.driven_adapter.repo.reservation_model_mapper import (
    to_reservation,
)


class ReservationCommandRepoImpl(IReservationCommandRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    async def _load_tables(self, table_ids: List[int]) -> List[RestaurantTableModel]:
        if not table_ids:
            return []
        result = await self.session.execute(
            select(RestaurantTableModel)
            .where(RestaurantTableModel.id.in_(table_ids))
            .order_by(RestaurantTableModel.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def _write_fields(db_reservation: ReservationModel, reservation: Reservation) -> None:
        db_reservation.guests_count = reservation.guests_count
        db_reservation.time = reservation.time
        db_reservation.name = reservation.name
        db_reservation.phone = reservation.phone
        db_reservation.email = reservation.email
        db_reservation.allergies = [allergy.value for allergy in reservation.allergies]
        db_reservation.status = reservation.status.value
        db_reservation.comments = reservation.comments
        db_reservation.is_active = reservation.is_active
        db_reservation.updated_at = reservation.updated_at or datetime.now(timezone.utc)

    @Logger.io
    async def create(self, *, reservation: Reservation) -> Reservation:
        db_reservation = ReservationModel(
            created_at=reservation.created_at or datetime.now(timezone.utc),
        )
        self._write_fields(db_reservation, reservation)
        db_reservation.tables = await self._load_tables(reservation.tables)

        self.session.add(db_reservation)
        await self.session.flush()

        return to_reservation(db_reservation)

    @Logger.io
    async def update(self, *, reservation: Reservation, replace_tables: bool) -> Reservation:
        db_reservation = await self.session.get(ReservationModel, reservation.id)
        if db_reservation is None:
            raise NotFoundError('Reservation not found')

        self._write_fields(db_reservation, reservation)
        if replace_tables:
            db_reservation.tables = await self._load_tables(reservation.tables)

        await self.session.flush()
        return to_reservation(db_reservation)

    @Logger.io
    async def delete(self, *, reservation_id: int) -> bool:
        db_reservation = await self.session.get(ReservationModel, reservation_id)
        if db_reservation is None:
            return False

        await self.session.delete(db_reservation)
        await self.session.flush()
        return True
