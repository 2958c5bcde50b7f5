from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.table_reservation.app.interface.i_table_query_repo import ITableQueryRepo
from src.service.table_reservation.domain.entity.table_entity import Table
from src.service.table_reservation.domain.enum.table_condition import TableCondition
from src.service.table_reservation.driven_adapter.model.restaurant_table_model import (
    RestaurantTableModel,
)


class TableQueryRepoImpl(ITableQueryRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @Logger.io
    async def list_by_ids(self, *, table_ids: List[int]) -> List[Table]:
        if not table_ids:
            return []

        result = await self.session.execute(
            select(RestaurantTableModel)
            .where(RestaurantTableModel.id.in_(table_ids))
            .order_by(RestaurantTableModel.id)
        )
        return [
            Table(
                id=db_table.id,
                table_number=db_table.table_number,
                capacity=db_table.capacity,
                status=TableCondition(db_table.status),
            )
            for db_table in result.scalars().all()
        ]
