from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from src.service.table_reservation.app.dto.reservation_search_criteria import (
    ReservationSearchCriteria,
)
from src.service.table_reservation.domain.entity.reservation_entity import Reservation


class IReservationQueryRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, reservation_id: int) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def search(
        self, *, criteria: ReservationSearchCriteria
    ) -> Tuple[List[Reservation], int]:
        """Return (items of the requested page, total matching count)"""
        pass

    @abstractmethod
    async def find_conflict_candidates(
        self,
        *,
        table_ids: List[int],
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[Reservation]:
        """
        Active reservations sharing a table with table_ids and starting before end.

        A superset of the real conflicts; the conflict detector filters the rest.
        """
        pass
