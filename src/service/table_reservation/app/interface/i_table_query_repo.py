from abc import ABC, abstractmethod
from typing import List

from src.service.table_reservation.domain.entity.table_entity import Table


class ITableQueryRepo(ABC):
    @abstractmethod
    async def list_by_ids(self, *, table_ids: List[int]) -> List[Table]:
        """Tables among table_ids that exist (missing ids are simply absent)"""
        pass
