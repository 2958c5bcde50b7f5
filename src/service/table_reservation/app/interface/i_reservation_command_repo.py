from abc import ABC, abstractmethod

from src.service.table_reservation.domain.entity.reservation_entity import Reservation


class IReservationCommandRepo(ABC):
    """Reservation writes; runs inside the caller's unit of work, never commits"""

    @abstractmethod
    async def create(self, *, reservation: Reservation) -> Reservation:
        """Insert the reservation with its table associations; returns it with id assigned"""
        pass

    @abstractmethod
    async def update(self, *, reservation: Reservation, replace_tables: bool) -> Reservation:
        """Write every scalar field; when replace_tables, reset the table set to reservation.tables"""
        pass

    @abstractmethod
    async def delete(self, *, reservation_id: int) -> bool:
        """Delete the reservation (associations cascade); False when it did not exist"""
        pass
