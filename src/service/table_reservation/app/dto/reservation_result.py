"""Result envelopes returned by the booking engine"""

import math
from typing import Any, List

import attrs

from src.service.table_reservation.domain.entity.reservation_entity import Reservation
from src.service.table_reservation.domain.value_object.conflict_record import ConflictRecord


@attrs.define(frozen=True)
class ReservationWithConflicts:
    """
    A written reservation plus the existing reservations overlapping it.
    Conflicts are advisory: the write already happened.
    """

    reservation: Reservation
    conflicts: List[ConflictRecord] = attrs.field(factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


@attrs.define(frozen=True)
class ReservationPage:
    items: List[Reservation]
    total_count: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def build(
        cls, *, items: List[Reservation], total_count: int, page: int, page_size: int
    ) -> 'ReservationPage':
        return cls(
            items=items,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total_count / page_size),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'total_count': self.total_count,
            'page': self.page,
            'page_size': self.page_size,
            'total_pages': self.total_pages,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'ReservationPage':
        return cls(
            items=[Reservation.from_dict(item) for item in data['items']],
            total_count=data['total_count'],
            page=data['page'],
            page_size=data['page_size'],
            total_pages=data['total_pages'],
        )
