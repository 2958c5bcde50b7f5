from datetime import datetime
from typing import Any, List, Literal, Optional

import attrs

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import DomainError
from src.service.table_reservation.app.dto.reservation_input import (
    optional_allergies,
    optional_status,
    optional_table_ids,
)
from src.service.table_reservation.domain.entity.reservation_entity import optional_utc
from src.service.table_reservation.domain.enum.allergy import Allergy
from src.service.table_reservation.domain.enum.reservation_status import ReservationStatus


SORTABLE_FIELDS = frozenset(
    {'id', 'time', 'guests_count', 'name', 'status', 'created_at', 'updated_at'}
)


@attrs.define(frozen=True)
class ReservationSearchCriteria:
    """
    Filters are ANDed; list filters (tables, allergies) match when ANY value matches.
    guests_count_min / guests_count_max, when either is set, replace guests_count.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[ReservationStatus] = attrs.field(default=None, converter=optional_status)
    guests_count: Optional[int] = None
    guests_count_min: Optional[int] = None
    guests_count_max: Optional[int] = None
    time_start: Optional[datetime] = attrs.field(default=None, converter=optional_utc)
    time_end: Optional[datetime] = attrs.field(default=None, converter=optional_utc)
    tables: Optional[List[int]] = attrs.field(default=None, converter=optional_table_ids)
    allergies: Optional[List[Allergy]] = attrs.field(default=None, converter=optional_allergies)
    page: int = 1
    page_size: int = attrs.field(factory=lambda: settings.RESERVATION_DEFAULT_PAGE_SIZE)
    sort_by: str = 'id'
    sort_order: Literal['asc', 'desc'] = 'asc'

    def __attrs_post_init__(self) -> None:
        if self.page < 1:
            raise DomainError('page must be at least 1')
        if self.page_size < 1:
            raise DomainError('page_size must be at least 1')
        if self.sort_by not in SORTABLE_FIELDS:
            raise DomainError(f'Cannot sort reservations by {self.sort_by}')
        if self.sort_order not in ('asc', 'desc'):
            raise DomainError('sort_order must be "asc" or "desc"')

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def to_dict(self) -> dict[str, Any]:
        """Canonical form (also the cache key argument)"""
        return {
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'status': self.status.value if self.status else None,
            'guests_count': self.guests_count,
            'guests_count_min': self.guests_count_min,
            'guests_count_max': self.guests_count_max,
            'time_start': self.time_start.isoformat() if self.time_start else None,
            'time_end': self.time_end.isoformat() if self.time_end else None,
            'tables': self.tables,
            'allergies': [allergy.value for allergy in self.allergies]
            if self.allergies is not None
            else None,
            'page': self.page,
            'page_size': self.page_size,
            'sort_by': self.sort_by,
            'sort_order': self.sort_order,
        }
