"""
Reservation cache key namespace

Reads and invalidations must build keys through the same builder, otherwise
an invalidation silently misses the entries it is meant to evict.

    get_by_id(1)      -> "v1:get_reservation_by_id_[1]"
    search(criteria)  -> "v1:search_reservations_[{...criteria...}]"
"""

from typing import Any, List

from src.platform.cache.cache_key_builder import CacheKeyBuilder
from src.service.table_reservation.app.dto.reservation_search_criteria import (
    ReservationSearchCriteria,
)


GET_RESERVATION_BY_ID = 'get_reservation_by_id'
SEARCH_RESERVATIONS = 'search_reservations'


class ReservationCacheKeys:
    def __init__(self, key_builder: CacheKeyBuilder) -> None:
        self.key_builder = key_builder

    def by_id(self, reservation_id: int) -> str:
        return self.key_builder.key(GET_RESERVATION_BY_ID, reservation_id)

    def search(self, criteria: ReservationSearchCriteria) -> str:
        return self.key_builder.key(SEARCH_RESERVATIONS, criteria.to_dict())

    @property
    def search_prefix(self) -> str:
        return self.key_builder.prefix(SEARCH_RESERVATIONS)

    def for_reservation(self, reservation_id: int, *_args: Any, **_kwargs: Any) -> List[str]:
        """Exact keys made stale by a write to reservation_id"""
        return [self.by_id(reservation_id)]
