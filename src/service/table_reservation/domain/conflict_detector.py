"""
Conflict Detector

Pure overlap check between a requested booking window and existing
reservations. No I/O: callers fetch candidate reservations first.

Every reservation occupies [time, time + RESERVATION_DURATION) on its tables.
A candidate conflicts when it is active, is not the excluded reservation,
shares at least one table, and satisfies

    time < end AND (time >= start OR (time < start AND time >= end))

The second disjunct cannot hold while end > start, so in practice only
reservations starting inside [start, end) are reported. A reservation that
started earlier but is still seated at `start` is NOT reported.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from src.service.table_reservation.domain.entity.reservation_entity import Reservation, ensure_utc
from src.service.table_reservation.domain.value_object.conflict_record import ConflictRecord


RESERVATION_DURATION = timedelta(hours=2)


def booking_window_end(start: datetime) -> datetime:
    return ensure_utc(start) + RESERVATION_DURATION


def starts_within_window(candidate_time: datetime, *, start: datetime, end: datetime) -> bool:
    candidate_time = ensure_utc(candidate_time)
    return candidate_time < end and (
        candidate_time >= start or (candidate_time < start and candidate_time >= end)
    )


def check_conflicts(
    candidates: Iterable[Reservation],
    *,
    table_ids: Iterable[int],
    start: datetime,
    exclude_reservation_id: Optional[int] = None,
) -> List[ConflictRecord]:
    """
    Report the candidates overlapping the window starting at `start` on any of `table_ids`.

    Returns:
        ConflictRecords ordered by time, then reservation id
    """
    requested_tables = set(table_ids)
    if not requested_tables:
        return []

    start = ensure_utc(start)
    end = booking_window_end(start)

    conflicts = [
        ConflictRecord(
            reservation_id=candidate.id,
            time=candidate.time,
            tables=tuple(candidate.tables),
        )
        for candidate in candidates
        if candidate.id is not None
        and candidate.is_active
        and (exclude_reservation_id is None or candidate.id != exclude_reservation_id)
        and not requested_tables.isdisjoint(candidate.tables)
        and starts_within_window(candidate.time, start=start, end=end)
    ]
    return sorted(conflicts, key=lambda conflict: (conflict.time, conflict.reservation_id))
