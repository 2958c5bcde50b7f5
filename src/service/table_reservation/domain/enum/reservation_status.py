from enum import StrEnum


class ReservationStatus(StrEnum):
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    CANCELLED = 'CANCELLED'
    COMPLETED = 'COMPLETED'
    NO_SHOW = 'NO_SHOW'


INACTIVE_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW})


def is_active_status(status: ReservationStatus) -> bool:
    """A reservation holds its tables unless it was cancelled or the guests never came"""
    return status not in INACTIVE_STATUSES
