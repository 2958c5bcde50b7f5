from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.table_reservation.domain.enum.allergy import Allergy
from src.service.table_reservation.domain.enum.reservation_status import (
    ReservationStatus,
    is_active_status,
)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def normalize_table_ids(table_ids: Iterable[int]) -> List[int]:
    return sorted({int(table_id) for table_id in table_ids})


def _to_allergies(values: Iterable[Allergy | str]) -> List[Allergy]:
    return [Allergy(value) for value in values]


@attrs.define
class Reservation:
    guests_count: int
    time: datetime = attrs.field(converter=ensure_utc)
    name: str
    phone: str
    email: Optional[str] = None
    allergies: List[Allergy] = attrs.field(factory=list, converter=_to_allergies)
    status: ReservationStatus = attrs.field(
        default=ReservationStatus.PENDING, converter=ReservationStatus
    )
    comments: Optional[str] = None
    tables: List[int] = attrs.field(factory=list, converter=normalize_table_ids)
    id: Optional[int] = None  # None until persisted
    created_at: Optional[datetime] = attrs.field(default=None, converter=optional_utc)
    updated_at: Optional[datetime] = attrs.field(default=None, converter=optional_utc)

    @property
    def is_active(self) -> bool:
        return is_active_status(self.status)

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        guests_count: int,
        time: datetime,
        name: str,
        phone: str,
        email: Optional[str] = None,
        allergies: Iterable[Allergy] = (),
        status: ReservationStatus = ReservationStatus.PENDING,
        comments: Optional[str] = None,
        tables: Iterable[int] = (),
    ) -> 'Reservation':
        if guests_count < 1:
            raise DomainError('guests_count must be at least 1')
        if not name.strip():
            raise DomainError('Guest name is required')
        if not phone.strip():
            raise DomainError('Guest phone is required')

        now = datetime.now(timezone.utc)
        return cls(
            guests_count=guests_count,
            time=time,
            name=name,
            phone=phone,
            email=email,
            allergies=list(allergies),
            status=status,
            comments=comments,
            tables=list(tables),
            created_at=now,
            updated_at=now,
        )

    def revise(self, **changes: Any) -> 'Reservation':
        """
        Apply field changes and bump updated_at.

        `is_active` follows `status`, so it is never part of changes.
        """
        if 'guests_count' in changes and changes['guests_count'] < 1:
            raise DomainError('guests_count must be at least 1')
        return attrs.evolve(self, **changes, updated_at=datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'guests_count': self.guests_count,
            'time': self.time.isoformat(),
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'allergies': [allergy.value for allergy in self.allergies],
            'status': self.status.value,
            'comments': self.comments,
            'is_active': self.is_active,
            'tables': list(self.tables),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Reservation':
        return cls(
            id=data['id'],
            guests_count=data['guests_count'],
            time=datetime.fromisoformat(data['time']),
            name=data['name'],
            phone=data['phone'],
            email=data.get('email'),
            allergies=data.get('allergies') or [],
            status=data['status'],
            comments=data.get('comments'),
            tables=data.get('tables') or [],
            created_at=datetime.fromisoformat(data['created_at']) if data.get('created_at') else None,
            updated_at=datetime.fromisoformat(data['updated_at']) if data.get('updated_at') else None,
        )
