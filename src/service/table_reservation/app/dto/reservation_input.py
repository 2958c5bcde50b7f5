"""Inputs accepted by the booking engine"""

from datetime import datetime
from typing import Any, List, Optional

import attrs

from src.service.table_reservation.domain.entity.reservation_entity import (
    optional_utc,
    ensure_utc,
    normalize_table_ids,
)
from src.service.table_reservation.domain.enum.allergy import Allergy
from src.service.table_reservation.domain.enum.reservation_status import ReservationStatus


def optional_table_ids(value: Optional[List[int]]) -> Optional[List[int]]:
    return normalize_table_ids(value) if value is not None else None


def optional_allergies(value: Optional[List[Allergy | str]]) -> Optional[List[Allergy]]:
    return [Allergy(allergy) for allergy in value] if value is not None else None


def optional_status(value: Optional[ReservationStatus | str]) -> Optional[ReservationStatus]:
    return ReservationStatus(value) if value is not None else None


@attrs.define(frozen=True)
class CreateReservationInput:
    guests_count: int
    time: datetime = attrs.field(converter=ensure_utc)
    name: str
    phone: str
    email: Optional[str] = None
    allergies: List[Allergy] = attrs.field(factory=list, converter=optional_allergies)
    status: ReservationStatus = attrs.field(
        default=ReservationStatus.PENDING, converter=ReservationStatus
    )
    comments: Optional[str] = None
    tables: List[int] = attrs.field(factory=list, converter=normalize_table_ids)


@attrs.define(frozen=True)
class GuestInfo:
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    guests_count: Optional[int] = None


@attrs.define(frozen=True)
class ReservationPatch:
    """
    Partial update. A None field is left untouched; `tables`, when given,
    replaces the whole table set (an empty list detaches every table).
    """

    guests_count: Optional[int] = None
    time: Optional[datetime] = attrs.field(default=None, converter=optional_utc)
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    allergies: Optional[List[Allergy]] = attrs.field(default=None, converter=optional_allergies)
    status: Optional[ReservationStatus] = attrs.field(default=None, converter=optional_status)
    comments: Optional[str] = None
    tables: Optional[List[int]] = attrs.field(default=None, converter=optional_table_ids)

    @classmethod
    def from_guest_info(cls, guest_info: GuestInfo) -> 'ReservationPatch':
        return cls(
            name=guest_info.name,
            phone=guest_info.phone,
            email=guest_info.email,
            guests_count=guest_info.guests_count,
        )

    def changes(self) -> dict[str, Any]:
        """Fields to apply, `tables` included when present"""
        return {
            field.name: value
            for field in attrs.fields(type(self))
            if (value := getattr(self, field.name)) is not None
        }
