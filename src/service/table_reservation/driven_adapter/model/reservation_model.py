from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.platform.database.orm_db_setting import Base
from src.service.table_reservation.driven_adapter.model.restaurant_table_model import (
    RestaurantTableModel,
)


reservation_table = Table(
    'reservation_table',
    Base.metadata,
    Column(
        'reservation_id',
        Integer,
        ForeignKey('reservation.id', ondelete='CASCADE'),
        primary_key=True,
    ),
    Column(
        'table_id',
        Integer,
        ForeignKey('restaurant_table.id', ondelete='CASCADE'),
        primary_key=True,
        index=True,
    ),
)


class ReservationModel(Base):
    __tablename__ = 'reservation'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guests_count: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    allergies: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), default='PENDING', nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    tables: Mapped[List[RestaurantTableModel]] = relationship(
        RestaurantTableModel,
        secondary=reservation_table,
        lazy='selectin',
        passive_deletes=True,
        order_by=RestaurantTableModel.id,
    )
