"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.table_reservation.driven_adapter.model.reservation_model import (
    ReservationModel,
    reservation_table,
)
from src.service.table_reservation.driven_adapter.model.restaurant_table_model import (
    RestaurantTableModel,
)

__all__ = [
    'ReservationModel',
    'RestaurantTableModel',
    'reservation_table',
]
