from src.service.table_reservation.domain.entity.reservation_entity import Reservation
from src.service.table_reservation.driven_adapter.model.reservation_model import ReservationModel


def to_reservation(db_reservation: ReservationModel) -> Reservation:
    """
    Convert ReservationModel to Reservation entity

    Note:
    - `tables` must already be loaded (selectin relationship or assigned in this session)
    - SQLite returns naive datetimes; the entity reads them as UTC
    """
    return Reservation(
        id=db_reservation.id,
        guests_count=db_reservation.guests_count,
        time=db_reservation.time,
        name=db_reservation.name,
        phone=db_reservation.phone,
        email=db_reservation.email,
        allergies=db_reservation.allergies or [],
        status=db_reservation.status,
        comments=db_reservation.comments,
        tables=[table.id for table in db_reservation.tables],
        created_at=db_reservation.created_at,
        updated_at=db_reservation.updated_at,
    )
