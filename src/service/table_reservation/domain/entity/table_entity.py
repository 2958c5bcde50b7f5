from typing import Optional

import attrs

from src.service.table_reservation.domain.enum.table_condition import TableCondition


@attrs.define(frozen=True)
class Table:
    """Dining table; owned by table management, only looked up by the booking engine"""

    table_number: int
    capacity: int
    status: TableCondition = TableCondition.AVAILABLE
    id: Optional[int] = None
