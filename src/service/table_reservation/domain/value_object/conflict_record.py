from datetime import datetime
from typing import Any

import attrs


@attrs.define(frozen=True)
class ConflictRecord:
    """An existing reservation overlapping a requested booking window (never persisted)"""

    reservation_id: int
    time: datetime
    tables: tuple[int, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            'reservation_id': self.reservation_id,
            'time': self.time.isoformat(),
            'tables': list(self.tables),
        }
