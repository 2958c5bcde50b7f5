from enum import StrEnum


class TableCondition(StrEnum):
    AVAILABLE = 'AVAILABLE'
    OCCUPIED = 'OCCUPIED'
    RESERVED = 'RESERVED'
    ORDERING = 'ORDERING'
    SERVING = 'SERVING'
    PAYMENT = 'PAYMENT'
