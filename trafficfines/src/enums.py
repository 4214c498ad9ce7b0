from enum import Enum, IntEnum


class AppID(IntEnum):
    ADMIN = 1
    USER = 2
    PUBLIC = 3


class OrderIn(IntEnum):
    ASC = 1
    DESC = 2


# Persisted enums are stored by name, so their values mirror the names
class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class VehicleType(str, Enum):
    CAR = "CAR"
    BIKE = "BIKE"
    TRUCK = "TRUCK"
    AUTO = "AUTO"
    BUS = "BUS"


class ViolationStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
