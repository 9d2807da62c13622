"""
Контекст жилого пространства: объекты недвижимости, комнаты и кровати.
"""

from .availability import (
    ROOM_TYPE_CAPACITY,
    BedAvailability,
    RoomCapacity,
    bed_availability,
    capacity_for,
    room_capacity,
)
from .domain import Bed, BedRemoved, Property, Room, RoomRemoved, SpaceStatusChanged
from .identifiers import IdentifierAllocator, bed_id, room_id
from .status import recompute_property, recompute_room
from .value_objects import (
    STICKY_STATUSES,
    BedStatus,
    EntityKind,
    RoomType,
    SpaceStatus,
    TenantStub,
)

__all__ = [
    # Модель
    "Property",
    "Room",
    "Bed",
    "TenantStub",
    "SpaceStatus",
    "BedStatus",
    "RoomType",
    "EntityKind",
    "STICKY_STATUSES",
    # События
    "SpaceStatusChanged",
    "RoomRemoved",
    "BedRemoved",
    # Идентификаторы
    "IdentifierAllocator",
    "room_id",
    "bed_id",
    # Доступность и статусы
    "ROOM_TYPE_CAPACITY",
    "BedAvailability",
    "RoomCapacity",
    "bed_availability",
    "room_capacity",
    "capacity_for",
    "recompute_room",
    "recompute_property",
]
