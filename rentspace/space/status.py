"""
Пересчет производных статусов снизу вверх: кровати -> комната -> объект.

Обе функции идемпотентны: повторный вызов без изменений между ними
ничего не меняет и возвращает ``False``. Сущности с ручным статусом
(``manual_override``) пропускаются.
"""

from typing import TYPE_CHECKING

from ..shared_kernel import now
from .value_objects import BedStatus, SpaceStatus

if TYPE_CHECKING:
    from .domain import Property, Room


def derive_room_status(room: "Room") -> SpaceStatus:
    available = sum(1 for bed in room.beds if bed.status == BedStatus.AVAILABLE)
    if available == 0:
        return SpaceStatus.NOT_AVAILABLE
    if available == len(room.beds):
        return SpaceStatus.AVAILABLE
    return SpaceStatus.PARTIALLY_AVAILABLE


def derive_property_status(prop: "Property") -> SpaceStatus:
    statuses = [room.status for room in prop.rooms]
    if all(status == SpaceStatus.AVAILABLE for status in statuses):
        return SpaceStatus.AVAILABLE
    if (
        SpaceStatus.AVAILABLE not in statuses
        and SpaceStatus.PARTIALLY_AVAILABLE not in statuses
    ):
        return SpaceStatus.NOT_AVAILABLE
    return SpaceStatus.PARTIALLY_AVAILABLE


def recompute_room(room: "Room") -> bool:
    """Пересчитывает статус комнаты по ее кроватям.

    Комната без кроватей сдается целиком, ее статус задается заселением
    или вручную и здесь не трогается.

    Returns:
        True, если статус изменился
    """
    if room.manual_override or not room.beds:
        return False

    new_status = derive_room_status(room)
    if new_status == room.status:
        return False

    room.status = new_status
    room.status_updated_at = now()
    return True


def recompute_property(prop: "Property") -> bool:
    """Пересчитывает статус объекта по статусам комнат.

    Объект без комнат сохраняет текущий статус.
    """
    if prop.manual_override or not prop.rooms:
        return False

    new_status = derive_property_status(prop)
    if new_status == prop.status:
        return False

    prop.status = new_status
    prop.status_updated_at = now()
    return True
