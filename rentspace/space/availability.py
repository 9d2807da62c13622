"""
Проверка доступности кроватей и вместимости комнат.

Функции чистые: ничего не изменяют и не выбрасывают исключений,
возвращают решение и причину, которую вызывающая сторона покажет
пользователю.
"""

from typing import TYPE_CHECKING, Dict, List

from pydantic import BaseModel, Field

from .value_objects import BedStatus, RoomType

if TYPE_CHECKING:
    from .domain import Bed, Room

ROOM_TYPE_CAPACITY: Dict[RoomType, int] = {
    RoomType.SINGLE_SHARING: 1,
    RoomType.DOUBLE_SHARING: 2,
    RoomType.TRIPLE_SHARING: 3,
    RoomType.FOUR_SHARING: 4,
    RoomType.FIVE_SHARING: 5,
    RoomType.SIX_SHARING: 6,
    RoomType.MORE_THAN_SIX_SHARING: 12,
}

DEFAULT_NAMED_CAPACITY = 1


class BedAvailability(BaseModel):
    """Решение о доступности кровати."""

    available: bool
    occupant_names: List[str] = Field(default_factory=list)
    reason: str = ""


class RoomCapacity(BaseModel):
    """Решение о свободных местах в комнате."""

    has_capacity: bool
    capacity: int
    occupied: int
    remaining: int
    reason: str = ""


def capacity_for(room: "Room") -> int:
    """Максимальное число жильцов комнаты по ее типу."""
    if room.type in ROOM_TYPE_CAPACITY:
        return ROOM_TYPE_CAPACITY[room.type]
    return room.capacity or DEFAULT_NAMED_CAPACITY


def bed_availability(bed: "Bed") -> BedAvailability:
    """Кровать свободна, только если статус Available и на ней никого нет."""
    names = [stub.name for stub in bed.tenants]

    if bed.status != BedStatus.AVAILABLE:
        return BedAvailability(
            available=False,
            occupant_names=names,
            reason=f"Кровать {bed.bed_id} в статусе {bed.status.value}",
        )

    if names:
        # Статус мог устареть, список жильцов решает
        return BedAvailability(
            available=False,
            occupant_names=names,
            reason=f"Кровать {bed.bed_id} занята: {', '.join(names)}",
        )

    return BedAvailability(available=True, reason=f"Кровать {bed.bed_id} свободна")


def room_capacity(room: "Room") -> RoomCapacity:
    """Свободные места в комнате по ее собственному списку жильцов.

    Занятость кроватей сюда не входит, ее проверяет bed_availability.
    """
    capacity = capacity_for(room)
    occupied = len(room.tenants)
    remaining = max(capacity - occupied, 0)

    if remaining == 0:
        reason = (
            f"Комната {room.room_id} ({room.type.value}) заполнена: "
            f"{occupied} из {capacity}"
        )
    else:
        reason = f"В комнате {room.room_id} свободно мест: {remaining} из {capacity}"

    return RoomCapacity(
        has_capacity=remaining > 0,
        capacity=capacity,
        occupied=occupied,
        remaining=remaining,
        reason=reason,
    )
