"""
Доменная модель контекста жилого пространства.

Агрегат Property хранит все дерево целиком: объект -> комнаты -> кровати.
Статусы комнат и объекта производные и пересчитываются последним шагом
каждой операции, меняющей занятость.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, Field, PrivateAttr

from ..shared_kernel import (
    CapacityExceededException,
    ConflictException,
    DomainEvent,
    DomainValidationException,
    EntityId,
    ForbiddenException,
    NotFoundException,
    now,
)
from . import identifiers
from .availability import bed_availability, capacity_for, room_capacity
from .status import recompute_property, recompute_room
from .value_objects import (
    STICKY_STATUSES,
    BedStatus,
    EntityKind,
    RoomType,
    SpaceStatus,
    TenantStub,
)

Ref = Union[str, EntityId]


# Доменные события


class SpaceStatusChanged(DomainEvent):
    """Статус объекта, комнаты или кровати изменился."""

    landlord_id: str
    property_id: str
    entity_kind: EntityKind
    entity_id: str
    old_status: str
    new_status: str
    manual: bool = False


class RoomRemoved(DomainEvent):
    """Комната удалена из объекта."""

    landlord_id: str
    property_id: str
    room_id: str


class BedRemoved(DomainEvent):
    """Кровать удалена из комнаты."""

    landlord_id: str
    property_id: str
    room_id: str
    bed_id: str


# Сущности


class Bed(BaseModel):
    """Кровать в комнате."""

    id: EntityId = Field(default_factory=uuid4)
    bed_id: str
    name: str
    status: BedStatus = BedStatus.AVAILABLE
    price: Optional[float] = Field(None, ge=0)
    tenants: List[TenantStub] = Field(default_factory=list)
    status_notes: Optional[str] = None
    status_updated_at: Optional[datetime] = None

    def matches(self, ref: Ref) -> bool:
        return self.bed_id == str(ref) or str(self.id) == str(ref)


class Room(BaseModel):
    """Комната объекта недвижимости.

    Если кроватей нет, комната сдается целиком и жильцы записываются
    прямо в ``tenants``.
    """

    id: EntityId = Field(default_factory=uuid4)
    room_id: str
    name: str
    type: RoomType
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, gt=0)  # Для именованных типов
    status: SpaceStatus = SpaceStatus.AVAILABLE
    beds: List[Bed] = Field(default_factory=list)
    tenants: List[TenantStub] = Field(default_factory=list)
    facilities: Dict[str, Any] = Field(default_factory=dict)  # Не участвует в расчетах
    bed_sequence: int = 0
    manual_override: bool = False
    status_notes: Optional[str] = None
    status_updated_at: Optional[datetime] = None

    def matches(self, ref: Ref) -> bool:
        return self.room_id == str(ref) or str(self.id) == str(ref)

    def find_bed(self, ref: Ref) -> Optional[Bed]:
        return next((bed for bed in self.beds if bed.matches(ref)), None)

    def get_bed(self, ref: Ref) -> Bed:
        bed = self.find_bed(ref)
        if bed is None:
            raise NotFoundException(
                f"Кровать {ref} не найдена в комнате {self.room_id}",
                details={"room_id": self.room_id, "bed_id": str(ref)},
            )
        return bed

    @property
    def occupant_count(self) -> int:
        return len(self.tenants) + sum(len(bed.tenants) for bed in self.beds)

    def has_occupants(self) -> bool:
        return self.occupant_count > 0

    def new_bed(
        self,
        name: Optional[str] = None,
        price: Optional[float] = None,
        status: BedStatus = BedStatus.AVAILABLE,
    ) -> Bed:
        """Создает кровать со следующим порядковым номером.

        Номера не переиспользуются после удаления кроватей.
        """
        self.bed_sequence += 1
        bed = Bed(
            bed_id=identifiers.bed_id(self.room_id, self.bed_sequence),
            name=name or f"Bed {self.bed_sequence} - {self.name}",
            price=price,
            status=status,
        )
        self.beds.append(bed)
        return bed

    def apply_whole_room_status(self) -> bool:
        """Статус комнаты без кроватей по числу жильцов."""
        if self.beds:
            return False

        capacity = capacity_for(self)
        occupied = len(self.tenants)
        if occupied == 0:
            new_status = SpaceStatus.AVAILABLE
        elif occupied >= capacity:
            new_status = SpaceStatus.NOT_AVAILABLE
        else:
            new_status = SpaceStatus.PARTIALLY_AVAILABLE

        if new_status == self.status:
            return False
        self.status = new_status
        self.status_updated_at = now()
        return True


# Агрегат


class Property(BaseModel):
    """Объект недвижимости (корень агрегата)."""

    id: EntityId = Field(default_factory=uuid4)
    property_id: str
    landlord_id: str
    name: str
    type: Optional[str] = None
    address: Optional[str] = None
    status: SpaceStatus = SpaceStatus.AVAILABLE
    rooms: List[Room] = Field(default_factory=list)
    room_sequence: int = 0
    occupied_space: int = Field(0, ge=0)
    manual_override: bool = False
    status_notes: Optional[str] = None
    status_updated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 0

    _domain_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @classmethod
    def create(
        cls,
        property_id: str,
        landlord_id: str,
        name: str,
        type: Optional[str] = None,
        address: Optional[str] = None,
    ) -> "Property":
        if not landlord_id:
            raise DomainValidationException("Не указан арендодатель")
        if not name:
            raise DomainValidationException("Не указано название объекта")
        return cls(
            property_id=property_id,
            landlord_id=landlord_id,
            name=name,
            type=type,
            address=address,
        )

    # Производные показатели

    @property
    def total_rooms(self) -> int:
        return len(self.rooms)

    @property
    def total_beds(self) -> int:
        return sum(len(room.beds) for room in self.rooms)

    @property
    def total_capacity(self) -> int:
        return sum(
            len(room.beds) if room.beds else capacity_for(room) for room in self.rooms
        )

    # Доменные события

    def pull_domain_events(self) -> List[DomainEvent]:
        events = list(self._domain_events)
        self._domain_events.clear()
        return events

    def _add_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def _touch(self) -> None:
        self.updated_at = now()

    # Поиск

    def ensure_owned_by(self, landlord_id: str) -> None:
        if self.landlord_id != landlord_id:
            raise ForbiddenException(
                f"Арендодатель {landlord_id} не владеет объектом {self.property_id}",
                details={"property_id": self.property_id, "landlord_id": landlord_id},
            )

    def matches(self, ref: Ref) -> bool:
        return self.property_id == str(ref) or str(self.id) == str(ref)

    def find_room(self, ref: Ref) -> Optional[Room]:
        return next((room for room in self.rooms if room.matches(ref)), None)

    def get_room(self, ref: Ref) -> Room:
        room = self.find_room(ref)
        if room is None:
            raise NotFoundException(
                f"Комната {ref} не найдена в объекте {self.property_id}",
                details={"property_id": self.property_id, "room_id": str(ref)},
            )
        return room

    def get_bed(self, room_ref: Ref, bed_ref: Ref) -> Tuple[Room, Bed]:
        room = self.get_room(room_ref)
        return room, room.get_bed(bed_ref)

    def locate_stubs(self, tenant_id: str) -> List[Tuple[Room, Optional[Bed]]]:
        """Все места, где лежит копия жильца."""
        found: List[Tuple[Room, Optional[Bed]]] = []
        for room in self.rooms:
            if any(stub.tenant_id == tenant_id for stub in room.tenants):
                found.append((room, None))
            for bed in room.beds:
                if any(stub.tenant_id == tenant_id for stub in bed.tenants):
                    found.append((room, bed))
        return found

    # Структура

    def _unique_room_name(self, name: str) -> str:
        existing = {room.name for room in self.rooms}
        if name not in existing:
            return name
        suffix = 2
        while f"{name}-{suffix}" in existing:
            suffix += 1
        return f"{name}-{suffix}"

    def add_room(
        self,
        type: RoomType,
        name: Optional[str] = None,
        price: Optional[float] = None,
        capacity: Optional[int] = None,
        facilities: Optional[Dict[str, Any]] = None,
        beds: Optional[List[Dict[str, Any]]] = None,
    ) -> Room:
        """Добавляет комнату с начальными кроватями.

        Создаются только кровати с указанной ценой.
        """
        self.room_sequence += 1
        room = Room(
            room_id=identifiers.room_id(self.property_id, self.room_sequence),
            name=self._unique_room_name(
                name or f"Room {self.room_sequence} - {self.name}"
            ),
            type=type,
            price=price,
            capacity=capacity,
            facilities=facilities or {},
        )
        for spec in beds or []:
            if spec.get("price") is None:
                continue
            room.new_bed(
                name=spec.get("name"),
                price=spec["price"],
                status=BedStatus(spec.get("status", BedStatus.AVAILABLE)),
            )

        self.rooms.append(room)
        self._roll_up(room)
        self._touch()
        return room

    def add_bed(
        self,
        room_ref: Ref,
        price: float,
        name: Optional[str] = None,
        status: BedStatus = BedStatus.AVAILABLE,
    ) -> Bed:
        room = self.get_room(room_ref)
        bed = room.new_bed(name=name, price=price, status=status)
        room.manual_override = False
        self._roll_up(room)
        self._touch()
        return bed

    def remove_room(self, room_ref: Ref) -> Room:
        """Удаляет пустую комнату. Любая копия жильца блокирует удаление."""
        room = self.get_room(room_ref)
        if room.has_occupants():
            raise ConflictException(
                f"Нельзя удалить комнату {room.room_id}: в ней есть жильцы",
                details={"room_id": room.room_id, "occupants": room.occupant_count},
            )

        self.rooms.remove(room)
        self._add_event(
            RoomRemoved(
                landlord_id=self.landlord_id,
                property_id=self.property_id,
                room_id=room.room_id,
            )
        )
        self._roll_up_property()
        self._touch()
        return room

    def remove_bed(self, room_ref: Ref, bed_ref: Ref) -> Bed:
        room, bed = self.get_bed(room_ref, bed_ref)
        if bed.tenants:
            raise ConflictException(
                f"Нельзя удалить кровать {bed.bed_id}: на ней есть жилец",
                details={"bed_id": bed.bed_id},
            )

        room.beds.remove(bed)
        room.manual_override = False
        old = room.status
        # Последняя кровать удалена: комната сдается целиком
        if not room.beds and room.apply_whole_room_status():
            self._record_status(EntityKind.ROOM, room.room_id, old, room.status)
        self._add_event(
            BedRemoved(
                landlord_id=self.landlord_id,
                property_id=self.property_id,
                room_id=room.room_id,
                bed_id=bed.bed_id,
            )
        )
        self._roll_up(room)
        self._touch()
        return bed

    # Заселение и выселение

    def occupy_bed(self, room_ref: Ref, bed_ref: Ref, stub: TenantStub) -> Bed:
        room, bed = self.get_bed(room_ref, bed_ref)
        decision = bed_availability(bed)
        if not decision.available:
            raise ConflictException(
                decision.reason,
                details={"bed_id": bed.bed_id, "occupants": decision.occupant_names},
            )

        bed.tenants = [stub]
        self._set_bed_status(bed, BedStatus.NOT_AVAILABLE)
        self._after_occupancy_change(room, delta=1)
        return bed

    def occupy_room(self, room_ref: Ref, stub: TenantStub) -> Room:
        """Заселяет в комнату целиком. Комната с кроватями требует кровать."""
        room = self.get_room(room_ref)
        if room.beds:
            free = [bed.bed_id for bed in room.beds if bed_availability(bed).available]
            if not free:
                raise CapacityExceededException(
                    f"В комнате {room.room_id} нет свободных кроватей",
                    details={
                        "room_id": room.room_id,
                        "capacity": len(room.beds),
                        "occupied": room.occupant_count,
                    },
                )
            raise DomainValidationException(
                f"В комнате {room.room_id} есть кровати, укажите bed_id",
                details={"room_id": room.room_id, "available_beds": free},
            )

        decision = room_capacity(room)
        if not decision.has_capacity:
            raise CapacityExceededException(
                decision.reason,
                details={
                    "room_id": room.room_id,
                    "capacity": decision.capacity,
                    "occupied": decision.occupied,
                },
            )

        room.tenants.append(stub)
        self._after_occupancy_change(room, delta=1)
        return room

    def vacate(self, room_ref: Ref, bed_ref: Optional[Ref], tenant_id: str) -> bool:
        """Убирает копию жильца с кровати или из комнаты.

        Returns:
            True, если копия жильца была найдена и удалена
        """
        room = self.get_room(room_ref)
        if bed_ref:
            bed = room.get_bed(bed_ref)
            removed = any(stub.tenant_id == tenant_id for stub in bed.tenants)
            if not removed:
                return False
            bed.tenants = [s for s in bed.tenants if s.tenant_id != tenant_id]
            if not bed.tenants:
                self._set_bed_status(bed, BedStatus.AVAILABLE)
        else:
            removed = any(stub.tenant_id == tenant_id for stub in room.tenants)
            if not removed:
                return False
            room.tenants = [s for s in room.tenants if s.tenant_id != tenant_id]

        self._after_occupancy_change(room, delta=-1)
        return True

    def _after_occupancy_change(self, room: Room, delta: int) -> None:
        self.occupied_space = max(self.occupied_space + delta, 0)
        # Событие заселения в комнате снимает ручной статус
        room.manual_override = False
        self.manual_override = False
        room.apply_whole_room_status()
        self._roll_up(room)
        self._touch()

    # Ручные статусы

    def set_property_status(self, status: SpaceStatus, notes: Optional[str] = None) -> None:
        old = self.status
        self.status = status
        self.status_notes = notes
        self.status_updated_at = now()
        self.manual_override = status in STICKY_STATUSES
        self._record_status(EntityKind.PROPERTY, self.property_id, old, status, manual=True)
        self._roll_up_property()
        self._touch()

    def set_room_status(
        self, room_ref: Ref, status: SpaceStatus, notes: Optional[str] = None
    ) -> Room:
        room = self.get_room(room_ref)
        old = room.status
        room.status = status
        room.status_notes = notes
        room.status_updated_at = now()
        room.manual_override = status in STICKY_STATUSES
        self._record_status(EntityKind.ROOM, room.room_id, old, status, manual=True)
        self._roll_up(room)
        self._touch()
        return room

    def set_bed_status(
        self,
        room_ref: Ref,
        bed_ref: Ref,
        status: BedStatus,
        notes: Optional[str] = None,
    ) -> Bed:
        room, bed = self.get_bed(room_ref, bed_ref)
        if status == BedStatus.AVAILABLE and bed.tenants:
            raise ConflictException(
                f"Кровать {bed.bed_id} занята, ее нельзя отметить свободной",
                details={"bed_id": bed.bed_id},
            )

        bed.status_notes = notes
        self._set_bed_status(bed, status, manual=True)
        room.manual_override = False
        self._roll_up(room)
        self._touch()
        return bed

    def _set_bed_status(self, bed: Bed, status: BedStatus, manual: bool = False) -> None:
        old = bed.status
        bed.status = status
        bed.status_updated_at = now()
        if old != status or manual:
            self._record_status(EntityKind.BED, bed.bed_id, old, status, manual=manual)

    # Пересчет статусов

    def _roll_up(self, room: Room) -> None:
        """Комната, затем объект."""
        old = room.status
        if recompute_room(room):
            self._record_status(EntityKind.ROOM, room.room_id, old, room.status)
        self._roll_up_property()

    def _roll_up_property(self) -> None:
        old = self.status
        if recompute_property(self):
            self._record_status(EntityKind.PROPERTY, self.property_id, old, self.status)

    def refresh_statuses(self) -> bool:
        """Пересчитывает все комнаты и объект. Возвращает True при изменениях."""
        changed = False
        for room in self.rooms:
            if room.manual_override:
                continue
            old = room.status
            if room.apply_whole_room_status() or recompute_room(room):
                self._record_status(EntityKind.ROOM, room.room_id, old, room.status)
                changed = True
        old = self.status
        if recompute_property(self):
            self._record_status(EntityKind.PROPERTY, self.property_id, old, self.status)
            changed = True
        return changed

    def _record_status(
        self,
        kind: EntityKind,
        entity_id: str,
        old: Any,
        new: Any,
        manual: bool = False,
    ) -> None:
        self._add_event(
            SpaceStatusChanged(
                landlord_id=self.landlord_id,
                property_id=self.property_id,
                entity_kind=kind,
                entity_id=entity_id,
                old_status=getattr(old, "value", str(old)),
                new_status=getattr(new, "value", str(new)),
                manual=manual,
            )
        )

    # Обслуживание идентификаторов

    def standardize_ids(self, property_id: Optional[str] = None) -> Dict[str, str]:
        """Пересчитывает идентификаторы комнат и кроватей по текущему порядку.

        Небезопасно, пока внешние системы хранят старые идентификаторы:
        ссылки в записях о проживании не переписываются.

        Returns:
            Соответствие старых идентификаторов новым (только изменившиеся)
        """
        renamed: Dict[str, str] = {}
        if property_id and property_id != self.property_id:
            renamed[self.property_id] = property_id
            self.property_id = property_id

        for room_index, room in enumerate(self.rooms, start=1):
            new_room_id = identifiers.room_id(self.property_id, room_index)
            if new_room_id != room.room_id:
                renamed[room.room_id] = new_room_id
                room.room_id = new_room_id
            for bed_index, bed in enumerate(room.beds, start=1):
                new_bed_id = identifiers.bed_id(room.room_id, bed_index)
                if new_bed_id != bed.bed_id:
                    renamed[bed.bed_id] = new_bed_id
                    bed.bed_id = new_bed_id
            room.bed_sequence = len(room.beds)
        self.room_sequence = len(self.rooms)

        if renamed:
            self._touch()
        return renamed
