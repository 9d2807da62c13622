"""
Прикладной слой контекста жилого пространства.

Содержит сервисы приложения, которые координируют
взаимодействие между внешними интерфейсами и агрегатом Property.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, Field, model_validator

from ..shared_kernel import (
    ConcurrencyException,
    DomainEvent,
    DomainException,
    DomainValidationException,
    EntityId,
    NotFoundException,
)
from ..shared_kernel.application import parse_request
from ..shared_kernel.cache import NullCacheInvalidator, space_keys
from ..shared_kernel.infrastructure import StdLogger
from . import interfaces as ports
from .availability import bed_availability, capacity_for, room_capacity
from .domain import Bed, Property, Ref, Room
from .identifiers import IdentifierAllocator
from .value_objects import BedStatus, EntityKind, RoomType, SpaceStatus

E = TypeVar("E", bound=Enum)
T = TypeVar("T")


def coerce_status(enum_class: Type[E], raw: Union[str, Enum]) -> E:
    """Принимает и значение ("Partially Available"), и имя (PartiallyAvailable)."""

    def normalize(value: str) -> str:
        return value.replace(" ", "").replace("_", "").lower()

    wanted = normalize(getattr(raw, "value", raw))
    for member in enum_class:
        if wanted in (normalize(member.value), normalize(member.name)):
            return member
    raise DomainValidationException(
        f"Неизвестный статус: {raw}",
        details={"allowed": [member.value for member in enum_class]},
    )


# DTO для входящих данных


class BedSpec(BaseModel):
    """Кровать, создаваемая вместе с комнатой."""

    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    status: BedStatus = BedStatus.AVAILABLE


class AddRoomRequest(BaseModel):
    """Запрос на добавление комнаты."""

    type: RoomType
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, gt=0)
    facilities: Dict[str, Any] = Field(default_factory=dict)
    beds: List[BedSpec] = Field(default_factory=list)


class CreatePropertyRequest(BaseModel):
    """Запрос на создание объекта недвижимости."""

    landlord_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: Optional[str] = None
    address: Optional[str] = None
    rooms: List[AddRoomRequest] = Field(default_factory=list)


class AddBedRequest(BaseModel):
    """Запрос на добавление кровати в комнату."""

    landlord_id: str = Field(..., min_length=1)
    property_id: str = Field(..., min_length=1)
    room_id: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    name: Optional[str] = None
    status: BedStatus = BedStatus.AVAILABLE


class UpdateStatusRequest(BaseModel):
    """Запрос на ручное изменение статуса."""

    entity_kind: EntityKind
    property_id: str = Field(..., min_length=1)
    room_id: Optional[str] = None
    bed_id: Optional[str] = None
    status: str = Field(..., min_length=1)
    notes: Optional[str] = None
    landlord_id: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "UpdateStatusRequest":
        if self.entity_kind in (EntityKind.ROOM, EntityKind.BED) and not self.room_id:
            raise ValueError("Для комнаты или кровати нужен room_id")
        if self.entity_kind == EntityKind.BED and not self.bed_id:
            raise ValueError("Для кровати нужен bed_id")
        return self


# DTO для исходящих данных


class BedSummary(BaseModel):
    """DTO кровати с решением о доступности."""

    id: EntityId
    bed_id: str
    name: str
    status: str
    price: Optional[float]
    available: bool
    occupant_names: List[str]
    reason: str

    @classmethod
    def from_domain(cls, bed: Bed) -> "BedSummary":
        decision = bed_availability(bed)
        return cls(
            id=bed.id,
            bed_id=bed.bed_id,
            name=bed.name,
            status=bed.status.value,
            price=bed.price,
            available=decision.available,
            occupant_names=decision.occupant_names,
            reason=decision.reason,
        )


class RoomSummary(BaseModel):
    """DTO комнаты."""

    id: EntityId
    room_id: str
    name: str
    type: str
    status: str
    price: Optional[float]
    capacity: int
    occupied: int
    total_beds: int
    available_beds: int

    @classmethod
    def from_domain(cls, room: Room) -> "RoomSummary":
        return cls(
            id=room.id,
            room_id=room.room_id,
            name=room.name,
            type=room.type.value,
            status=room.status.value,
            price=room.price,
            capacity=capacity_for(room),
            occupied=room.occupant_count,
            total_beds=len(room.beds),
            available_beds=sum(1 for b in room.beds if bed_availability(b).available),
        )


class RoomOverviewDTO(RoomSummary):
    """Комната со всеми кроватями для арендодателя (свободные первыми)."""

    has_capacity: bool
    remaining: int
    beds: List[BedSummary]

    @classmethod
    def from_domain(cls, room: Room) -> "RoomOverviewDTO":
        decision = room_capacity(room)
        beds = sorted(
            (BedSummary.from_domain(bed) for bed in room.beds),
            key=lambda summary: not summary.available,
        )
        if room.beds:
            has_capacity = any(bed.available for bed in beds)
            remaining = sum(1 for bed in beds if bed.available)
        else:
            has_capacity = decision.has_capacity
            remaining = decision.remaining
        return cls(
            **RoomSummary.from_domain(room).model_dump(),
            has_capacity=has_capacity,
            remaining=remaining,
            beds=beds,
        )


class PropertyDTO(BaseModel):
    """DTO объекта недвижимости."""

    id: EntityId
    property_id: str
    landlord_id: str
    name: str
    type: Optional[str]
    address: Optional[str]
    status: str
    status_notes: Optional[str]
    occupied_space: int
    total_rooms: int
    total_beds: int
    total_capacity: int
    rooms: List[RoomSummary]
    version: int
    updated_at: datetime

    @classmethod
    def from_domain(cls, prop: Property) -> "PropertyDTO":
        return cls(
            id=prop.id,
            property_id=prop.property_id,
            landlord_id=prop.landlord_id,
            name=prop.name,
            type=prop.type,
            address=prop.address,
            status=prop.status.value,
            status_notes=prop.status_notes,
            occupied_space=prop.occupied_space,
            total_rooms=prop.total_rooms,
            total_beds=prop.total_beds,
            total_capacity=prop.total_capacity,
            rooms=[RoomSummary.from_domain(room) for room in prop.rooms],
            version=prop.version,
            updated_at=prop.updated_at,
        )


class AvailablePropertyDTO(BaseModel):
    """Объект в списке доступных для заселения."""

    property_id: str
    landlord_id: str
    name: str
    status: str
    available_rooms: int
    starting_price: Optional[float]


AVAILABLE_SPACE_STATUSES = (SpaceStatus.AVAILABLE, SpaceStatus.PARTIALLY_AVAILABLE)


def available_rooms(prop: Property) -> List[Room]:
    return [room for room in prop.rooms if room.status in AVAILABLE_SPACE_STATUSES]


def starting_price(rooms: List[Room]) -> Optional[float]:
    prices = []
    for room in rooms:
        bed_prices = [
            bed.price
            for bed in room.beds
            if bed.price is not None and bed_availability(bed).available
        ]
        prices.extend(bed_prices)
        if not room.beds and room.price is not None:
            prices.append(room.price)
    return min(prices) if prices else None


# Запись с оптимистичной блокировкой


class PropertyWriter:
    """Чтение, изменение и запись объекта с повтором при конфликте версий.

    При конфликте действие выполняется заново на свежей копии, поэтому
    все проверки повторяются с нуля.
    """

    def __init__(
        self,
        repository: ports.IPropertyRepository,
        logger: ports.ILogger,
        max_attempts: int = 3,
    ):
        self._repository = repository
        self._logger = logger
        self._max_attempts = max(max_attempts, 1)

    def load(self, ref: Ref) -> Property:
        prop = self._repository.get(ref)
        if prop is None:
            raise NotFoundException(
                f"Объект недвижимости {ref} не найден", details={"property_id": str(ref)}
            )
        return prop

    def apply(
        self,
        ref: Ref,
        action: Callable[[Property], T],
        landlord_id: Optional[str] = None,
    ) -> Tuple[Property, T, List[DomainEvent]]:
        for attempt in range(1, self._max_attempts + 1):
            prop = self.load(ref)
            if landlord_id is not None:
                prop.ensure_owned_by(landlord_id)

            result = action(prop)
            events = prop.pull_domain_events()
            try:
                self._repository.save(prop, expected_version=prop.version)
            except ConcurrencyException as e:
                if attempt == self._max_attempts:
                    self._logger.error(
                        "Попытки записи объекта исчерпаны",
                        property_id=str(ref),
                        attempts=attempt,
                    )
                    raise
                self._logger.warning(
                    "Конфликт версий объекта, повтор",
                    property_id=str(ref),
                    attempt=attempt,
                    details=e.details,
                )
                continue
            return prop, result, events

        raise AssertionError("unreachable")


# Сервисы приложения


class SpaceApplicationService:
    """Сервис приложения для управления объектами, комнатами и кроватями."""

    def __init__(
        self,
        properties: ports.IPropertyRepository,
        allocator: IdentifierAllocator,
        event_publisher: Optional[ports.IEventPublisher] = None,
        cache: Optional[ports.ICacheInvalidator] = None,
        logger: Optional[ports.ILogger] = None,
        max_write_attempts: int = 3,
    ):
        """Инициализирует сервис."""
        self._properties = properties
        self._allocator = allocator
        self._event_publisher = event_publisher
        self._cache = cache or NullCacheInvalidator()
        self._logger = logger or StdLogger("rentspace.space")
        self._writer = PropertyWriter(properties, self._logger, max_write_attempts)

    def _after_commit(self, prop: Property, events: List[DomainEvent]) -> None:
        self._cache.invalidate(space_keys(prop.property_id, prop.landlord_id))
        if self._event_publisher:
            for event in events:
                self._event_publisher.publish(event)

    # Структура

    def create_property(
        self, request: Union[CreatePropertyRequest, Dict[str, Any]]
    ) -> PropertyDTO:
        """Создает объект недвижимости с новым идентификатором."""
        request = parse_request(CreatePropertyRequest, request)
        try:
            prop = Property.create(
                property_id=self._allocator.next_property_id(),
                landlord_id=request.landlord_id,
                name=request.name,
                type=request.type,
                address=request.address,
            )
            for room in request.rooms:
                self._add_room(prop, room)

            events = prop.pull_domain_events()
            self._properties.add(prop)
            self._after_commit(prop, events)

            self._logger.info(
                "Объект недвижимости создан",
                property_id=prop.property_id,
                landlord_id=prop.landlord_id,
                rooms=prop.total_rooms,
            )
            return PropertyDTO.from_domain(prop)
        except Exception as e:
            self._logger.error(f"Ошибка при создании объекта: {str(e)}")
            raise

    @staticmethod
    def _add_room(prop: Property, request: AddRoomRequest) -> Room:
        return prop.add_room(
            type=request.type,
            name=request.name,
            price=request.price,
            capacity=request.capacity,
            facilities=request.facilities,
            beds=[bed.model_dump() for bed in request.beds],
        )

    def add_rooms(
        self,
        landlord_id: str,
        property_ref: Ref,
        rooms: List[Union[AddRoomRequest, Dict[str, Any]]],
    ) -> List[RoomSummary]:
        """Добавляет комнаты в объект."""
        requests = [parse_request(AddRoomRequest, room) for room in rooms]
        if not requests:
            raise DomainValidationException("Не переданы комнаты")

        def action(prop: Property) -> List[Room]:
            return [self._add_room(prop, request) for request in requests]

        prop, added, events = self._writer.apply(property_ref, action, landlord_id)
        self._after_commit(prop, events)
        self._logger.info(
            "Комнаты добавлены",
            property_id=prop.property_id,
            room_ids=[room.room_id for room in added],
        )
        return [RoomSummary.from_domain(room) for room in added]

    def add_bed(self, request: Union[AddBedRequest, Dict[str, Any]]) -> BedSummary:
        """Добавляет кровать в комнату."""
        request = parse_request(AddBedRequest, request)

        def action(prop: Property) -> Bed:
            return prop.add_bed(
                request.room_id,
                price=request.price,
                name=request.name,
                status=request.status,
            )

        prop, bed, events = self._writer.apply(
            request.property_id, action, request.landlord_id
        )
        self._after_commit(prop, events)
        self._logger.info(
            "Кровать добавлена", property_id=prop.property_id, bed_id=bed.bed_id
        )
        return BedSummary.from_domain(bed)

    def delete_room(self, landlord_id: str, property_ref: Ref, room_ref: Ref) -> None:
        """Удаляет пустую комнату."""
        prop, room, events = self._writer.apply(
            property_ref, lambda p: p.remove_room(room_ref), landlord_id
        )
        self._after_commit(prop, events)
        self._logger.info(
            "Комната удалена", property_id=prop.property_id, room_id=room.room_id
        )

    def delete_bed(
        self, landlord_id: str, property_ref: Ref, room_ref: Ref, bed_ref: Ref
    ) -> None:
        """Удаляет свободную кровать."""
        prop, bed, events = self._writer.apply(
            property_ref, lambda p: p.remove_bed(room_ref, bed_ref), landlord_id
        )
        self._after_commit(prop, events)
        self._logger.info(
            "Кровать удалена", property_id=prop.property_id, bed_id=bed.bed_id
        )

    # Статусы

    def update_status(
        self, request: Union[UpdateStatusRequest, Dict[str, Any]]
    ) -> Union[PropertyDTO, RoomSummary, BedSummary]:
        """Ручная установка статуса объекта, комнаты или кровати.

        ``Under Maintenance`` и ``Reserved`` закрепляются и не сбрасываются
        автоматическим пересчетом до следующего изменения занятости.
        """
        request = parse_request(UpdateStatusRequest, request)

        if request.entity_kind == EntityKind.BED:
            bed_status = coerce_status(BedStatus, request.status)

            def action(prop: Property) -> Any:
                return prop.set_bed_status(
                    request.room_id, request.bed_id, bed_status, request.notes
                )

        elif request.entity_kind == EntityKind.ROOM:
            room_status = coerce_status(SpaceStatus, request.status)

            def action(prop: Property) -> Any:
                return prop.set_room_status(request.room_id, room_status, request.notes)

        else:
            property_status = coerce_status(SpaceStatus, request.status)

            def action(prop: Property) -> Any:
                prop.set_property_status(property_status, request.notes)
                return prop

        prop, entity, events = self._writer.apply(
            request.property_id, action, request.landlord_id
        )
        self._after_commit(prop, events)
        self._logger.info(
            "Статус изменен вручную",
            entity_kind=request.entity_kind.value,
            property_id=prop.property_id,
            room_id=request.room_id,
            bed_id=request.bed_id,
            status=request.status,
        )

        if request.entity_kind == EntityKind.BED:
            return BedSummary.from_domain(entity)
        if request.entity_kind == EntityKind.ROOM:
            return RoomSummary.from_domain(entity)
        return PropertyDTO.from_domain(prop)

    # Чтение

    def get_property(self, property_ref: Ref) -> PropertyDTO:
        return PropertyDTO.from_domain(self._writer.load(property_ref))

    def get_available_rooms(self, property_ref: Ref) -> List[RoomSummary]:
        """Комнаты в статусе Available или Partially Available."""
        prop = self._writer.load(property_ref)
        return [RoomSummary.from_domain(room) for room in available_rooms(prop)]

    def get_available_beds(self, property_ref: Ref, room_ref: Ref) -> List[BedSummary]:
        """Свободные кровати комнаты: статус Available и никого нет."""
        room = self._writer.load(property_ref).get_room(room_ref)
        summaries = [BedSummary.from_domain(bed) for bed in room.beds]
        return [summary for summary in summaries if summary.available]

    def get_room_overview(
        self, landlord_id: str, property_ref: Ref
    ) -> List[RoomOverviewDTO]:
        """Обзор комнат и кроватей объекта для арендодателя."""
        prop = self._writer.load(property_ref)
        prop.ensure_owned_by(landlord_id)
        return [RoomOverviewDTO.from_domain(room) for room in prop.rooms]

    def list_available_properties(
        self, landlord_id: Optional[str] = None
    ) -> List[AvailablePropertyDTO]:
        """Объекты, в которых есть свободные места."""
        props = (
            self._properties.find_by_landlord(landlord_id)
            if landlord_id
            else self._properties.list_all()
        )
        result = []
        for prop in props:
            if prop.status not in AVAILABLE_SPACE_STATUSES:
                continue
            rooms = available_rooms(prop)
            result.append(
                AvailablePropertyDTO(
                    property_id=prop.property_id,
                    landlord_id=prop.landlord_id,
                    name=prop.name,
                    status=prop.status.value,
                    available_rooms=len(rooms),
                    starting_price=starting_price(rooms),
                )
            )
        return result

    # Обслуживание идентификаторов

    def _standardize(
        self, property_ref: Ref, landlord_id: Optional[str]
    ) -> Tuple[Property, Dict[str, str]]:
        # Новый номер выдается один раз, повтор записи его не расходует
        current = self._writer.load(property_ref)
        new_property_id = None
        if not self._allocator.is_allocated_format(current.property_id):
            new_property_id = self._allocator.next_property_id()

        def action(prop: Property) -> Dict[str, str]:
            if self._allocator.is_allocated_format(prop.property_id):
                return prop.standardize_ids()
            return prop.standardize_ids(new_property_id)

        prop, renamed, events = self._writer.apply(property_ref, action, landlord_id)
        self._after_commit(prop, events)
        if renamed:
            self._logger.warning(
                "Идентификаторы пересчитаны, внешние ссылки на старые значения устарели",
                property_id=prop.property_id,
                renamed=renamed,
            )
        return prop, renamed

    def standardize_ids(
        self, property_ref: Ref, landlord_id: Optional[str] = None
    ) -> PropertyDTO:
        """Пересчитывает идентификаторы комнат и кроватей по текущему порядку.

        Записи о проживании продолжают ссылаться на старые идентификаторы,
        поэтому операцию нельзя запускать, пока на них ссылаются.
        """
        prop, _ = self._standardize(property_ref, landlord_id)
        return PropertyDTO.from_domain(prop)

    def standardize_all(self, landlord_id: str) -> Dict[str, Any]:
        """Стандартизирует все объекты арендодателя."""
        props = self._properties.find_by_landlord(landlord_id)
        updated = 0
        errors: List[Dict[str, Any]] = []
        for prop in props:
            try:
                _, renamed = self._standardize(prop.id, landlord_id)
            except DomainException as e:
                self._logger.error(
                    "Не удалось стандартизировать объект",
                    property_id=prop.property_id,
                    error=e.reason,
                )
                errors.append({"property_id": prop.property_id, **e.to_dict()})
                continue
            if renamed:
                updated += 1

        return {"total": len(props), "updated": updated, "errors": errors}
