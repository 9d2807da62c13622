"""
Оркестратор заселения.

Единственный компонент, который меняет оба агрегата в одной логической
операции. Порядок записей фиксирован: сначала объект недвижимости
(кровать или комната, копия жильца, статусы), затем жилец (запись о
проживании). Между записями нет общей транзакции, поэтому сбой второй
записи возвращается как PartialFailure, а расхождение исправляет
ReconciliationService.
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..shared_kernel import (
    ConcurrencyException,
    ConflictException,
    DomainEvent,
    NotFoundException,
    PartialFailureException,
)
from ..shared_kernel.application import parse_request
from ..shared_kernel.cache import NullCacheInvalidator, occupancy_keys
from ..shared_kernel.infrastructure import StdLogger
from ..space.application import PropertyWriter
from ..space.domain import Property
from ..space.value_objects import TenantStub
from ..tenancy.application import (
    AccommodationDTO,
    RegisterTenantRequest,
    TenantApplicationService,
)
from ..tenancy.domain import Accommodation, AccommodationTerms, Tenant
from . import interfaces as ports
from .domain import TenantAssigned, TenantMovedOut

T = TypeVar("T")

# DTO для входящих данных


class AssignTenantCommand(BaseModel):
    """Команда заселения: существующий жилец по tenant_id или данные нового."""

    landlord_id: str = Field(..., min_length=1)
    property_id: str = Field(..., min_length=1)
    room_id: str = Field(..., min_length=1)
    bed_id: Optional[str] = None
    tenant_id: Optional[str] = None
    tenant: Optional[RegisterTenantRequest] = None
    terms: AccommodationTerms = Field(default_factory=AccommodationTerms)

    @field_validator("bed_id", "tenant_id", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return v or None

    @model_validator(mode="after")
    def check_tenant(self) -> "AssignTenantCommand":
        if not self.tenant_id and self.tenant is None:
            raise ValueError("Нужен tenant_id или данные нового жильца")
        return self


class RemoveTenantCommand(BaseModel):
    """Команда выселения."""

    tenant_id: str = Field(..., min_length=1)
    property_id: str = Field(..., min_length=1)
    room_id: str = Field(..., min_length=1)
    bed_id: Optional[str] = None
    move_out_date: Optional[date] = None
    landlord_id: Optional[str] = None

    @field_validator("bed_id", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return v or None


class _Placement(BaseModel):
    """Куда фактически заселен жилец (канонические идентификаторы)."""

    landlord_id: str
    property_id: str
    room_id: str
    bed_id: str = ""
    rent_amount: float = 0
    previous_bed_id: Optional[str] = None


# Сервисы приложения


class AssignmentService:
    """Заселение, переселение и выселение жильцов."""

    def __init__(
        self,
        properties: ports.IPropertyRepository,
        tenants: ports.ITenantRepository,
        event_publisher: Optional[ports.IEventPublisher] = None,
        cache: Optional[ports.ICacheInvalidator] = None,
        logger: Optional[ports.ILogger] = None,
        max_write_attempts: int = 3,
    ):
        """Инициализирует сервис."""
        self._properties = properties
        self._tenants = tenants
        self._event_publisher = event_publisher
        self._cache = cache or NullCacheInvalidator()
        self._logger = logger or StdLogger("rentspace.occupancy")
        self._max_attempts = max(max_write_attempts, 1)
        self._writer = PropertyWriter(properties, self._logger, self._max_attempts)
        self._tenant_service = TenantApplicationService(tenants, self._cache, self._logger)

    # Заселение

    def assign_tenant(
        self, command: Union[AssignTenantCommand, Dict[str, Any]]
    ) -> AccommodationDTO:
        """Заселяет жильца на кровать или в комнату целиком.

        Raises:
            NotFoundException: объект, комната, кровать или жилец не найдены
            ForbiddenException: арендодатель не владеет объектом
            ConflictException: кровать занята или жилец уже заселен сюда
            CapacityExceededException: комната заполнена
            ConcurrencyException: попытки записи объекта исчерпаны
            PartialFailureException: объект записан, жилец - нет
        """
        command = parse_request(AssignTenantCommand, command)

        if command.tenant_id:
            tenant, is_new = self._tenant_service.load(command.tenant_id), False
        else:
            tenant, is_new = self._tenant_service.resolve(command.tenant)

        def place(prop: Property) -> _Placement:
            room = prop.get_room(command.room_id)
            bed = room.get_bed(command.bed_id) if command.bed_id else None
            target_bed_id = bed.bed_id if bed else ""

            previous = tenant.find_active(prop.property_id, room.room_id)
            if previous is not None and previous.bed_id == target_bed_id:
                raise ConflictException(
                    f"Жилец {tenant.tenant_id} уже заселен в {target_bed_id or room.room_id}",
                    details={"tenant_id": tenant.tenant_id, "room_id": room.room_id},
                )
            if previous is not None:
                # Переселение внутри комнаты: освобождаем прежнее место
                for stub_room, stub_bed in prop.locate_stubs(tenant.tenant_id):
                    if stub_room.room_id == room.room_id:
                        prop.vacate(
                            room.room_id,
                            stub_bed.bed_id if stub_bed else None,
                            tenant.tenant_id,
                        )

            stub = TenantStub(
                tenant_id=tenant.tenant_id, name=tenant.name, mobile=tenant.mobile
            )
            if bed is not None:
                prop.occupy_bed(room.room_id, bed.bed_id, stub)
            else:
                prop.occupy_room(room.room_id, stub)

            rent = command.terms.rent_amount
            if rent is None:
                rent = bed.price if bed is not None and bed.price is not None else room.price
            return _Placement(
                landlord_id=prop.landlord_id,
                property_id=prop.property_id,
                room_id=room.room_id,
                bed_id=target_bed_id,
                rent_amount=rent or 0,
                previous_bed_id=previous.bed_id if previous is not None else None,
            )

        prop, placement, space_events = self._writer.apply(
            command.property_id, place, command.landlord_id
        )

        def open_accommodation(t: Tenant) -> Accommodation:
            accommodation, _ = t.open_accommodation(
                landlord_id=placement.landlord_id,
                property_id=placement.property_id,
                room_id=placement.room_id,
                bed_id=placement.bed_id,
                rent_amount=placement.rent_amount,
                terms=command.terms,
            )
            return accommodation

        accommodation = self._write_tenant(
            tenant, is_new, open_accommodation, placement, operation="assign"
        )

        self._after_commit(
            placement,
            tenant.tenant_id,
            space_events
            + [
                TenantAssigned(
                    tenant_id=tenant.tenant_id,
                    tenant_name=tenant.name,
                    landlord_id=placement.landlord_id,
                    property_id=placement.property_id,
                    room_id=placement.room_id,
                    bed_id=placement.bed_id,
                    accommodation_id=accommodation.id,
                    rent_amount=accommodation.rent_amount,
                    move_in_date=accommodation.move_in_date,
                    previous_bed_id=placement.previous_bed_id,
                )
            ],
        )
        self._logger.info(
            "Жилец заселен",
            tenant_id=tenant.tenant_id,
            new_tenant=is_new,
            property_id=placement.property_id,
            room_id=placement.room_id,
            bed_id=placement.bed_id,
            property_status=prop.status.value,
        )
        return AccommodationDTO.from_domain(tenant.tenant_id, accommodation)

    # Выселение

    def remove_tenant(
        self, command: Union[RemoveTenantCommand, Dict[str, Any]]
    ) -> AccommodationDTO:
        """Выселяет жильца: закрывает запись о проживании и освобождает место.

        Raises:
            NotFoundException: нет активного проживания по указанному месту
            PartialFailureException: объект записан, жилец - нет
        """
        command = parse_request(RemoveTenantCommand, command)
        tenant = self._tenant_service.load(command.tenant_id)

        # Приводим идентификаторы к каноническому виду до записи
        snapshot = self._writer.load(command.property_id)
        if command.landlord_id is not None:
            snapshot.ensure_owned_by(command.landlord_id)
        room = snapshot.get_room(command.room_id)
        bed_id = room.get_bed(command.bed_id).bed_id if command.bed_id else None

        accommodation = tenant.find_active(snapshot.property_id, room.room_id, bed_id)
        if accommodation is None:
            raise NotFoundException(
                f"У жильца {tenant.tenant_id} нет активного проживания в {bed_id or room.room_id}",
                details={
                    "tenant_id": tenant.tenant_id,
                    "property_id": snapshot.property_id,
                    "room_id": room.room_id,
                    "bed_id": bed_id or "",
                },
            )

        def release(prop: Property) -> _Placement:
            target = prop.get_room(room.room_id)
            stub_bed = accommodation.bed_id if target.find_bed(accommodation.bed_id) else None
            if not prop.vacate(target.room_id, stub_bed, tenant.tenant_id):
                self._logger.warning(
                    "Копия жильца не найдена при выселении",
                    tenant_id=tenant.tenant_id,
                    property_id=prop.property_id,
                    room_id=target.room_id,
                    bed_id=accommodation.bed_id,
                )
            return _Placement(
                landlord_id=prop.landlord_id,
                property_id=prop.property_id,
                room_id=target.room_id,
                bed_id=accommodation.bed_id,
                rent_amount=accommodation.rent_amount,
            )

        prop, placement, space_events = self._writer.apply(
            snapshot.id, release, command.landlord_id
        )

        closed = self._write_tenant(
            tenant,
            False,
            lambda t: t.close_accommodation(
                placement.property_id,
                placement.room_id,
                accommodation.bed_id or None,
                command.move_out_date,
            ),
            placement,
            operation="remove",
        )

        self._after_commit(
            placement,
            tenant.tenant_id,
            space_events
            + [
                TenantMovedOut(
                    tenant_id=tenant.tenant_id,
                    landlord_id=placement.landlord_id,
                    property_id=placement.property_id,
                    room_id=placement.room_id,
                    bed_id=placement.bed_id,
                    accommodation_id=closed.id,
                    rent_amount=closed.rent_amount,
                    move_in_date=closed.move_in_date,
                    move_out_date=closed.move_out_date,
                )
            ],
        )
        self._logger.info(
            "Жилец выселен",
            tenant_id=tenant.tenant_id,
            property_id=placement.property_id,
            room_id=placement.room_id,
            bed_id=placement.bed_id,
            move_out_date=closed.move_out_date,
            property_status=prop.status.value,
        )
        return AccommodationDTO.from_domain(tenant.tenant_id, closed)

    # Вспомогательные методы

    def _write_tenant(
        self,
        tenant: Tenant,
        is_new: bool,
        mutate: Callable[[Tenant], T],
        placement: _Placement,
        operation: str,
    ) -> T:
        """Вторая запись. Ее сбой после успешной первой - PartialFailure."""
        try:
            if is_new:
                result = mutate(tenant)
                self._tenants.add(tenant)
                return result
            return self._save_tenant_with_retry(tenant.tenant_id, mutate)
        except Exception as e:
            self._logger.error(
                "Объект недвижимости записан, запись жильца не удалась",
                operation=operation,
                tenant_id=tenant.tenant_id,
                property_id=placement.property_id,
                room_id=placement.room_id,
                bed_id=placement.bed_id,
                error=str(e),
            )
            cause = getattr(e, "to_dict", None)
            raise PartialFailureException(
                "Место обновлено, но запись жильца не сохранена; требуется сверка",
                details={
                    "operation": operation,
                    "space_committed": True,
                    "tenant_committed": False,
                    "tenant_id": tenant.tenant_id,
                    "property_id": placement.property_id,
                    "room_id": placement.room_id,
                    "bed_id": placement.bed_id,
                    "cause": cause() if cause else {"reason": str(e)},
                },
            ) from e

    def _save_tenant_with_retry(self, tenant_ref: str, mutate: Callable[[Tenant], T]) -> T:
        for attempt in range(1, self._max_attempts + 1):
            tenant = self._tenant_service.load(tenant_ref)
            result = mutate(tenant)
            try:
                self._tenants.save(tenant, expected_version=tenant.version)
            except ConcurrencyException as e:
                if attempt == self._max_attempts:
                    raise
                self._logger.warning(
                    "Конфликт версий жильца, повтор",
                    tenant_id=tenant_ref,
                    attempt=attempt,
                    details=e.details,
                )
                continue
            return result

        raise AssertionError("unreachable")

    def _after_commit(
        self, placement: _Placement, tenant_id: str, events: List[DomainEvent]
    ) -> None:
        self._cache.invalidate(
            occupancy_keys(placement.property_id, placement.landlord_id, tenant_id)
        )
        if self._event_publisher:
            for event in events:
                self._event_publisher.publish(event)
