"""
Сверка копий жильцов на кроватях с записями о проживании.

Запись о проживании (Accommodation) считается источником истины:
копия без активной записи удаляется и освобождает место, активная
запись без копии восстанавливает копию, если место свободно.
"""

from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from ..shared_kernel.cache import NullCacheInvalidator, space_keys
from ..shared_kernel.infrastructure import StdLogger
from ..space.application import PropertyWriter
from ..space.availability import bed_availability, room_capacity
from ..space.domain import Property, Ref
from ..space.value_objects import TenantStub
from ..tenancy.domain import Tenant
from . import interfaces as ports

# (tenant_id, room_id, bed_id); bed_id пустой для комнаты целиком
Placement = Tuple[str, str, str]


class StubRef(BaseModel):
    tenant_id: str
    room_id: str
    bed_id: str = ""


class ReconciliationReport(BaseModel):
    """Расхождения между объектом и записями о проживании."""

    property_id: str
    orphan_stubs: List[StubRef] = Field(default_factory=list)
    missing_stubs: List[StubRef] = Field(default_factory=list)
    occupied_space: int = 0
    expected_occupied_space: int = 0

    @property
    def consistent(self) -> bool:
        return (
            not self.orphan_stubs
            and not self.missing_stubs
            and self.occupied_space == self.expected_occupied_space
        )


class RepairResult(BaseModel):
    """Итог исправления."""

    property_id: str
    removed: List[StubRef] = Field(default_factory=list)
    restored: List[StubRef] = Field(default_factory=list)
    unresolved: List[StubRef] = Field(default_factory=list)


def _stub_placements(prop: Property) -> Set[Placement]:
    placements = set()
    for room in prop.rooms:
        for stub in room.tenants:
            placements.add((stub.tenant_id, room.room_id, ""))
        for bed in room.beds:
            for stub in bed.tenants:
                placements.add((stub.tenant_id, room.room_id, bed.bed_id))
    return placements


def _as_refs(placements: Set[Placement]) -> List[StubRef]:
    return [
        StubRef(tenant_id=tenant_id, room_id=room_id, bed_id=bed_id)
        for tenant_id, room_id, bed_id in sorted(placements)
    ]


class ReconciliationService:
    """Находит и исправляет расхождения после частичных сбоев."""

    def __init__(
        self,
        properties: ports.IPropertyRepository,
        tenants: ports.ITenantRepository,
        event_publisher: Optional[ports.IEventPublisher] = None,
        cache: Optional[ports.ICacheInvalidator] = None,
        logger: Optional[ports.ILogger] = None,
        max_write_attempts: int = 3,
    ):
        self._tenants = tenants
        self._event_publisher = event_publisher
        self._cache = cache or NullCacheInvalidator()
        self._logger = logger or StdLogger("rentspace.reconciliation")
        self._writer = PropertyWriter(properties, self._logger, max_write_attempts)

    def _active_placements(self, property_id: str) -> Tuple[Set[Placement], Dict[str, Tenant]]:
        placements: Set[Placement] = set()
        tenants: Dict[str, Tenant] = {}
        for tenant in self._tenants.find_active_in_property(property_id):
            tenants[tenant.tenant_id] = tenant
            for acc in tenant.active_accommodations:
                if acc.property_id == property_id:
                    placements.add((tenant.tenant_id, acc.room_id, acc.bed_id))
        return placements, tenants

    def _compare(self, prop: Property, active: Set[Placement]) -> ReconciliationReport:
        stubs = _stub_placements(prop)
        return ReconciliationReport(
            property_id=prop.property_id,
            orphan_stubs=_as_refs(stubs - active),
            missing_stubs=_as_refs(active - stubs),
            occupied_space=prop.occupied_space,
            expected_occupied_space=len(stubs),
        )

    def scan(self, property_ref: Ref) -> ReconciliationReport:
        """Сравнивает копии жильцов с активными записями о проживании."""
        prop = self._writer.load(property_ref)
        active, _ = self._active_placements(prop.property_id)
        report = self._compare(prop, active)
        if not report.consistent:
            self._logger.warning(
                "Обнаружены расхождения занятости",
                property_id=prop.property_id,
                orphan_stubs=len(report.orphan_stubs),
                missing_stubs=len(report.missing_stubs),
                occupied_space=report.occupied_space,
                expected_occupied_space=report.expected_occupied_space,
            )
        return report

    def repair(self, property_ref: Ref) -> RepairResult:
        """Приводит объект в соответствие с записями о проживании."""
        prop = self._writer.load(property_ref)
        active, tenants = self._active_placements(prop.property_id)

        def fix(current: Property) -> RepairResult:
            report = self._compare(current, active)
            result = RepairResult(property_id=current.property_id)

            for ref in report.orphan_stubs:
                current.vacate(ref.room_id, ref.bed_id or None, ref.tenant_id)
                result.removed.append(ref)

            for ref in report.missing_stubs:
                if self._restore(current, ref, tenants[ref.tenant_id]):
                    result.restored.append(ref)
                else:
                    result.unresolved.append(ref)

            current.occupied_space = len(_stub_placements(current))
            current.refresh_statuses()
            return result

        prop, result, events = self._writer.apply(prop.id, fix)

        self._cache.invalidate(space_keys(prop.property_id, prop.landlord_id))
        if self._event_publisher:
            for event in events:
                self._event_publisher.publish(event)

        if result.removed or result.restored:
            self._logger.warning(
                "Занятость объекта исправлена",
                property_id=prop.property_id,
                removed=[ref.model_dump() for ref in result.removed],
                restored=[ref.model_dump() for ref in result.restored],
            )
        if result.unresolved:
            self._logger.error(
                "Не удалось восстановить копии жильцов: место занято или удалено",
                property_id=prop.property_id,
                unresolved=[ref.model_dump() for ref in result.unresolved],
            )
        return result

    @staticmethod
    def _restore(prop: Property, ref: StubRef, tenant: Tenant) -> bool:
        room = prop.find_room(ref.room_id)
        if room is None:
            return False

        stub = TenantStub(tenant_id=tenant.tenant_id, name=tenant.name, mobile=tenant.mobile)
        if ref.bed_id:
            bed = room.find_bed(ref.bed_id)
            if bed is None or not bed_availability(bed).available:
                return False
            prop.occupy_bed(room.room_id, bed.bed_id, stub)
            return True

        if room.beds or not room_capacity(room).has_capacity:
            return False
        prop.occupy_room(room.room_id, stub)
        return True
