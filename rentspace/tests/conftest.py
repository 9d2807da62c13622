"""
Общие фикстуры: сервисы поверх хранилищ в памяти.
"""

from typing import List

import pytest

from rentspace.occupancy.application import AssignmentService
from rentspace.occupancy.domain import TenantAssigned, TenantMovedOut
from rentspace.occupancy.reconciliation import ReconciliationService
from rentspace.shared_kernel import DomainEvent
from rentspace.shared_kernel.cache import RecordingCacheInvalidator
from rentspace.shared_kernel.infrastructure import InMemoryEventBus
from rentspace.space.application import SpaceApplicationService
from rentspace.space.domain import BedRemoved, RoomRemoved, SpaceStatusChanged
from rentspace.space.identifiers import IdentifierAllocator
from rentspace.space.infrastructure import (
    InMemoryCounterRepository,
    InMemoryPropertyRepository,
)
from rentspace.tenancy.application import TenantApplicationService
from rentspace.tenancy.infrastructure import InMemoryTenantRepository

LANDLORD = "LL-1"
OTHER_LANDLORD = "LL-2"


def tenant_payload(n: int, name: str = None) -> dict:
    """Данные нового жильца с уникальными документом и телефоном."""
    return {
        "name": name or f"Tenant {n}",
        "legal_id": f"AADHAAR-{n:04d}",
        "mobile": f"90000{n:05d}",
    }


@pytest.fixture
def cache():
    return RecordingCacheInvalidator()


@pytest.fixture
def event_bus():
    return InMemoryEventBus()


@pytest.fixture
def published(event_bus) -> List[DomainEvent]:
    """Все опубликованные события по порядку."""
    events: List[DomainEvent] = []
    for event_type in (
        TenantAssigned,
        TenantMovedOut,
        SpaceStatusChanged,
        RoomRemoved,
        BedRemoved,
    ):
        event_bus.subscribe(event_type, events.append)
    return events


@pytest.fixture
def properties():
    return InMemoryPropertyRepository()


@pytest.fixture
def tenants():
    return InMemoryTenantRepository()


@pytest.fixture
def allocator():
    return IdentifierAllocator(InMemoryCounterRepository(), prefix="PROP", start=1000)


@pytest.fixture
def space_service(properties, allocator, event_bus, cache):
    return SpaceApplicationService(
        properties, allocator, event_publisher=event_bus, cache=cache
    )


@pytest.fixture
def tenant_service(tenants, cache):
    return TenantApplicationService(tenants, cache=cache)


@pytest.fixture
def assignment_service(properties, tenants, event_bus, cache):
    return AssignmentService(properties, tenants, event_publisher=event_bus, cache=cache)


@pytest.fixture
def reconciliation_service(properties, tenants, event_bus, cache):
    return ReconciliationService(
        properties, tenants, event_publisher=event_bus, cache=cache
    )


@pytest.fixture
def double_room_property(space_service):
    """Объект с одной комнатой Double Sharing на две кровати.

    PROP1001 / PROP1001-R1 / PROP1001-R1-B1 (4000), PROP1001-R1-B2 (4500)
    """
    return space_service.create_property(
        {
            "landlord_id": LANDLORD,
            "name": "Sunrise PG",
            "rooms": [
                {
                    "type": "Double Sharing",
                    "price": 8000,
                    "beds": [{"price": 4000}, {"price": 4500}],
                }
            ],
        }
    )


@pytest.fixture
def single_room_property(space_service):
    """Объект с одной комнатой Single Sharing без кроватей (сдается целиком)."""
    return space_service.create_property(
        {
            "landlord_id": LANDLORD,
            "name": "Lake View",
            "rooms": [{"type": "Single Sharing", "price": 12000}],
        }
    )
