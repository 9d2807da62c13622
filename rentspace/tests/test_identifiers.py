"""
Тесты выдачи и стандартизации идентификаторов.
"""

import logging

import pytest

from rentspace.space.application import SpaceApplicationService
from rentspace.space.domain import Property
from rentspace.space.identifiers import IdentifierAllocator, bed_id, room_id
from rentspace.space.infrastructure import InMemoryCounterRepository
from rentspace.space.value_objects import RoomType, SpaceStatus

from .conftest import LANDLORD
from .test_assignment import RacingPropertyRepository


class TestFormatting:
    def test_room_id(self):
        assert room_id("PROP1001", 1) == "PROP1001-R1"

    def test_bed_id(self):
        assert bed_id("PROP1001-R3", 2) == "PROP1001-R3-B2"


class TestIdentifierAllocator:
    def test_first_id_follows_start(self):
        allocator = IdentifierAllocator(InMemoryCounterRepository())

        assert allocator.next_property_id() == "PROP1001"
        assert allocator.next_property_id() == "PROP1002"

    def test_custom_prefix_and_start(self):
        allocator = IdentifierAllocator(InMemoryCounterRepository(), prefix="PG", start=0)

        assert allocator.next_property_id() == "PG1"

    def test_allocators_sharing_counter_never_collide(self):
        counters = InMemoryCounterRepository()
        first = IdentifierAllocator(counters)
        second = IdentifierAllocator(counters)

        issued = {first.next_property_id(), second.next_property_id(), first.next_property_id()}

        assert len(issued) == 3


class TestOrdinals:
    """Порядковые номера комнат и кроватей не переиспользуются."""

    @pytest.fixture
    def prop(self):
        prop = Property.create(property_id="PROP1", landlord_id=LANDLORD, name="Home")
        prop.add_room(RoomType.DOUBLE_SHARING, beds=[{"price": 10}, {"price": 10}])
        prop.add_room(RoomType.PG)
        return prop

    def test_room_ordinal_after_delete(self, prop):
        prop.remove_room("PROP1-R2")

        room = prop.add_room(RoomType.PG)

        assert room.room_id == "PROP1-R3"

    def test_bed_ordinal_after_delete(self, prop):
        prop.remove_bed("PROP1-R1", "PROP1-R1-B2")

        bed = prop.add_bed("PROP1-R1", price=12)

        assert bed.bed_id == "PROP1-R1-B3"

    def test_standardize_renumbers_from_list_order(self, prop):
        prop.remove_room("PROP1-R1")
        prop.add_room(RoomType.COUPLE, beds=[{"price": 10}])

        renamed = prop.standardize_ids()

        assert [room.room_id for room in prop.rooms] == ["PROP1-R1", "PROP1-R2"]
        assert prop.rooms[1].beds[0].bed_id == "PROP1-R2-B1"
        assert renamed == {
            "PROP1-R2": "PROP1-R1",
            "PROP1-R3": "PROP1-R2",
            "PROP1-R3-B1": "PROP1-R2-B1",
        }
        assert prop.room_sequence == 2

    def test_standardize_is_noop_when_ids_are_canonical(self, prop):
        assert prop.standardize_ids() == {}


class TestStandardizeService:
    def test_legacy_property_id_is_reallocated(self, space_service, properties, caplog):
        legacy = Property.create(property_id="LEGACY-7", landlord_id=LANDLORD, name="Old")
        legacy.add_room(RoomType.PG)
        properties.add(legacy)
        caplog.set_level(logging.WARNING)

        result = space_service.standardize_ids("LEGACY-7", landlord_id=LANDLORD)

        assert result.property_id == "PROP1001"
        assert result.rooms[0].room_id == "PROP1001-R1"
        assert "Идентификаторы пересчитаны" in caplog.text

    def test_standardize_all(self, space_service, properties, double_room_property):
        legacy = Property.create(property_id="OLD-1", landlord_id=LANDLORD, name="Old")
        properties.add(legacy)

        summary = space_service.standardize_all(LANDLORD)

        assert summary == {"total": 2, "updated": 1, "errors": []}
        assert properties.get(legacy.id).property_id.startswith("PROP")

    def test_retry_does_not_skip_numbers(self, allocator):
        racing = RacingPropertyRepository()
        service = SpaceApplicationService(racing, allocator)
        legacy = Property.create(property_id="LEGACY-7", landlord_id=LANDLORD, name="Old")
        legacy.add_room(RoomType.PG)
        racing.add(legacy)
        racing.intruder = lambda p: p.set_room_status(
            p.rooms[0].room_id, SpaceStatus.RESERVED
        )

        result = service.standardize_ids("LEGACY-7", landlord_id=LANDLORD)
        created = service.create_property({"landlord_id": LANDLORD, "name": "New"})

        assert result.property_id == "PROP1001"
        assert result.rooms[0].status == "Reserved"
        assert created.property_id == "PROP1002"
