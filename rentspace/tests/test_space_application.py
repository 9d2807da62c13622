"""
Тесты прикладного сервиса объектов недвижимости.
"""

import pytest

from rentspace.shared_kernel import (
    ConflictException,
    DomainValidationException,
    ErrorKind,
    ForbiddenException,
    NotFoundException,
)
from rentspace.space.application import coerce_status
from rentspace.space.domain import RoomRemoved, SpaceStatusChanged
from rentspace.space.value_objects import BedStatus, SpaceStatus

from .conftest import LANDLORD, OTHER_LANDLORD, tenant_payload


class TestCreateProperty:
    def test_allocates_ids(self, space_service, double_room_property):
        second = space_service.create_property({"landlord_id": LANDLORD, "name": "Two"})

        assert double_room_property.property_id == "PROP1001"
        assert double_room_property.rooms[0].room_id == "PROP1001-R1"
        assert double_room_property.version == 1
        assert second.property_id == "PROP1002"

    def test_summary(self, double_room_property):
        room = double_room_property.rooms[0]

        assert double_room_property.status == "Available"
        assert double_room_property.total_beds == 2
        assert room.capacity == 2
        assert room.available_beds == 2

    def test_invalid_payload(self, space_service):
        with pytest.raises(DomainValidationException) as exc_info:
            space_service.create_property({"landlord_id": "", "name": "X"})

        assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR
        assert exc_info.value.details["errors"][0]["field"] == "landlord_id"

    def test_unknown_room_type(self, space_service):
        with pytest.raises(DomainValidationException):
            space_service.create_property(
                {"landlord_id": LANDLORD, "name": "X", "rooms": [{"type": "Castle"}]}
            )

    def test_cache_invalidated(self, cache, double_room_property):
        assert "property:PROP1001" in cache.invalidated
        assert f"properties:{LANDLORD}" in cache.invalidated


class TestStructureChanges:
    def test_add_rooms(self, space_service, double_room_property):
        added = space_service.add_rooms(
            LANDLORD,
            "PROP1001",
            [{"type": "Triple Sharing", "beds": [{"price": 3000}]}, {"type": "Couple"}],
        )

        assert [room.room_id for room in added] == ["PROP1001-R2", "PROP1001-R3"]
        assert space_service.get_property("PROP1001").total_rooms == 3

    def test_add_rooms_requires_rooms(self, space_service, double_room_property):
        with pytest.raises(DomainValidationException):
            space_service.add_rooms(LANDLORD, "PROP1001", [])

    def test_add_bed(self, space_service, double_room_property):
        bed = space_service.add_bed(
            {
                "landlord_id": LANDLORD,
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "price": 3900,
            }
        )

        assert bed.bed_id == "PROP1001-R1-B3"
        assert bed.available is True

    def test_add_bed_requires_price(self, space_service, double_room_property):
        with pytest.raises(DomainValidationException):
            space_service.add_bed(
                {"landlord_id": LANDLORD, "property_id": "PROP1001", "room_id": "PROP1001-R1"}
            )

    def test_foreign_landlord(self, space_service, double_room_property):
        with pytest.raises(ForbiddenException):
            space_service.delete_room(OTHER_LANDLORD, "PROP1001", "PROP1001-R1")

        assert space_service.get_property("PROP1001").total_rooms == 1

    def test_delete_room(self, space_service, double_room_property, published):
        space_service.delete_room(LANDLORD, "PROP1001", "PROP1001-R1")

        assert space_service.get_property("PROP1001").total_rooms == 0
        assert any(isinstance(e, RoomRemoved) for e in published)

    def test_delete_occupied_bed_is_refused(
        self, space_service, assignment_service, double_room_property
    ):
        assignment_service.assign_tenant(
            {
                "landlord_id": LANDLORD,
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "bed_id": "PROP1001-R1-B1",
                "tenant": tenant_payload(1),
            }
        )

        with pytest.raises(ConflictException):
            space_service.delete_bed(LANDLORD, "PROP1001", "PROP1001-R1", "PROP1001-R1-B1")
        with pytest.raises(ConflictException):
            space_service.delete_room(LANDLORD, "PROP1001", "PROP1001-R1")

        assert space_service.get_property("PROP1001").total_beds == 2

    def test_delete_last_bed_frees_room(self, space_service, published):
        space_service.create_property(
            {
                "landlord_id": LANDLORD,
                "name": "Corner House",
                "rooms": [{"type": "Single Sharing", "beds": [{"price": 6000}]}],
            }
        )
        space_service.update_status(
            {
                "entity_kind": "bed",
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "bed_id": "PROP1001-R1-B1",
                "status": "Maintenance",
            }
        )
        assert space_service.get_property("PROP1001").rooms[0].status == "Not Available"
        published.clear()

        space_service.delete_bed(LANDLORD, "PROP1001", "PROP1001-R1", "PROP1001-R1-B1")

        prop = space_service.get_property("PROP1001")
        assert prop.total_beds == 0
        assert prop.rooms[0].status == "Available"
        assert prop.status == "Available"
        assert [r.room_id for r in space_service.get_available_rooms("PROP1001")] == [
            "PROP1001-R1"
        ]
        room_changes = [
            e
            for e in published
            if isinstance(e, SpaceStatusChanged) and e.entity_id == "PROP1001-R1"
        ]
        assert [(e.old_status, e.new_status) for e in room_changes] == [
            ("Not Available", "Available")
        ]

    def test_missing_property(self, space_service):
        with pytest.raises(NotFoundException):
            space_service.get_property("PROP9999")


class TestUpdateStatus:
    def test_room_maintenance(self, space_service, double_room_property, published):
        room = space_service.update_status(
            {
                "entity_kind": "room",
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "status": "UnderMaintenance",
                "notes": "Ремонт",
            }
        )

        assert room.status == "Under Maintenance"
        prop = space_service.get_property("PROP1001")
        assert prop.status == "Not Available"
        assert any(isinstance(e, SpaceStatusChanged) and e.manual for e in published)

    def test_bed_status(self, space_service, double_room_property):
        bed = space_service.update_status(
            {
                "entity_kind": "bed",
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "bed_id": "PROP1001-R1-B2",
                "status": "Maintenance",
            }
        )

        assert bed.status == "Maintenance"
        assert bed.available is False
        assert space_service.get_property("PROP1001").rooms[0].status == "Partially Available"

    def test_property_status(self, space_service, double_room_property):
        prop = space_service.update_status(
            {"entity_kind": "property", "property_id": "PROP1001", "status": "Reserved"}
        )

        assert prop.status == "Reserved"
        assert prop.status_notes is None

    def test_room_status_not_valid_for_bed(self, space_service, double_room_property):
        with pytest.raises(DomainValidationException, match="Неизвестный статус"):
            space_service.update_status(
                {
                    "entity_kind": "bed",
                    "property_id": "PROP1001",
                    "room_id": "PROP1001-R1",
                    "bed_id": "PROP1001-R1-B1",
                    "status": "Partially Available",
                }
            )

    def test_bed_requires_bed_id(self, space_service, double_room_property):
        with pytest.raises(DomainValidationException):
            space_service.update_status(
                {
                    "entity_kind": "bed",
                    "property_id": "PROP1001",
                    "room_id": "PROP1001-R1",
                    "status": "Maintenance",
                }
            )

    @pytest.mark.parametrize(
        "raw", ["Partially Available", "PartiallyAvailable", "PARTIALLY_AVAILABLE"]
    )
    def test_coerce_status_accepts_names_and_values(self, raw):
        assert coerce_status(SpaceStatus, raw) == SpaceStatus.PARTIALLY_AVAILABLE

    def test_coerce_bed_status(self):
        assert coerce_status(BedStatus, "NotAvailable") == BedStatus.NOT_AVAILABLE


class TestReads:
    def test_available_rooms_and_beds(
        self, space_service, assignment_service, double_room_property
    ):
        space_service.add_rooms(LANDLORD, "PROP1001", [{"type": "Single Sharing"}])
        assignment_service.assign_tenant(
            {
                "landlord_id": LANDLORD,
                "property_id": "PROP1001",
                "room_id": "PROP1001-R2",
                "tenant": tenant_payload(1),
            }
        )
        assignment_service.assign_tenant(
            {
                "landlord_id": LANDLORD,
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "bed_id": "PROP1001-R1-B1",
                "tenant": tenant_payload(2),
            }
        )

        rooms = space_service.get_available_rooms("PROP1001")
        beds = space_service.get_available_beds("PROP1001", "PROP1001-R1")

        assert [room.room_id for room in rooms] == ["PROP1001-R1"]
        assert [bed.bed_id for bed in beds] == ["PROP1001-R1-B2"]

    def test_room_overview(self, space_service, assignment_service, double_room_property):
        assignment_service.assign_tenant(
            {
                "landlord_id": LANDLORD,
                "property_id": "PROP1001",
                "room_id": "PROP1001-R1",
                "bed_id": "PROP1001-R1-B1",
                "tenant": tenant_payload(1, name="Asha"),
            }
        )

        overview = space_service.get_room_overview(LANDLORD, "PROP1001")

        room = overview[0]
        assert room.has_capacity is True
        assert room.remaining == 1
        assert room.occupied == 1
        assert [bed.bed_id for bed in room.beds] == ["PROP1001-R1-B2", "PROP1001-R1-B1"]
        assert room.beds[1].occupant_names == ["Asha"]

    def test_room_overview_is_owner_only(self, space_service, double_room_property):
        with pytest.raises(ForbiddenException):
            space_service.get_room_overview(OTHER_LANDLORD, "PROP1001")

    def test_available_properties(self, space_service, double_room_property):
        space_service.create_property(
            {
                "landlord_id": OTHER_LANDLORD,
                "name": "Closed",
                "rooms": [{"type": "PG", "beds": [{"price": 100, "status": "Maintenance"}]}],
            }
        )

        listing = space_service.list_available_properties()

        assert [p.property_id for p in listing] == ["PROP1001"]
        assert listing[0].available_rooms == 1
        assert listing[0].starting_price == 4000
        assert space_service.list_available_properties(OTHER_LANDLORD) == []
