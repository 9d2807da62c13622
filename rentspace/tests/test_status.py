"""
Тесты пересчета статусов: кровати -> комната -> объект.
"""

import pytest

from rentspace.space.domain import Bed, Property, Room
from rentspace.space.status import recompute_property, recompute_room
from rentspace.space.value_objects import BedStatus, RoomType, SpaceStatus, TenantStub


def make_room(*bed_statuses: BedStatus, room_id: str = "P-R1") -> Room:
    return Room(
        room_id=room_id,
        name=room_id,
        type=RoomType.SIX_SHARING,
        beds=[
            Bed(bed_id=f"{room_id}-B{i}", name=f"Bed {i}", status=status)
            for i, status in enumerate(bed_statuses, start=1)
        ],
    )


def make_property(*room_statuses: SpaceStatus) -> Property:
    prop = Property.create(property_id="P", landlord_id="LL-1", name="P")
    for i, status in enumerate(room_statuses, start=1):
        prop.rooms.append(
            Room(room_id=f"P-R{i}", name=f"R{i}", type=RoomType.PG, status=status)
        )
    return prop


A = BedStatus.AVAILABLE
N = BedStatus.NOT_AVAILABLE
M = BedStatus.MAINTENANCE


class TestRecomputeRoom:
    @pytest.mark.parametrize(
        "beds,expected",
        [
            ((A, A), SpaceStatus.AVAILABLE),
            ((A, N), SpaceStatus.PARTIALLY_AVAILABLE),
            ((N, N), SpaceStatus.NOT_AVAILABLE),
            ((M, N), SpaceStatus.NOT_AVAILABLE),
            ((A, M, N), SpaceStatus.PARTIALLY_AVAILABLE),
        ],
    )
    def test_rules(self, beds, expected):
        room = make_room(*beds)
        room.status = SpaceStatus.RESERVED

        recompute_room(room)

        assert room.status == expected

    def test_not_available_iff_no_available_bed(self):
        room = make_room(N, M, BedStatus.RESERVED)

        recompute_room(room)

        assert room.status == SpaceStatus.NOT_AVAILABLE

    def test_bedless_room_is_left_alone(self):
        room = Room(
            room_id="P-R1",
            name="R1",
            type=RoomType.SINGLE_SHARING,
            status=SpaceStatus.NOT_AVAILABLE,
            tenants=[TenantStub(tenant_id="T1", name="C")],
        )

        assert recompute_room(room) is False
        assert room.status == SpaceStatus.NOT_AVAILABLE

    def test_idempotent(self):
        room = make_room(A, N)

        assert recompute_room(room) is True
        stamp = room.status_updated_at

        assert recompute_room(room) is False
        assert room.status == SpaceStatus.PARTIALLY_AVAILABLE
        assert room.status_updated_at == stamp

    def test_manual_override_is_respected(self):
        room = make_room(A, A)
        room.status = SpaceStatus.UNDER_MAINTENANCE
        room.manual_override = True

        assert recompute_room(room) is False
        assert room.status == SpaceStatus.UNDER_MAINTENANCE


class TestRecomputeProperty:
    @pytest.mark.parametrize(
        "rooms,expected",
        [
            ((SpaceStatus.AVAILABLE, SpaceStatus.AVAILABLE), SpaceStatus.AVAILABLE),
            (
                (SpaceStatus.AVAILABLE, SpaceStatus.NOT_AVAILABLE),
                SpaceStatus.PARTIALLY_AVAILABLE,
            ),
            (
                (SpaceStatus.PARTIALLY_AVAILABLE, SpaceStatus.NOT_AVAILABLE),
                SpaceStatus.PARTIALLY_AVAILABLE,
            ),
            (
                (SpaceStatus.NOT_AVAILABLE, SpaceStatus.UNDER_MAINTENANCE),
                SpaceStatus.NOT_AVAILABLE,
            ),
            ((SpaceStatus.RESERVED,), SpaceStatus.NOT_AVAILABLE),
        ],
    )
    def test_rules(self, rooms, expected):
        prop = make_property(*rooms)

        recompute_property(prop)

        assert prop.status == expected

    def test_available_iff_every_room_available(self):
        prop = make_property(SpaceStatus.AVAILABLE, SpaceStatus.PARTIALLY_AVAILABLE)

        recompute_property(prop)

        assert prop.status != SpaceStatus.AVAILABLE

    def test_property_without_rooms_keeps_status(self):
        prop = make_property()
        prop.status = SpaceStatus.NOT_AVAILABLE

        assert recompute_property(prop) is False
        assert prop.status == SpaceStatus.NOT_AVAILABLE

    def test_idempotent(self):
        prop = make_property(SpaceStatus.NOT_AVAILABLE)

        assert recompute_property(prop) is True
        assert recompute_property(prop) is False


class TestStickyManualStatus:
    """Ручной статус держится до следующего изменения в той же комнате."""

    @pytest.fixture
    def prop(self):
        prop = Property.create(property_id="P", landlord_id="LL-1", name="P")
        prop.add_room(RoomType.DOUBLE_SHARING, beds=[{"price": 100}, {"price": 100}])
        prop.add_room(RoomType.SINGLE_SHARING, beds=[{"price": 200}])
        return prop

    def test_sibling_change_does_not_overwrite(self, prop):
        prop.set_room_status("P-R2", SpaceStatus.UNDER_MAINTENANCE, notes="Покраска")

        prop.occupy_bed("P-R1", "P-R1-B1", TenantStub(tenant_id="T1", name="A"))

        room = prop.get_room("P-R2")
        assert room.status == SpaceStatus.UNDER_MAINTENANCE
        assert room.manual_override is True
        assert room.status_notes == "Покраска"
        assert prop.status == SpaceStatus.PARTIALLY_AVAILABLE

    def test_bed_mutation_in_room_clears_override(self, prop):
        prop.set_room_status("P-R2", SpaceStatus.RESERVED)

        prop.set_bed_status("P-R2", "P-R2-B1", BedStatus.MAINTENANCE)

        room = prop.get_room("P-R2")
        assert room.manual_override is False
        assert room.status == SpaceStatus.NOT_AVAILABLE

    def test_non_sticky_manual_status_is_recomputed(self, prop):
        prop.set_room_status("P-R1", SpaceStatus.NOT_AVAILABLE)

        room = prop.get_room("P-R1")
        assert room.manual_override is False
        assert room.status == SpaceStatus.AVAILABLE

    def test_property_override_survives_structure_change(self, prop):
        prop.set_property_status(SpaceStatus.RESERVED)

        prop.add_room(RoomType.PG)

        assert prop.status == SpaceStatus.RESERVED

    def test_occupancy_event_clears_property_override(self, prop):
        prop.set_property_status(SpaceStatus.UNDER_MAINTENANCE)

        prop.occupy_bed("P-R1", "P-R1-B1", TenantStub(tenant_id="T1", name="A"))

        assert prop.manual_override is False
        assert prop.status == SpaceStatus.PARTIALLY_AVAILABLE
