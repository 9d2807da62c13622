"""
Тесты сверки объекта с записями о проживании.
"""

import logging

import pytest

from rentspace.occupancy.application import AssignmentService
from rentspace.occupancy.reconciliation import ReconciliationService
from rentspace.shared_kernel import PartialFailureException
from rentspace.space.value_objects import BedStatus, SpaceStatus

from .conftest import LANDLORD, tenant_payload
from .test_assignment import FailingTenantRepository, assign_bed


def strip_stub(properties, bed_index=0):
    """Убирает копию жильца с кровати в обход сервиса."""
    prop = properties.get("PROP1001")
    bed = prop.rooms[0].beds[bed_index]
    prop.vacate("PROP1001-R1", bed.bed_id, bed.tenants[0].tenant_id)
    properties.save(prop)


class TestScan:
    def test_consistent_property(
        self, assignment_service, reconciliation_service, double_room_property
    ):
        assign_bed(assignment_service, "PROP1001-R1-B1", 1)

        report = reconciliation_service.scan("PROP1001")

        assert report.consistent
        assert report.occupied_space == 1

    def test_missing_stub(
        self, assignment_service, reconciliation_service, properties, caplog, double_room_property
    ):
        accommodation = assign_bed(assignment_service, "PROP1001-R1-B2", 1)
        strip_stub(properties, bed_index=1)
        caplog.set_level(logging.WARNING)

        report = reconciliation_service.scan("PROP1001")

        assert not report.consistent
        assert [(r.tenant_id, r.bed_id) for r in report.missing_stubs] == [
            (accommodation.tenant_id, "PROP1001-R1-B2")
        ]
        assert report.orphan_stubs == []
        assert "Обнаружены расхождения" in caplog.text

    def test_wrong_counter(self, reconciliation_service, properties, double_room_property):
        prop = properties.get("PROP1001")
        prop.occupied_space = 5
        properties.save(prop)

        report = reconciliation_service.scan("PROP1001")

        assert report.occupied_space == 5
        assert report.expected_occupied_space == 0
        assert not report.consistent


class TestRepair:
    def test_orphan_stub_after_partial_failure(self, properties, double_room_property):
        failing = FailingTenantRepository()
        failing.fail = True
        with pytest.raises(PartialFailureException):
            assign_bed(AssignmentService(properties, failing), "PROP1001-R1-B1", 1)

        result = ReconciliationService(properties, failing).repair("PROP1001")

        assert len(result.removed) == 1
        assert result.restored == []
        prop = properties.get("PROP1001")
        bed = prop.rooms[0].beds[0]
        assert bed.tenants == []
        assert bed.status == BedStatus.AVAILABLE
        assert prop.rooms[0].status == SpaceStatus.AVAILABLE
        assert prop.status == SpaceStatus.AVAILABLE
        assert prop.occupied_space == 0

    def test_missing_stub_is_restored(
        self, assignment_service, reconciliation_service, properties, double_room_property
    ):
        accommodation = assign_bed(assignment_service, "PROP1001-R1-B1", 1)
        strip_stub(properties)

        result = reconciliation_service.repair("PROP1001")

        assert [r.tenant_id for r in result.restored] == [accommodation.tenant_id]
        prop = properties.get("PROP1001")
        assert [s.tenant_id for s in prop.rooms[0].beds[0].tenants] == [
            accommodation.tenant_id
        ]
        assert prop.rooms[0].status == SpaceStatus.PARTIALLY_AVAILABLE
        assert prop.occupied_space == 1
        assert reconciliation_service.scan("PROP1001").consistent

    def test_taken_bed_is_unresolved(
        self, assignment_service, reconciliation_service, properties, double_room_property
    ):
        first = assign_bed(assignment_service, "PROP1001-R1-B1", 1)
        strip_stub(properties)
        assign_bed(assignment_service, "PROP1001-R1-B1", 2)

        result = reconciliation_service.repair("PROP1001")

        assert [r.tenant_id for r in result.unresolved] == [first.tenant_id]
        assert result.restored == []

    def test_counter_is_corrected(
        self, assignment_service, reconciliation_service, properties, cache, double_room_property
    ):
        assign_bed(assignment_service, "PROP1001-R1-B1", 1)
        prop = properties.get("PROP1001")
        prop.occupied_space = 7
        properties.save(prop)
        cache.invalidated.clear()

        reconciliation_service.repair("PROP1001")

        assert properties.get("PROP1001").occupied_space == 1
        assert f"properties:{LANDLORD}" in cache.invalidated

    def test_whole_room_orphan(self, properties, single_room_property):
        failing = FailingTenantRepository()
        failing.fail = True
        with pytest.raises(PartialFailureException):
            AssignmentService(properties, failing).assign_tenant(
                {
                    "landlord_id": LANDLORD,
                    "property_id": "PROP1001",
                    "room_id": "PROP1001-R1",
                    "tenant": tenant_payload(1),
                }
            )
        assert properties.get("PROP1001").rooms[0].status == SpaceStatus.NOT_AVAILABLE

        ReconciliationService(properties, failing).repair("PROP1001")

        prop = properties.get("PROP1001")
        assert prop.rooms[0].tenants == []
        assert prop.rooms[0].status == SpaceStatus.AVAILABLE
