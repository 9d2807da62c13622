"""
Инфраструктурный слой контекста жильцов.
"""

from typing import List, Optional

from ..shared_kernel import ConflictException
from ..shared_kernel.infrastructure import InMemoryDocumentStore, JsonFileDocumentStore
from . import interfaces as ports
from .domain import Tenant


class InMemoryTenantRepository(ports.ITenantRepository):
    """Реализация репозитория жильцов в памяти.

    Уникальность tenant_id, номера документа и телефона проверяется
    под той же блокировкой, что и запись.
    """

    def __init__(self, store: Optional[InMemoryDocumentStore[Tenant]] = None):
        self._store = store or InMemoryDocumentStore(
            key=lambda tenant: str(tenant.id), label="Жилец"
        )

    def get(self, ref: str) -> Optional[Tenant]:
        tenant = self._store.get(str(ref))
        if tenant is not None:
            return tenant
        return next((t for t in self._store.values() if t.tenant_id == str(ref)), None)

    def find_by_legal_id(self, legal_id: str) -> Optional[Tenant]:
        return next((t for t in self._store.values() if t.legal_id == legal_id), None)

    def find_by_mobile(self, mobile: str) -> Optional[Tenant]:
        return next((t for t in self._store.values() if t.mobile == mobile), None)

    def find_active_in_property(self, property_id: str) -> List[Tenant]:
        return [
            t
            for t in self._store.values()
            if any(acc.property_id == property_id for acc in t.active_accommodations)
        ]

    def _check_unique(self, tenant: Tenant) -> None:
        for other in self._store.values():
            if other.id == tenant.id:
                continue
            for field in ("tenant_id", "legal_id", "mobile"):
                if getattr(other, field) == getattr(tenant, field):
                    raise ConflictException(
                        f"Жилец с таким значением {field} уже существует",
                        details={"field": field, "tenant_id": other.tenant_id},
                    )

    def add(self, tenant: Tenant) -> None:
        with self._store.lock:
            self._check_unique(tenant)
            self._store.insert(tenant)

    def save(self, tenant: Tenant, expected_version: Optional[int] = None) -> int:
        if expected_version is None:
            expected_version = tenant.version
        with self._store.lock:
            self._check_unique(tenant)
            return self._store.compare_and_swap(tenant, expected_version)


class JsonFileTenantRepository(InMemoryTenantRepository):
    """Репозиторий жильцов в JSON-файле."""

    def __init__(self, file_path: str):
        super().__init__(
            store=JsonFileDocumentStore(
                file_path=file_path,
                model_class=Tenant,
                key=lambda tenant: str(tenant.id),
                label="Жилец",
            )
        )
