"""
Интерфейсы (порты) для контекста жильцов.
"""
from abc import abstractmethod
from typing import List, Optional, Protocol

from ..shared_kernel.interfaces import ICacheInvalidator, IEventPublisher, ILogger
from .domain import Tenant

__all__ = ["ITenantRepository", "ICacheInvalidator", "IEventPublisher", "ILogger"]


class ITenantRepository(Protocol):
    """Репозиторий жильцов.

    Документ жильца содержит всю историю проживания.
    """

    @abstractmethod
    def get(self, ref: str) -> Optional[Tenant]:
        """Возвращает копию жильца по UUID или tenant_id."""
        ...

    @abstractmethod
    def find_by_legal_id(self, legal_id: str) -> Optional[Tenant]:
        """Находит жильца по номеру документа."""
        ...

    @abstractmethod
    def find_by_mobile(self, mobile: str) -> Optional[Tenant]:
        """Находит жильца по номеру телефона."""
        ...

    @abstractmethod
    def find_active_in_property(self, property_id: str) -> List[Tenant]:
        """Жильцы с активным проживанием в объекте."""
        ...

    @abstractmethod
    def add(self, tenant: Tenant) -> None:
        """Добавляет жильца. Номер документа и телефон должны быть уникальны."""
        ...

    @abstractmethod
    def save(self, tenant: Tenant, expected_version: Optional[int] = None) -> int:
        """Сохраняет жильца, если его версия не изменилась."""
        ...
