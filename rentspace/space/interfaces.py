"""
Интерфейсы (порты) для контекста жилого пространства.

Определяет контракты, которые должны быть реализованы внешними адаптерами.
"""
from abc import abstractmethod
from typing import List, Optional, Protocol

from ..shared_kernel.interfaces import ICacheInvalidator, IEventPublisher, ILogger
from .domain import Property, Ref

__all__ = [
    "IPropertyRepository",
    "ICounterRepository",
    "ICacheInvalidator",
    "IEventPublisher",
    "ILogger",
]


class IPropertyRepository(Protocol):
    """Репозиторий объектов недвижимости.

    Документ объекта содержит все дерево комнат и кроватей.
    """

    @abstractmethod
    def get(self, ref: Ref) -> Optional[Property]:
        """Возвращает копию объекта по UUID или читаемому идентификатору."""
        ...

    @abstractmethod
    def find_by_landlord(self, landlord_id: str) -> List[Property]:
        """Находит все объекты арендодателя."""
        ...

    @abstractmethod
    def list_all(self) -> List[Property]:
        """Возвращает все объекты."""
        ...

    @abstractmethod
    def add(self, prop: Property) -> None:
        """Добавляет новый объект (версия становится 1)."""
        ...

    @abstractmethod
    def save(self, prop: Property, expected_version: Optional[int] = None) -> int:
        """Сохраняет объект, если его версия не изменилась.

        Raises:
            ConcurrencyException: если объект изменен другим запросом
        """
        ...


class ICounterRepository(Protocol):
    """Долговременный счетчик с атомарным увеличением."""

    @abstractmethod
    def increment(self, name: str, start: int = 0) -> int:
        """Увеличивает счетчик на 1 и возвращает новое значение.

        Отсутствующий счетчик считается равным ``start``.
        """
        ...
