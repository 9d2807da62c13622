"""
Выдача идентификаторов.

Идентификатор объекта недвижимости берется из атомарного счетчика,
идентификаторы комнат и кроватей выводятся из родителя и порядкового
номера.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .interfaces import ICounterRepository

PROPERTY_COUNTER = "propertyId"


def property_id(prefix: str, number: int) -> str:
    return f"{prefix}{number}"


def room_id(property_id: str, ordinal: int) -> str:
    """``{propertyId}-R{n}``, n начинается с 1."""
    return f"{property_id}-R{ordinal}"


def bed_id(room_id: str, ordinal: int) -> str:
    """``{roomId}-B{n}``, n начинается с 1."""
    return f"{room_id}-B{ordinal}"


class IdentifierAllocator:
    """Выдает монотонно растущие идентификаторы объектов недвижимости."""

    def __init__(
        self,
        counters: "ICounterRepository",
        prefix: str = "PROP",
        start: int = 1000,
    ):
        self._counters = counters
        self._prefix = prefix
        self._start = start

    @property
    def prefix(self) -> str:
        return self._prefix

    def next_property_id(self) -> str:
        # Счетчик хранит последнее выданное значение, начиная со start
        value = self._counters.increment(PROPERTY_COUNTER, start=self._start)
        return property_id(self._prefix, value)

    def is_allocated_format(self, value: str) -> bool:
        return value.startswith(self._prefix)
