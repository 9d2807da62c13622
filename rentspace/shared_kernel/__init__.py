"""
Общее ядро (Shared Kernel) для системы учета жилья и жильцов.

Содержит общие типы данных и утилиты, используемые в различных ограниченных контекстах.
"""

from .domain import (
    CapacityExceededException,
    ConcurrencyException,
    ConflictException,
    DomainEvent,
    # Исключения
    DomainException,
    DomainValidationException,
    # Базовые типы
    EntityId,
    ErrorKind,
    ForbiddenException,
    NotFoundException,
    PartialFailureException,
    generate_id,
    # Утилиты
    now,
    short_token,
    today,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "generate_id",
    "short_token",
    "DomainEvent",
    "ErrorKind",
    # Исключения
    "DomainException",
    "NotFoundException",
    "ForbiddenException",
    "ConflictException",
    "CapacityExceededException",
    "DomainValidationException",
    "ConcurrencyException",
    "PartialFailureException",
    # Утилиты
    "now",
    "today",
]
