"""
Основные доменные типы и утилиты общего ядра.
"""

import traceback
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# Общие типы идентификаторов
EntityId = UUID


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


def short_token(length: int = 9) -> str:
    """Возвращает короткий случайный токен для читаемых идентификаторов."""
    return uuid4().hex[:length]


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: now())
    event_type: str = ""

    def model_post_init(self, __context: Any) -> None:
        if not self.event_type:
            self.event_type = type(self).__name__


class ErrorKind(str, Enum):
    """Виды ошибок, которые видит вызывающая сторона."""

    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    CONFLICT = "Conflict"
    CAPACITY_EXCEEDED = "CapacityExceeded"
    VALIDATION_ERROR = "ValidationError"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    PARTIAL_FAILURE = "PartialFailure"


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(reason)
        self.reason = reason
        self.details = details or {}

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        """Представление ошибки для внешних слоев.

        Трассировка стека добавляется только в режиме отладки.
        """
        payload: Dict[str, Any] = {
            "kind": self.kind.value,
            "reason": self.reason,
            "details": dict(self.details),
        }
        if debug:
            payload["exception"] = type(self).__name__
            payload["traceback"] = "".join(
                traceback.format_exception(type(self), self, self.__traceback__)
            )
        return payload


class NotFoundException(DomainException):
    """Объект (объект недвижимости, комната, кровать, жилец) не найден."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenException(DomainException):
    """Арендодатель не владеет объектом недвижимости."""

    kind = ErrorKind.FORBIDDEN


class ConflictException(DomainException):
    """Место уже занято или удаляется занятое место."""

    kind = ErrorKind.CONFLICT


class CapacityExceededException(DomainException):
    """Достигнута вместимость комнаты."""

    kind = ErrorKind.CAPACITY_EXCEEDED


class DomainValidationException(DomainException):
    """Отсутствуют обязательные поля или передан неизвестный статус."""

    kind = ErrorKind.VALIDATION_ERROR


class ConcurrencyException(DomainException):
    """Исключение при конфликте версий."""

    kind = ErrorKind.CONCURRENCY_CONFLICT


class PartialFailureException(DomainException):
    """Запись в одном агрегате прошла, во втором - нет.

    Состояние требует сверки (см. ReconciliationService).
    """

    kind = ErrorKind.PARTIAL_FAILURE


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время (UTC)."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()
