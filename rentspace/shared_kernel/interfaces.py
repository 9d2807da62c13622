"""
Общие порты, которые используют все контексты.
"""

from abc import abstractmethod
from typing import Iterable, Protocol

from .domain import DomainEvent


class ILogger(Protocol):
    """Абстракция для логирования."""

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """Записывает отладочное сообщение."""
        ...

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """Записывает информационное сообщение."""
        ...

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """Записывает предупреждение."""
        ...

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """Записывает сообщение об ошибке."""
        ...


class IEventPublisher(Protocol):
    """Абстракция для публикации доменных событий."""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        ...


class ICacheInvalidator(Protocol):
    """Сигнал внешнему кэшу о том, что данные по ключам устарели."""

    @abstractmethod
    def invalidate(self, keys: Iterable[str]) -> None:
        """Сбрасывает ключи кэша."""
        ...
