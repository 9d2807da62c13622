"""
Инфраструктура общего ядра.

Логгер поверх стандартного logging, шина событий в памяти и
версионированные хранилища документов (в памяти и в JSON-файле).
"""
import json
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from . import interfaces as ports
from .domain import ConcurrencyException, ConflictException, DomainEvent

T = TypeVar("T", bound=BaseModel)

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Настраивает корневой обработчик один раз."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
    else:
        root.setLevel(level.upper())


class StdLogger(ports.ILogger):
    """Реализация логгера поверх модуля logging.

    Контекст выводится в конце сообщения: ``message | Context: {...}``.
    """

    def __init__(self, name: str = "rentspace"):
        self._logger = logging.getLogger(name)

    def _render(self, message: str, context: dict) -> str:
        if not context:
            return message
        return f"{message} | Context: {json.dumps(context, default=str, ensure_ascii=False)}"

    def debug(self, message: str, **kwargs) -> None:
        self._logger.debug(self._render(message, kwargs))

    def info(self, message: str, **kwargs) -> None:
        self._logger.info(self._render(message, kwargs))

    def warning(self, message: str, **kwargs) -> None:
        self._logger.warning(self._render(message, kwargs))

    def error(self, message: str, **kwargs) -> None:
        self._logger.error(self._render(message, kwargs))


class InMemoryEventBus(ports.IEventPublisher):
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], list] = {}
        self._logger = logger or StdLogger("rentspace.events")

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        event_type = type(event)
        if event_type not in self._subscribers:
            self._logger.debug(f"No subscribers for event type {event_type.__name__}")
            return

        self._logger.info(
            f"Publishing event: {event_type.__name__}",
            event=event.model_dump(mode="json"),
        )

        for handler in self._subscribers[event_type]:
            try:
                handler(event)
            except Exception as e:
                # Ошибка подписчика не отменяет уже зафиксированные записи
                self._logger.error(
                    f"Error in event handler for {event_type.__name__}",
                    error=str(e),
                    event=event.model_dump(mode="json"),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler) -> None:
        """Подписывает обработчик на события указанного типа."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class InMemoryDocumentStore(Generic[T]):
    """Хранилище документов-агрегатов с оптимистичной блокировкой.

    Каждый документ несет поле ``version``. Запись выполняется как
    compare-and-swap: сохраненная версия должна совпасть с ожидаемой,
    иначе ``ConcurrencyException``. Чтение возвращает отсоединенную копию,
    поэтому читатели не блокируют писателей.
    """

    def __init__(self, key: Callable[[T], str], label: str):
        self._key = key
        self._label = label
        self._documents: Dict[str, T] = {}
        self._lock = threading.RLock()

    @property
    def lock(self):
        """Блокировка для составных проверок (например, уникальности) вместе с записью."""
        return self._lock

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            document = self._documents.get(key)
            return document.model_copy(deep=True) if document is not None else None

    def values(self) -> List[T]:
        with self._lock:
            return [doc.model_copy(deep=True) for doc in self._documents.values()]

    def insert(self, document: T) -> None:
        """Добавляет новый документ с версией 1."""
        key = self._key(document)
        with self._lock:
            if key in self._documents:
                raise ConflictException(
                    f"{self._label} с идентификатором {key} уже существует",
                    details={"key": key},
                )
            document.version = 1
            self._documents[key] = self._detach(document)
            self._persist()

    def compare_and_swap(self, document: T, expected_version: int) -> int:
        """Заменяет документ, если его версия не изменилась с момента чтения."""
        key = self._key(document)
        with self._lock:
            stored = self._documents.get(key)
            if stored is None:
                raise ConcurrencyException(
                    f"{self._label} {key} был удален другим запросом",
                    details={"key": key, "expected_version": expected_version},
                )
            if stored.version != expected_version:
                raise ConcurrencyException(
                    f"{self._label} {key} изменен другим запросом",
                    details={
                        "key": key,
                        "expected_version": expected_version,
                        "actual_version": stored.version,
                    },
                )
            document.version = expected_version + 1
            self._documents[key] = self._detach(document)
            self._persist()
            return document.version

    @staticmethod
    def _detach(document: T) -> T:
        # Через сериализацию: несохраненные доменные события не попадают в хранилище
        return type(document).model_validate(document.model_dump())

    def _persist(self) -> None:
        """Точка расширения для долговременных хранилищ."""


class JsonFileDocumentStore(InMemoryDocumentStore[T]):
    """Хранилище документов в JSON-файле (один массив на тип агрегата)."""

    def __init__(
        self,
        file_path: str,
        model_class: Type[T],
        key: Callable[[T], str],
        label: str,
    ):
        """
        Инициализирует хранилище.

        Args:
            file_path: Путь к JSON-файлу с данными
            model_class: Класс модели данных
            key: Функция, возвращающая ключ документа
            label: Название типа документа для сообщений об ошибках
        """
        super().__init__(key=key, label=label)
        self._file_path = Path(file_path)
        self._model_class = model_class
        self._load_data()

    def _load_data(self) -> None:
        """Загружает данные из JSON-файла."""
        if not self._file_path.exists():
            return

        raw_data = self._file_path.read_text(encoding="utf-8")
        if not raw_data.strip():
            return

        for item in json.loads(raw_data):
            document = self._model_class.model_validate(item)
            self._documents[self._key(document)] = document

    def _persist(self) -> None:
        """Сохраняет данные в JSON-файл."""
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

        data = [doc.model_dump(mode="json") for doc in self._documents.values()]

        # Пишем во временный файл и заменяем, чтобы не оставить файл наполовину
        tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self._file_path)
