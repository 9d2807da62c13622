"""
Инфраструктурный слой контекста жилого пространства.

Реализации репозиториев объектов недвижимости и счетчиков.
"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional

from redis import Redis

from ..shared_kernel import ConflictException
from ..shared_kernel.infrastructure import InMemoryDocumentStore, JsonFileDocumentStore
from . import interfaces as ports
from .domain import Property, Ref


class InMemoryPropertyRepository(ports.IPropertyRepository):
    """Реализация репозитория объектов в памяти."""

    def __init__(self, store: Optional[InMemoryDocumentStore[Property]] = None):
        # Ключ хранения - UUID, он не меняется при стандартизации идентификаторов
        self._store = store or InMemoryDocumentStore(
            key=lambda prop: str(prop.id), label="Объект недвижимости"
        )

    def get(self, ref: Ref) -> Optional[Property]:
        prop = self._store.get(str(ref))
        if prop is not None:
            return prop
        return next(
            (p for p in self._store.values() if p.property_id == str(ref)), None
        )

    def find_by_landlord(self, landlord_id: str) -> List[Property]:
        return [p for p in self._store.values() if p.landlord_id == landlord_id]

    def list_all(self) -> List[Property]:
        return self._store.values()

    def add(self, prop: Property) -> None:
        if any(p.property_id == prop.property_id for p in self._store.values()):
            raise ConflictException(
                f"Объект {prop.property_id} уже существует",
                details={"property_id": prop.property_id},
            )
        self._store.insert(prop)

    def save(self, prop: Property, expected_version: Optional[int] = None) -> int:
        if expected_version is None:
            expected_version = prop.version
        return self._store.compare_and_swap(prop, expected_version)


class JsonFilePropertyRepository(InMemoryPropertyRepository):
    """Репозиторий объектов в JSON-файле."""

    def __init__(self, file_path: str):
        super().__init__(
            store=JsonFileDocumentStore(
                file_path=file_path,
                model_class=Property,
                key=lambda prop: str(prop.id),
                label="Объект недвижимости",
            )
        )


class InMemoryCounterRepository(ports.ICounterRepository):
    """Счетчики в памяти процесса (для тестов и одного экземпляра)."""

    def __init__(self):
        self._values: Dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, start: int = 0) -> int:
        with self._lock:
            value = self._values.get(name, start) + 1
            self._values[name] = value
            return value


class JsonFileCounterRepository(ports.ICounterRepository):
    """Счетчики в JSON-файле; увеличение и запись под одной блокировкой."""

    def __init__(self, file_path: str):
        self._file_path = Path(file_path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, int]:
        if not self._file_path.exists():
            return {}
        raw = self._file_path.read_text(encoding="utf-8")
        return json.loads(raw) if raw.strip() else {}

    def increment(self, name: str, start: int = 0) -> int:
        with self._lock:
            values = self._load()
            value = values.get(name, start) + 1
            values[name] = value
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2)
            return value


class RedisCounterRepository(ports.ICounterRepository):
    """Счетчики в Redis: INCR атомарен для всех экземпляров приложения."""

    def __init__(self, client: Redis, namespace: str = "counter"):
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterRepository":
        return cls(Redis.from_url(url, decode_responses=True))

    def increment(self, name: str, start: int = 0) -> int:
        key = f"{self._namespace}:{name}"
        # SETNX задает начальное значение только для нового счетчика
        self._client.setnx(key, start)
        return int(self._client.incr(key))
