"""
Ключи кэша чтения и адаптеры инвалидации.

Ядро не владеет кэшем, оно только сообщает, какие ключи устарели
после успешной записи.
"""

from typing import Iterable, List, Optional

from redis import Redis, RedisError

from . import interfaces as ports
from .infrastructure import StdLogger


def property_key(property_id: str) -> str:
    return f"property:{property_id}"


def landlord_properties_key(landlord_id: str) -> str:
    return f"properties:{landlord_id}"


def property_tenants_key(property_id: str) -> str:
    return f"property:tenants:{property_id}"


def landlord_tenants_key(landlord_id: str) -> str:
    return f"landlord:tenants:{landlord_id}"


def tenant_key(tenant_id: str) -> str:
    return f"tenant:{tenant_id}"


def space_keys(property_id: str, landlord_id: str) -> List[str]:
    """Ключи, которые сбрасываются после любого изменения объекта."""
    return [property_key(property_id), landlord_properties_key(landlord_id)]


def occupancy_keys(property_id: str, landlord_id: str, tenant_id: str) -> List[str]:
    """Ключи, которые сбрасываются после заселения или выселения."""
    return space_keys(property_id, landlord_id) + [
        property_tenants_key(property_id),
        landlord_tenants_key(landlord_id),
        tenant_key(tenant_id),
    ]


class NullCacheInvalidator(ports.ICacheInvalidator):
    """Кэша нет, сбрасывать нечего."""

    def invalidate(self, keys: Iterable[str]) -> None:
        return None


class RecordingCacheInvalidator(ports.ICacheInvalidator):
    """Запоминает сброшенные ключи (для тестов и отладки)."""

    def __init__(self):
        self.invalidated: List[str] = []

    def invalidate(self, keys: Iterable[str]) -> None:
        self.invalidated.extend(keys)


class RedisCacheInvalidator(ports.ICacheInvalidator):
    """Сбрасывает ключи в Redis командой DEL.

    Ошибка Redis не отменяет уже выполненную запись: она логируется,
    устаревшая запись кэша истечет по TTL.
    """

    def __init__(self, client: Redis, logger: Optional[ports.ILogger] = None):
        self._client = client
        self._logger = logger or StdLogger("rentspace.cache")

    @classmethod
    def from_url(cls, url: str, logger: Optional[ports.ILogger] = None):
        return cls(Redis.from_url(url, decode_responses=True), logger=logger)

    def invalidate(self, keys: Iterable[str]) -> None:
        keys = list(dict.fromkeys(keys))
        if not keys:
            return
        try:
            self._client.delete(*keys)
        except RedisError as e:
            self._logger.error("Redis cache invalidation failed", keys=keys, error=str(e))
        else:
            self._logger.debug("Cache invalidated", keys=keys)
