from typing import Any, Dict, Optional

from redis import Redis

from .config import Settings, get_settings
from .occupancy.application import AssignmentService
from .occupancy.reconciliation import ReconciliationService
from .shared_kernel.cache import NullCacheInvalidator, RedisCacheInvalidator
from .shared_kernel.infrastructure import InMemoryEventBus, StdLogger, configure_logging
from .space.application import SpaceApplicationService
from .space.identifiers import IdentifierAllocator
from .space.infrastructure import (
    InMemoryCounterRepository,
    InMemoryPropertyRepository,
    JsonFileCounterRepository,
    JsonFilePropertyRepository,
    RedisCounterRepository,
)
from .tenancy.application import TenantApplicationService
from .tenancy.infrastructure import InMemoryTenantRepository, JsonFileTenantRepository


def bootstrap_app(
    settings: Optional[Settings] = None, redis_client: Optional[Redis] = None
) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    logger = StdLogger("rentspace")

    # 1. Хранилища
    if settings.storage_backend == "json":
        properties = JsonFilePropertyRepository(str(settings.properties_file))
        tenants = JsonFileTenantRepository(str(settings.tenants_file))
        counters = JsonFileCounterRepository(str(settings.counters_file))
    else:
        properties = InMemoryPropertyRepository()
        tenants = InMemoryTenantRepository()
        counters = InMemoryCounterRepository()

    # 2. Redis заменяет счетчик и включает инвалидацию кэша
    if redis_client is None and settings.redis_url:
        redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
    if redis_client is not None:
        counters = RedisCounterRepository(redis_client)
        cache = RedisCacheInvalidator(redis_client, logger=logger)
    else:
        cache = NullCacheInvalidator()

    event_bus = InMemoryEventBus(logger=logger)
    allocator = IdentifierAllocator(
        counters,
        prefix=settings.property_id_prefix,
        start=settings.property_id_start,
    )

    # 3. Сервисы, общие зависимости передаются явно
    common = dict(
        event_publisher=event_bus,
        cache=cache,
        logger=logger,
        max_write_attempts=settings.max_write_attempts,
    )
    space_service = SpaceApplicationService(properties, allocator, **common)
    assignment_service = AssignmentService(properties, tenants, **common)
    reconciliation_service = ReconciliationService(properties, tenants, **common)
    tenant_service = TenantApplicationService(tenants, cache=cache, logger=logger)

    logger.info(
        "Приложение настроено",
        storage_backend=settings.storage_backend,
        redis=redis_client is not None,
    )

    return {
        "settings": settings,
        "event_bus": event_bus,
        "cache": cache,
        "properties": properties,
        "tenants": tenants,
        "space_service": space_service,
        "tenant_service": tenant_service,
        "assignment_service": assignment_service,
        "reconciliation_service": reconciliation_service,
    }
