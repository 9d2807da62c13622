"""
Порты, которые использует оркестратор заселения.

Собственных хранилищ у контекста нет: он пишет в репозитории объектов
и жильцов в фиксированном порядке.
"""

from ..shared_kernel.interfaces import ICacheInvalidator, IEventPublisher, ILogger
from ..space.interfaces import IPropertyRepository
from ..tenancy.interfaces import ITenantRepository

__all__ = [
    "IPropertyRepository",
    "ITenantRepository",
    "ICacheInvalidator",
    "IEventPublisher",
    "ILogger",
]
