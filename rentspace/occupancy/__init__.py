"""
Контекст заселения: согласованные изменения объекта и жильца.
"""

from .domain import TenantAssigned, TenantMovedOut

__all__ = ["TenantAssigned", "TenantMovedOut"]
