"""
События заселения и выселения.

Несут все, что нужно внешнему биллингу для расчета начислений
(сумма аренды, даты заезда и выезда); сами счета здесь не считаются.
"""

from datetime import date
from typing import Optional

from ..shared_kernel import DomainEvent, EntityId


class TenantAssigned(DomainEvent):
    """Жилец заселен на кровать или в комнату."""

    tenant_id: str
    tenant_name: str
    landlord_id: str
    property_id: str
    room_id: str
    bed_id: str
    accommodation_id: EntityId
    rent_amount: float
    move_in_date: date
    previous_bed_id: Optional[str] = None  # Переселение внутри комнаты


class TenantMovedOut(DomainEvent):
    """Жилец выселен."""

    tenant_id: str
    landlord_id: str
    property_id: str
    room_id: str
    bed_id: str
    accommodation_id: EntityId
    rent_amount: float
    move_in_date: date
    move_out_date: date
