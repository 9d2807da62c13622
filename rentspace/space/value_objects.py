"""
Объекты-значения контекста жилого пространства.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..shared_kernel import now


class SpaceStatus(str, Enum):
    """Статусы объекта недвижимости и комнаты."""

    AVAILABLE = "Available"
    PARTIALLY_AVAILABLE = "Partially Available"
    NOT_AVAILABLE = "Not Available"
    UNDER_MAINTENANCE = "Under Maintenance"  # Ручной статус
    RESERVED = "Reserved"  # Ручной статус


# Ручные статусы не перезаписываются автоматическим пересчетом
STICKY_STATUSES = frozenset({SpaceStatus.UNDER_MAINTENANCE, SpaceStatus.RESERVED})


class BedStatus(str, Enum):
    """Статусы кровати."""

    AVAILABLE = "Available"
    NOT_AVAILABLE = "Not Available"
    MAINTENANCE = "Maintenance"
    RESERVED = "Reserved"


class RoomType(str, Enum):
    """Типы комнат.

    Типы ``* Sharing`` задают вместимость напрямую, остальные
    ("именованные" категории) по умолчанию вмещают одного жильца.
    """

    SINGLE_SHARING = "Single Sharing"
    DOUBLE_SHARING = "Double Sharing"
    TRIPLE_SHARING = "Triple Sharing"
    FOUR_SHARING = "Four Sharing"
    FIVE_SHARING = "Five Sharing"
    SIX_SHARING = "Six Sharing"
    MORE_THAN_SIX_SHARING = "More Than 6 Sharing"
    PRIVATE_ROOM = "Private Room"
    SHARED_ROOM = "Shared Room"
    COUPLE = "Couple"
    FAMILY = "Family"
    MALE_ONLY = "Male Only"
    FEMALE_ONLY = "Female Only"
    UNISEX = "Unisex"
    STUDENT_ONLY = "Student Only"
    WORKING_PROFESSIONALS_ONLY = "Working Professionals Only"
    PG = "PG"
    AC = "AC"


class EntityKind(str, Enum):
    """Уровень иерархии, к которому относится статус."""

    PROPERTY = "property"
    ROOM = "room"
    BED = "bed"


class TenantStub(BaseModel):
    """Денормализованная копия жильца на кровати или в комнате.

    Не является источником истины: за факт проживания отвечает
    Accommodation в контексте жильцов.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    name: str
    mobile: Optional[str] = None
    assigned_at: datetime = Field(default_factory=now)
