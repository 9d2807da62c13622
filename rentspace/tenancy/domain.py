"""
Доменная модель контекста жильцов.

Accommodation - источник истины о проживании. Жилец может иметь
активные записи в разных объектах и комнатах, но не две активные
записи в одной комнате.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..shared_kernel import (
    DomainValidationException,
    EntityId,
    NotFoundException,
    now,
    short_token,
    today,
)


class AgreementType(str, Enum):
    """Единица срока договора."""

    MONTHS = "months"
    YEARS = "years"


class RentDateOption(str, Enum):
    """Как определяется день оплаты."""

    FIXED = "fixed"  # День из rent_on_date
    JOINING = "joining"  # День заселения
    MONTH_END = "month_end"  # Последний день месяца


class RentalFrequency(str, Enum):
    """Периодичность оплаты."""

    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    HALF_YEARLY = "Half-Yearly"
    YEARLY = "Yearly"


class AccommodationTerms(BaseModel):
    """Условия проживания. Сохраняются как переданы, счета здесь не считаются."""

    rent_amount: Optional[float] = Field(None, ge=0)  # Пусто - цена кровати или комнаты
    security_deposit: Optional[float] = Field(None, ge=0)
    notice_period: Optional[int] = Field(None, ge=0)  # Дней
    agreement_period: Optional[int] = Field(None, gt=0)
    agreement_type: AgreementType = AgreementType.MONTHS
    rent_on_date: Optional[int] = Field(None, ge=1, le=31)
    rent_date_option: RentDateOption = RentDateOption.FIXED
    rental_frequency: RentalFrequency = RentalFrequency.MONTHLY
    referred_by: Optional[str] = None
    remarks: Optional[str] = None
    booked_by: Optional[str] = None
    move_in_date: Optional[date] = None


class Accommodation(BaseModel):
    """Запись о проживании жильца в комнате или на кровати."""

    id: EntityId = Field(default_factory=uuid4)
    landlord_id: str
    property_id: str
    room_id: str
    bed_id: str = ""  # Пустая строка, если комната сдана целиком
    is_active: bool = True
    move_in_date: date = Field(default_factory=today)
    move_out_date: Optional[date] = None
    rent_amount: float = Field(0, ge=0)
    security_deposit: Optional[float] = None
    notice_period: Optional[int] = None
    agreement_period: Optional[int] = None
    agreement_type: AgreementType = AgreementType.MONTHS
    rent_on_date: Optional[int] = None
    rent_date_option: RentDateOption = RentDateOption.FIXED
    rental_frequency: RentalFrequency = RentalFrequency.MONTHLY
    referred_by: Optional[str] = None
    remarks: Optional[str] = None
    booked_by: Optional[str] = None
    local_tenant_id: str = ""
    pending_dues: float = 0
    monthly_collection: float = 0
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    @field_validator("bed_id", mode="before")
    @classmethod
    def none_bed_is_empty(cls, v):
        return v or ""

    def in_room(self, property_id: str, room_id: str) -> bool:
        return self.property_id == property_id and self.room_id == room_id

    def deactivate(self, move_out_date: Optional[date] = None) -> None:
        self.is_active = False
        self.move_out_date = move_out_date or today()
        self.updated_at = now()


def local_tenant_id(landlord_id: str) -> str:
    """Идентификатор жильца в пространстве арендодателя."""
    return f"L-{landlord_id}-{short_token(6)}"


class Tenant(BaseModel):
    """Жилец (корень агрегата)."""

    id: EntityId = Field(default_factory=uuid4)
    tenant_id: str
    name: str
    legal_id: str  # Номер документа (например, Aadhaar)
    mobile: str
    email: Optional[str] = None
    accommodations: List[Accommodation] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 0

    @classmethod
    def register(
        cls,
        name: str,
        legal_id: str,
        mobile: str,
        email: Optional[str] = None,
    ) -> "Tenant":
        missing = [
            field
            for field, value in (("name", name), ("legal_id", legal_id), ("mobile", mobile))
            if not value or not value.strip()
        ]
        if missing:
            raise DomainValidationException(
                "Не заполнены обязательные поля жильца", details={"missing": missing}
            )
        return cls(
            tenant_id=f"TENANT-{short_token()}",
            name=name.strip(),
            legal_id=legal_id.strip(),
            mobile=mobile.strip(),
            email=email,
        )

    def matches(self, ref) -> bool:
        return self.tenant_id == str(ref) or str(self.id) == str(ref)

    @property
    def active_accommodations(self) -> List[Accommodation]:
        return [acc for acc in self.accommodations if acc.is_active]

    def find_active(
        self, property_id: str, room_id: str, bed_id: Optional[str] = None
    ) -> Optional[Accommodation]:
        """Активная запись в комнате; если указана кровать, то и на ней."""
        for acc in self.active_accommodations:
            if not acc.in_room(property_id, room_id):
                continue
            if bed_id and acc.bed_id != bed_id:
                continue
            return acc
        return None

    def open_accommodation(
        self,
        landlord_id: str,
        property_id: str,
        room_id: str,
        bed_id: str,
        rent_amount: float,
        terms: AccommodationTerms,
    ) -> Tuple[Accommodation, Optional[Accommodation]]:
        """Открывает новую запись о проживании.

        Прежняя активная запись в той же комнате закрывается
        (переселение на другую кровать).

        Returns:
            Новая запись и закрытая прежняя (если была)
        """
        previous = self.find_active(property_id, room_id)
        if previous is not None:
            previous.deactivate(terms.move_in_date)

        accommodation = Accommodation(
            landlord_id=landlord_id,
            property_id=property_id,
            room_id=room_id,
            bed_id=bed_id,
            move_in_date=terms.move_in_date or today(),
            rent_amount=rent_amount,
            security_deposit=terms.security_deposit,
            notice_period=terms.notice_period,
            agreement_period=terms.agreement_period,
            agreement_type=terms.agreement_type,
            rent_on_date=terms.rent_on_date,
            rent_date_option=terms.rent_date_option,
            rental_frequency=terms.rental_frequency,
            referred_by=terms.referred_by,
            remarks=terms.remarks,
            booked_by=terms.booked_by,
            local_tenant_id=local_tenant_id(landlord_id),
        )
        self.accommodations.append(accommodation)
        self.updated_at = now()
        return accommodation, previous

    def close_accommodation(
        self,
        property_id: str,
        room_id: str,
        bed_id: Optional[str] = None,
        move_out_date: Optional[date] = None,
    ) -> Accommodation:
        accommodation = self.find_active(property_id, room_id, bed_id)
        if accommodation is None:
            raise NotFoundException(
                f"У жильца {self.tenant_id} нет активного проживания в комнате {room_id}",
                details={
                    "tenant_id": self.tenant_id,
                    "property_id": property_id,
                    "room_id": room_id,
                    "bed_id": bed_id or "",
                },
            )
        accommodation.deactivate(move_out_date)
        self.updated_at = now()
        return accommodation
