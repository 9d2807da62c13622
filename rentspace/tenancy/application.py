"""
Прикладной слой контекста жильцов.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from ..shared_kernel import ConflictException, EntityId, NotFoundException
from ..shared_kernel.application import parse_request
from ..shared_kernel.cache import NullCacheInvalidator, tenant_key
from ..shared_kernel.infrastructure import StdLogger
from . import interfaces as ports
from .domain import Accommodation, Tenant

# DTO для входящих данных


class RegisterTenantRequest(BaseModel):
    """Данные нового жильца."""

    name: str = Field(..., min_length=1)
    legal_id: str = Field(..., min_length=1)
    mobile: str = Field(..., min_length=1)
    email: Optional[str] = None


# DTO для исходящих данных


class AccommodationDTO(BaseModel):
    """DTO записи о проживании."""

    id: EntityId
    tenant_id: str
    landlord_id: str
    property_id: str
    room_id: str
    bed_id: str
    is_active: bool
    move_in_date: date
    move_out_date: Optional[date]
    rent_amount: float
    security_deposit: Optional[float]
    notice_period: Optional[int]
    agreement_period: Optional[int]
    agreement_type: str
    rent_on_date: Optional[int]
    rent_date_option: str
    rental_frequency: str
    local_tenant_id: str
    pending_dues: float
    monthly_collection: float

    @classmethod
    def from_domain(cls, tenant_id: str, acc: Accommodation) -> "AccommodationDTO":
        """Создает DTO из доменной модели."""
        return cls(
            tenant_id=tenant_id,
            **acc.model_dump(
                include={
                    "id",
                    "landlord_id",
                    "property_id",
                    "room_id",
                    "bed_id",
                    "is_active",
                    "move_in_date",
                    "move_out_date",
                    "rent_amount",
                    "security_deposit",
                    "notice_period",
                    "agreement_period",
                    "rent_on_date",
                    "local_tenant_id",
                    "pending_dues",
                    "monthly_collection",
                }
            ),
            agreement_type=acc.agreement_type.value,
            rent_date_option=acc.rent_date_option.value,
            rental_frequency=acc.rental_frequency.value,
        )


class TenantDTO(BaseModel):
    """DTO жильца."""

    id: EntityId
    tenant_id: str
    name: str
    legal_id: str
    mobile: str
    email: Optional[str]
    accommodations: List[AccommodationDTO]
    created_at: datetime

    @classmethod
    def from_domain(cls, tenant: Tenant) -> "TenantDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=tenant.id,
            tenant_id=tenant.tenant_id,
            name=tenant.name,
            legal_id=tenant.legal_id,
            mobile=tenant.mobile,
            email=tenant.email,
            accommodations=[
                AccommodationDTO.from_domain(tenant.tenant_id, acc)
                for acc in tenant.accommodations
            ],
            created_at=tenant.created_at,
        )


class PropertyOccupantDTO(BaseModel):
    """Активный жилец объекта."""

    tenant_id: str
    name: str
    mobile: str
    room_id: str
    bed_id: str
    move_in_date: date
    rent_amount: float


# Сервисы приложения


class TenantApplicationService:
    """Сервис приложения для работы с жильцами."""

    def __init__(
        self,
        tenants: ports.ITenantRepository,
        cache: Optional[ports.ICacheInvalidator] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        self._tenants = tenants
        self._cache = cache or NullCacheInvalidator()
        self._logger = logger or StdLogger("rentspace.tenancy")

    def load(self, ref: str) -> Tenant:
        tenant = self._tenants.get(ref)
        if tenant is None:
            raise NotFoundException(
                f"Жилец {ref} не найден", details={"tenant_id": str(ref)}
            )
        return tenant

    def resolve(
        self, payload: Union[RegisterTenantRequest, Dict[str, Any]]
    ) -> Tuple[Tenant, bool]:
        """Находит жильца по номеру документа или готовит нового (без записи).

        Телефон, уже принадлежащий другому жильцу, - конфликт.

        Returns:
            Жилец и признак того, что он новый
        """
        request = parse_request(RegisterTenantRequest, payload)

        existing = self._tenants.find_by_legal_id(request.legal_id)
        owner_of_mobile = self._tenants.find_by_mobile(request.mobile)

        if owner_of_mobile is not None and (
            existing is None or owner_of_mobile.id != existing.id
        ):
            raise ConflictException(
                f"Телефон {request.mobile} уже принадлежит другому жильцу",
                details={"mobile": request.mobile, "tenant_id": owner_of_mobile.tenant_id},
            )

        if existing is not None:
            return existing, False

        return (
            Tenant.register(
                name=request.name,
                legal_id=request.legal_id,
                mobile=request.mobile,
                email=request.email,
            ),
            True,
        )

    def register_tenant(
        self, request: Union[RegisterTenantRequest, Dict[str, Any]]
    ) -> TenantDTO:
        """Регистрирует жильца без заселения."""
        try:
            tenant, is_new = self.resolve(request)
            if not is_new:
                raise ConflictException(
                    f"Жилец с документом {tenant.legal_id} уже зарегистрирован",
                    details={"tenant_id": tenant.tenant_id},
                )
            self._tenants.add(tenant)
            self._cache.invalidate([tenant_key(tenant.tenant_id)])
            self._logger.info("Жилец зарегистрирован", tenant_id=tenant.tenant_id)
            return TenantDTO.from_domain(tenant)
        except Exception as e:
            self._logger.error(f"Ошибка при регистрации жильца: {str(e)}")
            raise

    def get_tenant(self, ref: str) -> TenantDTO:
        return TenantDTO.from_domain(self.load(ref))

    def get_active_accommodations(self, ref: str) -> List[AccommodationDTO]:
        tenant = self.load(ref)
        return [
            AccommodationDTO.from_domain(tenant.tenant_id, acc)
            for acc in tenant.active_accommodations
        ]

    def list_property_occupants(self, property_id: str) -> List[PropertyOccupantDTO]:
        """Жильцы с активным проживанием в объекте."""
        occupants = []
        for tenant in self._tenants.find_active_in_property(property_id):
            for acc in tenant.active_accommodations:
                if acc.property_id != property_id:
                    continue
                occupants.append(
                    PropertyOccupantDTO(
                        tenant_id=tenant.tenant_id,
                        name=tenant.name,
                        mobile=tenant.mobile,
                        room_id=acc.room_id,
                        bed_id=acc.bed_id,
                        move_in_date=acc.move_in_date,
                        rent_amount=acc.rent_amount,
                    )
                )
        return occupants
