"""
Контекст жильцов: жильцы и история их проживания.
"""

from .domain import (
    Accommodation,
    AccommodationTerms,
    AgreementType,
    RentalFrequency,
    RentDateOption,
    Tenant,
)

__all__ = [
    "Tenant",
    "Accommodation",
    "AccommodationTerms",
    "AgreementType",
    "RentDateOption",
    "RentalFrequency",
]
