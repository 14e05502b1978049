"""
Registration fee calculator and category rules (HP Homestay Rules 2025,
ANNEXURE-I).

Fees depend on the category the owner selects and the kind of local body
the property falls under. Discounts are percentages of the gross fee and
are additive, so a female owner in Pangi paying three years up front gets
10 + 5 + 50 = 65% off.
"""

import re
from dataclasses import dataclass, asdict, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.districts import normalize_district


class Category(str, Enum):
    DIAMOND = "diamond"
    GOLD = "gold"
    SILVER = "silver"


class LocationType(str, Enum):
    """Local body type: municipal corporation, town & country planning area, gram panchayat."""
    MC = "mc"
    TCP = "tcp"
    GP = "gp"


# Annual fee in rupees
ANNUAL_FEES = {
    Category.DIAMOND: {LocationType.MC: 18000, LocationType.TCP: 12000, LocationType.GP: 10000},
    Category.GOLD: {LocationType.MC: 12000, LocationType.TCP: 8000, LocationType.GP: 6000},
    Category.SILVER: {LocationType.MC: 8000, LocationType.TCP: 5000, LocationType.GP: 3000},
}

VALID_VALIDITY_YEARS = (1, 3)

LUMP_SUM_DISCOUNT_PCT = 10
FEMALE_OWNER_DISCOUNT_PCT = 5
PANGI_DISCOUNT_PCT = 50

# Highest nightly tariff allowed per category; None means no ceiling
ROOM_RATE_CEILINGS = {
    Category.SILVER: 3000,
    Category.GOLD: 10000,
    Category.DIAMOND: None,
}

MAX_ROOMS_ALLOWED = 6
MAX_BEDS_ALLOWED = 12
DEFAULT_BEDS_PER_ROOM = {"single": 1, "double": 2, "suite": 4}

GSTIN_PATTERN = re.compile(r"^[0-9A-Z]{15}$")

CATEGORY_MISMATCH_MESSAGE = (
    "The selected category does not match the nightly tariffs. "
    "Update the rates or choose a higher category."
)


def _rupees(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


@dataclass
class FeeBreakdown:
    """Result of a fee calculation; amounts are whole rupees."""
    category: str
    location_type: str
    validity_years: int
    annual_fee: Decimal
    gross_fee: Decimal
    lump_sum_discount: Decimal = Decimal("0")
    female_owner_discount: Decimal = Decimal("0")
    pangi_discount: Decimal = Decimal("0")
    discount_pct: int = 0
    applied_discounts: List[str] = field(default_factory=list)

    @property
    def total_discount(self) -> Decimal:
        return self.lump_sum_discount + self.female_owner_discount + self.pangi_discount

    @property
    def payable(self) -> Decimal:
        return max(self.gross_fee - self.total_discount, Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in list(data.items()):
            if isinstance(value, Decimal):
                data[key] = str(value)
        data["total_discount"] = str(self.total_discount)
        data["payable"] = str(self.payable)
        return data


def is_pangi_subdivision(district: Optional[str], tehsil: Optional[str]) -> bool:
    return (
        normalize_district(district) == "chamba"
        and (tehsil or "").strip().lower() == "pangi"
    )


def calculate_fee(
    category: str,
    location_type: str,
    validity_years: int = 1,
    owner_gender: Optional[str] = None,
    district: Optional[str] = None,
    tehsil: Optional[str] = None,
) -> FeeBreakdown:
    """
    Compute the registration fee.

    Raises:
        ValueError: unknown category / location type, or validity other than 1 or 3 years
    """
    try:
        cat = Category(category)
        loc = LocationType(location_type)
    except ValueError:
        raise ValueError(f"Unknown category/location combination: {category}/{location_type}")

    if validity_years not in VALID_VALIDITY_YEARS:
        raise ValueError("Validity must be 1 or 3 years")

    annual = Decimal(ANNUAL_FEES[cat][loc])
    gross = annual * validity_years
    breakdown = FeeBreakdown(
        category=cat.value,
        location_type=loc.value,
        validity_years=validity_years,
        annual_fee=annual,
        gross_fee=gross,
    )

    if validity_years == 3:
        breakdown.lump_sum_discount = _rupees(gross * LUMP_SUM_DISCOUNT_PCT / 100)
        breakdown.discount_pct += LUMP_SUM_DISCOUNT_PCT
        breakdown.applied_discounts.append("lump_sum_3_years")

    if (owner_gender or "").lower() == "female":
        breakdown.female_owner_discount = _rupees(gross * FEMALE_OWNER_DISCOUNT_PCT / 100)
        breakdown.discount_pct += FEMALE_OWNER_DISCOUNT_PCT
        breakdown.applied_discounts.append("female_owner")

    if is_pangi_subdivision(district, tehsil):
        breakdown.pangi_discount = _rupees(gross * PANGI_DISCOUNT_PCT / 100)
        breakdown.discount_pct += PANGI_DISCOUNT_PCT
        breakdown.applied_discounts.append("pangi_subdivision")

    return breakdown


def category_for_rate(highest_rate: float) -> Category:
    """Lowest category whose tariff band admits ``highest_rate``."""
    if highest_rate <= ROOM_RATE_CEILINGS[Category.SILVER]:
        return Category.SILVER
    if highest_rate <= ROOM_RATE_CEILINGS[Category.GOLD]:
        return Category.GOLD
    return Category.DIAMOND


def validate_category(category: str, highest_rate: float) -> List[str]:
    """
    Check the selected category against the highest nightly tariff.

    Returns a list of error messages (empty when valid). Choosing a higher
    category than the tariff requires is allowed.
    """
    try:
        cat = Category(category)
    except ValueError:
        return [f"Unknown category: {category}"]

    ceiling = ROOM_RATE_CEILINGS[cat]
    if ceiling is not None and highest_rate > ceiling:
        return [CATEGORY_MISMATCH_MESSAGE]
    return []


def requires_gstin(category: Optional[str]) -> bool:
    return category in (Category.DIAMOND.value, Category.GOLD.value)


def validate_gstin(value: Optional[str]) -> bool:
    return bool(value) and bool(GSTIN_PATTERN.match(value))
