"""District name handling shared by queues, numbering and fee rules."""

from typing import Optional


def normalize_district(value: Optional[str]) -> str:
    """'Shimla District ' -> 'shimla'."""
    normalized = (value or "").strip().lower()
    if normalized.endswith(" district"):
        normalized = normalized[: -len(" district")].strip()
    return normalized


def districts_match(left: Optional[str], right: Optional[str]) -> bool:
    a, b = normalize_district(left), normalize_district(right)
    return bool(a) and a == b
