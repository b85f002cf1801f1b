"""Expiry urgency helpers shared by the API, the dashboard and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal, Optional, Sequence

from dispensa.models.product import Product

ExpiryLevel = Literal["expired", "critical", "warning", "ok"]

CRITICAL_DAYS = 3
WARNING_DAYS = 7


def days_until_expiry(expiry: date, today: Optional[date] = None) -> int:
    """Whole calendar days from ``today`` to ``expiry`` (negative once expired)."""

    return (expiry - (today or date.today())).days


def expiry_level(expiry: date, today: Optional[date] = None) -> ExpiryLevel:
    days = days_until_expiry(expiry, today)
    if days < 0:
        return "expired"
    if days <= CRITICAL_DAYS:
        return "critical"
    if days <= WARNING_DAYS:
        return "warning"
    return "ok"


def expiry_label(expiry: date, today: Optional[date] = None) -> str:
    """Short Italian label shown on product cards."""

    days = days_until_expiry(expiry, today)
    if days < 0:
        return "Scaduto"
    if days == 0:
        return "Scade oggi"
    if days == 1:
        return "Scade domani"
    return f"{days} giorni"


def sort_by_expiry(products: Iterable[Product], today: Optional[date] = None) -> list[Product]:
    """Order products by ascending days until expiry, expired items first.

    The sort is stable, so products expiring on the same day keep their stored order.
    """

    reference = today or date.today()
    return sorted(products, key=lambda product: days_until_expiry(product.expiry_date, reference))


@dataclass(frozen=True)
class InventorySummary:
    total: int
    fridge: int
    pantry: int
    expired: int
    expiring_soon: int


def summarize(products: Sequence[Product], today: Optional[date] = None) -> InventorySummary:
    """Count products per storage location and urgency bucket."""

    reference = today or date.today()
    levels = [expiry_level(product.expiry_date, reference) for product in products]
    return InventorySummary(
        total=len(products),
        fridge=sum(1 for product in products if product.storage_type == "frigo"),
        pantry=sum(1 for product in products if product.storage_type == "dispensa"),
        expired=levels.count("expired"),
        expiring_soon=levels.count("critical"),
    )


__all__ = [
    "CRITICAL_DAYS",
    "WARNING_DAYS",
    "ExpiryLevel",
    "InventorySummary",
    "days_until_expiry",
    "expiry_label",
    "expiry_level",
    "sort_by_expiry",
    "summarize",
]
