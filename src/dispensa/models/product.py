"""Pantry and fridge product models."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

StorageType = Literal["frigo", "dispensa"]
Unit = Literal["pz", "kg", "g", "l", "ml", "confezioni"]

STORAGE_LABELS: dict[str, str] = {
    "frigo": "Frigorifero",
    "dispensa": "Dispensa",
}

CATEGORIES: tuple[str, ...] = (
    "Latticini",
    "Mozzarella",
    "Provola",
    "Insaccati",
    "Carne",
    "Pesce",
    "Frutta",
    "Verdura",
    "Bevande",
    "Pasta e Riso",
    "Pane e Cereali",
    "Condimenti",
    "Dolci/Brioches",
    "Zucchero",
    "Surgelati",
    "Altro",
)

UNITS: tuple[str, ...] = ("pz", "kg", "g", "l", "ml", "confezioni")

_MANUAL_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def new_item_id() -> str:
    """Return a fresh identifier for a stored list entry."""

    return uuid4().hex


def format_manual_date(value: str) -> str:
    """Mask free-typed digits as ``DD/MM/YYYY`` the way the date field does while typing."""

    digits = re.sub(r"\D", "", value)
    out = digits[:2]
    if len(digits) > 2:
        out += "/" + digits[2:4]
    if len(digits) > 4:
        out += "/" + digits[4:8]
    return out


def parse_manual_date(value: str) -> date:
    """Parse a ``DD/MM/YYYY`` string into a date.

    Raises ``ValueError`` when the string is incomplete or not a real calendar day.
    """

    match = _MANUAL_DATE_RE.match(value.strip())
    if not match:
        raise ValueError(f"Expected a DD/MM/YYYY date, got {value!r}")
    day, month, year = (int(part) for part in match.groups())
    return date(year, month, day)


def coerce_expiry_date(value: Any) -> Any:
    """Accept ISO dates, ISO datetimes and manual ``DD/MM/YYYY`` entries."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if "/" in text:
            return parse_manual_date(text)
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return text
    return value


def clamp_quantity(value: float) -> float:
    return max(0.0, float(value))


class Product(BaseModel):
    """Food item stored in the fridge or the pantry."""

    id: str = Field(default_factory=new_item_id, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(default=CATEGORIES[0], min_length=1, max_length=64)
    quantity: float = Field(default=1.0, allow_inf_nan=False)
    unit: Unit = Field(default="pz")
    expiry_date: date = Field(alias="expiryDate")
    storage_type: StorageType = Field(default="frigo", alias="storageType")
    image: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None, max_length=64)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("name", "category", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("quantity", mode="after")
    @classmethod
    def _clamp_quantity(cls, value: float) -> float:
        return clamp_quantity(value)

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _coerce_expiry(cls, value: Any) -> Any:
        return coerce_expiry_date(value)

    @field_validator("image", "barcode", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    def with_quantity(self, quantity: float) -> "Product":
        """Return a copy carrying ``quantity`` clamped at zero.

        Raises ``ValidationError`` when ``quantity`` is not a finite number.
        """

        return type(self).model_validate({**self.model_dump(), "quantity": quantity})


__all__ = [
    "CATEGORIES",
    "STORAGE_LABELS",
    "UNITS",
    "Product",
    "StorageType",
    "Unit",
    "clamp_quantity",
    "coerce_expiry_date",
    "format_manual_date",
    "new_item_id",
    "parse_manual_date",
]
