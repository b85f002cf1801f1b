"""Shopping list models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dispensa.models.product import new_item_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_quantity_text(value: Any) -> Any:
    """Shopping quantities are free text ("2", "1 kg", "una confezione")."""

    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = f"{value:g}"
    if isinstance(value, str):
        return value.strip() or None
    return value


class ShoppingItem(BaseModel):
    """Single entry on the to-buy list, independent of the inventory."""

    id: str = Field(default_factory=new_item_id, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    quantity: Optional[str] = Field(default=None, max_length=64)
    completed: bool = Field(default=False)
    added_at: datetime = Field(default_factory=_utcnow, alias="addedAt")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("quantity", mode="before")
    @classmethod
    def _normalize_quantity(cls, value: Any) -> Any:
        return normalize_quantity_text(value)


__all__ = ["ShoppingItem", "normalize_quantity_text"]
