"""Recipe suggestion models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

FALLBACK_TITLE = "Chef in sciopero"


class Recipe(BaseModel):
    """Recipe suggested by the AI chef.

    The model answers with Italian keys (``titolo``, ``difficolta``, ``tempo``,
    ``procedimento``), which are also the wire format of the API.
    """

    title: str = Field(alias="titolo")
    difficulty: str = Field(default="-", alias="difficolta")
    time: str = Field(default="-", alias="tempo")
    procedure: str = Field(alias="procedimento")
    ingredients: list[str] = Field(default_factory=list)
    fallback: bool = Field(default=False)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("title", "difficulty", "time", "procedure", mode="before")
    @classmethod
    def _scalar_to_text(cls, value: Any) -> Any:
        # Models sometimes answer "tempo": 30 instead of "30 min".
        if isinstance(value, (int, float)):
            return str(value)
        return value


def fallback_recipe(reason: str, ingredients: list[str] | None = None) -> Recipe:
    """Placeholder shown to the user when no recipe could be generated."""

    return Recipe(
        title=FALLBACK_TITLE,
        difficulty="-",
        time="-",
        procedure=f"Non sono riuscito a cucinare: {reason}",
        ingredients=list(ingredients or []),
        fallback=True,
    )


__all__ = ["FALLBACK_TITLE", "Recipe", "fallback_recipe"]
