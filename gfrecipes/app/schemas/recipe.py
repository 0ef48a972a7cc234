from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Ingredient(BaseModel):
    qty: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    name: str
    mod: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("ingredient name cannot be empty")
        return stripped


class NormalizedRecipe(BaseModel):
    """Payload shape of `parsed` and `converted` versions."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    yield_: Optional[str] = Field(default=None, alias="yield")
    total_time: Optional[str] = None
    ingredients: list[Ingredient] = Field(min_length=1)
    steps: list[str] = Field(min_length=1)
    notes: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("title cannot be empty")
        return stripped

    @field_validator("steps")
    @classmethod
    def _steps_not_blank(cls, value: list[str]) -> list[str]:
        cleaned = [step.strip() for step in value]
        if any(not step for step in cleaned):
            raise ValueError("steps cannot contain empty entries")
        return cleaned

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "NormalizedRecipe":
        return cls.model_validate(payload)
