from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from gfrecipes.app.domain.models import RecipeVersion, Substitution


class IngestRequest(BaseModel):
    documentReference: str = Field(..., min_length=1, description="URL or storage reference of the recipe document")
    userId: Optional[str] = Field(None, description="Must match the authenticated user when sent")


class IngestResponse(BaseModel):
    recipeId: str
    jobId: str
    warnings: list[str] = Field(default_factory=list)


class ConvertRequest(BaseModel):
    recipeId: str = Field(..., min_length=1)


class SubstitutionItem(BaseModel):
    ingredientName: str
    replacementName: str
    suggestedProduct: str
    brand: str
    productUrl: Optional[str] = None
    rationale: str

    @classmethod
    def from_domain(cls, substitution: Substitution) -> "SubstitutionItem":
        return cls(
            ingredientName=substitution.ingredient_name,
            replacementName=substitution.replacement_name,
            suggestedProduct=substitution.suggested_product,
            brand=substitution.brand,
            productUrl=substitution.product_url,
            rationale=substitution.rationale,
        )


class ConvertResponse(BaseModel):
    success: bool = True
    recipeId: str
    versionId: str
    substitutions: list[SubstitutionItem] = Field(default_factory=list)


class SubstitutionListResponse(BaseModel):
    recipeId: str
    substitutions: list[SubstitutionItem] = Field(default_factory=list)


class VersionResponse(BaseModel):
    id: str
    recipeId: str
    kind: Literal["raw", "parsed", "converted"]
    payload: dict[str, Any]
    createdAt: datetime
    seq: int

    @classmethod
    def from_domain(cls, version: RecipeVersion) -> "VersionResponse":
        return cls(
            id=version.id,
            recipeId=version.recipe_id,
            kind=version.kind.value,
            payload=version.payload,
            createdAt=version.created_at,
            seq=version.seq,
        )
