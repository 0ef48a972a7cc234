# gfrecipes/app/services/substitution_engine.py
"""
Gluten-free conversion driven by an ordered substitution rule catalog.

The catalog is configuration: a JSON file per region, validated on load and
kept as an immutable tuple of rules. Matching is substring based over the
trimmed, lower-cased ingredient name and the first matching rule in catalog
order wins, regardless of how specific a later rule would be.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from gfrecipes.app.domain.errors import CatalogError
from gfrecipes.app.domain.models import Substitution
from gfrecipes.app.schemas.recipe import NormalizedRecipe

logger = logging.getLogger(__name__)

CATALOGS_DIR = Path(__file__).resolve().parents[1] / "catalogs"
DEFAULT_REGION = "CA"


class RuleDefinition(BaseModel):
    id: str
    keywords: list[str] = Field(min_length=1)
    exclude: list[str] = Field(default_factory=list)
    replacement: str
    brand: str
    product: str
    rationale: str
    url: Optional[str] = None

    @field_validator("keywords", "exclude")
    @classmethod
    def _normalize_keywords(cls, values: list[str]) -> list[str]:
        normalized = [value.strip().lower() for value in values]
        if any(not value for value in normalized):
            raise ValueError("keywords cannot be blank")
        return normalized


class CatalogDefinition(BaseModel):
    region: str
    rules: list[RuleDefinition] = Field(min_length=1)


@dataclass(frozen=True)
class SubstitutionRule:
    rule_id: str
    keywords: tuple[str, ...]
    replacement: str
    brand: str
    product: str
    rationale: str
    url: Optional[str] = None
    exclude: tuple[str, ...] = ()

    def matches(self, normalized_name: str) -> bool:
        if any(word in normalized_name for word in self.exclude):
            return False
        return any(word in normalized_name for word in self.keywords)

    @classmethod
    def from_definition(cls, definition: RuleDefinition) -> "SubstitutionRule":
        return cls(
            rule_id=definition.id,
            keywords=tuple(definition.keywords),
            replacement=definition.replacement,
            brand=definition.brand,
            product=definition.product,
            rationale=definition.rationale,
            url=definition.url,
            exclude=tuple(definition.exclude),
        )


@dataclass(frozen=True)
class RuleCatalog:
    region: str
    rules: tuple[SubstitutionRule, ...]

    def first_match(self, ingredient_name: str) -> Optional[SubstitutionRule]:
        normalized = ingredient_name.strip().lower()
        for rule in self.rules:
            if rule.matches(normalized):
                return rule
        return None


def parse_catalog(data: dict, source: str = "<memory>") -> RuleCatalog:
    try:
        definition = CatalogDefinition.model_validate(data)
    except ValidationError as error:
        raise CatalogError(source, str(error)) from error

    seen: set[str] = set()
    for rule in definition.rules:
        if rule.id in seen:
            raise CatalogError(source, f"duplicate rule id '{rule.id}'")
        seen.add(rule.id)

    return RuleCatalog(
        region=definition.region,
        rules=tuple(SubstitutionRule.from_definition(rule) for rule in definition.rules),
    )


def load_catalog(path: Path | str) -> RuleCatalog:
    catalog_path = Path(path)
    try:
        data = json.loads(catalog_path.read_text(encoding="utf-8"))
    except FileNotFoundError as error:
        raise CatalogError(str(catalog_path), "file not found") from error
    except (OSError, json.JSONDecodeError) as error:
        raise CatalogError(str(catalog_path), str(error)) from error

    catalog = parse_catalog(data, source=str(catalog_path))
    logger.info("Loaded substitution catalog: region=%s, rules=%d", catalog.region, len(catalog.rules))
    return catalog


@lru_cache(maxsize=None)
def get_catalog(region: str = DEFAULT_REGION, path: Optional[str] = None) -> RuleCatalog:
    """Process-wide catalog, loaded once per (region, path)."""
    if path:
        return load_catalog(path)
    return load_catalog(CATALOGS_DIR / f"{region.lower()}.json")


@dataclass
class ConversionResult:
    recipe: NormalizedRecipe
    substitutions: list[Substitution] = field(default_factory=list)


class SubstitutionEngine:
    """
    Pure converter: never mutates its input, and the same recipe with the
    same catalog always yields the same output.
    """

    def __init__(self, catalog: Optional[RuleCatalog] = None):
        self.catalog = catalog or get_catalog()

    def convert(self, recipe: NormalizedRecipe, recipe_id: Optional[str] = None) -> ConversionResult:
        converted = recipe.model_copy(deep=True)
        substitutions: list[Substitution] = []

        for index, ingredient in enumerate(recipe.ingredients):
            rule = self.catalog.first_match(ingredient.name)
            if rule is None:
                continue

            converted.ingredients[index] = ingredient.model_copy(update={"name": rule.replacement})
            substitutions.append(
                Substitution(
                    recipe_id=recipe_id,
                    ingredient_name=ingredient.name,
                    replacement_name=rule.replacement,
                    suggested_product=rule.product,
                    brand=rule.brand,
                    product_url=rule.url,
                    rationale=rule.rationale,
                    rule_id=rule.rule_id,
                )
            )

        logger.debug(
            "Converted recipe: title=%s, region=%s, substitutions=%d",
            recipe.title,
            self.catalog.region,
            len(substitutions),
        )
        return ConversionResult(recipe=converted, substitutions=substitutions)
