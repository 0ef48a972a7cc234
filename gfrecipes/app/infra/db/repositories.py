from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable

from gfrecipes.app.domain.errors import InvalidJobTransition
from gfrecipes.app.domain.models import Job, JobStatus, JobType, Recipe, Substitution
from gfrecipes.app.infra.db.base import (
    INGREDIENTS_TABLE,
    JOBS_TABLE,
    RECIPES_TABLE,
    SUBSTITUTIONS_TABLE,
    Record,
    RecordStore,
)
from gfrecipes.app.schemas.recipe import Ingredient

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Untitled recipe"

# PostgREST trims trailing zeros; fromisoformat before 3.11 wants 3 or 6 digits.
_FRACTION_PATTERN = re.compile(r"\.(\d+)")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        normalized = _FRACTION_PATTERN.sub(
            lambda match: "." + match.group(1)[:6].ljust(6, "0"), normalized, count=1
        )
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _row_to_recipe(row: Record) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        title=str(row.get("title") or PLACEHOLDER_TITLE),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def _row_to_job(row: Record) -> Job:
    return Job(
        id=str(row["id"]),
        recipe_id=str(row["recipe_id"]),
        status=JobStatus(str(row["status"])),
        type=JobType(str(row.get("type") or JobType.OCR.value)),
        error_message=_safe_str(row.get("error_message")),
        created_at=parse_datetime(row.get("created_at")),
        completed_at=parse_datetime(row.get("completed_at")),
    )


def _row_to_ingredient(row: Record) -> Ingredient:
    return Ingredient(
        qty=row.get("qty"),
        unit=row.get("unit"),
        name=str(row["name"]),
        mod=_safe_str(row.get("mod")),
    )


def _row_to_substitution(row: Record) -> Substitution:
    return Substitution(
        recipe_id=_safe_str(row.get("recipe_id")),
        ingredient_name=str(row["ingredient_name"]),
        replacement_name=str(row.get("replacement_name") or ""),
        suggested_product=str(row["suggested_product"]),
        brand=str(row["brand"]),
        product_url=_safe_str(row.get("product_url")),
        rationale=str(row.get("rationale") or ""),
        rule_id=str(row.get("rule_id") or ""),
    )


class RecipeRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def create_recipe(self, user_id: str, title: str = PLACEHOLDER_TITLE) -> Recipe:
        now = _now_utc()
        row = self._store.insert(
            RECIPES_TABLE,
            {
                "user_id": str(user_id),
                "title": title,
                "created_at": now,
                "updated_at": now,
            },
        )
        recipe = _row_to_recipe(row)
        logger.info("Created recipe: id=%s, user=%s", recipe.id, user_id)
        return recipe

    def update_title(self, recipe_id: str, title: str) -> Recipe:
        row = self._store.update(
            RECIPES_TABLE,
            recipe_id,
            {"title": title, "updated_at": _now_utc()},
        )
        return _row_to_recipe(row)

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        row = self._store.get(RECIPES_TABLE, recipe_id)
        return _row_to_recipe(row) if row else None


class JobRepository:
    """
    Persists ingestion jobs and enforces monotonic status transitions.
    """

    def __init__(self, store: RecordStore):
        self._store = store

    def create_job(self, recipe_id: str, job_type: JobType = JobType.OCR) -> Job:
        row = self._store.insert(
            JOBS_TABLE,
            {
                "recipe_id": str(recipe_id),
                "type": job_type.value,
                "status": JobStatus.QUEUED.value,
                "created_at": _now_utc(),
            },
        )
        job = _row_to_job(row)
        logger.info("Created job: id=%s, recipe=%s, type=%s", job.id, recipe_id, job_type.value)
        return job

    def get_job(self, job_id: str) -> Job | None:
        row = self._store.get(JOBS_TABLE, job_id)
        return _row_to_job(row) if row else None

    def get_jobs_for_recipe(self, recipe_id: str) -> list[Job]:
        rows = self._store.query(
            JOBS_TABLE,
            {"recipe_id": str(recipe_id)},
            order=[("created_at", False)],
        )
        return [_row_to_job(row) for row in rows]

    def mark_processing(self, job: Job) -> Job:
        return self._transition(job, JobStatus.PROCESSING)

    def mark_completed(self, job: Job) -> Job:
        return self._transition(job, JobStatus.COMPLETED, {"completed_at": _now_utc()})

    def mark_failed(self, job: Job, error_message: str) -> Job:
        return self._transition(
            job,
            JobStatus.FAILED,
            {"completed_at": _now_utc(), "error_message": error_message},
        )

    def _transition(self, job: Job, target: JobStatus, extra: dict[str, Any] | None = None) -> Job:
        if not job.status.can_transition_to(target):
            raise InvalidJobTransition(job.id, job.status.value, target.value)

        patch: dict[str, Any] = {"status": target.value}
        patch.update(extra or {})
        row = self._store.update(JOBS_TABLE, job.id, patch)

        updated = _row_to_job(row)
        logger.info("Job %s: %s -> %s", job.id, job.status.value, updated.status.value)
        return updated


class SubstitutionRepository:
    def __init__(self, store: RecordStore):
        self._store = store

    def record_substitutions(self, recipe_id: str, substitutions: Iterable[Substitution]) -> list[Substitution]:
        records = []
        for substitution in substitutions:
            record = substitution.to_record()
            record["recipe_id"] = str(recipe_id)
            record["created_at"] = _now_utc()
            records.append(record)

        if not records:
            return []

        rows = self._store.insert_many(SUBSTITUTIONS_TABLE, records)
        return [_row_to_substitution(row) for row in rows]

    def list_for_recipe(self, recipe_id: str) -> list[Substitution]:
        rows = self._store.query(
            SUBSTITUTIONS_TABLE,
            {"recipe_id": str(recipe_id)},
            order=[("created_at", False)],
        )
        return [_row_to_substitution(row) for row in rows]


class IngredientRepository:
    """One row per parsed ingredient, in recipe order."""

    def __init__(self, store: RecordStore):
        self._store = store

    def record_ingredients(self, recipe_id: str, ingredients: Iterable[Ingredient]) -> list[Ingredient]:
        now = _now_utc()
        records = [
            {
                "recipe_id": str(recipe_id),
                "position": position,
                "name": ingredient.name,
                "qty": ingredient.qty,
                "unit": ingredient.unit,
                "mod": ingredient.mod,
                "created_at": now,
            }
            for position, ingredient in enumerate(ingredients)
        ]
        if not records:
            return []

        rows = self._store.insert_many(INGREDIENTS_TABLE, records)
        logger.info("Saved ingredients: recipe=%s, count=%d", recipe_id, len(rows))
        return [_row_to_ingredient(row) for row in rows]

    def list_for_recipe(self, recipe_id: str) -> list[Ingredient]:
        rows = self._store.query(
            INGREDIENTS_TABLE,
            {"recipe_id": str(recipe_id)},
            order=[("position", False)],
        )
        return [_row_to_ingredient(row) for row in rows]
