# gfrecipes/app/services/recipe_pipeline.py
"""
Ingestion and conversion orchestration.

Ingestion runs one job through queued -> processing -> completed|failed:
extract the document, keep the raw output as a `raw` version, parse it, keep
the result as a `parsed` version and save one row per ingredient. A raw
version survives a failed parse so the evidence stays available for debugging.

Conversion is a separate request: it reads the latest `parsed` version, runs
the substitution engine and appends a new `converted` version plus its
substitution audit rows. Calling it again appends again.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from gfrecipes.app.domain.errors import (
    ConversionNotFound,
    ExtractionFailure,
    ParseFailure,
    PersistenceFailure,
    RecipePipelineError,
)
from gfrecipes.app.domain.models import (
    ConversionOutcome,
    IngestionResult,
    Job,
    VersionKind,
)
from gfrecipes.app.infra.db.base import RecordStore
from gfrecipes.app.infra.db.repositories import (
    IngredientRepository,
    JobRepository,
    RecipeRepository,
    SubstitutionRepository,
)
from gfrecipes.app.infra.extraction.base import ExtractionAdapter, ExtractionOutput
from gfrecipes.app.schemas.recipe import NormalizedRecipe
from gfrecipes.app.services.recipe_parser import ParseResult, RecipeParser
from gfrecipes.app.services.substitution_engine import SubstitutionEngine
from gfrecipes.app.services.version_chain import VersionChainManager
from gfrecipes.services.errors import ServiceError

logger = logging.getLogger(__name__)

_FATAL_INGESTION_ERRORS = (ExtractionFailure, ParseFailure, PersistenceFailure)


class RecipePipeline:
    """
    Drives recipes through ingestion and conversion.

    Holds no per-request state; one instance can serve concurrent requests.
    """

    def __init__(
        self,
        store: RecordStore,
        extractor: ExtractionAdapter,
        parser: Optional[RecipeParser] = None,
        engine: Optional[SubstitutionEngine] = None,
        versions: Optional[VersionChainManager] = None,
    ):
        self.extractor = extractor
        self.parser = parser or RecipeParser()
        self.engine = engine or SubstitutionEngine()
        self.versions = versions or VersionChainManager(store)
        self.recipes = RecipeRepository(store)
        self.jobs = JobRepository(store)
        self.substitutions = SubstitutionRepository(store)
        self.ingredients = IngredientRepository(store)

    def ingest(self, document_reference: str, user_id: str) -> IngestionResult:
        """
        Turn a document into a persisted, parsed recipe.

        Raises:
            ExtractionFailure, ParseFailure, PersistenceFailure: After the
                job has been marked failed; the error carries recipe_id and
                job_id
        """
        recipe = self.recipes.create_recipe(user_id)
        try:
            job = self.jobs.create_job(recipe.id)
        except PersistenceFailure as error:
            raise error.with_context(recipe_id=recipe.id)

        logger.info(
            "Ingestion started: recipe=%s, job=%s, user=%s, reference=%s",
            recipe.id,
            job.id,
            user_id,
            document_reference,
        )

        try:
            job = self.jobs.mark_processing(job)

            output = self._extract(document_reference)
            raw_version = self.versions.append_version(
                recipe.id,
                VersionKind.RAW,
                self._raw_payload(output, document_reference),
            )

            parsed = self._parse(output)
            parsed_version = self.versions.append_version(
                recipe.id,
                VersionKind.PARSED,
                parsed.recipe.to_payload(),
            )
            self.ingredients.record_ingredients(recipe.id, parsed.recipe.ingredients)
            self.recipes.update_title(recipe.id, parsed.recipe.title)

            job = self.jobs.mark_completed(job)

        except _FATAL_INGESTION_ERRORS as error:
            error.with_context(recipe_id=recipe.id, job_id=job.id)
            self._fail_job(job, error)
            raise

        logger.info(
            "Ingestion completed: recipe=%s, job=%s, warnings=%d",
            recipe.id,
            job.id,
            len(parsed.warnings),
        )
        return IngestionResult(
            recipe_id=recipe.id,
            job_id=job.id,
            raw_version_id=raw_version.id,
            parsed_version_id=parsed_version.id,
            warnings=parsed.warnings,
        )

    def convert_recipe(self, recipe_id: str) -> ConversionOutcome:
        """
        Convert the latest parsed version to a gluten-free variant.

        Raises:
            ConversionNotFound: If the recipe has no parsed version; nothing
                is written
            PersistenceFailure: If the store is unavailable
        """
        try:
            parsed_version = self.versions.latest_version(recipe_id, VersionKind.PARSED)
            if parsed_version is None:
                raise ConversionNotFound(recipe_id)

            recipe = self._load_recipe(parsed_version.payload)
            result = self.engine.convert(recipe, recipe_id=recipe_id)

            converted_version = self.versions.append_version(
                recipe_id,
                VersionKind.CONVERTED,
                result.recipe.to_payload(),
            )
            substitutions = self.substitutions.record_substitutions(recipe_id, result.substitutions)

        except RecipePipelineError as error:
            raise error.with_context(recipe_id=recipe_id)

        logger.info(
            "Conversion complete: recipe=%s, version=%s, substitutions=%d",
            recipe_id,
            converted_version.id,
            len(substitutions),
        )
        return ConversionOutcome(
            recipe_id=recipe_id,
            version_id=converted_version.id,
            source_version_id=parsed_version.id,
            substitutions=substitutions,
        )

    def _extract(self, document_reference: str) -> ExtractionOutput:
        try:
            return self.extractor.extract(document_reference)
        except ExtractionFailure:
            raise
        except ServiceError as error:
            raise ExtractionFailure(document_reference, str(error), cause=error) from error
        except Exception as error:
            logger.exception(
                "Unexpected extractor error: provider=%s, reference=%s",
                self.extractor.name,
                document_reference,
            )
            raise ExtractionFailure(
                document_reference,
                f"unexpected {type(error).__name__}: {error}",
                cause=error,
            ) from error

    def _parse(self, output: ExtractionOutput) -> ParseResult:
        if isinstance(output, dict):
            return self.parser.parse_draft(output)
        return self.parser.parse(output)

    def _raw_payload(self, output: ExtractionOutput, document_reference: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "source": document_reference,
            "provider": self.extractor.name,
        }
        if isinstance(output, dict):
            payload["draft"] = output
        else:
            payload["raw_text"] = output
        return payload

    @staticmethod
    def _load_recipe(payload: dict[str, Any]) -> NormalizedRecipe:
        try:
            return NormalizedRecipe.from_payload(payload)
        except ValidationError as error:
            raise ParseFailure("payload", f"stored parsed version is invalid: {error}") from error

    def _fail_job(self, job: Job, error: RecipePipelineError) -> None:
        logger.error(
            "Ingestion failed: recipe=%s, job=%s, stage=%s, error=%s",
            job.recipe_id,
            job.id,
            error.stage,
            error,
        )
        try:
            self.jobs.mark_failed(job, f"{error.stage}: {error}")
        except PersistenceFailure as store_error:
            logger.error("Could not record job failure: job=%s, error=%s", job.id, store_error)
