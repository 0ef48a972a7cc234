from __future__ import annotations


class RecipePipelineError(Exception):
    stage: str = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        recipe_id: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.recipe_id = recipe_id
        self.job_id: str | None = None
        self.cause = cause

    def with_context(self, recipe_id: str | None = None, job_id: str | None = None) -> "RecipePipelineError":
        if recipe_id and not self.recipe_id:
            self.recipe_id = recipe_id
        if job_id and not self.job_id:
            self.job_id = job_id
        return self

    def to_payload(self) -> dict[str, str | None]:
        return {
            "error": self.message,
            "stage": self.stage,
            "recipeId": self.recipe_id,
        }


class ExtractionFailure(RecipePipelineError):
    stage = "extraction"

    def __init__(
        self,
        document_reference: str,
        reason: str,
        *,
        retryable: bool = False,
        cause: BaseException | None = None,
    ):
        super().__init__(f"Extraction failed for {document_reference}: {reason}", cause=cause)
        self.document_reference = document_reference
        self.reason = reason
        self.retryable = retryable


class ParseFailure(RecipePipelineError):
    stage = "parse"

    def __init__(self, field: str, reason: str = "missing or unparseable", warnings: list[str] | None = None):
        super().__init__(f"Could not parse recipe field '{field}': {reason}")
        self.field = field
        self.reason = reason
        self.warnings = list(warnings or [])


class ConversionNotFound(RecipePipelineError):
    stage = "conversion"

    def __init__(self, recipe_id: str):
        super().__init__(f"No parsed version found for recipe {recipe_id}", recipe_id=recipe_id)


class PersistenceFailure(RecipePipelineError):
    stage = "persistence"

    def __init__(self, operation: str, reason: str, *, cause: BaseException | None = None):
        super().__init__(f"Persistence error during {operation}: {reason}", cause=cause)
        self.operation = operation
        self.reason = reason


class InvalidJobTransition(RecipePipelineError):
    stage = "job"

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class CatalogError(RecipePipelineError):
    stage = "catalog"

    def __init__(self, source: str, reason: str):
        super().__init__(f"Invalid substitution catalog {source}: {reason}")
        self.source = source
        self.reason = reason
