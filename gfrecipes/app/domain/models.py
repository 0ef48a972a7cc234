"""
Domain models for the recipe ingestion and conversion pipeline.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class JobStatus(str, Enum):
    """Status enum for ingestion jobs."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class JobType(str, Enum):
    OCR = "ocr"


class VersionKind(str, Enum):
    """Stage tag of an entry in a recipe's append-only history."""
    RAW = "raw"
    PARSED = "parsed"
    CONVERTED = "converted"


@dataclass
class Recipe:
    id: str
    user_id: str
    title: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecipeVersion:
    """
    One immutable entry of a recipe's version chain.

    `seq` is the store-assigned insertion sequence number; it breaks ties
    between versions that share a creation timestamp.
    """
    id: str
    recipe_id: str
    kind: VersionKind
    payload: dict[str, Any]
    created_at: datetime
    seq: int = 0


@dataclass
class Job:
    """A tracked ingestion attempt."""
    id: str
    recipe_id: str
    status: JobStatus
    type: JobType = JobType.OCR
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class Substitution:
    """Audit record of one ingredient renamed by a conversion pass."""
    ingredient_name: str
    replacement_name: str
    suggested_product: str
    brand: str
    rationale: str
    rule_id: str
    product_url: Optional[str] = None
    recipe_id: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "ingredient_name": self.ingredient_name,
            "replacement_name": self.replacement_name,
            "suggested_product": self.suggested_product,
            "brand": self.brand,
            "product_url": self.product_url,
            "rationale": self.rationale,
            "rule_id": self.rule_id,
        }


@dataclass
class IngestionResult:
    recipe_id: str
    job_id: str
    raw_version_id: str
    parsed_version_id: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class ConversionOutcome:
    recipe_id: str
    version_id: str
    source_version_id: str
    substitutions: list[Substitution] = field(default_factory=list)
