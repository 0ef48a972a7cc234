# gfrecipes/app/services/version_chain.py
"""
Append-only version history per recipe.

Each recipe owns an ordered log of versions tagged by kind (raw, parsed,
converted). Versions are never updated or deleted; the "current" version of
a kind is the one with the greatest creation timestamp, ties broken by the
store-assigned insertion sequence number.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from gfrecipes.app.domain.errors import PersistenceFailure
from gfrecipes.app.domain.models import RecipeVersion, VersionKind
from gfrecipes.app.infra.db.base import VERSIONS_TABLE, Record, RecordStore
from gfrecipes.app.infra.db.repositories import parse_datetime
from gfrecipes.app.schemas.recipe import NormalizedRecipe

logger = logging.getLogger(__name__)

_LATEST_FIRST = [("created_at", True), ("seq", True)]
_OLDEST_FIRST = [("created_at", False), ("seq", False)]
_CLOCK_STEP = timedelta(microseconds=1)

_RECIPE_KINDS = (VersionKind.PARSED, VersionKind.CONVERTED)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_version(row: Record) -> RecipeVersion:
    created_at = parse_datetime(row.get("created_at"))
    if created_at is None:
        raise PersistenceFailure("read:recipe_versions", f"version {row.get('id')} has no created_at")

    return RecipeVersion(
        id=str(row["id"]),
        recipe_id=str(row["recipe_id"]),
        kind=VersionKind(str(row["kind"])),
        payload=dict(row.get("payload") or {}),
        created_at=created_at,
        seq=int(row.get("seq") or 0),
    )


class VersionChainManager:
    def __init__(self, store: RecordStore, clock=_now_utc):
        self._store = store
        self._clock = clock

    def append_version(
        self,
        recipe_id: str,
        kind: VersionKind | str,
        payload: Mapping[str, Any],
    ) -> RecipeVersion:
        """
        Append a new version to the recipe's chain.

        Args:
            recipe_id: Owning recipe
            kind: raw, parsed or converted
            payload: Raw-text payload, or a NormalizedRecipe payload for
                parsed/converted versions

        Returns:
            The created version (one row per call)

        Raises:
            ValueError: If kind is unknown or a recipe payload is malformed
            PersistenceFailure: If the store is unavailable
        """
        version_kind = VersionKind(kind)
        body = self._validated_payload(version_kind, payload)
        created_at = self._next_timestamp(recipe_id)

        row = self._store.insert(
            VERSIONS_TABLE,
            {
                "recipe_id": str(recipe_id),
                "kind": version_kind.value,
                "payload": body,
                "created_at": created_at,
            },
        )

        version = _row_to_version(row)
        logger.info(
            "Appended version: id=%s, recipe=%s, kind=%s, seq=%d",
            version.id,
            recipe_id,
            version_kind.value,
            version.seq,
        )
        return version

    def latest_version(self, recipe_id: str, kind: VersionKind | str) -> Optional[RecipeVersion]:
        rows = self._store.query(
            VERSIONS_TABLE,
            {"recipe_id": str(recipe_id), "kind": VersionKind(kind).value},
            order=_LATEST_FIRST,
            limit=1,
        )
        return _row_to_version(rows[0]) if rows else None

    def get_version(self, version_id: str) -> Optional[RecipeVersion]:
        row = self._store.get(VERSIONS_TABLE, version_id)
        return _row_to_version(row) if row else None

    def list_versions(
        self,
        recipe_id: str,
        kind: VersionKind | str | None = None,
    ) -> list[RecipeVersion]:
        filters: dict[str, Any] = {"recipe_id": str(recipe_id)}
        if kind is not None:
            filters["kind"] = VersionKind(kind).value

        rows = self._store.query(VERSIONS_TABLE, filters, order=_OLDEST_FIRST)
        return [_row_to_version(row) for row in rows]

    def _next_timestamp(self, recipe_id: str) -> datetime:
        now = self._clock()
        rows = self._store.query(
            VERSIONS_TABLE,
            {"recipe_id": str(recipe_id)},
            order=_LATEST_FIRST,
            limit=1,
        )
        if not rows:
            return now

        previous = parse_datetime(rows[0].get("created_at"))
        if previous is not None and now <= previous:
            return previous + _CLOCK_STEP
        return now

    @staticmethod
    def _validated_payload(kind: VersionKind, payload: Mapping[str, Any]) -> dict[str, Any]:
        if kind not in _RECIPE_KINDS:
            return dict(payload)

        try:
            return NormalizedRecipe.from_payload(dict(payload)).to_payload()
        except ValidationError as error:
            raise ValueError(f"Invalid {kind.value} payload: {error}") from error
