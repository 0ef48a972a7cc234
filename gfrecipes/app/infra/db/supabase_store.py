from __future__ import annotations

import logging
import os
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence
from uuid import uuid4

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from gfrecipes.app.domain.errors import PersistenceFailure
from gfrecipes.app.infra.db.base import OrderBy, Record, RecordStore

logger = logging.getLogger(__name__)

_STORE_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def _serialize(record: Mapping[str, Any]) -> dict[str, Any]:
    return {key: _to_jsonable(value) for key, value in record.items()}


class SupabaseRecordStore(RecordStore):
    """
    Record store backed by Supabase (PostgREST).

    `recipe_versions.seq` is an identity column, so Postgres assigns the
    insertion sequence number; see supabase/migrations.
    """

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()
        logger.info("SupabaseRecordStore initialized")

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        rows = self.insert_many(table, [record])
        return rows[0]

    def insert_many(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        if not records:
            return []

        payload = []
        for record in records:
            data = _serialize(record)
            data.setdefault("id", str(uuid4()))
            payload.append(data)

        try:
            result = self._client.table(table).insert(payload).execute()
        except _STORE_ERRORS as error:
            logger.error("Insert into %s failed: %s", table, error)
            raise PersistenceFailure(f"insert:{table}", str(error), cause=error) from error

        if not result.data or len(result.data) != len(payload):
            raise PersistenceFailure(f"insert:{table}", "store did not return the inserted rows")

        return list(result.data)

    def get(self, table: str, record_id: str) -> Optional[Record]:
        rows = self.query(table, {"id": str(record_id)}, limit=1)
        return rows[0] if rows else None

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        builder = self._client.table(table).select("*")

        for column, value in (filters or {}).items():
            builder = builder.eq(column, _to_jsonable(value))

        for column, descending in order or []:
            builder = builder.order(column, desc=descending)

        if limit is not None:
            builder = builder.limit(limit)

        try:
            result = builder.execute()
        except _STORE_ERRORS as error:
            logger.error("Query on %s failed: %s", table, error)
            raise PersistenceFailure(f"query:{table}", str(error), cause=error) from error

        return list(result.data or [])

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record:
        try:
            result = (
                self._client.table(table)
                .update(_serialize(patch))
                .eq("id", str(record_id))
                .execute()
            )
        except _STORE_ERRORS as error:
            logger.error("Update on %s failed: id=%s, error=%s", table, record_id, error)
            raise PersistenceFailure(f"update:{table}", str(error), cause=error) from error

        if not result.data:
            raise PersistenceFailure(f"update:{table}", f"no row {record_id}")

        return result.data[0]
