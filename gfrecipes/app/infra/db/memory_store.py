from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Mapping, Optional, Sequence
from uuid import uuid4

from gfrecipes.app.domain.errors import PersistenceFailure
from gfrecipes.app.infra.db.base import OrderBy, Record, RecordStore, VERSIONS_TABLE

logger = logging.getLogger(__name__)

SEQUENCED_TABLES = frozenset({VERSIONS_TABLE})


def _sort_key(column: str):
    def key(row: Record) -> tuple[bool, Any]:
        value = row.get(column)
        return (value is None, value if value is not None else 0)
    return key


class InMemoryRecordStore(RecordStore):
    """
    Process-local record store.

    Rows are deep-copied on the way in and out, so callers can never mutate
    stored state. A single lock serializes writes; rows in sequenced tables
    get a monotonically increasing "seq", like an identity column.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        self._sequences: dict[str, int] = {}
        self._lock = threading.Lock()

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        with self._lock:
            return copy.deepcopy(self._insert_locked(table, record))

    def insert_many(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        with self._lock:
            return [copy.deepcopy(self._insert_locked(table, record)) for record in records]

    def _insert_locked(self, table: str, record: Mapping[str, Any]) -> Record:
        rows = self._tables.setdefault(table, {})
        row = copy.deepcopy(dict(record))
        row_id = str(row.get("id") or uuid4())

        if row_id in rows:
            raise PersistenceFailure("insert", f"duplicate id {row_id} in {table}")

        row["id"] = row_id
        if table in SEQUENCED_TABLES:
            self._sequences[table] = self._sequences.get(table, 0) + 1
            row["seq"] = self._sequences[table]

        rows[row_id] = row
        return row

    def get(self, table: str, record_id: str) -> Optional[Record]:
        with self._lock:
            row = self._tables.get(table, {}).get(str(record_id))
            return copy.deepcopy(row) if row is not None else None

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        with self._lock:
            rows = [
                row
                for row in self._tables.get(table, {}).values()
                if all(row.get(column) == value for column, value in (filters or {}).items())
            ]
            rows = [copy.deepcopy(row) for row in rows]

        # Stable sorts applied from the least significant key up.
        for column, descending in reversed(list(order or [])):
            rows.sort(key=_sort_key(column), reverse=descending)

        if limit is not None:
            rows = rows[: max(0, limit)]
        return rows

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record:
        with self._lock:
            row = self._tables.get(table, {}).get(str(record_id))
            if row is None:
                raise PersistenceFailure("update", f"no row {record_id} in {table}")
            row.update(copy.deepcopy(dict(patch)))
            row["id"] = str(record_id)
            return copy.deepcopy(row)

    def count(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> int:
        return len(self.query(table, filters))
