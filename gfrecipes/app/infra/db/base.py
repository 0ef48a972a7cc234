# gfrecipes/app/infra/db/base.py
"""
Abstract base class for the record store.
The pipeline only depends on this minimal contract, so the storage engine
can be swapped (Supabase/Postgres, in-memory for local runs and tests).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

Record = dict[str, Any]
OrderBy = Sequence[tuple[str, bool]]

RECIPES_TABLE = "recipes"
VERSIONS_TABLE = "recipe_versions"
JOBS_TABLE = "jobs"
SUBSTITUTIONS_TABLE = "substitutions"
INGREDIENTS_TABLE = "ingredients"


class RecordStore(ABC):
    """
    Generic record operations over named tables.

    Implementations:
    - SupabaseRecordStore: Postgres tables through the Supabase client
    - InMemoryRecordStore: process-local dictionaries

    Every implementation raises PersistenceFailure when the underlying
    store is unavailable or rejects the operation.
    """

    @abstractmethod
    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        """
        Insert a record.

        Args:
            table: Table name
            record: Column values; "id" is generated when absent

        Returns:
            The persisted row, including "id" and any store-assigned
            columns (e.g. "seq" on recipe_versions)
        """
        pass

    @abstractmethod
    def insert_many(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        """
        Insert several records in one call, preserving their order.

        Returns:
            The persisted rows
        """
        pass

    @abstractmethod
    def get(self, table: str, record_id: str) -> Optional[Record]:
        """
        Fetch a single row by id.

        Returns:
            The row, or None if it does not exist
        """
        pass

    @abstractmethod
    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        """
        Query rows by equality filters.

        Args:
            table: Table name
            filters: Column -> value equality filters
            order: (column, descending) pairs, applied in sequence
            limit: Max rows to return

        Returns:
            Matching rows
        """
        pass

    @abstractmethod
    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record:
        """
        Apply a partial update to one row.

        Returns:
            The updated row

        Raises:
            PersistenceFailure: If the row does not exist
        """
        pass
