"""
Base class for table importers.

One importer class per table. An importer reads the already-persisted rows of
its dependencies and writes its own rows, in one of two modes:

- Direct mode: import_data(quantity) calls generate() up to `quantity` times
  and persists rows in chunks.
- Batch-by-reference mode: import_data() loads reference rows from a
  dependency table and hands them to import_for_each(), which calls
  set_referenced_model(ref) and then generate() until it returns None. Rows of
  one reference are persisted before the next reference starts, so memory is
  bounded by a single reference's working set.

Example:
    class TagsImporter(TableImporter):
        table = "tags"
        default_quantity = 10

        def generate(self) -> Row | None:
            name = self.fake.word()
            return {"id": self.random.object_id(), "name": name, ...}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, ClassVar, Iterable

from faker import Faker

from ..errors import MissingReferenceError
from ..randomness import RandomSource
from ..store import Row, Store

logger = logging.getLogger(__name__)

# Rows buffered before a direct-mode insert
INSERT_CHUNK_SIZE = 500


class TableImporter(ABC):
    """
    Generates and persists the rows of one table.

    Class attributes:
        table: Table name written by this importer
        dependencies: Tables that must be populated first, beyond the ones
            inferred from foreign keys
        default_quantity: Rows (or rows per reference) when none is requested
    """

    table: ClassVar[str]
    dependencies: ClassVar[list[str]] = []
    default_quantity: ClassVar[int | None] = None

    def __init__(
        self,
        store: Store,
        random: RandomSource,
        *,
        now: datetime,
        base_url: str = "",
    ) -> None:
        self.store = store
        self.random = random
        self.now = now
        self.base_url = base_url
        self.rows_written = 0

    @property
    def fake(self) -> Faker:
        return self.random.fake

    def import_data(self, quantity: int | None = None) -> int:
        """
        Generate and persist rows in direct mode.

        Args:
            quantity: Rows to generate (defaults to default_quantity)

        Returns:
            Number of rows written
        """
        amount = quantity if quantity is not None else (self.default_quantity or 0)
        batch: list[Row] = []
        for _ in range(amount):
            row = self.generate()
            if row is None:
                break
            batch.append(row)
            if len(batch) >= INSERT_CHUNK_SIZE:
                self._flush(batch)
                batch = []
        self._flush(batch)
        return self.rows_written

    def import_for_each(
        self,
        models: Iterable[Row],
        quantity: int | float | Callable[[Row], int | float],
    ) -> int:
        """
        Generate rows scoped to each reference model in turn.

        Args:
            models: Reference rows from a dependency table
            quantity: Max rows per model, or a callable returning it per model

        Returns:
            Number of rows written
        """
        for model in models:
            self.set_referenced_model(model)
            amount = quantity(model) if callable(quantity) else quantity
            batch: list[Row] = []
            for _ in range(int(amount)):
                row = self.generate()
                if row is None:
                    break
                batch.append(row)
            self._flush(batch)
        return self.rows_written

    def set_referenced_model(self, model: Row) -> None:
        """Establish the per-reference context for subsequent generate() calls."""
        self.model = model

    @abstractmethod
    def generate(self) -> Row | None:
        """Produce one row, or None when the current scope is exhausted."""

    def finalise(self) -> None:
        """Post-generation hook run once every table has rows."""
        pass

    def _flush(self, rows: list[Row]) -> None:
        if rows:
            self.store.insert(self.table, rows)
            self.rows_written += len(rows)
            logger.debug("Inserted %d rows into %s", len(rows), self.table)


def index_by(rows: Iterable[Row], column: str = "id") -> dict[Any, Row]:
    """Index rows by a unique column."""
    return {row[column]: row for row in rows}


def require(index: dict[Any, Row], value: Any, table: str, column: str = "id") -> Row:
    """
    Look up a parent row, failing the run if it is missing.

    Raises:
        MissingReferenceError: If `value` is not in `index`
    """
    row = index.get(value)
    if row is None:
        raise MissingReferenceError(table, column, value)
    return row


def slugify(text: str) -> str:
    return "-".join("".join(c if c.isalnum() else " " for c in text.lower()).split())
