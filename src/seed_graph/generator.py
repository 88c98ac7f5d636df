"""
DataGenerator - orchestrates one generation run.

A run moves through these states, all inside one storage transaction:

    RESOLVING -> (CLEARING_DATA) -> (IMPORTING_BASE_PACK) -> GENERATING
              -> FINALISING -> COMMITTED

Any exception moves the run to ABORTED; the transaction rolls back so no
partial data is left behind. In print-dependencies mode the run stops after
RESOLVING (state PRINTED) without touching storage.

Usage:
    store = MemoryStore()
    config = GeneratorConfig(tables=["email_recipients"], seed=42)
    result = DataGenerator(store, config).import_data()
    print(result.row_counts)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

from .config import GeneratorConfig
from .content_pack import PACK_TABLES, ContentPackImporter, read_content_pack
from .dependencies import TableSpec, format_dependencies, resolve_tables
from .importers import IMPORTERS, TableImporter
from .randomness import RandomSource
from .schema import Schema, load_schema
from .store import Store

logger = logging.getLogger(__name__)

# Operator account kept when clearing data
ADMIN_USER_ID = "1"

# Tables cleared with a DELETE that keeps the admin rows, instead of truncated
PROTECTED_ROWS: dict[str, tuple[str, str]] = {
    "users": ("id", ADMIN_USER_ID),
    "roles_users": ("user_id", ADMIN_USER_ID),
}


class RunState(Enum):
    """Lifecycle states of a generation run."""

    PENDING = "pending"
    RESOLVING = "resolving"
    PRINTED = "printed"
    CLEARING_DATA = "clearing_data"
    IMPORTING_BASE_PACK = "importing_base_pack"
    GENERATING = "generating"
    FINALISING = "finalising"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass
class GenerationResult:
    """Summary of a generation run."""

    state: RunState
    tables: list[str]  # Generated tables, in generation order
    dependencies: dict[str, list[str]]
    row_counts: dict[str, int] = field(default_factory=dict)
    pack_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.row_counts.values()) + sum(self.pack_counts.values())


class DataGenerator:
    """
    Populates a store with synthetic data in dependency order.

    Attributes:
        store: Storage backend
        config: Run options
        schema: Table map used for FK dependency inference
        registry: Table name -> importer class
        state: Current RunState
    """

    def __init__(
        self,
        store: Store,
        config: GeneratorConfig | None = None,
        schema: Schema | None = None,
        registry: Mapping[str, type[TableImporter]] | None = None,
    ) -> None:
        self.store = store
        self.config = config or GeneratorConfig()
        self.schema = schema if schema is not None else load_schema()
        self.registry = registry if registry is not None else IMPORTERS
        self.now = self.config.now or datetime.now().replace(microsecond=0)
        self.state = RunState.PENDING
        self.table_list: list[TableSpec] = []

    def _transition(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state

    def requested_tables(self) -> list[str]:
        """Table names to generate before dependency expansion."""
        tables = list(self.config.tables)
        if not tables:
            return list(self.registry)
        if self.config.with_default:
            tables += [name for name in self.registry if name not in tables]
        return tables

    def resolve(self) -> list[TableSpec]:
        """Expand and order the table list (see seed_graph.dependencies)."""
        self.table_list = resolve_tables(self.requested_tables(), self.schema, self.registry)
        return self.table_list

    def clear_data(self) -> None:
        """Empty every resolved table, dependents first, keeping the admin rows."""
        for spec in reversed(self.table_list):
            table = spec.name
            logger.debug("Clearing table %s", table)
            if table in PROTECTED_ROWS:
                self.store.delete(table, keep=PROTECTED_ROWS[table])
            else:
                self.store.truncate(table)

    def import_base_pack(self) -> dict[str, int]:
        """Import the content pack and drop its tables from the generation list."""
        pack = read_content_pack(self.config.base_data_pack)
        counts = ContentPackImporter(self.store).import_pack(pack)
        self.table_list = [spec for spec in self.table_list if spec.name not in PACK_TABLES]
        return counts

    def _build_importer(self, spec: TableSpec, random: RandomSource) -> TableImporter:
        # Every importer gets the common options, whether it uses them or not
        return spec.importer(self.store, random, now=self.now, base_url=self.config.base_url)

    def _generate(self, random: RandomSource) -> dict[str, int]:
        row_counts: dict[str, int] = {}
        for spec in self.table_list:
            # Same seed for every table, so the chosen tables don't change each other's data
            random.reseed()
            importer = self._build_importer(spec, random)
            amount = spec.quantity if spec.quantity is not None else importer.default_quantity
            if amount:
                logger.info("Importing content for table %s (%d records)", spec.name, amount)
            else:
                logger.info("Importing content for table %s", spec.name)
            row_counts[spec.name] = importer.import_data(spec.quantity)
        return row_counts

    def _finalise(self, random: RandomSource) -> None:
        # Fresh importers, so generation-time snapshots are not kept alive
        for spec in self.table_list:
            self._build_importer(spec, random).finalise()

    def import_data(self) -> GenerationResult:
        """
        Run the full generation.

        Returns:
            GenerationResult for the run

        Raises:
            UnknownTableError, CyclicDependencyError: Before storage is touched
            MissingReferenceError, ContentPackReadError: After rollback
        """
        self._transition(RunState.RESOLVING)
        try:
            self.resolve()
        except Exception:
            self._transition(RunState.ABORTED)
            raise
        dependencies = {spec.name: list(spec.dependencies) for spec in self.table_list}

        if self.config.print_dependencies:
            logger.debug("Table dependencies:")
            for line in format_dependencies(self.table_list):
                logger.debug("\t%s", line)
            self._transition(RunState.PRINTED)
            return GenerationResult(
                state=self.state,
                tables=[spec.name for spec in self.table_list],
                dependencies=dependencies,
            )

        pack_counts: dict[str, int] = {}
        try:
            with self.store.transaction():
                # Throughput; rolled back with the transaction on failure
                self.store.set_integrity_checks(False)

                if self.config.clear_database:
                    self._transition(RunState.CLEARING_DATA)
                    self.clear_data()

                if self.config.base_data_pack:
                    self._transition(RunState.IMPORTING_BASE_PACK)
                    pack_counts = self.import_base_pack()

                for spec in self.table_list:
                    if spec.name in self.config.quantities:
                        spec.quantity = self.config.quantities[spec.name]

                with RandomSource.scoped(self.config.seed) as random:
                    self._transition(RunState.GENERATING)
                    row_counts = self._generate(random)

                    self._transition(RunState.FINALISING)
                    self._finalise(random)

                self.store.set_integrity_checks(True)
        except Exception as e:
            self._transition(RunState.ABORTED)
            logger.error("Generation failed, rolled back: %s", e)
            raise

        self._transition(RunState.COMMITTED)
        return GenerationResult(
            state=self.state,
            tables=[spec.name for spec in self.table_list],
            dependencies=dependencies,
            row_counts=row_counts,
            pack_counts=pack_counts,
        )
