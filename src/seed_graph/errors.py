"""
Exceptions raised by the generation engine.

Every error here is fatal to a run: the orchestrator lets the storage
transaction roll back and re-raises to the caller.
"""


class SeedGraphError(Exception):
    """Base class for generation errors."""

    pass


class UnknownTableError(SeedGraphError):
    """Raised when a requested table has no registered importer."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Unknown table: {table}")


class CyclicDependencyError(SeedGraphError):
    """Raised when table dependencies form a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic table dependency: {' -> '.join(cycle)}")


class MissingReferenceError(SeedGraphError):
    """Raised when a reference row points at a parent row that does not exist."""

    def __init__(self, table: str, column: str, value):
        self.table = table
        self.column = column
        self.value = value
        super().__init__(f"No {table} row with {column}={value!r}")


class ContentPackReadError(SeedGraphError):
    """Raised when the static content pack is missing or malformed."""

    pass
