"""
Schema map loading.

The schema is a declarative map of table -> column -> column definition. The
generator only reads the `references` annotation ("other_table.column") of
each column, which is how foreign-key ordering is inferred.
"""

from pathlib import Path
from typing import Any, Iterator

import yaml

# Bundled table map for the content/email platform
DEFAULT_SCHEMA_PATH = Path(__file__).parent / "data" / "schema.yaml"

Schema = dict[str, dict[str, dict[str, Any]]]


def load_schema(path: Path | str | None = None) -> Schema:
    """
    Load a table map from YAML.

    The document must contain a top-level `tables` mapping; each table maps
    column names to column definitions.

    Args:
        path: YAML file to load (defaults to the bundled schema)

    Returns:
        Dict of table name -> column name -> column definition

    Raises:
        ValueError: If the file is missing or does not have the expected shape
    """
    schema_path = Path(path) if path is not None else DEFAULT_SCHEMA_PATH
    if not schema_path.exists():
        raise ValueError(f"Schema file not found: {schema_path}")

    with open(schema_path, encoding="utf-8") as f:
        document = yaml.safe_load(f) or {}

    tables = document.get("tables") if isinstance(document, dict) else None
    if not isinstance(tables, dict):
        raise ValueError(f"Schema {schema_path} has no 'tables' mapping")

    schema: Schema = {}
    for table, columns in tables.items():
        if not isinstance(columns, dict):
            raise ValueError(f"Schema table '{table}' must map columns to definitions")
        schema[table] = {name: dict(definition or {}) for name, definition in columns.items()}
        for column, definition in schema[table].items():
            ref = definition.get("references")
            if ref is not None and (not isinstance(ref, str) or "." not in ref):
                raise ValueError(
                    f"Schema column '{table}.{column}' has malformed reference {ref!r}"
                )
    return schema


def referenced_tables(schema: Schema, table: str) -> Iterator[str]:
    """Yield the tables referenced by `table`'s columns, in column order."""
    for definition in schema.get(table, {}).values():
        ref = definition.get("references")
        if ref:
            yield ref.split(".")[0]
