"""
Static content pack import.

A content pack is a JSON object keyed by table name, each value a list of
rows whose references are already resolved. A fixed subset of tables is
imported verbatim, in a hand-picked order (content order, not FK order),
before generation; those tables are then not generated.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .errors import ContentPackReadError
from .store import Row, Store

logger = logging.getLogger(__name__)

# Hard-coded for order
PACK_TABLES = [
    "newsletters",
    "posts",
    "tags",
    "products",
    "benefits",
    "products_benefits",
    "stripe_products",
    "stripe_prices",
    "settings",
    "custom_theme_settings",
]


def read_content_pack(path: Path | str) -> dict[str, list[Row]]:
    """
    Read a content pack file.

    Relative paths are resolved against the current working directory.

    Raises:
        ContentPackReadError: If the file is missing, not JSON, or not an
            object of row lists
    """
    pack_path = Path(path)
    if not pack_path.is_absolute():
        pack_path = Path.cwd() / pack_path

    try:
        with open(pack_path, encoding="utf-8") as f:
            document: Any = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read data pack %s: %s", pack_path, e)
        raise ContentPackReadError(f"Failed to read data pack {pack_path}: {e}") from e

    if not isinstance(document, dict):
        raise ContentPackReadError(f"Data pack {pack_path} must be a JSON object keyed by table")
    for table, rows in document.items():
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise ContentPackReadError(f"Data pack table '{table}' must be a list of row objects")

    logger.info("Read base data pack %s", pack_path)
    return document


class ContentPackImporter:
    """Imports the PACK_TABLES subset of a content pack into a store."""

    def __init__(self, store: Store, tables: list[str] | None = None) -> None:
        self.store = store
        self.tables = tables if tables is not None else PACK_TABLES

    def import_pack(self, pack: dict[str, list[Row]]) -> dict[str, int]:
        """
        Import pack tables in order.

        The settings table is emptied first since the pack carries a full
        replacement set.

        Returns:
            Table name -> rows imported
        """
        logger.info("Starting base data import")
        self.store.delete("settings")

        counts: dict[str, int] = {}
        for table in self.tables:
            rows = pack.get(table)
            if rows is None:
                logger.warning("Data pack has no rows for table %s", table)
                continue
            logger.info("Importing content for table %s from base data pack", table)
            counts[table] = self.store.insert(table, rows)

        logger.info("Completed base data import")
        return counts
