"""
Command line entry point: `seed-graph` / `python -m seed_graph`.

Examples:
  # Every table, default quantities, into the local database
  seed-graph

  # Emails and everything they need, reproducibly, wiping old data first
  seed-graph --tables email_recipients --clear-database --seed 42 --now 2024-06-01T12:00:00

  # Show the resolved table order without writing anything
  seed-graph --tables email_recipients --print-dependencies

  # Try a run against an in-memory store
  seed-graph --dry-run --quantity members=200
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

import psycopg2

from .config import DatabaseConfig, GeneratorConfig
from .errors import SeedGraphError
from .generator import DataGenerator, GenerationResult
from .schema import load_schema
from .store import MemoryStore, PostgresStore, Store, get_connection

logger = logging.getLogger(__name__)


def parse_quantity(value: str) -> tuple[str, int]:
    """Parse a TABLE=N quantity override."""
    table, sep, amount = value.partition("=")
    if not sep or not table:
        raise argparse.ArgumentTypeError(f"expected TABLE=N, got {value!r}")
    try:
        count = int(amount)
    except ValueError:
        raise argparse.ArgumentTypeError(f"quantity for {table} must be an integer") from None
    if count < 0:
        raise argparse.ArgumentTypeError(f"quantity for {table} must be non-negative")
    return table, count


def parse_now(value: str) -> datetime:
    """Parse an ISO 8601 reference time, truncated to whole seconds."""
    try:
        return datetime.fromisoformat(value).replace(microsecond=0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an ISO 8601 timestamp, got {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seed-graph",
        description="Fill a content/email platform database with synthetic data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument(
        "--tables",
        type=lambda s: [t.strip() for t in s.split(",") if t.strip()],
        help="Comma-separated tables to generate (default: all)",
    )
    parser.add_argument(
        "--with-default",
        action="store_true",
        default=None,
        help="Also generate every other table after the ones given",
    )
    parser.add_argument(
        "--clear-database",
        action="store_true",
        default=None,
        help="Empty the tables before generating (keeps the admin user)",
    )
    parser.add_argument("--base-data-pack", help="JSON content pack to import first")
    parser.add_argument(
        "--quantity",
        type=parse_quantity,
        action="append",
        metavar="TABLE=N",
        help="Rows to generate for a table (repeatable)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed; reproducing a run needs the same --seed and --now",
    )
    parser.add_argument(
        "--now",
        type=parse_now,
        help="Reference time (ISO 8601) that generated timestamps are relative to",
    )
    parser.add_argument(
        "--print-dependencies",
        action="store_true",
        default=None,
        help="Print the resolved table order and exit",
    )
    parser.add_argument("--base-url", help="Site URL passed to importers")
    parser.add_argument("--config", type=Path, help="YAML config file")
    parser.add_argument("--schema", type=Path, help="YAML table map (default: bundled schema)")
    parser.add_argument("--dsn", help="PostgreSQL connection string (or set SEED_GRAPH_DSN)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate into an in-memory store instead of the database",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Merge the YAML config file (if any) with command line flags."""
    config = GeneratorConfig.from_yaml(args.config) if args.config else GeneratorConfig()
    if args.tables is not None:
        config.tables = args.tables
    for flag in ("with_default", "clear_database", "print_dependencies"):
        if getattr(args, flag) is not None:
            setattr(config, flag, getattr(args, flag))
    if args.base_data_pack is not None:
        config.base_data_pack = args.base_data_pack
    if args.seed is not None:
        config.seed = args.seed
    if args.now is not None:
        config.now = args.now
    if args.base_url is not None:
        config.base_url = args.base_url
    if args.quantity:
        config.quantities = {**config.quantities, **dict(args.quantity)}
    return config


def open_store(args: argparse.Namespace, config: GeneratorConfig) -> Store:
    # Dependency printing stops before storage is used
    if args.dry_run or config.print_dependencies:
        return MemoryStore()
    db = DatabaseConfig.from_yaml(args.config) if args.config else DatabaseConfig.from_env()
    if args.dsn:
        db.dsn = args.dsn
    return PostgresStore(get_connection(**db.connect_kwargs()))


def print_summary(result: GenerationResult, elapsed: float) -> None:
    print("=" * 60)
    print("Generation Summary")
    print("=" * 60)
    for table, count in result.pack_counts.items():
        print(f"  {table:<28} {count:>10,}  (content pack)")
    for table in result.tables:
        print(f"  {table:<28} {result.row_counts.get(table, 0):>10,}")
    print(f"Total rows: {result.total_rows:,} in {elapsed:.2f}s")


def main(argv: list[str] | None = None) -> int:
    """
    Run the generator from the command line.

    Returns:
        0 on success, 1 on a generation error
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
        schema = load_schema(args.schema)
        logger.debug("Generator config: %s", config)
        store = open_store(args, config)
        start = time.time()
        try:
            result = DataGenerator(store, config, schema=schema).import_data()
        finally:
            store.close()
    except (SeedGraphError, ValueError, OSError, psycopg2.Error) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if config.print_dependencies:
        print("Table dependencies:")
        for table in result.tables:
            print(f"  {table}: {', '.join(result.dependencies[table])}")
        return 0

    print_summary(result, time.time() - start)
    return 0


if __name__ == "__main__":
    sys.exit(main())
