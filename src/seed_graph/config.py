"""
Run configuration.

GeneratorConfig holds the caller-facing options of a generation run;
DatabaseConfig holds connection settings. Both can be loaded from a YAML file
and are then overridden by command line flags.

Example YAML:

    generator:
      tables: [emails, email_recipients]
      clear_database: true
      seed: 42
      quantities:
        members: 5000
    database:
      host: localhost
      database: ghost
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

DSN_ENV_VAR = "SEED_GRAPH_DSN"


@dataclass
class GeneratorConfig:
    """Options for one generation run."""

    tables: list[str] = field(default_factory=list)  # Empty = every registered table
    with_default: bool = False  # Append every registered table after `tables`
    clear_database: bool = False
    base_data_pack: str = ""  # Path to JSON content pack; "" disables the import
    quantities: dict[str, int] = field(default_factory=dict)
    seed: int | None = None
    print_dependencies: bool = False
    base_url: str = "http://localhost:2368"
    now: datetime | None = None  # Reference time; fixed for reproducible runs

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "GeneratorConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown generator options: {', '.join(sorted(unknown))}")
        config = cls(**values)
        config.quantities = {table: int(n) for table, n in config.quantities.items()}
        return config

    @classmethod
    def from_yaml(cls, path: Path | str) -> "GeneratorConfig":
        return cls.from_dict(_load_section(path, "generator"))


@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings."""

    host: str = "localhost"
    port: int = 5432
    database: str = "ghost"
    user: str = "seed_graph"
    password: str = "dev_password"
    dsn: str | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> "DatabaseConfig":
        config = cls(**overrides)
        if config.dsn is None:
            config.dsn = os.environ.get(DSN_ENV_VAR)
        return config

    @classmethod
    def from_yaml(cls, path: Path | str) -> "DatabaseConfig":
        return cls.from_env(**_load_section(path, "database"))

    def connect_kwargs(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "dsn": self.dsn,
        }


def _load_section(path: Path | str, section: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        document = yaml.safe_load(f) or {}
    if not isinstance(document, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    values = document.get(section) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{section}' in {path} must be a mapping")
    return values
