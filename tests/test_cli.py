"""
Tests for configuration loading and the command line entry point.
"""

import argparse
from datetime import datetime

import pytest

import seed_graph.cli as cli_module
from seed_graph.cli import (
    build_config,
    build_parser,
    main,
    open_store,
    parse_now,
    parse_quantity,
)
from seed_graph.config import DSN_ENV_VAR, DatabaseConfig, GeneratorConfig
from seed_graph.store import MemoryStore

CONFIG_YAML = """\
generator:
  tables: [tags, labels]
  clear_database: true
  seed: 11
  quantities:
    tags: "4"
database:
  host: db.internal
  port: 6543
  database: ghost_test
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "seed.yaml"
    path.write_text(CONFIG_YAML)
    return path


class TestConfig:
    """YAML and environment configuration."""

    def test_generator_from_yaml(self, config_file):
        config = GeneratorConfig.from_yaml(config_file)
        assert config.tables == ["tags", "labels"]
        assert config.clear_database is True
        assert config.seed == 11
        assert config.quantities == {"tags": 4}
        assert config.print_dependencies is False

    def test_generator_unknown_option(self):
        with pytest.raises(ValueError, match="colour"):
            GeneratorConfig.from_dict({"colour": "blue"})

    def test_missing_section_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("database:\n  host: x\n")
        assert GeneratorConfig.from_yaml(path) == GeneratorConfig()

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("generator: [tags]\n")
        with pytest.raises(ValueError, match="generator"):
            GeneratorConfig.from_yaml(path)

    def test_database_from_yaml(self, config_file, monkeypatch):
        monkeypatch.delenv(DSN_ENV_VAR, raising=False)
        db = DatabaseConfig.from_yaml(config_file)
        assert (db.host, db.port, db.database) == ("db.internal", 6543, "ghost_test")
        assert db.dsn is None

    def test_database_dsn_from_env(self, monkeypatch):
        monkeypatch.setenv(DSN_ENV_VAR, "postgresql://u:p@h/db")
        db = DatabaseConfig.from_env()
        assert db.connect_kwargs()["dsn"] == "postgresql://u:p@h/db"

    def test_explicit_dsn_wins_over_env(self, monkeypatch):
        monkeypatch.setenv(DSN_ENV_VAR, "postgresql://env/db")
        assert DatabaseConfig.from_env(dsn="postgresql://given/db").dsn == "postgresql://given/db"


class TestArguments:
    """Flag parsing and merging."""

    def test_parse_quantity(self):
        assert parse_quantity("members=250") == ("members", 250)

    @pytest.mark.parametrize("value", ["members", "=5", "members=lots", "members=-1"])
    def test_parse_quantity_rejects(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_quantity(value)

    def test_parse_now(self):
        assert parse_now("2024-06-01T12:00:00.750") == datetime(2024, 6, 1, 12, 0, 0)
        with pytest.raises(argparse.ArgumentTypeError):
            parse_now("yesterday")

    def test_now_flag_sets_reference_time(self):
        config = build_config(build_parser().parse_args(["--now", "2024-06-01 12:00:00"]))
        assert config.now == datetime(2024, 6, 1, 12)

    def test_tables_split_on_commas(self):
        args = build_parser().parse_args(["--tables", "emails, email_recipients,"])
        assert args.tables == ["emails", "email_recipients"]

    def test_flags_override_config_file(self, config_file):
        args = build_parser().parse_args([
            "--config", str(config_file),
            "--seed", "99",
            "--quantity", "labels=2",
            "--print-dependencies",
        ])
        config = build_config(args)
        assert config.seed == 99
        assert config.quantities == {"tags": 4, "labels": 2}
        assert config.print_dependencies is True
        # Not given on the command line, so the file value stands
        assert config.clear_database is True

    def test_defaults_without_config(self):
        config = build_config(build_parser().parse_args([]))
        assert config == GeneratorConfig()

    def test_dry_run_uses_memory_store(self):
        args = build_parser().parse_args(["--dry-run"])
        assert isinstance(open_store(args, build_config(args)), MemoryStore)


class TestMain:
    """End-to-end command line runs against the in-memory store."""

    def test_dry_run_summary(self, capsys):
        assert main(["--dry-run", "--tables", "tags,labels", "--quantity", "tags=3", "--seed", "1"]) == 0
        out = capsys.readouterr().out
        assert "Generation Summary" in out
        assert "tags" in out and "labels" in out
        assert "Total rows: 13" in out

    def test_print_dependencies(self, capsys):
        assert main(["--tables", "emails", "--print-dependencies"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Table dependencies:")
        assert "  emails: members_subscribe_events, posts, newsletters" in out

    def test_print_dependencies_shown_once(self, capsys, caplog):
        with caplog.at_level("INFO"):
            assert main(["--tables", "emails", "--print-dependencies"]) == 0
        out = capsys.readouterr().out
        assert out.count("emails: members_subscribe_events") == 1
        assert "emails: members_subscribe_events" not in caplog.text

    def test_same_seed_and_now_reproduce_rows(self, monkeypatch):
        stores = []

        class RecordedMemoryStore(MemoryStore):
            def __init__(self, tables=None):
                super().__init__(tables)
                stores.append(self)

        monkeypatch.setattr(cli_module, "MemoryStore", RecordedMemoryStore)
        argv = ["--dry-run", "--tables", "tags,labels", "--seed", "42", "--now", "2024-06-01T12:00:00"]
        assert main(argv) == 0
        assert main(argv) == 0

        first, second = stores
        assert first.tables["tags"]
        assert first.tables == second.tables
        assert max(row["created_at"] for row in first.tables["labels"]) <= datetime(2024, 6, 1, 12)

    def test_missing_config_file_exits_nonzero(self, capsys, tmp_path):
        assert main(["--dry-run", "--config", str(tmp_path / "missing.yaml")]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_unknown_table_exits_nonzero(self, capsys):
        assert main(["--dry-run", "--tables", "nope"]) == 1
        assert "Error: Unknown table: nope" in capsys.readouterr().err

    def test_missing_pack_exits_nonzero(self, capsys, tmp_path):
        code = main(["--dry-run", "--tables", "tags", "--base-data-pack", str(tmp_path / "x.json")])
        assert code == 1
        assert "Failed to read data pack" in capsys.readouterr().err

    def test_bad_quantity_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--quantity", "members"])
        assert exc_info.value.code == 2
