"""
Tests for storage backends.

PostgresStore tests need a reachable database (SEED_GRAPH_DSN or the default
local settings) and are skipped otherwise.
"""

from datetime import datetime

import psycopg2
import pytest

from seed_graph.config import DatabaseConfig
from seed_graph.store import MemoryStore, PostgresStore, get_connection


class TestMemoryStore:
    """In-memory backend."""

    def test_insert_and_select(self, store):
        assert store.insert("tags", [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}]) == 2
        assert store.select("tags") == [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}]
        assert store.select("tags", ["name"]) == [{"name": "A"}, {"name": "B"}]

    def test_select_unknown_table_is_empty(self, store):
        assert store.select("nothing") == []

    def test_selected_rows_are_copies(self, store):
        store.insert("tags", [{"id": "a"}])
        store.select("tags")[0]["id"] = "changed"
        assert store.tables["tags"] == [{"id": "a"}]

    def test_order_by_puts_nulls_last(self, store):
        store.insert("posts", [
            {"id": "draft", "published_at": None},
            {"id": "late", "published_at": datetime(2024, 2, 1)},
            {"id": "early", "published_at": datetime(2024, 1, 1)},
        ])
        ordered = [row["id"] for row in store.select("posts", order_by="published_at")]
        assert ordered == ["early", "late", "draft"]

    def test_order_by_multiple_columns(self, store):
        store.insert("rows", [{"id": 1, "a": 2, "b": 1}, {"id": 2, "a": 1, "b": 2}, {"id": 3, "a": 1, "b": 1}])
        assert [r["id"] for r in store.select("rows", order_by=["a", "b"])] == [3, 2, 1]

    def test_update_by_key(self, store):
        store.insert("members", [{"id": "m1", "email_count": 0}, {"id": "m2", "email_count": 0}])
        updated = store.update("members", [{"id": "m2", "email_count": 5}, {"id": "gone", "email_count": 1}])
        assert updated == 1
        assert store.tables["members"] == [{"id": "m1", "email_count": 0}, {"id": "m2", "email_count": 5}]

    def test_delete_with_keep(self, store):
        store.insert("users", [{"id": "1"}, {"id": "2"}, {"id": "3"}])
        store.delete("users", keep=("id", "1"))
        assert store.tables["users"] == [{"id": "1"}]

    def test_truncate(self, store):
        store.insert("tags", [{"id": "a"}])
        store.truncate("tags")
        assert store.count("tags") == 0

    def test_transaction_commits(self, store):
        with store.transaction():
            store.insert("tags", [{"id": "a"}])
        assert store.count("tags") == 1
        assert store.committed == 1

    def test_transaction_rolls_back(self):
        store = MemoryStore({"tags": [{"id": "keep"}]})
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.set_integrity_checks(False)
                store.insert("tags", [{"id": "new"}])
                store.insert("labels", [{"id": "l"}])
                raise RuntimeError("boom")
        assert store.tables == {"tags": [{"id": "keep"}]}
        assert store.integrity_checks is True
        assert store.rolled_back == 1
        assert store.committed == 0


@pytest.fixture
def pg_store():
    try:
        conn = get_connection(**DatabaseConfig.from_env().connect_kwargs())
    except psycopg2.OperationalError:
        pytest.skip("PostgreSQL not available")

    with conn.cursor() as cur:
        cur.execute(
            "CREATE TEMP TABLE seed_graph_test_tags ("
            " id text PRIMARY KEY, name text, created_at timestamp)"
        )
    conn.commit()

    store = PostgresStore(conn)
    yield store
    store.close()


class TestPostgresStore:
    """psycopg2 backend against a real database."""

    table = "seed_graph_test_tags"

    def test_insert_select_update(self, pg_store):
        with pg_store.transaction():
            pg_store.insert(self.table, [
                {"id": "b", "name": "B", "created_at": datetime(2024, 1, 2)},
                {"id": "a", "name": "A", "created_at": datetime(2024, 1, 1)},
            ])
            assert pg_store.update(self.table, [{"id": "a", "name": "Alpha"}]) == 1

        rows = pg_store.select(self.table, ["id", "name"], order_by="created_at")
        assert rows == [{"id": "a", "name": "Alpha"}, {"id": "b", "name": "B"}]

    def test_delete_with_keep(self, pg_store):
        with pg_store.transaction():
            pg_store.insert(self.table, [{"id": "1", "name": "Admin"}, {"id": "2", "name": "Other"}])
            pg_store.delete(self.table, keep=("id", "1"))
        assert [r["id"] for r in pg_store.select(self.table, ["id"])] == ["1"]

    def test_rollback(self, pg_store):
        with pytest.raises(RuntimeError):
            with pg_store.transaction():
                pg_store.insert(self.table, [{"id": "x", "name": "X"}])
                raise RuntimeError("boom")
        assert pg_store.select(self.table) == []

    def test_insert_nothing(self, pg_store):
        assert pg_store.insert(self.table, []) == 0
