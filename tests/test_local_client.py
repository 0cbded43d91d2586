import os

import pytest

from sqlite_mcp.clients import BackingStoreClient, SqliteClient
from sqlite_mcp.config import LocalTarget
from sqlite_mcp.errors import EngineError


async def test_implements_backing_store_contract(local_client):
    assert isinstance(local_client, BackingStoreClient)


async def test_open_enables_wal_and_foreign_keys(local_client):
    result = await local_client.query("PRAGMA foreign_keys")
    assert result["rows"] == [{"foreign_keys": 1}]
    info = await local_client.get_info()
    assert info["journalMode"] == "wal"
    assert info["walMode"] is True


async def test_execute_and_query(local_client):
    await local_client.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)")
    first = await local_client.execute("INSERT INTO users (name, age) VALUES (?, ?)", ["Alice", 30])
    assert first == {"changes": 1, "lastInsertRowid": 1}
    await local_client.execute("INSERT INTO users (name, age) VALUES (?, ?)", ["Bob", 20])

    result = await local_client.query("SELECT name, age FROM users WHERE age > ? ORDER BY name", [25])
    assert result == {"columns": ["name", "age"], "rows": [{"name": "Alice", "age": 30}], "rowCount": 1}


async def test_query_with_no_rows_keeps_columns(local_client):
    await local_client.execute("CREATE TABLE t (a, b)")
    result = await local_client.query("SELECT a, b FROM t")
    assert result == {"columns": ["a", "b"], "rows": [], "rowCount": 0}


async def test_update_reports_changes(local_client):
    await local_client.run_script("CREATE TABLE t (a); INSERT INTO t VALUES (1); INSERT INTO t VALUES (2)")
    result = await local_client.execute("UPDATE t SET a = a + 10")
    assert result["changes"] == 2


async def test_engine_error_message_is_verbatim(local_client):
    with pytest.raises(EngineError, match="no such table: missing"):
        await local_client.query("SELECT * FROM missing")


async def test_run_script_commits_all(local_client):
    result = await local_client.run_script(
        "CREATE TABLE t1 (id INTEGER); INSERT INTO t1 VALUES (1); INSERT INTO t1 VALUES (2);"
    )
    assert result == {"statementsRun": 3}
    assert (await local_client.query("SELECT COUNT(*) AS n FROM t1"))["rows"] == [{"n": 2}]


async def test_run_script_is_atomic(local_client):
    await local_client.execute("CREATE TABLE t1 (id INTEGER)")
    with pytest.raises(EngineError):
        await local_client.run_script("INSERT INTO t1 VALUES (1); INSERT INTO nope VALUES (2)")
    assert (await local_client.query("SELECT COUNT(*) AS n FROM t1"))["rows"] == [{"n": 0}]
    # the handle is usable again after the rollback
    await local_client.execute("INSERT INTO t1 VALUES (3)")


async def test_list_tables_sorted_with_counts(local_client):
    await local_client.run_script(
        "CREATE TABLE b (x); CREATE TABLE a (x);"
        "INSERT INTO b VALUES (1); INSERT INTO b VALUES (2); INSERT INTO b VALUES (3);"
        "CREATE VIEW v AS SELECT * FROM b"
    )
    tables = await local_client.list_tables()
    assert tables == [
        {"name": "a", "type": "table", "rowCount": 0},
        {"name": "b", "type": "table", "rowCount": 3},
        {"name": "v", "type": "view", "rowCount": 3},
    ]


async def test_list_tables_hides_internal_tables(local_client):
    await local_client.run_script(
        "CREATE TABLE _litestream_seq (id INTEGER); CREATE TABLE items (id INTEGER PRIMARY KEY AUTOINCREMENT)"
    )
    names = [t["name"] for t in await local_client.list_tables()]
    assert names == ["items"]


async def test_describe_table(local_client):
    await local_client.create_table(
        "users",
        [
            {"name": "id", "type": "INTEGER", "primaryKey": True},
            {"name": "email", "type": "TEXT", "notNull": True},
            {"name": "score", "type": "REAL", "default": 0},
        ],
    )
    description = await local_client.describe_table("users")
    columns = {c["name"]: c for c in description["columns"]}
    assert list(columns) == ["id", "email", "score"]
    assert columns["id"]["pk"] == 1
    assert columns["email"]["notnull"] == 1
    assert columns["score"]["dflt_value"] == "0"
    assert description["sql"].startswith('CREATE TABLE "users"')


async def test_describe_missing_table_is_empty(local_client):
    assert await local_client.describe_table("ghost") == {"columns": [], "sql": ""}


async def test_indexes_and_foreign_keys(local_client):
    await local_client.run_script(
        "CREATE TABLE parent (id INTEGER PRIMARY KEY);"
        "CREATE TABLE child (id INTEGER PRIMARY KEY, parent_id INTEGER REFERENCES parent(id) ON DELETE CASCADE)"
    )
    name = await local_client.create_index("child", ["parent_id"], unique=True)
    assert name == "idx_child_parent_id"

    indexes = await local_client.list_indexes("child")
    assert [(i["name"], i["unique"]) for i in indexes] == [("idx_child_parent_id", 1)]

    fks = await local_client.list_foreign_keys("child")
    assert len(fks) == 1
    assert fks[0]["table"] == "parent"
    assert fks[0]["from"] == "parent_id"
    assert fks[0]["to"] == "id"
    assert fks[0]["on_delete"] == "CASCADE"

    await local_client.drop_index(name)
    assert await local_client.list_indexes("child") == []


async def test_alter_and_drop_table(local_client):
    await local_client.create_table("t", [{"name": "a", "type": "TEXT"}])
    await local_client.alter_table("t", "add_column", {"column": "b", "type": "INTEGER", "default": 7})
    await local_client.alter_table("t", "rename_column", {"oldName": "a", "newName": "title"})
    await local_client.alter_table("t", "rename_table", {"newTableName": "posts"})
    described = await local_client.describe_table("posts")
    assert [c["name"] for c in described["columns"]] == ["title", "b"]

    await local_client.drop_table("posts")
    await local_client.drop_table("posts", if_exists=True)
    with pytest.raises(EngineError, match="no such table"):
        await local_client.drop_table("posts")


async def test_get_info(local_client, db_path):
    await local_client.create_table("t", [{"name": "a", "type": "TEXT"}])
    info = await local_client.get_info()
    assert info["filePath"] == os.path.abspath(db_path)
    assert info["tableCount"] == 1
    assert info["pageSize"] > 0
    assert info["encoding"] == "UTF-8"
    assert info["sqliteVersion"].count(".") == 2


async def test_vacuum_and_integrity(local_client):
    result = await local_client.vacuum()
    assert set(result) == {"sizeBefore", "sizeAfter"}
    assert await local_client.integrity_check() == {"ok": True, "results": ["ok"]}


async def test_memory_database_path():
    client = await SqliteClient.open(LocalTarget(path=":memory:"))
    try:
        info = await client.get_info()
        assert info["filePath"] == ":memory:"
        assert info["fileSize"] == 0
    finally:
        await client.close()


async def test_query_refuses_writes(local_client):
    await local_client.run_script("CREATE TABLE t (a); INSERT INTO t VALUES (1)")
    with pytest.raises(EngineError, match="readonly"):
        await local_client.query("DELETE FROM t")
    assert (await local_client.query("SELECT COUNT(*) AS n FROM t"))["rows"] == [{"n": 1}]
    # writes through execute still work afterwards
    assert (await local_client.execute("DELETE FROM t"))["changes"] == 1


async def test_last_insert_rowid_survives_updates(local_client):
    await local_client.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, a)")
    await local_client.execute("INSERT INTO t (a) VALUES (1)")
    await local_client.execute("INSERT INTO t (a) VALUES (2)")
    result = await local_client.execute("UPDATE t SET a = 3 WHERE id = 1")
    assert result == {"changes": 1, "lastInsertRowid": 2}
