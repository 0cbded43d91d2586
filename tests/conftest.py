import sqlite3

import libsql_client
import pytest

from sqlite_mcp.clients import SqliteClient
from sqlite_mcp.config import LocalTarget, Settings


class FakeResultSet:
    def __init__(self, columns, rows, rows_affected, last_insert_rowid):
        self.columns = columns
        self.rows = rows
        self.rows_affected = rows_affected
        self.last_insert_rowid = last_insert_rowid


class FakeLibsqlClient:
    """Stands in for a libsql_client client, answering from an in-memory sqlite3 database."""

    def __init__(self, url="libsql://fake.turso.io", auth_token=None):
        self.url = url
        self.auth_token = auth_token
        self.conn = sqlite3.connect(":memory:", isolation_level=None)
        self.executed = []
        self.batches = []
        self.closed = False

    def _run(self, sql, args=()):
        try:
            cursor = self.conn.execute(sql, tuple(args or ()))
        except sqlite3.Error as e:
            raise libsql_client.LibsqlError(str(e), "SQLITE_ERROR") from e
        columns = tuple(d[0] for d in cursor.description or ())
        rows = [tuple(r) for r in cursor.fetchall()]
        return FakeResultSet(columns, rows, max(cursor.rowcount, 0), cursor.lastrowid)

    async def execute(self, sql, args=None):
        self.executed.append(sql)
        return self._run(sql, args)

    async def batch(self, statements):
        self.batches.append(list(statements))
        self.conn.execute("BEGIN")
        try:
            results = [self._run(s) for s in statements]
        except Exception:
            self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")
        return results

    async def close(self):
        self.closed = True


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def local_settings(db_path):
    return Settings(db_path=db_path)


@pytest.fixture
async def local_client(db_path):
    client = await SqliteClient.open(LocalTarget(path=db_path))
    yield client
    await client.close()


@pytest.fixture
def fake_libsql(monkeypatch):
    """Patch libsql_client.create_client; returns the list of clients it created."""
    created = []

    def create_client(url, auth_token=None):
        client = FakeLibsqlClient(url, auth_token)
        created.append(client)
        return client

    monkeypatch.setattr(libsql_client, "create_client", create_client)
    return created
