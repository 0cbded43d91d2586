"""Local SQLite client built on the standard library sqlite3 module."""

import asyncio
import logging
import os
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from ..config import LocalTarget
from . import sql as q
from .base import (
    COLUMN_INFO_FIELDS,
    FOREIGN_KEY_FIELDS,
    INDEX_INFO_FIELDS,
    ColumnDefinition,
    DatabaseInfo,
    ExecuteResult,
    IntegrityResult,
    QueryResult,
    ScriptResult,
    TableDescription,
    TableInfo,
    VacuumResult,
    integrity_result,
    rows_as_dicts,
    translate_engine_errors,
)

logger = logging.getLogger(__name__)

engine_errors = translate_engine_errors(sqlite3.Error)


class SqliteClient:
    """
    Backing-store client for a database file on local disk.

    One sqlite3 connection in autocommit mode, WAL journal, foreign keys on.
    Every operation holds ``_lock`` so a script transaction never interleaves
    with other calls on the same handle.
    """

    def __init__(self, conn: sqlite3.Connection, target: LocalTarget):
        self._conn = conn
        self.target = target
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, target: LocalTarget) -> "SqliteClient":
        conn = sqlite3.connect(
            target.path,
            timeout=target.timeout_ms / 1000.0,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error:
            conn.close()
            raise
        logger.info(f"Opened local database {target.path}")
        return cls(conn, target)

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        cursor = self._conn.execute(sql, tuple(params))
        try:
            return cursor.fetchall()
        finally:
            cursor.close()

    def _scalar(self, sql: str) -> Any:
        rows = self._fetch(sql)
        return rows[0][0] if rows else None

    def _file_size(self) -> int:
        try:
            return os.path.getsize(self.target.path)
        except OSError:
            return 0

    # Query & Execute

    @engine_errors
    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        async with self._lock:
            # writes fail with "attempt to write a readonly database"
            self._conn.execute("PRAGMA query_only = ON")
            try:
                cursor = self._conn.execute(sql, tuple(params or ()))
                try:
                    # description is set even when no rows come back
                    columns = [d[0] for d in cursor.description or ()]
                    rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
                finally:
                    cursor.close()
            finally:
                self._conn.execute("PRAGMA query_only = OFF")
        return {"columns": columns, "rows": rows, "rowCount": len(rows)}

    @engine_errors
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecuteResult:
        async with self._lock:
            cursor = self._conn.execute(sql, tuple(params or ()))
            try:
                changes = max(cursor.rowcount, 0)
            finally:
                cursor.close()
            last_id = self._scalar("SELECT last_insert_rowid()") or 0
        return {"changes": changes, "lastInsertRowid": last_id}

    @engine_errors
    async def run_script(self, sql: str) -> ScriptResult:
        statements = q.split_script(sql)
        async with self._lock:
            self._conn.execute("BEGIN")
            try:
                for statement in statements:
                    self._conn.execute(statement).close()
            except BaseException:
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
        return {"statementsRun": len(statements)}

    # Schema Inspection

    @engine_errors
    async def list_tables(self) -> List[TableInfo]:
        async with self._lock:
            tables = []
            for name, kind in self._fetch(q.LIST_TABLES_SQL):
                try:
                    row_count = self._scalar(q.count_rows_sql(name)) or 0
                except sqlite3.Error:
                    row_count = 0
                tables.append({"name": name, "type": kind, "rowCount": row_count})
        return tables

    @engine_errors
    async def describe_table(self, table: str) -> TableDescription:
        async with self._lock:
            columns = rows_as_dicts(COLUMN_INFO_FIELDS, self._fetch(q.pragma_sql("table_info", table)))
            schema = self._fetch(q.SCHEMA_SQL, (table,))
        return {"columns": columns, "sql": (schema[0][0] if schema else None) or ""}

    @engine_errors
    async def list_indexes(self, table: str) -> List[Dict[str, Any]]:
        async with self._lock:
            return rows_as_dicts(INDEX_INFO_FIELDS, self._fetch(q.pragma_sql("index_list", table)))

    @engine_errors
    async def list_foreign_keys(self, table: str) -> List[Dict[str, Any]]:
        async with self._lock:
            return rows_as_dicts(FOREIGN_KEY_FIELDS, self._fetch(q.pragma_sql("foreign_key_list", table)))

    # Schema Management

    @engine_errors
    async def create_table(self, table: str, columns: Sequence[ColumnDefinition], if_not_exists: bool = False) -> None:
        statement = q.create_table_sql(table, columns, if_not_exists)
        async with self._lock:
            self._conn.execute(statement).close()

    @engine_errors
    async def alter_table(self, table: str, action: str, params: Dict[str, Any]) -> None:
        statement = q.alter_table_sql(table, action, params)
        async with self._lock:
            self._conn.execute(statement).close()

    @engine_errors
    async def drop_table(self, table: str, if_exists: bool = False) -> None:
        async with self._lock:
            self._conn.execute(q.drop_table_sql(table, if_exists)).close()

    # Index Management

    @engine_errors
    async def create_index(
        self,
        table: str,
        columns: Sequence[str],
        index_name: Optional[str] = None,
        unique: bool = False,
        if_not_exists: bool = False,
    ) -> str:
        name = index_name or q.default_index_name(table, columns)
        async with self._lock:
            self._conn.execute(q.create_index_sql(name, table, columns, unique, if_not_exists)).close()
        return name

    @engine_errors
    async def drop_index(self, index_name: str, if_exists: bool = False) -> None:
        async with self._lock:
            self._conn.execute(q.drop_index_sql(index_name, if_exists)).close()

    # Database Management

    @engine_errors
    async def get_info(self) -> DatabaseInfo:
        async with self._lock:
            page_count = self._scalar("PRAGMA page_count")
            page_size = self._scalar("PRAGMA page_size")
            journal_mode = self._scalar("PRAGMA journal_mode")
            encoding = self._scalar("PRAGMA encoding")
            version = self._scalar(q.VERSION_SQL)
            table_count = self._scalar(q.TABLE_COUNT_SQL)
        path = self.target.path
        return {
            "filePath": path if path == ":memory:" else os.path.abspath(path),
            "fileSize": self._file_size(),
            "tableCount": table_count,
            "pageCount": page_count,
            "pageSize": page_size,
            "journalMode": journal_mode,
            "walMode": journal_mode == "wal",
            "encoding": encoding,
            "sqliteVersion": version,
        }

    @engine_errors
    async def vacuum(self) -> VacuumResult:
        async with self._lock:
            size_before = self._file_size()
            self._conn.execute("VACUUM").close()
            size_after = self._file_size()
        return {"sizeBefore": size_before, "sizeAfter": size_after}

    @engine_errors
    async def integrity_check(self) -> IntegrityResult:
        async with self._lock:
            messages = [row[0] for row in self._fetch("PRAGMA integrity_check")]
        return integrity_result(messages)

    async def close(self) -> None:
        self._conn.close()
        logger.info(f"Closed local database {self.target.path}")
