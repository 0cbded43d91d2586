"""Remote libSQL / Turso client built on ``libsql-client``."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import libsql_client

from ..config import RemoteTarget
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

engine_errors = translate_engine_errors(libsql_client.LibsqlError)


class LibSqlClient:
    """
    Backing-store client for a remote libSQL server.

    Statements are sent one request at a time; scripts go out as a single
    batch, which the server runs inside one transaction.
    """

    def __init__(self, client: Any, target: RemoteTarget):
        self._client = client
        self.target = target

    @classmethod
    async def open(cls, target: RemoteTarget) -> "LibSqlClient":
        """Create the client and probe it so bad credentials fail here, not on first use."""
        client = libsql_client.create_client(target.url, auth_token=target.auth_token)
        try:
            await client.execute("SELECT 1")
        except BaseException:
            await client.close()
            raise
        logger.info(f"Connected to remote database {target.url}")
        return cls(client, target)

    async def _rows(self, sql: str, args: Sequence[Any] = ()) -> List[tuple]:
        result = await self._client.execute(sql, list(args))
        return [tuple(row) for row in result.rows]

    async def _scalar(self, sql: str) -> Any:
        rows = await self._rows(sql)
        return rows[0][0] if rows else None

    async def _estimated_size(self) -> int:
        page_count, page_size = await asyncio.gather(
            self._scalar("PRAGMA page_count"),
            self._scalar("PRAGMA page_size"),
        )
        return (page_count or 0) * (page_size or 0)

    # Query & Execute

    @engine_errors
    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        result = await self._client.execute(sql, list(params or ()))
        columns = list(result.columns)
        rows = [dict(zip(columns, row)) for row in result.rows]
        return {"columns": columns, "rows": rows, "rowCount": len(rows)}

    @engine_errors
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecuteResult:
        result = await self._client.execute(sql, list(params or ()))
        return {"changes": result.rows_affected, "lastInsertRowid": result.last_insert_rowid or 0}

    @engine_errors
    async def run_script(self, sql: str) -> ScriptResult:
        statements = q.split_script(sql)
        if statements:
            await self._client.batch(statements)
        return {"statementsRun": len(statements)}

    # Schema Inspection

    @engine_errors
    async def list_tables(self) -> List[TableInfo]:
        tables = []
        for name, kind in await self._rows(q.LIST_TABLES_SQL):
            try:
                row_count = await self._scalar(q.count_rows_sql(name)) or 0
            except libsql_client.LibsqlError:
                row_count = 0
            tables.append({"name": name, "type": kind, "rowCount": row_count})
        return tables

    @engine_errors
    async def describe_table(self, table: str) -> TableDescription:
        columns = rows_as_dicts(COLUMN_INFO_FIELDS, await self._rows(q.pragma_sql("table_info", table)))
        schema = await self._rows(q.SCHEMA_SQL, [table])
        return {"columns": columns, "sql": (schema[0][0] if schema else None) or ""}

    @engine_errors
    async def list_indexes(self, table: str) -> List[Dict[str, Any]]:
        return rows_as_dicts(INDEX_INFO_FIELDS, await self._rows(q.pragma_sql("index_list", table)))

    @engine_errors
    async def list_foreign_keys(self, table: str) -> List[Dict[str, Any]]:
        return rows_as_dicts(FOREIGN_KEY_FIELDS, await self._rows(q.pragma_sql("foreign_key_list", table)))

    # Schema Management

    @engine_errors
    async def create_table(self, table: str, columns: Sequence[ColumnDefinition], if_not_exists: bool = False) -> None:
        await self._client.execute(q.create_table_sql(table, columns, if_not_exists))

    @engine_errors
    async def alter_table(self, table: str, action: str, params: Dict[str, Any]) -> None:
        await self._client.execute(q.alter_table_sql(table, action, params))

    @engine_errors
    async def drop_table(self, table: str, if_exists: bool = False) -> None:
        await self._client.execute(q.drop_table_sql(table, if_exists))

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
        await self._client.execute(q.create_index_sql(name, table, columns, unique, if_not_exists))
        return name

    @engine_errors
    async def drop_index(self, index_name: str, if_exists: bool = False) -> None:
        await self._client.execute(q.drop_index_sql(index_name, if_exists))

    # Database Management

    @engine_errors
    async def get_info(self) -> DatabaseInfo:
        page_count, page_size, journal_mode, encoding, version, table_count = await asyncio.gather(
            self._scalar("PRAGMA page_count"),
            self._scalar("PRAGMA page_size"),
            self._scalar("PRAGMA journal_mode"),
            self._scalar("PRAGMA encoding"),
            self._scalar(q.VERSION_SQL),
            self._scalar(q.TABLE_COUNT_SQL),
        )
        return {
            "filePath": self.target.url,
            "fileSize": (page_count or 0) * (page_size or 0),
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
        size_before = await self._estimated_size()
        await self._client.execute("VACUUM")
        size_after = await self._estimated_size()
        return {"sizeBefore": size_before, "sizeAfter": size_after}

    @engine_errors
    async def integrity_check(self) -> IntegrityResult:
        messages = [row[0] for row in await self._rows("PRAGMA integrity_check")]
        return integrity_result(messages)

    async def close(self) -> None:
        await self._client.close()
        logger.info(f"Closed remote database {self.target.url}")
