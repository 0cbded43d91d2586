"""
Contract shared by the local and remote backing-store clients.

The dispatcher is written against :class:`BackingStoreClient` only; which
implementation is live is decided once, when the connection is resolved.
"""

import functools
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Type, TypedDict, TypeVar, runtime_checkable

from ..errors import EngineError, SqliteMcpError


class ColumnDefinition(TypedDict, total=False):
    name: str
    type: str
    primaryKey: bool
    notNull: bool
    unique: bool
    default: Any


class QueryResult(TypedDict):
    columns: List[str]
    rows: List[Dict[str, Any]]
    rowCount: int


class ExecuteResult(TypedDict):
    changes: int
    lastInsertRowid: int


class ScriptResult(TypedDict):
    statementsRun: int


class TableInfo(TypedDict):
    name: str
    type: str
    rowCount: int


class TableDescription(TypedDict):
    columns: List[Dict[str, Any]]
    sql: str


class DatabaseInfo(TypedDict):
    filePath: str
    fileSize: int
    tableCount: int
    pageCount: int
    pageSize: int
    journalMode: str
    walMode: bool
    encoding: str
    sqliteVersion: str


class VacuumResult(TypedDict):
    sizeBefore: int
    sizeAfter: int


class IntegrityResult(TypedDict):
    ok: bool
    results: List[str]


# PRAGMA result columns, in engine order
COLUMN_INFO_FIELDS = ("cid", "name", "type", "notnull", "dflt_value", "pk")
INDEX_INFO_FIELDS = ("seq", "name", "unique", "origin", "partial")
FOREIGN_KEY_FIELDS = ("id", "seq", "table", "from", "to", "on_update", "on_delete", "match")


@runtime_checkable
class BackingStoreClient(Protocol):
    """Uniform operation set over one SQLite-compatible database."""

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult: ...
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecuteResult: ...
    async def run_script(self, sql: str) -> ScriptResult: ...
    async def list_tables(self) -> List[TableInfo]: ...
    async def describe_table(self, table: str) -> TableDescription: ...
    async def list_indexes(self, table: str) -> List[Dict[str, Any]]: ...
    async def list_foreign_keys(self, table: str) -> List[Dict[str, Any]]: ...
    async def create_table(self, table: str, columns: Sequence[ColumnDefinition], if_not_exists: bool = False) -> None: ...
    async def alter_table(self, table: str, action: str, params: Dict[str, Any]) -> None: ...
    async def drop_table(self, table: str, if_exists: bool = False) -> None: ...
    async def create_index(
        self,
        table: str,
        columns: Sequence[str],
        index_name: Optional[str] = None,
        unique: bool = False,
        if_not_exists: bool = False,
    ) -> str: ...
    async def drop_index(self, index_name: str, if_exists: bool = False) -> None: ...
    async def get_info(self) -> DatabaseInfo: ...
    async def vacuum(self) -> VacuumResult: ...
    async def integrity_check(self) -> IntegrityResult: ...
    async def close(self) -> None: ...


F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def translate_engine_errors(*engine_errors: Type[BaseException]) -> Callable[[F], F]:
    """Re-raise the engine library's exceptions as :class:`EngineError`.

    The engine's message is carried over unchanged. Errors that are already
    part of the server taxonomy pass through untouched.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SqliteMcpError:
                raise
            except engine_errors as exc:
                raise EngineError(str(exc)) from exc
        return wrapper  # type: ignore[return-value]
    return decorator


def integrity_result(messages: List[str]) -> IntegrityResult:
    return {"ok": len(messages) == 1 and messages[0] == "ok", "results": messages}


def rows_as_dicts(fields: Tuple[str, ...], rows: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    return [dict(zip(fields, row)) for row in rows]
