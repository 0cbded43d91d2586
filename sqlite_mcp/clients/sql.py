"""
SQL text builders shared by both clients.

Values travel as bound parameters wherever the statement allows it. Table,
column and index names cannot be bound, so they are interpolated through
:func:`quote_identifier`; that quoting is the only protection for names and
is applied at every site below.
"""

from typing import Any, Dict, List, Sequence

from ..errors import InvalidArgumentsError, UnknownActionError

ALTER_ACTIONS = ("add_column", "rename_column", "rename_table")

LIST_TABLES_SQL = (
    "SELECT name, type FROM sqlite_master "
    "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' AND name NOT LIKE '_litestream_%' "
    "ORDER BY name"
)
TABLE_COUNT_SQL = (
    "SELECT COUNT(*) AS count FROM sqlite_master "
    "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' AND name NOT LIKE '_litestream_%'"
)
SCHEMA_SQL = "SELECT sql FROM sqlite_master WHERE name = ?"
VERSION_SQL = "SELECT sqlite_version() AS version"


def quote_identifier(name: Any) -> str:
    """Wrap a name in double quotes, doubling any embedded quote."""
    return '"' + str(name).replace('"', '""') + '"'


def render_literal(value: Any) -> str:
    """Render a DEFAULT value. Strings are single-quoted with quotes doubled."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    raise InvalidArgumentsError(f"Unsupported default value: {value!r}")


def split_script(sql: str) -> List[str]:
    """Split on every semicolon and drop blank pieces.

    The split is purely lexical: a semicolon inside a string literal or a
    comment also ends a statement.
    """
    return [part.strip() for part in sql.split(";") if part.strip()]


def default_index_name(table: str, columns: Sequence[str]) -> str:
    return f"idx_{table}_{'_'.join(columns)}"


def count_rows_sql(table: str) -> str:
    return f"SELECT COUNT(*) AS count FROM {quote_identifier(table)}"


def pragma_sql(pragma: str, table: str) -> str:
    return f"PRAGMA {pragma}({quote_identifier(table)})"


def create_table_sql(table: str, columns: Sequence[Dict[str, Any]], if_not_exists: bool = False) -> str:
    definitions = []
    for column in columns:
        if not isinstance(column, dict) or not column.get("name") or not column.get("type"):
            raise InvalidArgumentsError("Each column definition requires a name and a type")
        definition = f"{quote_identifier(column['name'])} {column['type']}"
        if column.get("primaryKey"):
            definition += " PRIMARY KEY"
        if column.get("notNull"):
            definition += " NOT NULL"
        if column.get("unique"):
            definition += " UNIQUE"
        if column.get("default") is not None:
            definition += f" DEFAULT {render_literal(column['default'])}"
        definitions.append(definition)
    exists = " IF NOT EXISTS" if if_not_exists else ""
    return f"CREATE TABLE{exists} {quote_identifier(table)} ({', '.join(definitions)})"


def _require(params: Dict[str, Any], action: str, *names: str) -> None:
    missing = [name for name in names if params.get(name) in (None, "")]
    if missing:
        raise InvalidArgumentsError(f"{action} requires: {', '.join(missing)}")


def alter_table_sql(table: str, action: str, params: Dict[str, Any]) -> str:
    """Build the ALTER TABLE statement for one of :data:`ALTER_ACTIONS`."""
    quoted = quote_identifier(table)
    if action == "add_column":
        _require(params, action, "column", "type")
        sql = f"ALTER TABLE {quoted} ADD COLUMN {quote_identifier(params['column'])} {params['type']}"
        if params.get("notNull"):
            sql += " NOT NULL"
        if "default" in params:
            sql += f" DEFAULT {render_literal(params['default'])}"
        return sql
    if action == "rename_column":
        _require(params, action, "oldName", "newName")
        return (
            f"ALTER TABLE {quoted} RENAME COLUMN "
            f"{quote_identifier(params['oldName'])} TO {quote_identifier(params['newName'])}"
        )
    if action == "rename_table":
        _require(params, action, "newTableName")
        return f"ALTER TABLE {quoted} RENAME TO {quote_identifier(params['newTableName'])}"
    raise UnknownActionError(action)


def drop_table_sql(table: str, if_exists: bool = False) -> str:
    exists = " IF EXISTS" if if_exists else ""
    return f"DROP TABLE{exists} {quote_identifier(table)}"


def create_index_sql(
    name: str,
    table: str,
    columns: Sequence[str],
    unique: bool = False,
    if_not_exists: bool = False,
) -> str:
    unique_str = " UNIQUE" if unique else ""
    exists = " IF NOT EXISTS" if if_not_exists else ""
    cols = ", ".join(quote_identifier(c) for c in columns)
    return f"CREATE{unique_str} INDEX{exists} {quote_identifier(name)} ON {quote_identifier(table)} ({cols})"


def drop_index_sql(index_name: str, if_exists: bool = False) -> str:
    exists = " IF EXISTS" if if_exists else ""
    return f"DROP INDEX{exists} {quote_identifier(index_name)}"
