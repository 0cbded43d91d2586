# sqlite_mcp/tools_manifest.py

"""Manifest of the 15 tools exposed by the SQLite MCP server.

The ``inputSchema`` of every tool is part of the wire contract: it is sent to
clients exactly as written here, property descriptions included.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple


class ToolCategory(Enum):
    QUERY_AND_EXECUTE = "query_and_execute"
    SCHEMA_INSPECTION = "schema_inspection"
    SCHEMA_MANAGEMENT = "schema_management"
    INDEX_MANAGEMENT = "index_management"
    DATABASE_MANAGEMENT = "database_management"


@dataclass(frozen=True)
class ToolAnnotations:
    title: str
    read_only: bool = False
    destructive: bool = False
    idempotent: bool = False
    open_world: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "readOnlyHint": self.read_only,
            "destructiveHint": self.destructive,
            "idempotentHint": self.idempotent,
            "openWorldHint": self.open_world,
        }


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    category: ToolCategory
    input_schema: Mapping[str, Any]
    annotations: ToolAnnotations

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(self.input_schema.get("required", ()))

    def to_dict(self) -> Dict[str, Any]:
        """Wire form for tools/list. The schema is deep-copied so callers can't mutate the catalog."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(dict(self.input_schema)),
            "annotations": self.annotations.to_dict(),
        }


_NO_ARGS = {"type": "object", "properties": {}}

TOOLSET: Tuple[ToolDefinition, ...] = (
    # Query & Execute
    ToolDefinition(
        name="sqlite_query",
        description=(
            "Execute a SELECT query on the SQLite database and return rows as a JSON array. "
            "Use this for reading data — supports any valid SELECT statement with optional "
            "parameter binding for safe queries."
        ),
        category=ToolCategory.QUERY_AND_EXECUTE,
        input_schema={
            "type": "object",
            "properties": {
                "sql": {
                    "type": "string",
                    "description": 'SQL SELECT query to execute (e.g., "SELECT * FROM users WHERE age > ?")',
                },
                "params": {
                    "type": "array",
                    "items": {},
                    "description": "Array of bind parameter values for ? placeholders (e.g., [25])",
                },
            },
            "required": ["sql"],
        },
        annotations=ToolAnnotations(title="Query Database", read_only=True, idempotent=True),
    ),
    ToolDefinition(
        name="sqlite_execute",
        description=(
            "Execute a write statement (INSERT, UPDATE, DELETE, CREATE, ALTER, DROP) on the SQLite "
            "database. Returns the number of rows changed and the last inserted row ID. Use "
            "parameter binding for safe writes."
        ),
        category=ToolCategory.QUERY_AND_EXECUTE,
        input_schema={
            "type": "object",
            "properties": {
                "sql": {
                    "type": "string",
                    "description": 'SQL write statement to execute (e.g., "INSERT INTO users (name, age) VALUES (?, ?)")',
                },
                "params": {
                    "type": "array",
                    "items": {},
                    "description": 'Array of bind parameter values for ? placeholders (e.g., ["Alice", 30])',
                },
            },
            "required": ["sql"],
        },
        annotations=ToolAnnotations(title="Execute Statement"),
    ),
    ToolDefinition(
        name="sqlite_run_script",
        description=(
            "Execute multiple SQL statements in a single transaction. All statements succeed or "
            "all fail (atomic). Separate statements with semicolons. Use for migrations, seed "
            "data, or batch operations."
        ),
        category=ToolCategory.QUERY_AND_EXECUTE,
        input_schema={
            "type": "object",
            "properties": {
                "sql": {
                    "type": "string",
                    "description": (
                        "Multiple SQL statements separated by semicolons "
                        '(e.g., "CREATE TABLE t1 (id INTEGER); INSERT INTO t1 VALUES (1);")'
                    ),
                },
            },
            "required": ["sql"],
        },
        annotations=ToolAnnotations(title="Run SQL Script"),
    ),

    # Schema Inspection
    ToolDefinition(
        name="sqlite_list_tables",
        description=(
            "List all tables and views in the database with their row counts. Use this as the "
            "first step to explore an unfamiliar database. Returns table name, type (table or "
            "view), and row count."
        ),
        category=ToolCategory.SCHEMA_INSPECTION,
        input_schema=_NO_ARGS,
        annotations=ToolAnnotations(title="List Tables", read_only=True, idempotent=True),
    ),
    ToolDefinition(
        name="sqlite_describe_table",
        description=(
            "Get the column schema of a table — column names, data types, NOT NULL constraints, "
            "default values, and primary key flags. Also returns the CREATE TABLE SQL statement."
        ),
        category=ToolCategory.SCHEMA_INSPECTION,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Table name to describe (e.g., "users")'},
            },
            "required": ["table"],
        },
        annotations=ToolAnnotations(title="Describe Table", read_only=True, idempotent=True),
    ),
    ToolDefinition(
        name="sqlite_list_indexes",
        description=(
            "List all indexes on a table — index name, uniqueness, origin (manual or "
            "auto-created), and whether it is a partial index."
        ),
        category=ToolCategory.SCHEMA_INSPECTION,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Table name to list indexes for (e.g., "users")'},
            },
            "required": ["table"],
        },
        annotations=ToolAnnotations(title="List Indexes", read_only=True, idempotent=True),
    ),
    ToolDefinition(
        name="sqlite_list_foreign_keys",
        description=(
            "List foreign key constraints on a table — referenced table, local and remote "
            "columns, ON UPDATE and ON DELETE actions."
        ),
        category=ToolCategory.SCHEMA_INSPECTION,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Table name to list foreign keys for (e.g., "orders")'},
            },
            "required": ["table"],
        },
        annotations=ToolAnnotations(title="List Foreign Keys", read_only=True, idempotent=True),
    ),

    # Schema Management
    ToolDefinition(
        name="sqlite_create_table",
        description=(
            "Create a new table with column definitions. Each column has a name, type, and "
            "optional constraints (PRIMARY KEY, NOT NULL, UNIQUE, DEFAULT). Use ifNotExists to "
            "skip if the table already exists."
        ),
        category=ToolCategory.SCHEMA_MANAGEMENT,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Name for the new table (e.g., "users")'},
                "columns": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string", "description": 'Column name (e.g., "id", "email")'},
                            "type": {
                                "type": "string",
                                "description": 'Column data type (e.g., "INTEGER", "TEXT", "REAL", "BLOB")',
                            },
                            "primaryKey": {"type": "boolean", "description": "Set as PRIMARY KEY (default: false)"},
                            "notNull": {"type": "boolean", "description": "Add NOT NULL constraint (default: false)"},
                            "default": {"description": "Default value for the column (string or number)"},
                            "unique": {"type": "boolean", "description": "Add UNIQUE constraint (default: false)"},
                        },
                        "required": ["name", "type"],
                    },
                    "description": "Array of column definitions with name, type, and optional constraints",
                },
                "ifNotExists": {
                    "type": "boolean",
                    "description": "Skip creation if table already exists (default: false)",
                },
            },
            "required": ["table", "columns"],
        },
        annotations=ToolAnnotations(title="Create Table"),
    ),
    ToolDefinition(
        name="sqlite_alter_table",
        description=(
            "Alter an existing table — add a new column, rename a column, or rename the table. "
            "SQLite does not support dropping columns via ALTER TABLE."
        ),
        category=ToolCategory.SCHEMA_MANAGEMENT,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Current table name to alter (e.g., "users")'},
                "action": {
                    "type": "string",
                    "enum": ["add_column", "rename_column", "rename_table"],
                    "description": (
                        'Alter action: "add_column" to add a new column, "rename_column" to rename '
                        'a column, "rename_table" to rename the table'
                    ),
                },
                "column": {"type": "string", "description": "New column name (for add_column action)"},
                "type": {
                    "type": "string",
                    "description": 'Column data type (for add_column action, e.g., "TEXT", "INTEGER")',
                },
                "notNull": {
                    "type": "boolean",
                    "description": "Add NOT NULL constraint to new column (for add_column, default: false)",
                },
                "default": {"description": "Default value for new column (for add_column)"},
                "oldName": {"type": "string", "description": "Current column name to rename (for rename_column action)"},
                "newName": {"type": "string", "description": "New column name (for rename_column action)"},
                "newTableName": {"type": "string", "description": "New table name (for rename_table action)"},
            },
            "required": ["table", "action"],
        },
        annotations=ToolAnnotations(title="Alter Table"),
    ),
    ToolDefinition(
        name="sqlite_drop_table",
        description=(
            "Drop (delete) a table and all its data permanently. This action is irreversible. "
            "Use ifExists to avoid errors if the table does not exist."
        ),
        category=ToolCategory.SCHEMA_MANAGEMENT,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Table name to drop (e.g., "old_users")'},
                "ifExists": {
                    "type": "boolean",
                    "description": "Skip if table does not exist instead of throwing error (default: false)",
                },
            },
            "required": ["table"],
        },
        annotations=ToolAnnotations(title="Drop Table", destructive=True),
    ),

    # Index Management
    ToolDefinition(
        name="sqlite_create_index",
        description=(
            "Create an index on one or more columns to speed up queries. Optionally create a "
            "UNIQUE index to enforce uniqueness. Index name is auto-generated if not provided."
        ),
        category=ToolCategory.INDEX_MANAGEMENT,
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "description": 'Table to create the index on (e.g., "users")'},
                "columns": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Array of column names to index (e.g., ["email"] or ["last_name", "first_name"])',
                },
                "indexName": {
                    "type": "string",
                    "description": "Custom index name (auto-generated as idx_table_col1_col2 if omitted)",
                },
                "unique": {
                    "type": "boolean",
                    "description": "Create a UNIQUE index to enforce uniqueness (default: false)",
                },
                "ifNotExists": {"type": "boolean", "description": "Skip if index already exists (default: false)"},
            },
            "required": ["table", "columns"],
        },
        annotations=ToolAnnotations(title="Create Index"),
    ),
    ToolDefinition(
        name="sqlite_drop_index",
        description=(
            "Drop (delete) an index by name. Does not affect the table data, only removes the "
            "index. Use ifExists to avoid errors if the index does not exist."
        ),
        category=ToolCategory.INDEX_MANAGEMENT,
        input_schema={
            "type": "object",
            "properties": {
                "indexName": {"type": "string", "description": 'Name of the index to drop (e.g., "idx_users_email")'},
                "ifExists": {
                    "type": "boolean",
                    "description": "Skip if index does not exist instead of throwing error (default: false)",
                },
            },
            "required": ["indexName"],
        },
        annotations=ToolAnnotations(title="Drop Index", destructive=True),
    ),

    # Database Management
    ToolDefinition(
        name="sqlite_get_info",
        description=(
            "Get database metadata — file path, file size, table count, page count, page size, "
            "journal mode, WAL status, encoding, and SQLite version. Use this to understand the "
            "database state."
        ),
        category=ToolCategory.DATABASE_MANAGEMENT,
        input_schema=_NO_ARGS,
        annotations=ToolAnnotations(title="Get Database Info", read_only=True, idempotent=True),
    ),
    ToolDefinition(
        name="sqlite_vacuum",
        description=(
            "Optimize and compact the database file by rebuilding it. Reclaims space from deleted "
            "rows and defragments the file. Returns file size before and after. May take time on "
            "large databases."
        ),
        category=ToolCategory.DATABASE_MANAGEMENT,
        input_schema=_NO_ARGS,
        annotations=ToolAnnotations(title="Vacuum Database", idempotent=True),
    ),
    ToolDefinition(
        name="sqlite_integrity_check",
        description=(
            'Run PRAGMA integrity_check to verify the database is not corrupted. Returns "ok" if '
            "the database is healthy, or a list of issues found. Use after crashes or suspicious "
            "behavior."
        ),
        category=ToolCategory.DATABASE_MANAGEMENT,
        input_schema=_NO_ARGS,
        annotations=ToolAnnotations(title="Integrity Check", read_only=True, idempotent=True),
    ),
)

TOOLS_BY_NAME: Dict[str, ToolDefinition] = {tool.name: tool for tool in TOOLSET}


def list_tools() -> List[Dict[str, Any]]:
    """The catalog in tools/list wire form, in manifest order."""
    return [tool.to_dict() for tool in TOOLSET]


def category_counts() -> Dict[str, int]:
    counts = {category.value: 0 for category in ToolCategory}
    for tool in TOOLSET:
        counts[tool.category.value] += 1
    return counts
