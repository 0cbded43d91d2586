"""Canned prompts offered through prompts/list and prompts/get."""

from typing import Any, Dict, List, NamedTuple


class Prompt(NamedTuple):
    name: str
    description: str
    text: str


PROMPTS: Dict[str, Prompt] = {
    "explore-database": Prompt(
        name="explore-database",
        description="Guide for exploring and querying a SQLite database",
        text="\n".join([
            "You are a SQLite database assistant.",
            "",
            "Available exploration actions:",
            "1. **List tables** - Use sqlite_list_tables to see all tables with row counts",
            "2. **Describe table** - Use sqlite_describe_table to see columns, types, constraints",
            "3. **List indexes** - Use sqlite_list_indexes to see indexes on a table",
            "4. **List foreign keys** - Use sqlite_list_foreign_keys to see relationships",
            "5. **Query data** - Use sqlite_query with SELECT statements",
            "6. **Database info** - Use sqlite_get_info for metadata (size, version, journal mode)",
            "7. **Health check** - Use sqlite_integrity_check to verify database health",
            "",
            "Start by listing tables with sqlite_list_tables, then describe tables of interest.",
        ]),
    ),
    "manage-schema": Prompt(
        name="manage-schema",
        description="Guide for managing SQLite tables, columns, and indexes",
        text="\n".join([
            "You are a SQLite schema management assistant.",
            "",
            "Available schema actions:",
            "1. **Create table** - Use sqlite_create_table with column definitions",
            "2. **Alter table** - Use sqlite_alter_table to add/rename columns or rename table",
            "3. **Drop table** - Use sqlite_drop_table to delete a table (irreversible)",
            "4. **Create index** - Use sqlite_create_index for query performance",
            "5. **Drop index** - Use sqlite_drop_index to remove an index",
            "6. **Run script** - Use sqlite_run_script for multi-statement migrations",
            "7. **Execute** - Use sqlite_execute for INSERT, UPDATE, DELETE statements",
            "",
            "Column types: INTEGER, TEXT, REAL, BLOB, NUMERIC",
            "Constraints: PRIMARY KEY, NOT NULL, UNIQUE, DEFAULT",
            "",
            "What would you like to manage?",
        ]),
    ),
}


def list_prompts() -> List[Dict[str, Any]]:
    return [{"name": p.name, "description": p.description, "arguments": []} for p in PROMPTS.values()]


def render_prompt(prompt: Prompt) -> Dict[str, Any]:
    return {
        "description": prompt.description,
        "messages": [{"role": "user", "content": {"type": "text", "text": prompt.text}}],
    }
