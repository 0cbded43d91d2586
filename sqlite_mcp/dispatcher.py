"""
Tool dispatch.

Maps a tool name to the backing-store operation that implements it and wraps
whatever happens into exactly one :class:`ResultEnvelope`.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .clients import BackingStoreClient
from .errors import InvalidArgumentsError, SqliteMcpError, UnknownToolError
from .resolver import ConnectionResolver
from .tools_manifest import TOOLS_BY_NAME, ToolDefinition

logger = logging.getLogger(__name__)

ToolHandler = Callable[[BackingStoreClient, Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ResultEnvelope:
    text: str
    is_error: bool = False

    @classmethod
    def success(cls, result: Any) -> "ResultEnvelope":
        return cls(text=to_json(result), is_error=False)

    @classmethod
    def failure(cls, message: str) -> "ResultEnvelope":
        return cls(text=message, is_error=True)

    def to_dict(self) -> Dict[str, Any]:
        return {"content": [{"type": "text", "text": self.text}], "isError": self.is_error}


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(result: Any) -> str:
    return json.dumps(result, indent=2, ensure_ascii=False, default=_json_default)


# Query & Execute

async def _query(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.query(args["sql"], args.get("params"))


async def _execute(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.execute(args["sql"], args.get("params"))


async def _run_script(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.run_script(args["sql"])


# Schema Inspection

async def _list_tables(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.list_tables()


async def _describe_table(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.describe_table(args["table"])


async def _list_indexes(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.list_indexes(args["table"])


async def _list_foreign_keys(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.list_foreign_keys(args["table"])


# Schema Management

async def _create_table(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    await client.create_table(args["table"], args["columns"], bool(args.get("ifNotExists")))
    return {"success": True, "table": args["table"]}


async def _alter_table(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    # each action picks its own keys out of the full argument bag
    await client.alter_table(args["table"], args["action"], args)
    return {"success": True, "table": args["table"], "action": args["action"]}


async def _drop_table(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    await client.drop_table(args["table"], bool(args.get("ifExists")))
    return {"success": True, "table": args["table"], "dropped": True}


# Index Management

async def _create_index(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    name = await client.create_index(
        args["table"],
        args["columns"],
        args.get("indexName") or None,
        bool(args.get("unique")),
        bool(args.get("ifNotExists")),
    )
    return {"success": True, "table": args["table"], "indexName": name}


async def _drop_index(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    await client.drop_index(args["indexName"], bool(args.get("ifExists")))
    return {"success": True, "indexName": args["indexName"], "dropped": True}


# Database Management

async def _get_info(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.get_info()


async def _vacuum(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.vacuum()


async def _integrity_check(client: BackingStoreClient, args: Dict[str, Any]) -> Any:
    return await client.integrity_check()


TOOL_HANDLERS: Mapping[str, ToolHandler] = {
    "sqlite_query": _query,
    "sqlite_execute": _execute,
    "sqlite_run_script": _run_script,
    "sqlite_list_tables": _list_tables,
    "sqlite_describe_table": _describe_table,
    "sqlite_list_indexes": _list_indexes,
    "sqlite_list_foreign_keys": _list_foreign_keys,
    "sqlite_create_table": _create_table,
    "sqlite_alter_table": _alter_table,
    "sqlite_drop_table": _drop_table,
    "sqlite_create_index": _create_index,
    "sqlite_drop_index": _drop_index,
    "sqlite_get_info": _get_info,
    "sqlite_vacuum": _vacuum,
    "sqlite_integrity_check": _integrity_check,
}


def _check_arguments(tool: ToolDefinition, args: Any) -> Dict[str, Any]:
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise InvalidArgumentsError("Tool arguments must be a JSON object")
    missing = [name for name in tool.required if args.get(name) is None]
    if missing:
        raise InvalidArgumentsError(f"Missing required argument(s) for {tool.name}: {', '.join(missing)}")
    return args


class Dispatcher:
    """Routes tool calls to the client supplied by a :class:`ConnectionResolver`."""

    def __init__(
        self,
        resolver: ConnectionResolver,
        catalog: Optional[Mapping[str, ToolDefinition]] = None,
        handlers: Optional[Mapping[str, ToolHandler]] = None,
    ):
        self.resolver = resolver
        self.catalog = TOOLS_BY_NAME if catalog is None else catalog
        self.handlers = TOOL_HANDLERS if handlers is None else handlers

    async def dispatch(self, tool_name: str, arguments: Any = None) -> ResultEnvelope:
        """Run one tool call. Never raises; failures come back with ``is_error`` set."""
        try:
            tool = self.catalog.get(tool_name)
            handler = self.handlers.get(tool_name)
            if tool is None or handler is None:
                raise UnknownToolError(tool_name)
            client = await self.resolver.resolve()
            args = _check_arguments(tool, arguments)
            result = await handler(client, args)
        except SqliteMcpError as e:
            logger.warning(f"Tool {tool_name} failed ({e.kind.value}): {e}")
            return ResultEnvelope.failure(e.envelope_message())
        except Exception as e:
            logger.exception(f"Unexpected error in tool {tool_name}")
            return ResultEnvelope.failure(f"Error: {e}")
        return ResultEnvelope.success(result)
