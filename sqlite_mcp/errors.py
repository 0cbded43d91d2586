"""
Error taxonomy for the SQLite MCP server.

Every failure that can reach a tool caller is one of these classes. The
dispatcher converts them into error envelopes; none of them is fatal to the
process.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Categories of errors reported to MCP clients."""
    NOT_CONFIGURED = "not_configured"
    UNKNOWN_TOOL = "unknown_tool"
    UNKNOWN_ACTION = "unknown_action"
    INVALID_ARGUMENTS = "invalid_arguments"
    CONNECTION_FAILURE = "connection_failure"
    ENGINE_ERROR = "engine_error"
    SESSION_NOT_FOUND = "session_not_found"


class SqliteMcpError(Exception):
    """Base error for everything the server reports back to a caller."""

    kind: ErrorKind = ErrorKind.ENGINE_ERROR

    def envelope_message(self) -> str:
        return f"Error: {self}"


class NotConfiguredError(SqliteMcpError):
    """Neither a remote URL nor a local path is configured."""

    kind = ErrorKind.NOT_CONFIGURED

    def __init__(self):
        super().__init__("Database not configured. Set DB_URL (remote) or DB_PATH (local).")


class UnknownToolError(SqliteMcpError):
    kind = ErrorKind.UNKNOWN_TOOL

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class UnknownActionError(SqliteMcpError):
    """An alter-table action outside the supported set."""

    kind = ErrorKind.UNKNOWN_ACTION

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown alter action: {action}")


class InvalidArgumentsError(SqliteMcpError):
    kind = ErrorKind.INVALID_ARGUMENTS


class ConnectionFailureError(SqliteMcpError):
    """Opening the backing store failed (bad path, auth, unreachable host)."""

    kind = ErrorKind.CONNECTION_FAILURE

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)

    def envelope_message(self) -> str:
        return f"Error connecting to database: {self.detail}"


class EngineError(SqliteMcpError):
    """A failure raised by the SQL engine, message kept verbatim."""

    kind = ErrorKind.ENGINE_ERROR


class SessionNotFoundError(SqliteMcpError):
    kind = ErrorKind.SESSION_NOT_FOUND

    def __init__(self, session_id: Optional[str]):
        self.session_id = session_id
        super().__init__("Bad Request: No valid session ID provided")
