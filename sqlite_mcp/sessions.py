"""
Session management for the streamable HTTP transport.

Each session pins one logical client to its own :class:`SessionTransport`,
which owns that client's protocol handler and serializes its requests.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import SessionNotFoundError
from .protocol import McpProtocol

logger = logging.getLogger(__name__)


class SessionTransport:
    """Per-session channel. Requests are handled one at a time, in arrival order."""

    def __init__(
        self,
        protocol: McpProtocol,
        on_close: Optional[Callable[[str], None]] = None,
        release: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.protocol = protocol
        self.session_id: Optional[str] = None
        self._on_close = on_close
        self._release = release
        self._lock = asyncio.Lock()
        self.closed = False

    async def handle_post(self, message: Any) -> Optional[Dict[str, Any]]:
        async with self._lock:
            return await self.protocol.handle(message)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None and self.session_id is not None:
            self._on_close(self.session_id)
        if self._release is not None:
            await self._release()


@dataclass
class Session:
    session_id: str
    transport: SessionTransport


class SessionManager:
    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def create(self, protocol: McpProtocol, release: Optional[Callable[[], Awaitable[None]]] = None) -> Session:
        """Start a session with a fresh identifier and its own transport.

        ``release`` runs once when the session closes; the server uses it to
        drop the session's hold on its database connection.
        """
        transport = SessionTransport(protocol, on_close=self.remove, release=release)
        session_id = str(uuid.uuid4())
        transport.session_id = session_id
        session = Session(session_id=session_id, transport=transport)
        self._sessions[session_id] = session
        logger.info(f"Session {session_id} created ({protocol.settings.describe_target()}); active: {len(self)}")
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def require(self, session_id: Optional[str]) -> Session:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def remove(self, session_id: str) -> None:
        """Forget a session. Removing an unknown or already removed id is a no-op."""
        if self._sessions.pop(session_id, None) is not None:
            logger.info(f"Session {session_id} closed; active: {len(self)}")

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await session.transport.close()
        self._sessions.clear()
