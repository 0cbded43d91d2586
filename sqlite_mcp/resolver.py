"""
Connection resolution.

A :class:`ConnectionResolver` owns at most one live client for its settings.
It is created empty, opens the client on the first tool call, and hands the
same client to every later call. A failed attempt leaves it empty so the next
call tries again.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Set

from .clients import BackingStoreClient, open_client
from .config import BackingStoreTarget, Settings
from .errors import ConnectionFailureError, NotConfiguredError, SqliteMcpError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[BackingStoreTarget], Awaitable[BackingStoreClient]]


class ConnectionResolver:
    def __init__(self, settings: Settings, factory: ClientFactory = open_client):
        self.settings = settings
        self._factory = factory
        self._client: Optional[BackingStoreClient] = None
        self._lock = asyncio.Lock()

    @property
    def client(self) -> Optional[BackingStoreClient]:
        return self._client

    async def resolve(self) -> BackingStoreClient:
        """Return the live client, opening it if needed.

        Raises:
            NotConfiguredError: no remote URL and no local path configured
            ConnectionFailureError: the backing store could not be opened
        """
        if self._client is not None:
            return self._client
        target = self.settings.target
        async with self._lock:
            if self._client is None:
                logger.info(f"Resolving database connection ({target.describe()})")
                try:
                    self._client = await self._factory(target)
                except SqliteMcpError:
                    raise
                except Exception as e:
                    logger.warning(f"Connection to {target.describe()} failed: {e}")
                    raise ConnectionFailureError(str(e)) from e
        return self._client

    async def close(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await client.close()


class ResolverPool:
    """
    One resolver per backing-store target.

    Sessions that resolve to the same target share a resolver, and with it
    a single client. Settings without a target get a private resolver that
    reports NotConfigured on every call.

    Sessions hold a reference through :meth:`acquire` / :meth:`release`.
    When the last reference to a target goes away its client is closed,
    unless the target was pinned (the server's own configuration).
    """

    def __init__(self, factory: ClientFactory = open_client):
        self._factory = factory
        self._resolvers: Dict[BackingStoreTarget, ConnectionResolver] = {}
        self._refs: Dict[BackingStoreTarget, int] = {}
        self._pinned: Set[BackingStoreTarget] = set()

    def pin(self, settings: Settings) -> None:
        """Keep the client for ``settings`` open even when no session uses it."""
        if settings.is_configured:
            self._pinned.add(settings.target)

    def acquire(self, settings: Settings) -> ConnectionResolver:
        resolver = self.resolver_for(settings)
        if settings.is_configured:
            target = settings.target
            self._refs[target] = self._refs.get(target, 0) + 1
        return resolver

    async def release(self, resolver: ConnectionResolver) -> None:
        if not resolver.settings.is_configured:
            return
        target = resolver.settings.target
        count = self._refs.get(target, 0) - 1
        if count > 0:
            self._refs[target] = count
            return
        self._refs.pop(target, None)
        if target in self._pinned or self._resolvers.get(target) is not resolver:
            return
        del self._resolvers[target]
        logger.info(f"Last session on {target.describe()} closed; releasing its connection")
        await resolver.close()

    def resolver_for(self, settings: Settings) -> ConnectionResolver:
        try:
            target = settings.target
        except NotConfiguredError:
            return ConnectionResolver(settings, self._factory)
        resolver = self._resolvers.get(target)
        if resolver is None:
            resolver = ConnectionResolver(settings, self._factory)
            self._resolvers[target] = resolver
        return resolver

    def __len__(self) -> int:
        return len(self._resolvers)

    async def close_all(self) -> None:
        resolvers = list(self._resolvers.values())
        self._resolvers.clear()
        self._refs.clear()
        for resolver in resolvers:
            try:
                await resolver.close()
            except Exception as e:
                logger.warning(f"Error closing {resolver.settings.describe_target()}: {e}")
