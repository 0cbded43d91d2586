"""Backing-store clients: one contract, a local and a remote implementation."""

from ..config import BackingStoreTarget, LocalTarget, RemoteTarget
from .base import BackingStoreClient
from .local import SqliteClient
from .remote import LibSqlClient


async def open_client(target: BackingStoreTarget) -> BackingStoreClient:
    """Open the client implementation that matches ``target``."""
    if isinstance(target, RemoteTarget):
        return await LibSqlClient.open(target)
    if isinstance(target, LocalTarget):
        return await SqliteClient.open(target)
    raise TypeError(f"Unsupported target: {target!r}")


__all__ = [
    "BackingStoreClient",
    "LibSqlClient",
    "SqliteClient",
    "open_client",
]
