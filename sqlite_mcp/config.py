"""
Configuration for the SQLite MCP server.

Settings are read once at startup (environment plus an optional .env file)
and passed explicitly to whatever needs them. Per-session overrides produce a
new Settings value; nothing here is mutated after construction.
"""

import logging
import os
import sys
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple, Union

from dotenv import load_dotenv

from .errors import NotConfiguredError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# Keys an HTTP initialization request may override for its own session
SESSION_OVERRIDE_KEYS = ("DB_URL", "DB_AUTH_TOKEN", "DB_PATH", "DB_TIMEOUT_MS")


@dataclass(frozen=True)
class LocalTarget:
    """An embedded database file opened in-process."""
    path: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    kind = "local"

    def describe(self) -> str:
        return f"local: {self.path}"


@dataclass(frozen=True)
class RemoteTarget:
    """A libSQL / Turso database reached over the network."""
    url: str
    auth_token: Optional[str] = None
    kind = "remote"

    def describe(self) -> str:
        return f"remote: {self.url}"


BackingStoreTarget = Union[LocalTarget, RemoteTarget]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(name: str, value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    db_url: Optional[str] = None
    db_auth_token: Optional[str] = None
    db_path: Optional[str] = None
    db_timeout_ms: int = DEFAULT_TIMEOUT_MS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    api_key: Optional[str] = None
    cors_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, env_file: Optional[str] = None) -> "Settings":
        """Build settings from the process environment.

        When ``environ`` is omitted the .env file (``env_file`` or the one
        found from the working directory) is loaded into ``os.environ`` first.
        Variables already set in the environment win over the file.
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        origins = _clean(environ.get("CORS_ORIGINS"))
        return cls(
            db_url=_clean(environ.get("DB_URL")),
            db_auth_token=_clean(environ.get("DB_AUTH_TOKEN")),
            db_path=_clean(environ.get("DB_PATH")),
            db_timeout_ms=_parse_int("DB_TIMEOUT_MS", _clean(environ.get("DB_TIMEOUT_MS")), DEFAULT_TIMEOUT_MS),
            host=_clean(environ.get("HOST")) or DEFAULT_HOST,
            port=_parse_int("PORT", _clean(environ.get("PORT")), DEFAULT_PORT),
            log_level=(_clean(environ.get("LOG_LEVEL")) or "INFO").upper(),
            api_key=_clean(environ.get("MCP_API_KEY")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) if origins else ("*",),
        )

    def with_overrides(self, overrides: Mapping[str, str]) -> "Settings":
        """Return a copy with the database keys in ``overrides`` applied."""
        changes = {}
        url = _clean(overrides.get("DB_URL"))
        if url:
            changes["db_url"] = url
        token = _clean(overrides.get("DB_AUTH_TOKEN"))
        if token:
            changes["db_auth_token"] = token
        path = _clean(overrides.get("DB_PATH"))
        if path:
            changes["db_path"] = path
        timeout = _clean(overrides.get("DB_TIMEOUT_MS"))
        if timeout:
            changes["db_timeout_ms"] = _parse_int("DB_TIMEOUT_MS", timeout, self.db_timeout_ms)
        if not changes:
            return self
        return replace(self, **changes)

    @property
    def is_configured(self) -> bool:
        return bool(self.db_url or self.db_path)

    @property
    def target(self) -> BackingStoreTarget:
        """The backing store to connect to. A remote URL wins over a local path."""
        if self.db_url:
            return RemoteTarget(url=self.db_url, auth_token=self.db_auth_token)
        if self.db_path:
            return LocalTarget(path=self.db_path, timeout_ms=self.db_timeout_ms)
        raise NotConfiguredError()

    def describe_target(self) -> str:
        if not self.is_configured:
            return "(not configured yet)"
        return self.target.describe()


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout belongs to the stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
