import logging

import pytest

from sqlite_mcp.config import LocalTarget, RemoteTarget, Settings
from sqlite_mcp.errors import NotConfiguredError


def test_defaults():
    settings = Settings.from_env({})
    assert settings.db_timeout_ms == 5000
    assert settings.host == "0.0.0.0"
    assert settings.port == 3000
    assert settings.log_level == "INFO"
    assert settings.cors_origins == ("*",)
    assert not settings.is_configured


def test_unconfigured_target_raises():
    with pytest.raises(NotConfiguredError):
        Settings.from_env({}).target
    assert Settings().describe_target() == "(not configured yet)"


def test_local_target():
    settings = Settings.from_env({"DB_PATH": "/tmp/app.db", "DB_TIMEOUT_MS": "250"})
    assert settings.target == LocalTarget(path="/tmp/app.db", timeout_ms=250)
    assert settings.describe_target() == "local: /tmp/app.db"


def test_remote_url_wins_over_local_path():
    settings = Settings.from_env({
        "DB_URL": "libsql://db.turso.io",
        "DB_AUTH_TOKEN": "tok",
        "DB_PATH": "/tmp/app.db",
    })
    assert settings.target == RemoteTarget(url="libsql://db.turso.io", auth_token="tok")
    assert settings.target.kind == "remote"


def test_blank_values_are_unset():
    settings = Settings.from_env({"DB_URL": "  ", "DB_PATH": ""})
    assert not settings.is_configured


def test_bad_integer_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        settings = Settings.from_env({"PORT": "eighty"})
    assert settings.port == 3000
    assert "PORT" in caplog.text


def test_cors_origins_list():
    settings = Settings.from_env({"CORS_ORIGINS": "http://a.test, http://b.test"})
    assert settings.cors_origins == ("http://a.test", "http://b.test")


def test_with_overrides_only_touches_database_keys():
    base = Settings.from_env({"DB_PATH": "/tmp/a.db", "PORT": "8080"})
    assert base.with_overrides({}) is base

    changed = base.with_overrides({"DB_URL": "libsql://other.turso.io", "PORT": "1"})
    assert changed.port == 8080
    assert changed.target == RemoteTarget(url="libsql://other.turso.io")
    assert base.target == LocalTarget(path="/tmp/a.db")


def test_from_env_reads_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("DB_PATH=/tmp/from-file.db\nLOG_LEVEL=debug\n")
    monkeypatch.delenv("DB_PATH", raising=False)
    monkeypatch.delenv("DB_URL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    settings = Settings.from_env(env_file=str(env_file))
    monkeypatch.delenv("DB_PATH", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert settings.db_path == "/tmp/from-file.db"
    assert settings.log_level == "DEBUG"
