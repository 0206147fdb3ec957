"""Application configuration accessors.

Centralizes environment variable parsing & defaults. Values may also come
from a ``.env`` file, loaded by the application factory.
"""
from __future__ import annotations

import os

APP_NAME = "moviepoa"

DEFAULT_DB_PATH = "./db/moviepoa.sqlite"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TMDB_API_BASE = "https://api.themoviedb.org/3"
DEFAULT_TOKEN_TTL_HOURS = 24 * 7


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _clean_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def env_int(name: str, default: int) -> int:
    raw = _clean_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_db_path() -> str:
    raw = _raw_env("DATABASE_FILE", DEFAULT_DB_PATH) or DEFAULT_DB_PATH
    if raw == ":memory:" or os.path.isabs(raw):
        return raw
    return os.path.join(os.getcwd(), raw)


def log_level_name() -> str:
    return (_raw_env("MOVIEPOA_LOG_LEVEL", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()


def secret_key() -> str | None:
    """Flask SECRET_KEY; also keys the bearer token cipher."""
    return _clean_env("SECRET_KEY")


def token_ttl_hours() -> int:
    return env_int("MOVIEPOA_TOKEN_TTL_HOURS", DEFAULT_TOKEN_TTL_HOURS)


def tmdb_api_read_token() -> str | None:
    """Return TMDB_API_READ_TOKEN from environment (no default)."""
    return _clean_env("TMDB_API_READ_TOKEN")


def tmdb_api_base() -> str:
    """Base URL for TMDB v3 (override with TMDB_API_BASE)."""
    return (os.getenv("TMDB_API_BASE") or DEFAULT_TMDB_API_BASE).rstrip("/")


def tmdb_timeout_seconds() -> int:
    return env_int("TMDB_TIMEOUT_SECONDS", 10)


def server_port() -> int:
    return env_int("PORT", 3000)


def server_host() -> str:
    return _clean_env("HOST") or "127.0.0.1"


def summarize_runtime_config() -> dict:
    return {
        "db_path": get_db_path(),
        "log_level": log_level_name(),
        "tmdb_api_base": tmdb_api_base(),
        "tmdb_token_set": bool(tmdb_api_read_token()),
        "secret_key_set": bool(secret_key()),
    }


__all__ = [
    "APP_NAME",
    "env_int",
    "get_db_path",
    "log_level_name",
    "secret_key",
    "token_ttl_hours",
    "tmdb_api_read_token",
    "tmdb_api_base",
    "tmdb_timeout_seconds",
    "server_port",
    "server_host",
    "summarize_runtime_config",
]
