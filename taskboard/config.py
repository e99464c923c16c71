"""Configuration loading for the task service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

STORE_BACKENDS = {"memory", "file", "supabase"}
DEFAULT_KV_TABLE = "kv_store"
DEFAULT_HTTP_TIMEOUT = 10.0


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    supabase_url: str
    supabase_service_role_key: str
    store_backend: str = "file"
    store_path: Path | None = None
    kv_table: str = DEFAULT_KV_TABLE
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    cors_origins: tuple[str, ...] = ("*",)
    log_level: int = logging.INFO


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_setting(dotenv_path: Path, key: str) -> str | None:
    raw_value = os.environ.get(key)
    if raw_value is None:
        raw_value = _read_dotenv_value(dotenv_path, key)
    if raw_value is None:
        return None
    raw_value = raw_value.strip()
    return raw_value or None


def _read_float(raw_value: str | None, *, default: float, key: str) -> float:
    if raw_value is None:
        return default
    try:
        value = float(raw_value)
    except ValueError:
        raise ConfigError(f"{key} must be a number.") from None
    if value <= 0:
        raise ConfigError(f"{key} must be greater than zero.")
    return value


def _read_log_level(raw_value: str | None, *, key: str) -> int:
    if raw_value is None:
        return logging.INFO
    level = logging.getLevelName(raw_value.upper())
    if not isinstance(level, int):
        raise ConfigError(f"{key} must be a logging level name.")
    return level


def load_config() -> AppConfig:
    """Load required configuration from the environment."""
    dotenv_path = Path.cwd() / ".env"

    supabase_url = _read_setting(dotenv_path, "SUPABASE_URL")
    if not supabase_url:
        raise ConfigError("SUPABASE_URL is required; set it to the project URL.")

    service_key = _read_setting(dotenv_path, "SUPABASE_SERVICE_ROLE_KEY")
    if not service_key:
        raise ConfigError(
            "SUPABASE_SERVICE_ROLE_KEY is required; set it to the service role key."
        )

    backend_key = "TASKBOARD_STORE_BACKEND"
    store_backend = (_read_setting(dotenv_path, backend_key) or "file").lower()
    if store_backend not in STORE_BACKENDS:
        raise ConfigError(
            f"{backend_key} must be one of: {', '.join(sorted(STORE_BACKENDS))}."
        )

    store_path_key = "TASKBOARD_STORE_PATH"
    raw_store_path = _read_setting(dotenv_path, store_path_key)
    store_path = Path(raw_store_path).resolve() if raw_store_path else None
    if store_backend == "file" and store_path is None:
        raise ConfigError(
            f"{store_path_key} is required when {backend_key} is 'file'."
        )

    kv_table = _read_setting(dotenv_path, "TASKBOARD_KV_TABLE") or DEFAULT_KV_TABLE

    timeout_key = "TASKBOARD_HTTP_TIMEOUT"
    http_timeout = _read_float(
        _read_setting(dotenv_path, timeout_key),
        default=DEFAULT_HTTP_TIMEOUT,
        key=timeout_key,
    )

    raw_origins = _read_setting(dotenv_path, "TASKBOARD_CORS_ORIGINS") or "*"
    cors_origins = tuple(
        origin.strip() for origin in raw_origins.split(",") if origin.strip()
    )

    log_level_key = "TASKBOARD_LOG_LEVEL"
    log_level = _read_log_level(
        _read_setting(dotenv_path, log_level_key), key=log_level_key
    )

    return AppConfig(
        supabase_url=supabase_url.rstrip("/"),
        supabase_service_role_key=service_key,
        store_backend=store_backend,
        store_path=store_path,
        kv_table=kv_table,
        http_timeout=http_timeout,
        cors_origins=cors_origins or ("*",),
        log_level=log_level,
    )
