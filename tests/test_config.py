import logging

import pytest

from taskboard.config import ConfigError, load_config

SETTINGS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "TASKBOARD_STORE_BACKEND",
    "TASKBOARD_STORE_PATH",
    "TASKBOARD_KV_TABLE",
    "TASKBOARD_HTTP_TIMEOUT",
    "TASKBOARD_CORS_ORIGINS",
    "TASKBOARD_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in SETTINGS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def _set_required(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co/")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")


def test_load_config_requires_supabase_url(monkeypatch):
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert "SUPABASE_URL" in str(excinfo.value)


def test_load_config_requires_service_key(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert "SUPABASE_SERVICE_ROLE_KEY" in str(excinfo.value)


def test_file_backend_requires_store_path(monkeypatch):
    _set_required(monkeypatch)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert "TASKBOARD_STORE_PATH" in str(excinfo.value)


def test_load_config_reads_env(monkeypatch, tmp_path):
    _set_required(monkeypatch)
    monkeypatch.setenv("TASKBOARD_STORE_PATH", "data/tasks.json")

    config = load_config()

    assert config.supabase_url == "https://example.supabase.co"
    assert config.supabase_service_role_key == "service-key"
    assert config.store_backend == "file"
    assert config.store_path == (tmp_path / "data" / "tasks.json").resolve()
    assert config.kv_table == "kv_store"
    assert config.http_timeout == 10.0
    assert config.cors_origins == ("*",)
    assert config.log_level == logging.INFO


def test_load_config_reads_dotenv(tmp_path):
    (tmp_path / ".env").write_text(
        "\n".join(
            [
                "# local settings",
                'SUPABASE_URL="https://dotenv.supabase.co"',
                "export SUPABASE_SERVICE_ROLE_KEY='dotenv-key'",
                "TASKBOARD_STORE_BACKEND=memory",
                "",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config()

    assert config.supabase_url == "https://dotenv.supabase.co"
    assert config.supabase_service_role_key == "dotenv-key"
    assert config.store_backend == "memory"
    assert config.store_path is None


def test_load_config_prefers_env_over_dotenv(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text(
        "SUPABASE_URL=https://dotenv.supabase.co\n"
        "SUPABASE_SERVICE_ROLE_KEY=dotenv-key\n"
        "TASKBOARD_STORE_BACKEND=memory\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")

    config = load_config()

    assert config.supabase_url == "https://env.supabase.co"
    assert config.supabase_service_role_key == "dotenv-key"


def test_load_config_reads_optional_settings(monkeypatch):
    _set_required(monkeypatch)
    monkeypatch.setenv("TASKBOARD_STORE_BACKEND", "Supabase")
    monkeypatch.setenv("TASKBOARD_KV_TABLE", "kv_store_tasks")
    monkeypatch.setenv("TASKBOARD_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv(
        "TASKBOARD_CORS_ORIGINS", "https://app.example.com, http://localhost:5173"
    )
    monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "debug")

    config = load_config()

    assert config.store_backend == "supabase"
    assert config.kv_table == "kv_store_tasks"
    assert config.http_timeout == 2.5
    assert config.cors_origins == (
        "https://app.example.com",
        "http://localhost:5173",
    )
    assert config.log_level == logging.DEBUG


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("TASKBOARD_STORE_BACKEND", "redis"),
        ("TASKBOARD_HTTP_TIMEOUT", "soon"),
        ("TASKBOARD_HTTP_TIMEOUT", "-1"),
        ("TASKBOARD_LOG_LEVEL", "chatty"),
    ],
)
def test_load_config_rejects_invalid_values(monkeypatch, key, value):
    _set_required(monkeypatch)
    monkeypatch.setenv("TASKBOARD_STORE_PATH", "tasks.json")
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert key in str(excinfo.value)
