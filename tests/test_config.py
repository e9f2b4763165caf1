from pathlib import Path

import pytest

from config import AppConfig, Environment, LogLevel
from models.enums import StoreBackend


def test_defaults():
    config = AppConfig({})

    assert config.environment == Environment.DEVELOPMENT
    assert config.store.backend == StoreBackend.LOCAL
    assert config.rollover.timezone == "UTC"
    assert (config.rollover.check_hour, config.rollover.check_minute) == (0, 1)
    assert config.session.refresh_leeway_seconds == 60
    assert config.local.settings_file == Path("data") / "settings.json"
    assert config.log_level == LogLevel.INFO


def test_supabase_backend_needs_url_and_key():
    with pytest.raises(ValueError) as excinfo:
        AppConfig({"STORE_BACKEND": "supabase"})

    message = str(excinfo.value)
    assert "SUPABASE_URL" in message
    assert "SUPABASE_KEY" in message


def test_supabase_backend():
    config = AppConfig({
        "STORE_BACKEND": "SUPABASE",
        "SUPABASE_URL": "https://example.supabase.co",
        "SUPABASE_KEY": "anon-key-123",
    })

    assert config.store.backend == StoreBackend.SUPABASE
    assert config.to_dict()["store"]["supabase_key"] == "anon-k..."


@pytest.mark.parametrize("environ", [
    {"TIMEZONE": "Mars/Olympus_Mons"},
    {"ROLLOVER_HOUR": "24"},
    {"ROLLOVER_MINUTE": "-1"},
    {"STORE_TIMEOUT": "0"},
    {"SESSION_REFRESH_LEEWAY": "-5"},
])
def test_invalid_values_are_rejected(environ):
    with pytest.raises(ValueError):
        AppConfig(environ)


def test_logging_config_without_file():
    config = AppConfig({"LOG_TO_FILE": "false", "LOG_LEVEL": "debug"})

    logging_config = config.get_logging_config()

    assert set(logging_config["handlers"]) == {"console"}
    assert logging_config["loggers"][""]["level"] == "DEBUG"


def test_logging_config_with_file(tmp_path):
    config = AppConfig({"LOG_DIR": str(tmp_path), "ENVIRONMENT": "production"})

    file_handler = config.get_logging_config()["handlers"]["file"]

    assert file_handler["filename"] == str(tmp_path / "habits_production.log")
    assert file_handler["class"] == "logging.handlers.RotatingFileHandler"


def test_ensure_directories(tmp_path):
    config = AppConfig({"DATA_DIR": str(tmp_path / "data"), "LOG_DIR": str(tmp_path / "logs")})

    config.ensure_directories()

    assert config.local.store_dir.is_dir()
    assert (tmp_path / "logs").is_dir()
