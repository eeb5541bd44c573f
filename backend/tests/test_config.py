import logging
import os

import pytest
from pydantic import ValidationError

from vastboard.config import Settings, configure_logging


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(os.environ):
        if name.startswith("VAST_"):
            monkeypatch.delenv(name)


def test_defaults_match_the_compose_stack():
    settings = Settings()
    assert settings.dsn_kwargs() == {
        "host": "db",
        "port": 5432,
        "database": "vastdb",
        "user": "myuser",
        "password": "mypassword",
    }
    assert (settings.db_pool_min, settings.db_pool_max) == (2, 10)
    assert settings.scan_batch_size == 10000
    assert (settings.host, settings.port) == ("0.0.0.0", 5000)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("VAST_DB_HOST", "localhost")
    monkeypatch.setenv("VAST_DB_PORT", "6543")
    monkeypatch.setenv("VAST_DB_POOL_MAX", "4")
    monkeypatch.setenv("VAST_SCAN_BATCH_SIZE", "500")
    monkeypatch.setenv("VAST_LOG_LEVEL", "debug")
    monkeypatch.setenv("VAST_PORT", "")
    settings = Settings()
    assert settings.db_host == "localhost"
    assert settings.db_port == 6543
    assert settings.db_pool_max == 4
    assert settings.scan_batch_size == 500
    assert settings.log_level == "DEBUG"
    assert settings.port == 5000


@pytest.mark.parametrize("environ", [
    {"VAST_DB_PORT": "five"},
    {"VAST_DB_POOL_MIN": "0"},
    {"VAST_DB_POOL_MIN": "8", "VAST_DB_POOL_MAX": "4"},
    {"VAST_SCAN_BATCH_SIZE": "0"},
])
def test_invalid_environment_is_rejected(monkeypatch, environ):
    for name, value in environ.items():
        monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()


def test_keyword_arguments_win_over_environment(monkeypatch):
    monkeypatch.setenv("VAST_SCAN_BATCH_SIZE", "500")
    assert Settings(scan_batch_size=250).scan_batch_size == 250


def test_configure_logging_quiets_werkzeug():
    configure_logging("INFO")
    assert logging.getLogger("werkzeug").level == logging.ERROR
