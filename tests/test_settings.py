"""
Configuration loading tests.
"""

import asyncio

import pytest

from app.config.settings import get_settings
from app.core.errors import ConfigurationError
from app.main import app, lifespan


def test_settings_read_from_environment():
    settings = get_settings()

    assert settings.influx_url == "http://influx.test:8086"
    assert settings.influx_bucket == "devices"
    assert settings.influx_measurement == "telemetry"
    assert settings.lookup_window_days == 30


def test_missing_connection_settings_fail(monkeypatch):
    monkeypatch.delenv("INFLUX_TOKEN")
    monkeypatch.delenv("INFLUX_BUCKET")
    get_settings.cache_clear()

    with pytest.raises(ConfigurationError) as exc_info:
        get_settings()

    assert "INFLUX_TOKEN" in str(exc_info.value)
    assert "INFLUX_BUCKET" in str(exc_info.value)


def test_startup_fails_when_store_unreachable(fake_influx):
    fake_influx.reachable = False

    async def start():
        async with lifespan(app):
            pass

    with pytest.raises(ConfigurationError):
        asyncio.run(start())
