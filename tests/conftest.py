from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from influxdb_client.client.flux_table import FluxRecord

from app.config.settings import get_settings
from app.core import influx_client
from app.main import app

BASE_TIME = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def make_record(ts: datetime, **values) -> FluxRecord:
    return FluxRecord(table=0, values={"_time": ts, **values})


class FakeQueryApi:
    def __init__(self, influx):
        self.influx = influx

    async def query_stream(self, query, org=None, params=None):
        self.influx.queries.append((query, params))
        if self.influx.execute_error:
            raise self.influx.execute_error
        return self.influx.cursor()


class FakeInfluxClient:
    """Stands in for InfluxDBClientAsync; records are served in list order."""

    def __init__(self):
        self.records = []
        self.queries = []
        self.execute_error = None
        self.iteration_error = None
        self.reachable = True
        self.cursors_opened = 0
        self.cursors_closed = 0

    def query_api(self):
        return FakeQueryApi(self)

    async def ping(self):
        return self.reachable

    async def close(self):
        pass

    async def cursor(self):
        self.cursors_opened += 1
        try:
            for record in self.records:
                yield record
            if self.iteration_error:
                raise self.iteration_error
        finally:
            self.cursors_closed += 1


@pytest.fixture(scope="function", autouse=True)
def influx_env(monkeypatch):
    """Point settings at a throwaway InfluxDB configuration."""
    monkeypatch.setenv("INFLUX_URL", "http://influx.test:8086")
    monkeypatch.setenv("INFLUX_TOKEN", "test-token")
    monkeypatch.setenv("INFLUX_ORG", "fleet")
    monkeypatch.setenv("INFLUX_BUCKET", "devices")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def fake_influx(monkeypatch):
    fake = FakeInfluxClient()
    monkeypatch.setattr(influx_client, "_influx_client", fake)
    return fake


@pytest.fixture
def client(fake_influx):
    with TestClient(app) as test_client:
        yield test_client
