import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator

import aiohttp
from influxdb_client.client.exceptions import InfluxDBError
from influxdb_client.client.flux_csv_parser import (
    FluxCsvParserException,
    FluxQueryException,
)
from influxdb_client.client.flux_table import FluxRecord
from influxdb_client.rest import ApiException

from app.core.errors import CursorIterationError, QueryExecutionError
from app.core.influx_client import get_influx_client
from app.storage.flux_queries import FluxQuery

logger = logging.getLogger(__name__)

STORE_ERRORS = (
    ApiException,
    InfluxDBError,
    FluxQueryException,
    FluxCsvParserException,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


class TelemetryStore:
    async def stream_records(self, query: FluxQuery) -> AsyncIterator[FluxRecord]:
        """Run ``query`` and yield its records in store order.

        The underlying cursor is closed on every exit path. Close this
        generator (``contextlib.aclosing``) when not draining it.
        """
        client = await get_influx_client()

        try:
            records = await client.query_api().query_stream(
                query.text, params=query.params
            )
        except STORE_ERRORS as e:
            logger.error("InfluxDB rejected query: %s", e)
            raise QueryExecutionError(f"InfluxDB query failed: {e}") from e

        async with aclosing(records):
            try:
                async for record in records:
                    yield record
            except STORE_ERRORS as e:
                logger.error("InfluxDB cursor failed mid-stream: %s", e)
                raise CursorIterationError(f"InfluxDB result read failed: {e}") from e

    async def ping(self) -> bool:
        client = await get_influx_client()
        try:
            return await client.ping()
        except STORE_ERRORS as e:
            logger.warning("InfluxDB ping failed: %s", e)
            return False


_store = TelemetryStore()


def get_telemetry_store() -> TelemetryStore:
    return _store
