import logging
from contextlib import aclosing
from datetime import timedelta

from app.config.settings import get_settings
from app.models.telemetry import DataRow, TelemetryResponse
from app.services.normalizer import (
    TELEMETRY_FIELDS,
    normalize_data_record,
    normalize_row,
)
from app.services.projector import TelemetryProjector
from app.storage.flux_queries import (
    FluxQuery,
    TimeBound,
    build_data_query,
    build_fields_query,
    build_imeis_query,
    build_telemetry_query,
)
from app.storage.telemetry_store import get_telemetry_store

logger = logging.getLogger(__name__)


class TelemetryService:
    def __init__(self):
        self.store = get_telemetry_store()

    async def query_data(
        self, imei: str, start: TimeBound, stop: TimeBound
    ) -> list[DataRow]:
        settings = get_settings()
        query = build_data_query(
            settings.influx_bucket, settings.influx_measurement, imei, start, stop
        )

        rows = []
        async with aclosing(self.store.stream_records(query)) as records:
            async for record in records:
                rows.append(
                    normalize_data_record(
                        record.get_time(), record.get_field(), record.get_value()
                    )
                )
        return rows

    async def query_telemetry(
        self, imei: str, start: TimeBound, stop: TimeBound
    ) -> TelemetryResponse:
        settings = get_settings()
        query = build_telemetry_query(
            settings.influx_bucket,
            settings.influx_measurement,
            imei,
            start,
            stop,
            TELEMETRY_FIELDS.keys(),
        )

        projector = TelemetryProjector()
        async with aclosing(self.store.stream_records(query)) as records:
            async for record in records:
                projector.add(normalize_row(record.values, record.get_time()))

        result = projector.result()
        logger.info(
            "Telemetry for %s: %d track points, %s",
            imei,
            len(result.track),
            {name: len(points) for name, points in result.series.items()},
        )
        return result

    async def list_imeis(self) -> list[str]:
        settings = get_settings()
        query = build_imeis_query(
            settings.influx_bucket,
            settings.influx_measurement,
            timedelta(days=settings.lookup_window_days),
        )
        return await self._distinct_strings(query)

    async def list_fields(self, imei: str) -> list[str]:
        settings = get_settings()
        query = build_fields_query(
            settings.influx_bucket,
            settings.influx_measurement,
            imei,
            timedelta(days=settings.lookup_window_days),
        )
        return await self._distinct_strings(query)

    async def _distinct_strings(self, query: FluxQuery) -> list[str]:
        values = []
        async with aclosing(self.store.stream_records(query)) as records:
            async for record in records:
                value = record.get_value()
                if isinstance(value, str):
                    values.append(value)
        return values


_service = TelemetryService()


def get_telemetry_service() -> TelemetryService:
    return _service
