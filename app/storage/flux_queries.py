"""
Flux query construction.

Every caller-supplied value is bound through the client's ``params`` mapping
and referenced by name inside the query text, so nothing a client sends ends
up spliced into Flux source.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Union

from pydantic import AwareDatetime, BaseModel, TypeAdapter, ValidationError

from app.core.errors import InvalidQueryParameter

TimeBound = Union[datetime, timedelta]

_IMEI_RE = re.compile(r"[0-9]{1,32}")
_DURATION_RE = re.compile(r"-?(?:\d+(?:ns|us|µs|ms|s|m|h|d|w))+")
_TIMESTAMP = TypeAdapter(AwareDatetime)
_DURATION_PART_RE = re.compile(r"(\d+)(ns|us|µs|ms|s|m|h|d|w)")
# nanoseconds per unit
_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
    "d": 86400 * 1_000_000_000,
    "w": 7 * 86400 * 1_000_000_000,
}

DATA_QUERY = """
from(bucket: _bucket)
    |> range(start: _start, stop: _stop)
    |> filter(fn: (r) => r._measurement == _measurement)
    |> filter(fn: (r) => r.imei == _imei)
"""

TELEMETRY_QUERY = """
from(bucket: _bucket)
    |> range(start: _start, stop: _stop)
    |> filter(fn: (r) => r._measurement == _measurement and r.imei == _imei)
    |> filter(fn: (r) => contains(value: r._field, set: _fields))
    |> pivot(rowKey: ["_time"], columnKey: ["_field"], valueColumn: "_value")
    |> sort(columns: ["_time"])
"""

IMEIS_QUERY = """
from(bucket: _bucket)
    |> range(start: _start)
    |> filter(fn: (r) => r._measurement == _measurement)
    |> keep(columns: ["imei"])
    |> group()
    |> distinct(column: "imei")
    |> sort(columns: ["_value"])
"""

FIELDS_QUERY = """
from(bucket: _bucket)
    |> range(start: _start)
    |> filter(fn: (r) => r._measurement == _measurement)
    |> filter(fn: (r) => r.imei == _imei)
    |> keep(columns: ["_field"])
    |> group()
    |> distinct(column: "_field")
    |> sort(columns: ["_value"])
"""


class FluxQuery(BaseModel):
    text: str
    params: dict[str, Any]


def validate_imei(imei: str) -> str:
    if not _IMEI_RE.fullmatch(imei or ""):
        raise InvalidQueryParameter(f"Invalid imei: {imei!r}")
    return imei


def parse_timestamp(value: str) -> datetime:
    try:
        return _TIMESTAMP.validate_python(value)
    except ValidationError as e:
        raise InvalidQueryParameter(f"Invalid RFC 3339 timestamp: {value!r}") from e


def parse_duration(value: str) -> timedelta:
    if not _DURATION_RE.fullmatch(value or ""):
        raise InvalidQueryParameter(f"Invalid duration: {value!r}")

    nanos = sum(
        int(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART_RE.findall(value)
    )
    total = timedelta(microseconds=nanos // 1000)
    return -total if value.startswith("-") else total


def parse_time_bound(value: str) -> TimeBound:
    """Accept either an absolute RFC 3339 timestamp or a relative duration
    such as ``-12h`` or ``-1d12h``, the two forms Flux ``range()`` takes."""
    if _DURATION_RE.fullmatch(value or ""):
        return parse_duration(value)
    return parse_timestamp(value)


def _as_utc(bound: TimeBound) -> TimeBound:
    if isinstance(bound, datetime):
        return bound.astimezone(timezone.utc)
    return bound


def build_data_query(
    bucket: str, measurement: str, imei: str, start: TimeBound, stop: TimeBound
) -> FluxQuery:
    return FluxQuery(
        text=DATA_QUERY,
        params={
            "_bucket": bucket,
            "_measurement": measurement,
            "_imei": validate_imei(imei),
            "_start": _as_utc(start),
            "_stop": _as_utc(stop),
        },
    )


def build_telemetry_query(
    bucket: str,
    measurement: str,
    imei: str,
    start: TimeBound,
    stop: TimeBound,
    fields: Iterable[str],
) -> FluxQuery:
    return FluxQuery(
        text=TELEMETRY_QUERY,
        params={
            "_bucket": bucket,
            "_measurement": measurement,
            "_imei": validate_imei(imei),
            "_start": _as_utc(start),
            "_stop": _as_utc(stop),
            "_fields": list(fields),
        },
    )


def build_imeis_query(bucket: str, measurement: str, lookback: timedelta) -> FluxQuery:
    return FluxQuery(
        text=IMEIS_QUERY,
        params={
            "_bucket": bucket,
            "_measurement": measurement,
            "_start": -abs(lookback),
        },
    )


def build_fields_query(
    bucket: str, measurement: str, imei: str, lookback: timedelta
) -> FluxQuery:
    return FluxQuery(
        text=FIELDS_QUERY,
        params={
            "_bucket": bucket,
            "_measurement": measurement,
            "_imei": validate_imei(imei),
            "_start": -abs(lookback),
        },
    )
