import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from app.models.telemetry import DataRow, NormalizedRow

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"


class FieldSpec(BaseModel):
    """How one stored field is read.

    ``unit_divisor`` is the reciprocal of the unit scale (1000 turns
    millivolts into volts). ``convert_numeric`` lets a value of the other
    numeric wire type through, converted, instead of treating it as a
    mismatch.
    """

    model_config = ConfigDict(frozen=True)

    expected_type: FieldType
    unit_divisor: float = 1.0
    default: Optional[Union[int, float, str]] = None
    convert_numeric: bool = False


TELEMETRY_FIELDS: dict[str, FieldSpec] = {
    "speed": FieldSpec(expected_type=FieldType.INTEGER),
    "fls485_level_2": FieldSpec(expected_type=FieldType.INTEGER),
    "latitude": FieldSpec(expected_type=FieldType.FLOAT),
    "longitude": FieldSpec(expected_type=FieldType.FLOAT),
    "main_power_voltage": FieldSpec(
        expected_type=FieldType.FLOAT,
        unit_divisor=1000.0,
        default=0.0,
        convert_numeric=True,
    ),
    "event_time": FieldSpec(expected_type=FieldType.INTEGER, default=0),
}

SERIES_FIELDS = ("speed", "fls485_level_2", "main_power_voltage")


def format_time(ts: datetime, fractional: bool = False) -> str:
    """RFC 3339 in UTC. With ``fractional`` the sub-second part is kept,
    trailing zeros trimmed."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)

    text = ts.strftime("%Y-%m-%dT%H:%M:%S")
    if fractional and ts.microsecond:
        text += f".{ts.microsecond:06d}".rstrip("0")
    return text + "Z"


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a numeric reading
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _has_type(value: Any, expected: FieldType) -> bool:
    if expected == FieldType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == FieldType.FLOAT:
        return isinstance(value, float)
    return isinstance(value, str)


def extract_field(values: Mapping[str, Any], name: str, spec: FieldSpec) -> Any:
    """Return the typed, unit-scaled value of ``name`` or ``None`` when the
    field is missing or holds a value of another type."""
    raw = values.get(name)
    if raw is None:
        return None

    if _has_type(raw, spec.expected_type):
        value = raw
    elif spec.convert_numeric and _is_number(raw):
        value = float(raw) if spec.expected_type == FieldType.FLOAT else int(raw)
    else:
        logger.debug(
            "Dropping %s=%r: expected %s, got %s",
            name,
            raw,
            spec.expected_type.value,
            type(raw).__name__,
        )
        return None

    if spec.unit_divisor != 1.0:
        value = value / spec.unit_divisor
    return value


def normalize_row(
    values: Mapping[str, Any],
    ts: datetime,
    fields: Mapping[str, FieldSpec] = TELEMETRY_FIELDS,
) -> NormalizedRow:
    normalized = {}
    for name, spec in fields.items():
        value = extract_field(values, name, spec)
        if value is None:
            value = spec.default
        normalized[name] = value

    return NormalizedRow(time=format_time(ts), values=normalized)


def normalize_data_record(
    ts: datetime, field: Optional[str], value: Any
) -> DataRow:
    return DataRow(time=format_time(ts, fractional=True), field=field, value=value)
