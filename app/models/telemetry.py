from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class SeriesPoint(BaseModel):
    time: str
    value: Union[int, float]


class TrackPoint(BaseModel):
    time: str
    lat: float
    lon: float
    event_time: int = 0


class TelemetryResponse(BaseModel):
    series: dict[str, list[SeriesPoint]]
    track: list[TrackPoint] = Field(default_factory=list)


class NormalizedRow(BaseModel):
    """One pivoted store row after typed extraction. ``None`` marks a field
    that was absent or held a value of the wrong type."""

    time: str
    values: dict[str, Any] = Field(default_factory=dict)


class DataRow(BaseModel):
    time: str
    field: Optional[str]
    value: Any


class ImeiList(BaseModel):
    imeis: list[str]


class FieldList(BaseModel):
    fields: list[str]
