from typing import Iterable

from app.models.telemetry import NormalizedRow, SeriesPoint, TelemetryResponse, TrackPoint
from app.services.normalizer import SERIES_FIELDS


class TelemetryProjector:
    """Folds normalized rows into per-metric series and a lat/lon track.

    Every series key exists from the start, so an empty window still yields
    all of them. Rows are expected in ascending time order and that order is
    kept.
    """

    def __init__(self, series_fields: Iterable[str] = SERIES_FIELDS):
        self.series: dict[str, list[SeriesPoint]] = {
            name: [] for name in series_fields
        }
        self.track: list[TrackPoint] = []

    def add(self, row: NormalizedRow) -> None:
        for name, points in self.series.items():
            value = row.values.get(name)
            if value is not None:
                points.append(SeriesPoint(time=row.time, value=value))

        lat = row.values.get("latitude")
        lon = row.values.get("longitude")
        if lat is not None and lon is not None:
            self.track.append(
                TrackPoint(
                    time=row.time,
                    lat=lat,
                    lon=lon,
                    event_time=row.values["event_time"],
                )
            )

    def result(self) -> TelemetryResponse:
        return TelemetryResponse(series=self.series, track=self.track)


def project(rows: Iterable[NormalizedRow]) -> TelemetryResponse:
    projector = TelemetryProjector()
    for row in rows:
        projector.add(row)
    return projector.result()
