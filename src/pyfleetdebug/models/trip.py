"""Trip segment model.

A trip segment is a maximal run of vehicle updates sharing one segment
identity: an individual trip, a contiguous non-trip stretch, or (LMFS) the
route between two stops.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from pyfleetdebug._constants import NON_TRIP_SEGMENT_PREFIX
from pyfleetdebug.ingestion.normalize import format_duration, get_path, parse_timestamp
from pyfleetdebug.models._base import FleetBaseModel, LatLng
from pyfleetdebug.models.event import LastLocation, NormalizedEvent


class PathCoord(FleetBaseModel):
    """One vertex of a segment's travelled path."""

    lat: float
    lng: float
    trip_id: str
    date: datetime


class TripStatusChange(FleetBaseModel):
    """``response.tripstatus`` took ``new_status`` at ``date``."""

    new_status: str
    date: datetime


def _point(event: NormalizedEvent, field: str) -> LatLng | None:
    for source in (event.response, get_path(event.request, "trip")):
        found = LatLng.from_payload(get_path(source, field, "point"))
        if found is not None:
            return found
    return None


@dataclasses.dataclass
class Trip:
    """Mutable accumulator for one segment; frozen by convention once built."""

    trip_idx: int
    trip_name: str
    first_update_time: datetime
    last_update_time: datetime | None = None
    update_requests: int = 1
    trip_duration_ms: float = 0.0
    path_coords: list[PathCoord] = dataclasses.field(default_factory=list)
    planned_path: list[LatLng] = dataclasses.field(default_factory=list)
    trip_logs: list[NormalizedEvent] = dataclasses.field(default_factory=list)

    @property
    def is_non_trip_segment(self) -> bool:
        return self.trip_name.startswith(NON_TRIP_SEGMENT_PREFIX)

    def get_format_duration(self) -> str:
        return format_duration(self.trip_duration_ms)

    def get_featured_data(self) -> dict[str, Any]:
        """Summary shown in the json viewer."""
        return {
            "updateRequests": self.update_requests,
            "tripName": self.trip_name,
            "duration": self.get_format_duration(),
            "firstUpdateTime": self.first_update_time,
            "lastUpdateTime": self.last_update_time,
            "pickupPoint": self.get_pickup_point(),
            "dropoffPoint": self.get_dropoff_point(),
        }

    def get_path_coords(self, min_date: datetime | None = None, max_date: datetime | None = None) -> list[PathCoord]:
        min_date, max_date = parse_timestamp(min_date), parse_timestamp(max_date)
        if min_date is None or max_date is None:
            return list(self.path_coords)
        return [coord for coord in self.path_coords if min_date <= coord.date <= max_date]

    def append_coords(self, last_location: LastLocation, date: datetime) -> None:
        raw = last_location.reported_raw_location
        if raw is None:
            return
        self.path_coords.append(PathCoord(lat=raw.latitude, lng=raw.longitude, trip_id=self.trip_name, date=date))

    def get_planned_path(self) -> list[LatLng]:
        return list(self.planned_path)

    # Planned points come from the earliest record carrying them (as
    # requested); actual points from the latest one.

    def _earliest_point(self, field: str) -> LatLng | None:
        for event in self.trip_logs:
            point = _point(event, field)
            if point is not None:
                return point
        return None

    def _latest_point(self, field: str) -> LatLng | None:
        for event in reversed(self.trip_logs):
            point = _point(event, field)
            if point is not None:
                return point
        return None

    def get_pickup_point(self) -> LatLng | None:
        return self._earliest_point("pickuppoint")

    def get_dropoff_point(self) -> LatLng | None:
        return self._earliest_point("dropoffpoint")

    def get_actual_pickup_point(self) -> LatLng | None:
        return self._latest_point("actualpickuppoint")

    def get_actual_dropoff_point(self) -> LatLng | None:
        return self._latest_point("actualdropoffpoint")
