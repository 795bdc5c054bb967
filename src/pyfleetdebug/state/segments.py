"""Trip segmentation and time-windowed queries over one dataset.

:class:`SegmentEngine` owns a normalized event stream.  Construction runs
the single segmentation pass; every query afterwards is a pure function of
(stream, time window, filters) and allocates a fresh result.
"""

from __future__ import annotations

import asyncio
import bisect
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from pyfleetdebug._constants import NO_TRIP_STATUS, NON_TRIP_SEGMENT_PREFIX, SOLUTION_TYPE_LMFS, STOPS_LEFT_PREFIX
from pyfleetdebug.analysis._pairs import in_window
from pyfleetdebug.analysis.debounce import Debouncer
from pyfleetdebug.analysis.dwell import detect_dwell_locations
from pyfleetdebug.analysis.eta import detect_eta_deltas
from pyfleetdebug.analysis.missing_updates import detect_missing_updates
from pyfleetdebug.analysis.velocity import detect_high_velocity_jumps
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.ingestion.normalize import get_path, parse_timestamp, safe_str
from pyfleetdebug.models._base import FleetBaseModel, LatLng
from pyfleetdebug.models.anomaly import (
    AnnotationEntry,
    DwellLocation,
    EtaDelta,
    MissingUpdateResult,
    VelocityJumpResult,
)
from pyfleetdebug.models.event import NormalizedEvent, trip_id_of
from pyfleetdebug.models.trip import Trip, TripStatusChange

_logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=UTC)

LogEntry = NormalizedEvent | AnnotationEntry


class LogFilters(FleetBaseModel):
    """Optional restrictions for :meth:`SegmentEngine.get_logs`.

    ``api_types`` matches the entry's api type value (``updateVehicle``,
    ``Jump``, ``Missing Updates``...); ``trip_id`` is a substring matched
    against every trip id the entry refers to.
    """

    api_types: frozenset[str] | None = None
    trip_id: str | None = None
    include_annotations: bool = True

    @field_validator("api_types", mode="before")
    @classmethod
    def _coerce_api_types(cls, value: Any) -> frozenset[str] | None:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        return frozenset(str(item) for item in value)

    def matches(self, entry: LogEntry) -> bool:
        if self.api_types is not None and str(entry.api_type) not in self.api_types:
            return False
        if self.trip_id:
            return any(self.trip_id in trip_id for trip_id in entry.trip_ids)
        return True


def _segment_id(event: NormalizedEvent) -> str | None:
    """Identity shared by consecutive updates of one segment (``None`` = non-trip)."""
    if event.solution_type == SOLUTION_TYPE_LMFS:
        stops_left = get_path(event.response, "remainingvehiclejourneysegments")
        if not isinstance(stops_left, list):
            return None
        return f"{STOPS_LEFT_PREFIX}{len(stops_left)}"
    current = get_path(event.response, "currenttrips")
    if isinstance(current, list):
        joined = ",".join(sorted(str(trip_id) for trip_id in current if trip_id))
        if joined:
            return joined
    return safe_str(event.labels.get("trip_id"))


def _planned_path(event: NormalizedEvent) -> list[LatLng]:
    """Remaining route of a vehicle: journey segment paths and stop points."""
    segments = get_path(event.response, "remainingvehiclejourneysegments")
    if not isinstance(segments, list):
        segments = get_path(event.response, "waypoints")
    if not isinstance(segments, list):
        return []

    path: list[LatLng] = []
    for segment in segments:
        if not isinstance(segment, dict):
            continue
        for vertex in segment.get("path") or []:
            point = LatLng.from_payload(vertex)
            if point is not None:
                path.append(point)
        stop = (
            get_path(segment, "stop", "plannedlocation", "point")
            or get_path(segment, "location", "point")
        )
        point = LatLng.from_payload(stop)
        if point is not None:
            path.append(point)
    return path


class SegmentEngine:
    """Partition a dataset into trip segments and answer queries over it.

    Parameters
    ----------
    events : sequence of NormalizedEvent
        Chronologically sorted output of
        :func:`~pyfleetdebug.ingestion.normalizer.normalize_logs`.
    solution_type : str
        ``"ODRD"`` or ``"LMFS"``; selects the vehicle-update call that
        drives segmentation.
    config : DebuggerConfig, optional
        Detector thresholds.
    """

    def __init__(
        self,
        events: Sequence[NormalizedEvent],
        solution_type: str,
        config: DebuggerConfig | None = None,
    ) -> None:
        self._events: list[NormalizedEvent] = list(events)
        self._solution_type = solution_type
        self._config = config or DebuggerConfig()
        self._trips: list[Trip] = []
        self._trip_ids: list[str] = []
        self._status_changes: list[TripStatusChange] = []
        self._velocity_debouncer: Debouncer[VelocityJumpResult] | None = None
        self._missing_debouncer: Debouncer[MissingUpdateResult] | None = None
        self._process_trip_segments()

    @property
    def solution_type(self) -> str:
        return self._solution_type

    @property
    def config(self) -> DebuggerConfig:
        return self._config

    @property
    def events(self) -> list[NormalizedEvent]:
        return list(self._events)

    @property
    def min_date(self) -> datetime:
        """Date of the first event; the epoch for an empty dataset."""
        return self._events[0].date if self._events else _EPOCH

    @property
    def max_date(self) -> datetime:
        """Date of the last event; now for an empty dataset."""
        return self._events[-1].date if self._events else datetime.now(UTC)

    # ------------------------------------------------------------------
    # Segmentation
    # ------------------------------------------------------------------

    def _process_trip_segments(self) -> None:
        trip_records: dict[str, list[NormalizedEvent]] = defaultdict(list)
        for event in self._events:
            if event.api_type.is_trip_call:
                trip_id = trip_id_of(event)
                if trip_id:
                    trip_records[trip_id].append(event)

        current_id: str | None = None
        current: Trip | None = None
        non_trip_idx = 0
        last_status = NO_TRIP_STATUS

        for event in self._events:
            if event.is_vehicle_update():
                segment_id = _segment_id(event)
                if current is None or segment_id != current_id:
                    current_id = segment_id
                    if segment_id is None:
                        name = f"{NON_TRIP_SEGMENT_PREFIX}{non_trip_idx}"
                        non_trip_idx += 1
                    else:
                        name = segment_id
                    current = Trip(
                        trip_idx=len(self._trips),
                        trip_name=name,
                        first_update_time=event.date,
                        planned_path=_planned_path(event),
                    )
                    if segment_id is not None:
                        for trip_id in segment_id.split(","):
                            current.trip_logs.extend(trip_records.get(trip_id, ()))
                        current.trip_logs.sort(key=lambda e: e.sequence_index)
                    self._trips.append(current)
                    self._trip_ids.append(name)
                else:
                    current.last_update_time = event.date
                    current.trip_duration_ms = (event.date - current.first_update_time).total_seconds() * 1000
                    current.update_requests += 1
                current.append_coords(event.last_location, event.date)

            status = event.trip_status
            if status and status != last_status:
                self._status_changes.append(TripStatusChange(new_status=status, date=event.date))
                last_status = status

        _logger.debug(
            "Segmented %d events into %d segments (%d non-trip), %d trip status changes",
            len(self._events),
            len(self._trips),
            non_trip_idx,
            len(self._status_changes),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_trips(self) -> list[Trip]:
        return list(self._trips)

    def get_trip_ids(self) -> list[str]:
        """Segment names in first-seen order, duplicates kept."""
        return list(self._trip_ids)

    def get_trip_status_changes(self) -> list[TripStatusChange]:
        return list(self._status_changes)

    def get_trip_status_at_date(self, date: datetime) -> str | None:
        """Status of the latest change at or before *date*; ``None`` before the first."""
        cutoff = parse_timestamp(date)
        if cutoff is None:
            return None
        dates = [change.date for change in self._status_changes]
        idx = bisect.bisect_right(dates, cutoff)
        if idx >= 1:
            return self._status_changes[idx - 1].new_status
        return None

    def _window(self, min_date: datetime | None, max_date: datetime | None) -> tuple[datetime, datetime]:
        # Naive bounds are taken as UTC, like naive log timestamps.
        return parse_timestamp(min_date) or self.min_date, parse_timestamp(max_date) or self.max_date

    def get_logs(
        self,
        min_date: datetime | None = None,
        max_date: datetime | None = None,
        filters: LogFilters | None = None,
    ) -> list[LogEntry]:
        """Events and jump / missing-update annotations inside the window, by date."""
        min_date, max_date = self._window(min_date, max_date)
        filters = filters or LogFilters()

        entries: list[LogEntry] = [event for event in self._events if in_window(event.date, min_date, max_date)]
        if filters.include_annotations:
            annotations: Iterable[AnnotationEntry] = (
                *self.get_high_velocity_jumps(min_date, max_date).get_log_viewer_entries(),
                *self.get_missing_updates(min_date, max_date).get_log_viewer_entries(),
            )
            entries.extend(entry for entry in annotations if in_window(entry.date, min_date, max_date))

        entries = [entry for entry in entries if filters.matches(entry)]
        entries.sort(key=lambda entry: entry.date)
        return entries

    def get_high_velocity_jumps(
        self, min_date: datetime | None = None, max_date: datetime | None = None
    ) -> VelocityJumpResult:
        min_date, max_date = self._window(min_date, max_date)
        return detect_high_velocity_jumps(self._events, min_date, max_date, self._config)

    def get_missing_updates(
        self, min_date: datetime | None = None, max_date: datetime | None = None
    ) -> MissingUpdateResult:
        min_date, max_date = self._window(min_date, max_date)
        return detect_missing_updates(self._events, min_date, max_date, self._config)

    def get_dwell_locations(
        self, min_date: datetime | None = None, max_date: datetime | None = None
    ) -> list[DwellLocation]:
        min_date, max_date = self._window(min_date, max_date)
        return detect_dwell_locations(self._events, min_date, max_date, self._config)

    def get_eta_deltas(self, min_date: datetime | None = None, max_date: datetime | None = None) -> list[EtaDelta]:
        min_date, max_date = self._window(min_date, max_date)
        return detect_eta_deltas(self._events, min_date, max_date)

    # ------------------------------------------------------------------
    # Debounced detectors
    # ------------------------------------------------------------------

    def debounced_get_high_velocity_jumps(
        self,
        min_date: datetime | None = None,
        max_date: datetime | None = None,
        callback: Callable[[VelocityJumpResult], Any] | None = None,
    ) -> asyncio.Future[VelocityJumpResult]:
        """Coalesced :meth:`get_high_velocity_jumps`; must be called from a running loop."""
        if self._velocity_debouncer is None:
            self._velocity_debouncer = Debouncer(self.get_high_velocity_jumps, self._config.debounce_seconds)
        return self._velocity_debouncer.schedule(min_date, max_date, callback=callback)

    def debounced_get_missing_updates(
        self,
        min_date: datetime | None = None,
        max_date: datetime | None = None,
        callback: Callable[[MissingUpdateResult], Any] | None = None,
    ) -> asyncio.Future[MissingUpdateResult]:
        """Coalesced :meth:`get_missing_updates`; must be called from a running loop."""
        if self._missing_debouncer is None:
            self._missing_debouncer = Debouncer(self.get_missing_updates, self._config.debounce_seconds)
        return self._missing_debouncer.schedule(min_date, max_date, callback=callback)
