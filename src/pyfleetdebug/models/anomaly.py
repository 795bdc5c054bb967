"""Anomaly annotation models.

Detectors produce these from consecutive pairs of located vehicle updates
(jumps, missing updates, ETA deltas) or from clustering (dwell locations).
Each detection result carries the threshold it computed for its dataset.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from pyfleetdebug._constants import MPS_TO_MPH, VEHICLE_STATE_PREFIX
from pyfleetdebug.ingestion.normalize import format_duration, format_timestamp, strip_prefix
from pyfleetdebug.models._base import FleetBaseModel, LatLng
from pyfleetdebug.models.event import LastLocation, NormalizedEvent

JUMP_ENTRY_TYPE = "Jump"
MISSING_UPDATES_ENTRY_TYPE = "Missing Updates"


class AnnotationEntry(FleetBaseModel):
    """Pseudo log entry merged into :meth:`SegmentEngine.get_logs` output."""

    timestamp: str
    date: datetime
    api_type: str
    last_location: LastLocation | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    source_event: NormalizedEvent

    @property
    def trip_ids(self) -> list[str]:
        return self.source_event.trip_ids


class HighVelocityJump(FleetBaseModel):
    """Two consecutive located updates and the velocity implied between them."""

    jump_idx: int
    prev_event: NormalizedEvent
    event: NormalizedEvent
    start_loc: LatLng
    end_loc: LatLng
    time_spent_ms: float
    distance_traveled: float
    velocity: float

    @property
    def start_date(self) -> datetime:
        return self.prev_event.date

    @property
    def end_date(self) -> datetime:
        return self.event.date

    def get_featured_data(self, computed_outlier: float | None = None) -> dict[str, Any]:
        return {
            "timeSpentMS": self.time_spent_ms,
            "distanceTraveled": self.distance_traveled,
            "velocity": self.velocity,
            "velocityMPH": self.velocity * MPS_TO_MPH,
            "startLoc": str(self.start_loc),
            "startDate": self.start_date,
            "endDate": self.end_date,
            "endLoc": str(self.end_loc),
            "jumpIdx": self.jump_idx,
            "date": self.end_date,
            "computedOutlierVelocity": computed_outlier,
        }

    def get_log_viewer_entry(self, computed_outlier: float | None = None) -> AnnotationEntry:
        return AnnotationEntry(
            timestamp=format_timestamp(self.start_date),
            date=self.start_date,
            api_type=JUMP_ENTRY_TYPE,
            last_location=LastLocation(raw_location=self.end_loc, speed=self.velocity),
            payload=self.get_featured_data(computed_outlier),
            source_event=self.event,
        )


class MissingUpdate(FleetBaseModel):
    """A gap between two consecutive located updates."""

    idx: int
    prev_event: NormalizedEvent
    event: NormalizedEvent
    start_loc: LatLng
    end_loc: LatLng
    interval_ms: float

    @property
    def start_date(self) -> datetime:
        return self.prev_event.date

    @property
    def end_date(self) -> datetime:
        return self.event.date

    @property
    def start_vehicle_state(self) -> str | None:
        return self.prev_event.vehicle_state

    @property
    def end_vehicle_state(self) -> str | None:
        return self.event.vehicle_state

    @property
    def duration(self) -> str:
        return format_duration(self.interval_ms)

    def get_state_transition(self) -> str:
        """Vehicle state change across the gap, e.g. ``ONLINE>OFFLINE``."""
        start = strip_prefix(self.start_vehicle_state or "UNKNOWN", VEHICLE_STATE_PREFIX)
        end = strip_prefix(self.end_vehicle_state or "UNKNOWN", VEHICLE_STATE_PREFIX)
        return f"{start}>{end}"

    def get_featured_data(self, computed_outlier: float | None = None) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "interval": self.interval_ms,
            "startDate": self.start_date,
            "startLoc": str(self.start_loc),
            "endDate": self.end_date,
            "endLoc": str(self.end_loc),
            "startVehicleState": self.start_vehicle_state,
            "endVehicleState": self.end_vehicle_state,
            "computedOutlier": format_duration(computed_outlier) if computed_outlier is not None else None,
        }

    def get_log_viewer_entry(self, computed_outlier: float | None = None) -> AnnotationEntry:
        payload = self.get_featured_data(computed_outlier)
        payload["temporal_gap"] = self.duration
        payload["state"] = self.get_state_transition()
        return AnnotationEntry(
            timestamp=format_timestamp(self.start_date),
            date=self.start_date,
            api_type=MISSING_UPDATES_ENTRY_TYPE,
            last_location=LastLocation(raw_location=self.start_loc),
            payload=payload,
            source_event=self.event,
        )


class DwellLocation(FleetBaseModel):
    """A leader-clustered spot where the vehicle reported repeatedly."""

    leader: LatLng
    updates: int
    start_date: datetime
    end_date: datetime

    @property
    def duration_ms(self) -> float:
        return (self.end_date - self.start_date).total_seconds() * 1000

    def get_featured_data(self) -> dict[str, Any]:
        return {
            "startDate": self.start_date,
            "duration": format_duration(self.duration_ms),
            "endDate": self.end_date,
            "updates": self.updates,
        }


class EtaDelta(FleetBaseModel):
    """Change of ETA-to-first-waypoint between two consecutive updates."""

    date: datetime
    coords: LatLng
    delta_seconds: float
    elapsed_seconds: float
    event: NormalizedEvent


class VelocityJumpResult(FleetBaseModel):
    """Significant jumps plus the population statistics that selected them."""

    jumps: list[HighVelocityJump] = Field(default_factory=list)
    computed_outlier: float | None = None
    mean_velocity: float | None = None
    median_velocity: float | None = None
    stddev_velocity: float | None = None
    pair_count: int = 0

    def get_log_viewer_entries(self) -> list[AnnotationEntry]:
        return [jump.get_log_viewer_entry(self.computed_outlier) for jump in self.jumps]


class MissingUpdateResult(FleetBaseModel):
    """Significant gaps (ascending by interval) and the threshold used."""

    updates: list[MissingUpdate] = Field(default_factory=list)
    computed_outlier: float | None = None
    median_interval: float | None = None
    pair_count: int = 0

    def get_log_viewer_entries(self) -> list[AnnotationEntry]:
        return [update.get_log_viewer_entry(self.computed_outlier) for update in self.updates]
