"""Normalized lifecycle event model."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyfleetdebug._constants import SOLUTION_TYPE_LMFS
from pyfleetdebug.ingestion.normalize import get_path, parse_timestamp, safe_float, safe_str
from pyfleetdebug.models._base import FleetBaseModel, LatLng

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class ApiType(enum.StrEnum):
    """The twelve Fleet Engine lifecycle calls a log record can describe."""

    CREATE_VEHICLE = "createVehicle"
    UPDATE_VEHICLE = "updateVehicle"
    GET_VEHICLE = "getVehicle"
    CREATE_DELIVERY_VEHICLE = "createDeliveryVehicle"
    UPDATE_DELIVERY_VEHICLE = "updateDeliveryVehicle"
    GET_DELIVERY_VEHICLE = "getDeliveryVehicle"
    CREATE_TRIP = "createTrip"
    UPDATE_TRIP = "updateTrip"
    GET_TRIP = "getTrip"
    CREATE_TASK = "createTask"
    UPDATE_TASK = "updateTask"
    GET_TASK = "getTask"

    @property
    def canonical(self) -> str:
        """Case- and separator-insensitive key used for marker matching."""
        return self.value.lower()

    @property
    def is_vehicle_call(self) -> bool:
        return self in _VEHICLE_CALLS

    @property
    def is_trip_call(self) -> bool:
        return self in (ApiType.CREATE_TRIP, ApiType.UPDATE_TRIP, ApiType.GET_TRIP)

    @property
    def is_task_write(self) -> bool:
        return self in (ApiType.CREATE_TASK, ApiType.UPDATE_TASK)

    @classmethod
    def vehicle_update_for(cls, solution_type: str) -> ApiType:
        """Vehicle-update call that drives segmentation for a solution type."""
        if solution_type == SOLUTION_TYPE_LMFS:
            return cls.UPDATE_DELIVERY_VEHICLE
        return cls.UPDATE_VEHICLE


_VEHICLE_CALLS: frozenset[ApiType] = frozenset(
    {
        ApiType.CREATE_VEHICLE,
        ApiType.UPDATE_VEHICLE,
        ApiType.GET_VEHICLE,
        ApiType.CREATE_DELIVERY_VEHICLE,
        ApiType.UPDATE_DELIVERY_VEHICLE,
        ApiType.GET_DELIVERY_VEHICLE,
    }
)


# ------------------------------------------------------------------
# Location
# ------------------------------------------------------------------


class LastLocation(FleetBaseModel):
    """Vehicle location/sensor snapshot attached to every normalized event.

    ``location``, ``raw_location``, ``heading`` and the two route segment
    fields are carried forward from earlier events when a record omits
    them; the remaining fields describe only the current record.
    ``reported_raw_location`` is the raw location the record itself sent
    and is never carried; analyses and travelled paths key off it.
    """

    location: LatLng | None = None
    raw_location: LatLng | None = Field(default=None, validation_alias=AliasChoices("rawlocation", "raw_location"))
    reported_raw_location: LatLng | None = None
    heading: float | None = None
    heading_accuracy: float | None = Field(
        default=None, validation_alias=AliasChoices("headingaccuracy", "heading_accuracy")
    )
    raw_location_accuracy: float | None = Field(
        default=None,
        validation_alias=AliasChoices("rawlocationaccuracy", "raw_location_accuracy"),
    )
    location_sensor: str | None = Field(
        default=None, validation_alias=AliasChoices("locationsensor", "rawlocationsensor", "location_sensor")
    )
    speed: float | None = None
    speed_accuracy: float | None = Field(default=None, validation_alias=AliasChoices("speedaccuracy", "speed_accuracy"))
    raw_location_time: datetime | None = Field(
        default=None, validation_alias=AliasChoices("rawlocationtime", "raw_location_time")
    )
    server_time: datetime | None = Field(default=None, validation_alias=AliasChoices("servertime", "server_time"))
    current_route_segment: Any = Field(
        default=None, validation_alias=AliasChoices("currentroutesegment", "current_route_segment")
    )
    current_route_segment_traffic: Any = Field(
        default=None,
        validation_alias=AliasChoices("currentroutesegmenttraffic", "current_route_segment_traffic"),
    )

    @field_validator("location", "raw_location", "reported_raw_location", mode="before")
    @classmethod
    def _coerce_latlng(cls, value: Any) -> LatLng | None:
        return LatLng.from_payload(value)

    @field_validator("heading", "heading_accuracy", "raw_location_accuracy", "speed", "speed_accuracy", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("location_sensor", mode="before")
    @classmethod
    def _coerce_sensor(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("raw_location_time", "server_time", mode="before")
    @classmethod
    def _coerce_times(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @property
    def client_server_delta_seconds(self) -> float | None:
        """Absolute skew between device and server clocks, when both are known."""
        if self.raw_location_time is None or self.server_time is None:
            return None
        return abs((self.server_time - self.raw_location_time).total_seconds())


# ------------------------------------------------------------------
# Event
# ------------------------------------------------------------------


class NormalizedEvent(FleetBaseModel):
    """One decoded, lower-cased and carry-forward-enriched log record.

    Parameters
    ----------
    timestamp : str
        Timestamp string as found on the record.
    date : datetime
        Parsed, timezone-aware ``timestamp``.
    sequence_index : int
        Position of the event in the sorted stream.
    api_type : ApiType
        Lifecycle call that produced the record.
    request, response, error : dict or None
        Payload subtrees with lower-cased keys.
    labels : dict
        Log labels (``trip_id``, ``vehicle_id``...).
    last_location : LastLocation
        Current or carried-forward location state.
    navigation_status : str or None
        Navigation status with the ``NAVIGATION_STATUS_`` prefix removed.
    raw : dict
        The whole lower-cased record.
    """

    timestamp: str
    date: datetime
    sequence_index: int
    api_type: ApiType
    solution_type: str
    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    labels: dict[str, Any] = Field(default_factory=dict)
    last_location: LastLocation = Field(default_factory=LastLocation)
    navigation_status: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def vehicle_state(self) -> str | None:
        return safe_str(get_path(self.response, "vehiclestate"))

    @property
    def trip_status(self) -> str | None:
        return safe_str(get_path(self.response, "tripstatus"))

    @property
    def raw_location(self) -> LatLng | None:
        return self.last_location.raw_location

    @property
    def trip_ids(self) -> list[str]:
        """Trip ids this event refers to (labels, current trips, trip name)."""
        ids: list[str] = []
        label = safe_str(self.labels.get("trip_id"))
        if label:
            ids.append(label)
        current = get_path(self.response, "currenttrips")
        if isinstance(current, list):
            ids.extend(str(trip_id) for trip_id in current if trip_id)
        if self.api_type.is_trip_call:
            trip_id = trip_id_of(self)
            if trip_id:
                ids.append(trip_id)
        return list(dict.fromkeys(ids))

    def is_vehicle_update(self) -> bool:
        return self.api_type == ApiType.vehicle_update_for(self.solution_type)


def _resource_id(name: Any) -> str | None:
    """Return the last path element of a ``providers/p/trips/ID`` name."""
    text = safe_str(name)
    if text is None:
        return None
    return text.rsplit("/", 1)[-1] or None


def trip_id_of(event: NormalizedEvent) -> str | None:
    """Trip id carried by a trip lifecycle record."""
    return (
        safe_str(get_path(event.request, "tripid"))
        or _resource_id(get_path(event.response, "name"))
        or _resource_id(get_path(event.request, "name"))
        or safe_str(event.labels.get("trip_id"))
    )


def task_id_of(event: NormalizedEvent) -> str | None:
    """Task id carried by a task lifecycle record."""
    return (
        safe_str(get_path(event.request, "taskid"))
        or _resource_id(get_path(event.request, "task", "name"))
        or _resource_id(get_path(event.response, "name"))
        or safe_str(event.labels.get("task_id"))
    )
