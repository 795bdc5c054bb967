"""Carry-forward of last known vehicle state.

Vehicle updates frequently omit fields that did not change since the
previous call.  The normalizer threads a :class:`CarryState` through the
sorted stream as an explicit fold::

    state, last_location = carry_forward(state, call)

Each step fills missing fields on the current call from ``state`` and
returns the state the next call should see.
"""

from __future__ import annotations

import copy
import dataclasses
from typing import Any

from pyfleetdebug._constants import NAV_STATUS_NO_GUIDANCE, NAV_STATUS_PREFIX
from pyfleetdebug.ingestion.decode import LifecycleCall, VehicleCall
from pyfleetdebug.ingestion.normalize import get_path, safe_str, strip_prefix
from pyfleetdebug.models._base import LatLng
from pyfleetdebug.models.event import LastLocation

# Keys carried forward, as they appear in the merged last location dict.
CARRIED_KEYS: tuple[str, ...] = (
    "location",
    "rawlocation",
    "heading",
    "currentroutesegment",
    "currentroutesegmenttraffic",
)
_ROUTE_KEYS: tuple[str, ...] = ("currentroutesegment", "currentroutesegmenttraffic")
_LATLNG_KEYS: frozenset[str] = frozenset({"location", "rawlocation"})


@dataclasses.dataclass(frozen=True)
class CarryState:
    """Last known value of every carried field (``None`` = never seen)."""

    location: Any = None
    rawlocation: Any = None
    heading: Any = None
    currentroutesegment: Any = None
    currentroutesegmenttraffic: Any = None


def navigation_status_of(call: LifecycleCall) -> str | None:
    """Navigation status reported by a call, without the enum prefix."""
    status: Any = None
    if isinstance(call, VehicleCall):
        status = call.vehicle_body.get("navstatus")
    if status is None:
        status = get_path(call.response, "navstatus")
    return safe_str(strip_prefix(status, NAV_STATUS_PREFIX))


def location_snapshot(call: LifecycleCall) -> dict[str, Any]:
    """Location-related fields supplied by the call itself.

    Request values win over response values; route segment fields are read
    from the vehicle body and surfaced next to the location fields.
    """

    snapshot: dict[str, Any] = {}
    response_location = get_path(call.response, "lastlocation")
    if isinstance(response_location, dict):
        snapshot.update(response_location)

    if isinstance(call, VehicleCall):
        body = call.vehicle_body
        request_location = body.get("lastlocation")
        if isinstance(request_location, dict):
            snapshot.update({k: v for k, v in request_location.items() if v is not None})
        for key in _ROUTE_KEYS:
            value = body.get(key, get_path(call.response, key))
            if value is not None:
                snapshot[key] = value
    return copy.deepcopy(snapshot)


def carry_forward(state: CarryState, call: LifecycleCall) -> tuple[CarryState, LastLocation]:
    """One fold step: merge *call* with *state*.

    Returns the updated state and the :class:`LastLocation` for the call.
    A ``NO_GUIDANCE`` navigation status clears route segment state, both on
    the current call and for every call after it.  The raw location the
    call sent itself is kept apart as ``reported_raw_location``.
    """

    merged = location_snapshot(call)
    reported = LatLng.from_payload(merged.get("rawlocation"))
    updates: dict[str, Any] = {}
    for key in CARRIED_KEYS:
        value = merged.get(key)
        if key in _LATLNG_KEYS and LatLng.from_payload(value) is None:
            value = None
        if value is None:
            carried = getattr(state, key)
            if carried is not None:
                merged[key] = copy.deepcopy(carried)
        else:
            updates[key] = copy.deepcopy(value)

    if navigation_status_of(call) == NAV_STATUS_NO_GUIDANCE:
        for key in _ROUTE_KEYS:
            merged.pop(key, None)
            updates[key] = None

    merged["reported_raw_location"] = reported
    new_state = dataclasses.replace(state, **updates) if updates else state
    return new_state, LastLocation.model_validate(merged)
