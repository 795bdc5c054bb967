"""Decode lower-cased raw records into typed lifecycle call variants.

Every raw record is mapped to exactly one of twelve variants (a pydantic
discriminated union keyed on ``api_type``) before any downstream logic runs.
A record whose shape matches no variant raises
:class:`~pyfleetdebug.exceptions.UnrecognizedRecordError`.

Three record shapes are recognized, in this order:

* Cloud Logging entries: ``{"jsonpayload": {"@type": ..., "request": ...}}``
  (``@type`` may also sit at the top level next to ``request``).
* Fleet archive calls: ``{"updatevehicle": {"request": ..., "response": ...}}``
  where the only api-named top-level key holds the payload.
* Entries carrying only a ``logname`` such as
  ``projects/p/logs/fleetengine.googleapis.com%2Fupdate_vehicle``.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from pyfleetdebug._constants import TYPE_MARKER_PREFIXES
from pyfleetdebug.exceptions import UnrecognizedRecordError
from pyfleetdebug.ingestion.normalize import get_path, safe_str
from pyfleetdebug.models._base import FleetBaseModel
from pyfleetdebug.models.event import ApiType

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_API_TYPES_BY_KEY: dict[str, ApiType] = {api_type.canonical: api_type for api_type in ApiType}


def match_api_type(marker: Any) -> ApiType | None:
    """Match a type tag, log name or key against the twelve api types.

    Matching ignores case, underscores and the ``type.googleapis.com``
    package prefix, and drops a trailing ``Log`` (``UpdateVehicleLog``).
    """

    text = safe_str(marker)
    if text is None:
        return None
    text = text.strip().lower().replace("%2f", "/")
    for prefix in TYPE_MARKER_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix) :]
            break
    text = text.rsplit("/", 1)[-1].rsplit(".", 1)[-1]
    key = _NON_ALNUM_RE.sub("", text)
    api_type = _API_TYPES_BY_KEY.get(key)
    if api_type is None and key.endswith("log"):
        api_type = _API_TYPES_BY_KEY.get(key[: -len("log")])
    return api_type


# ------------------------------------------------------------------
# Variants
# ------------------------------------------------------------------


class LifecycleCall(FleetBaseModel):
    """Fields shared by every decoded lifecycle call."""

    api_type: ApiType
    timestamp: Any = None
    server_time: Any = None
    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    labels: dict[str, Any] = Field(default_factory=dict)
    record: dict[str, Any] = Field(default_factory=dict)


class VehicleCall(LifecycleCall):
    @property
    def vehicle_body(self) -> dict[str, Any]:
        """Vehicle resource in the request (``vehicle`` or ``deliveryvehicle``)."""
        body = get_path(self.request, "vehicle")
        if not isinstance(body, dict):
            body = get_path(self.request, "deliveryvehicle")
        return body if isinstance(body, dict) else {}


class TripCall(LifecycleCall):
    pass


class TaskCall(LifecycleCall):
    pass


class CreateVehicleCall(VehicleCall):
    api_type: Literal[ApiType.CREATE_VEHICLE]


class UpdateVehicleCall(VehicleCall):
    api_type: Literal[ApiType.UPDATE_VEHICLE]


class GetVehicleCall(VehicleCall):
    api_type: Literal[ApiType.GET_VEHICLE]


class CreateDeliveryVehicleCall(VehicleCall):
    api_type: Literal[ApiType.CREATE_DELIVERY_VEHICLE]


class UpdateDeliveryVehicleCall(VehicleCall):
    api_type: Literal[ApiType.UPDATE_DELIVERY_VEHICLE]


class GetDeliveryVehicleCall(VehicleCall):
    api_type: Literal[ApiType.GET_DELIVERY_VEHICLE]


class CreateTripCall(TripCall):
    api_type: Literal[ApiType.CREATE_TRIP]


class UpdateTripCall(TripCall):
    api_type: Literal[ApiType.UPDATE_TRIP]


class GetTripCall(TripCall):
    api_type: Literal[ApiType.GET_TRIP]


class CreateTaskCall(TaskCall):
    api_type: Literal[ApiType.CREATE_TASK]


class UpdateTaskCall(TaskCall):
    api_type: Literal[ApiType.UPDATE_TASK]


class GetTaskCall(TaskCall):
    api_type: Literal[ApiType.GET_TASK]


DecodedCall = Annotated[
    CreateVehicleCall
    | UpdateVehicleCall
    | GetVehicleCall
    | CreateDeliveryVehicleCall
    | UpdateDeliveryVehicleCall
    | GetDeliveryVehicleCall
    | CreateTripCall
    | UpdateTripCall
    | GetTripCall
    | CreateTaskCall
    | UpdateTaskCall
    | GetTaskCall,
    Field(discriminator="api_type"),
]

_DECODED_CALL_ADAPTER: TypeAdapter[DecodedCall] = TypeAdapter(DecodedCall)


# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------


def _dict_or_none(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def _locate_payload(record: dict[str, Any]) -> tuple[ApiType, dict[str, Any]] | None:
    json_payload = record.get("jsonpayload")
    if isinstance(json_payload, dict) and "@type" in json_payload:
        api_type = match_api_type(json_payload.get("@type"))
        if api_type is not None:
            return api_type, json_payload

    if "@type" in record:
        api_type = match_api_type(record.get("@type"))
        if api_type is not None:
            return api_type, record

    keyed = [
        (api_type, value)
        for key, value in record.items()
        if isinstance(value, dict) and (api_type := match_api_type(key)) is not None
    ]
    if len(keyed) == 1:
        return keyed[0]

    api_type = match_api_type(record.get("logname"))
    if api_type is not None:
        payload = json_payload if isinstance(json_payload, dict) else record
        return api_type, payload
    return None


def decode_record(record: dict[str, Any]) -> LifecycleCall:
    """Decode one lower-cased raw record into its lifecycle call variant.

    Raises
    ------
    UnrecognizedRecordError
        If the record matches none of the twelve lifecycle shapes.
    """

    if not isinstance(record, dict):
        raise UnrecognizedRecordError(f"record must be a mapping, got {type(record).__name__}")

    located = _locate_payload(record)
    if located is None:
        marker = get_path(record, "jsonpayload", "@type") or record.get("@type") or record.get("logname")
        raise UnrecognizedRecordError(f"unrecognized lifecycle record (marker={marker!r})", marker=safe_str(marker))
    api_type, payload = located

    error = payload.get("errorresponse") or payload.get("error") or record.get("error")
    return _DECODED_CALL_ADAPTER.validate_python(
        {
            "api_type": api_type,
            "timestamp": record.get("timestamp", payload.get("timestamp")),
            "server_time": record.get("servertime", payload.get("servertime")),
            "request": _dict_or_none(payload.get("request")),
            "response": _dict_or_none(payload.get("response")),
            "error": _dict_or_none(error),
            "labels": _dict_or_none(record.get("labels")) or {},
            "record": record,
        }
    )
