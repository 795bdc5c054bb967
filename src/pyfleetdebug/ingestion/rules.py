"""Field rename / value trim rules reconciling ODRD and LMFS payloads.

The two backends name several fields differently (and have changed names
over time).  Rules are data: each one names the container it applies to,
relative to the decoded call, and only fires when its target is missing.
"""

from __future__ import annotations

import copy
import dataclasses
from typing import Any

from pyfleetdebug._constants import NAV_STATUS_PREFIX
from pyfleetdebug.ingestion.decode import LifecycleCall
from pyfleetdebug.ingestion.normalize import get_path, strip_prefix


@dataclasses.dataclass(frozen=True)
class FieldRename:
    """Move (or copy) ``source`` to ``target`` inside ``container``."""

    container: tuple[str, ...]
    source: str
    target: str
    keep_source: bool = False
    vehicle_only: bool = False


@dataclasses.dataclass(frozen=True)
class ValueTrim:
    """Strip ``prefix`` from the string value at ``container.field``."""

    container: tuple[str, ...]
    field: str
    prefix: str


_VEHICLE_BODIES: tuple[tuple[str, ...], ...] = (("request", "vehicle"), ("request", "deliveryvehicle"))

RENAME_RULES: tuple[FieldRename, ...] = (
    # Older ODRD responses use ``state`` for the vehicle state; tasks keep ``state``.
    FieldRename(("response",), "state", "vehiclestate", vehicle_only=True),
    FieldRename(("response",), "navigationstatus", "navstatus"),
    *(FieldRename(body, "navigationstatus", "navstatus") for body in _VEHICLE_BODIES),
    FieldRename(("response",), "currenttripids", "currenttrips"),
    # Archive payloads often only carry ``location``; analyses key off ``rawlocation``.
    *(FieldRename((*body, "lastlocation"), "location", "rawlocation", keep_source=True) for body in _VEHICLE_BODIES),
    FieldRename(("response", "lastlocation"), "location", "rawlocation", keep_source=True),
)

TRIM_RULES: tuple[ValueTrim, ...] = (
    ValueTrim(("response",), "navstatus", NAV_STATUS_PREFIX),
    *(ValueTrim(body, "navstatus", NAV_STATUS_PREFIX) for body in _VEHICLE_BODIES),
)


def _container(root: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any] | None:
    found = get_path(root, *path)
    return found if isinstance(found, dict) else None


def apply_rules(call: LifecycleCall) -> LifecycleCall:
    """Return a copy of *call* with every rename / trim rule applied.

    The original call (and the dicts it holds) are left untouched.
    """

    root: dict[str, Any] = {
        "request": copy.deepcopy(call.request),
        "response": copy.deepcopy(call.response),
    }

    for rule in RENAME_RULES:
        if rule.vehicle_only and not call.api_type.is_vehicle_call:
            continue
        container = _container(root, rule.container)
        if container is None or rule.source not in container or container.get(rule.target) is not None:
            continue
        value = container[rule.source] if rule.keep_source else container.pop(rule.source)
        container[rule.target] = copy.deepcopy(value) if rule.keep_source else value

    for trim in TRIM_RULES:
        container = _container(root, trim.container)
        if container is not None and trim.field in container:
            container[trim.field] = strip_prefix(container[trim.field], trim.prefix)

    return call.model_copy(update=root)
