"""Data models for normalized fleet logs and derived annotations."""

from pyfleetdebug.models._base import FleetBaseModel, LatLng
from pyfleetdebug.models.anomaly import (
    AnnotationEntry,
    DwellLocation,
    EtaDelta,
    HighVelocityJump,
    MissingUpdate,
    MissingUpdateResult,
    VelocityJumpResult,
)
from pyfleetdebug.models.event import ApiType, LastLocation, NormalizedEvent
from pyfleetdebug.models.task import Task, TaskState, TaskUpdate
from pyfleetdebug.models.trip import PathCoord, Trip, TripStatusChange

__all__ = [
    "AnnotationEntry",
    "ApiType",
    "DwellLocation",
    "EtaDelta",
    "FleetBaseModel",
    "HighVelocityJump",
    "LastLocation",
    "LatLng",
    "MissingUpdate",
    "MissingUpdateResult",
    "NormalizedEvent",
    "PathCoord",
    "Task",
    "TaskState",
    "TaskUpdate",
    "Trip",
    "TripStatusChange",
    "VelocityJumpResult",
]
