"""pyfleetdebug - Normalize and analyze Fleet Engine vehicle/trip/task logs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfleetdebug")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfleetdebug.analysis.debounce import Debouncer
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.dataset import Dataset, DatasetFile, load_dataset
from pyfleetdebug.exceptions import (
    FleetDebugConfigError,
    FleetDebugError,
    InputValidationError,
    UnrecognizedRecordError,
)
from pyfleetdebug.ingestion.normalizer import NormalizationResult, normalize_logs
from pyfleetdebug.models import (
    AnnotationEntry,
    ApiType,
    DwellLocation,
    EtaDelta,
    HighVelocityJump,
    LastLocation,
    LatLng,
    MissingUpdate,
    MissingUpdateResult,
    NormalizedEvent,
    PathCoord,
    Task,
    TaskState,
    Trip,
    TripStatusChange,
    VelocityJumpResult,
)
from pyfleetdebug.state.segments import LogFilters, SegmentEngine
from pyfleetdebug.state.tasks import TaskAggregator

__all__ = [
    "__version__",
    "AnnotationEntry",
    "ApiType",
    "Dataset",
    "DatasetFile",
    "Debouncer",
    "DebuggerConfig",
    "DwellLocation",
    "EtaDelta",
    "FleetDebugConfigError",
    "FleetDebugError",
    "HighVelocityJump",
    "InputValidationError",
    "LastLocation",
    "LatLng",
    "LogFilters",
    "MissingUpdate",
    "MissingUpdateResult",
    "NormalizationResult",
    "NormalizedEvent",
    "PathCoord",
    "SegmentEngine",
    "Task",
    "TaskAggregator",
    "TaskState",
    "Trip",
    "TripStatusChange",
    "UnrecognizedRecordError",
    "VelocityJumpResult",
    "load_dataset",
    "normalize_logs",
]
