"""Custom exception hierarchy for pyfleetdebug."""

from __future__ import annotations


class FleetDebugError(Exception):
    """Base exception for all pyfleetdebug errors."""


class FleetDebugConfigError(FleetDebugError):
    """Invalid or missing configuration."""


class InputValidationError(FleetDebugError):
    """Raw input has a shape the engine cannot process.

    Raised when the input is not a sequence of mappings, or when no record
    carries a field that allows chronological sorting.  ``index`` points at
    the offending record when a single record is to blame.
    """

    def __init__(self, message: str, *, index: int | None = None) -> None:
        self.index = index
        super().__init__(message)


class UnrecognizedRecordError(FleetDebugError):
    """A raw record matches none of the lifecycle call shapes.

    The normalizer catches this, logs a warning and drops the record; it
    only escapes when :func:`pyfleetdebug.ingestion.decode.decode_record` is
    called directly.
    """

    def __init__(self, message: str, *, marker: str | None = None) -> None:
        self.marker = marker
        super().__init__(message)
