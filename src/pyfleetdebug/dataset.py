"""One loaded dataset: normalized stream plus the engines built on it."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError

from pyfleetdebug._constants import SOLUTION_TYPE_ODRD
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.exceptions import InputValidationError
from pyfleetdebug.ingestion.normalizer import NormalizationResult, normalize_logs
from pyfleetdebug.models._base import FleetBaseModel
from pyfleetdebug.models.event import NormalizedEvent
from pyfleetdebug.state.segments import SegmentEngine
from pyfleetdebug.state.tasks import TaskAggregator

_logger = logging.getLogger(__name__)


class DatasetFile(FleetBaseModel):
    """On-disk dataset format: ``{"rawLogs": [...], "solutionType": "ODRD"}``.

    Credentials stored next to the logs (``jwt``, ``APIKEY``) are ignored.
    """

    raw_logs: list[dict[str, Any]] = Field(validation_alias=AliasChoices("rawLogs", "raw_logs"))
    solution_type: str = Field(
        default=SOLUTION_TYPE_ODRD, validation_alias=AliasChoices("solutionType", "solution_type")
    )
    project_id: str | None = Field(default=None, validation_alias=AliasChoices("projectId", "project_id"))


class Dataset:
    """Normalizer, segment engine and task aggregator for one dataset.

    Usage::

        dataset = load_dataset("logs.json")
        for trip in dataset.segments.get_trips():
            ...
        jumps = dataset.segments.get_high_velocity_jumps()
    """

    def __init__(
        self,
        normalization: NormalizationResult,
        solution_type: str,
        *,
        config: DebuggerConfig | None = None,
        project_id: str | None = None,
    ) -> None:
        self._normalization = normalization
        self.solution_type = solution_type
        self.project_id = project_id
        self.config = config or DebuggerConfig()
        self.segments = SegmentEngine(normalization.events, solution_type, self.config)
        self.tasks = TaskAggregator(normalization.events, max_date=self.segments.max_date)

    @classmethod
    def from_raw(
        cls,
        raw_logs: Sequence[Mapping[str, Any]],
        solution_type: str,
        *,
        config: DebuggerConfig | None = None,
        project_id: str | None = None,
    ) -> Dataset:
        """Normalize *raw_logs* and build every engine."""
        return cls(normalize_logs(raw_logs, solution_type), solution_type, config=config, project_id=project_id)

    @classmethod
    def from_json(
        cls,
        data: str | bytes | Mapping[str, Any],
        *,
        config: DebuggerConfig | None = None,
    ) -> Dataset:
        """Build a dataset from the dataset file format (text or parsed).

        Raises
        ------
        InputValidationError
            If *data* is not a valid dataset document.
        """
        try:
            if isinstance(data, (str, bytes)):
                parsed = DatasetFile.model_validate_json(data)
            else:
                parsed = DatasetFile.model_validate(data)
        except ValidationError as exc:
            raise InputValidationError(f"invalid dataset document: {exc.error_count()} error(s)") from exc
        return cls.from_raw(parsed.raw_logs, parsed.solution_type, config=config, project_id=parsed.project_id)

    @property
    def events(self) -> list[NormalizedEvent]:
        return list(self._normalization.events)

    @property
    def unrecognized(self) -> list[int]:
        """Input indexes of records dropped as unrecognized."""
        return list(self._normalization.unrecognized)

    @property
    def unsortable(self) -> list[int]:
        """Input indexes of records dropped for lack of a timestamp."""
        return list(self._normalization.unsortable)

    @property
    def min_date(self) -> datetime:
        return self.segments.min_date

    @property
    def max_date(self) -> datetime:
        return self.segments.max_date


def load_dataset(path: str | Path, *, config: DebuggerConfig | None = None) -> Dataset:
    """Read a dataset file from disk."""
    path = Path(path)
    _logger.debug("Loading dataset from %s", path)
    return Dataset.from_json(path.read_bytes(), config=config)
