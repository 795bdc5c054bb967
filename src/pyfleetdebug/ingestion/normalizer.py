"""Raw log → normalized event stream.

This module owns the single normalization pass:

- lower-case every key of every raw record
- decode each record into a lifecycle call variant (drop unrecognized)
- order the batch chronologically (ascending, whatever the input order)
- apply the rename / trim rule table
- fold carry-forward state through the sorted calls
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from pyfleetdebug._constants import SOLUTION_TYPES
from pyfleetdebug._redact import redact_for_log
from pyfleetdebug.exceptions import InputValidationError, UnrecognizedRecordError
from pyfleetdebug.ingestion.carry import CarryState, carry_forward, navigation_status_of
from pyfleetdebug.ingestion.decode import LifecycleCall, decode_record
from pyfleetdebug.ingestion.normalize import format_timestamp, lowercase_keys, parse_timestamp
from pyfleetdebug.ingestion.rules import apply_rules
from pyfleetdebug.models.event import NormalizedEvent

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class NormalizationResult:
    """Output of :func:`normalize_logs`.

    ``unrecognized`` and ``unsortable`` hold the input indexes of records
    that were dropped, so callers can surface them.
    """

    events: list[NormalizedEvent]
    unrecognized: list[int] = dataclasses.field(default_factory=list)
    unsortable: list[int] = dataclasses.field(default_factory=list)


def _validate_input(raw_logs: Any, solution_type: Any) -> None:
    if isinstance(raw_logs, (str, bytes, bytearray, Mapping)) or not isinstance(raw_logs, Sequence):
        raise InputValidationError(f"raw logs must be a sequence of records, got {type(raw_logs).__name__}")
    if solution_type not in SOLUTION_TYPES:
        raise InputValidationError(f"solution type must be one of {sorted(SOLUTION_TYPES)}, got {solution_type!r}")
    for index, record in enumerate(raw_logs):
        if not isinstance(record, Mapping):
            raise InputValidationError(
                f"record {index} must be a mapping, got {type(record).__name__}",
                index=index,
            )


def _timestamp_text(call: LifecycleCall, date: datetime) -> str:
    if isinstance(call.timestamp, str) and call.timestamp.strip():
        return call.timestamp
    return format_timestamp(date)


def normalize_logs(raw_logs: Sequence[Mapping[str, Any]], solution_type: str) -> NormalizationResult:
    """Normalize a batch of raw log records.

    Parameters
    ----------
    raw_logs
        Raw records as fetched (any key casing, ascending or descending).
    solution_type
        ``"ODRD"`` or ``"LMFS"``.

    Returns
    -------
    NormalizationResult
        Events sorted ascending by date with dense ``sequence_index``.

    Raises
    ------
    InputValidationError
        If the input is not a sequence of mappings, or recognized records
        exist but none of them carries a sortable timestamp.
    """

    _validate_input(raw_logs, solution_type)

    unrecognized: list[int] = []
    unsortable: list[int] = []
    dated: list[tuple[datetime, LifecycleCall]] = []

    for index, raw in enumerate(raw_logs):
        record = lowercase_keys(dict(raw))
        try:
            call = decode_record(record)
        except UnrecognizedRecordError as exc:
            _logger.warning("Dropping record %d: %s; record=%s", index, exc, redact_for_log(record))
            unrecognized.append(index)
            continue

        date = parse_timestamp(call.timestamp) or parse_timestamp(call.server_time)
        if date is None:
            _logger.warning(
                "Dropping %s record %d without a sortable timestamp; record=%s",
                call.api_type,
                index,
                redact_for_log(record),
            )
            unsortable.append(index)
            continue
        dated.append((date, call))

    if unsortable and not dated:
        raise InputValidationError(
            f"none of the {len(unsortable)} recognized records carries a timestamp or server time",
            index=unsortable[0],
        )

    if len(dated) > 1 and dated[0][0] > dated[-1][0]:
        dated.reverse()
    # Stable: equal timestamps keep their (possibly reversed) input order.
    dated.sort(key=lambda item: item[0])

    events: list[NormalizedEvent] = []
    state = CarryState()
    for sequence_index, (date, call) in enumerate(dated):
        call = apply_rules(call)
        state, last_location = carry_forward(state, call)
        events.append(
            NormalizedEvent(
                timestamp=_timestamp_text(call, date),
                date=date,
                sequence_index=sequence_index,
                api_type=call.api_type,
                solution_type=solution_type,
                request=call.request,
                response=call.response,
                error=call.error,
                labels=call.labels,
                last_location=last_location,
                navigation_status=navigation_status_of(call),
                raw=call.record,
            )
        )

    _logger.debug(
        "Normalized %d of %d records (%d unrecognized, %d unsortable)",
        len(events),
        len(raw_logs),
        len(unrecognized),
        len(unsortable),
    )
    return NormalizationResult(events=events, unrecognized=unrecognized, unsortable=unsortable)
