"""Missing update (temporal gap) detection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from pyfleetdebug.analysis import stats
from pyfleetdebug.analysis._pairs import consecutive_pairs, elapsed_ms, located_updates
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.models.anomaly import MissingUpdate, MissingUpdateResult
from pyfleetdebug.models.event import NormalizedEvent

_logger = logging.getLogger(__name__)


def compute_gaps(
    events: Sequence[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
) -> list[MissingUpdate]:
    gaps: list[MissingUpdate] = []
    for prev_event, event in consecutive_pairs(located_updates(events, min_date, max_date)):
        interval_ms = elapsed_ms(prev_event, event)
        if interval_ms <= 0:
            continue
        start_loc = prev_event.last_location.reported_raw_location
        end_loc = event.last_location.reported_raw_location
        assert start_loc is not None and end_loc is not None  # guaranteed by located_updates
        gaps.append(
            MissingUpdate(
                idx=len(gaps),
                prev_event=prev_event,
                event=event,
                start_loc=start_loc,
                end_loc=end_loc,
                interval_ms=interval_ms,
            )
        )
    return gaps


def get_significant_gaps(gaps: Sequence[MissingUpdate], config: DebuggerConfig) -> MissingUpdateResult:
    """Keep gaps at least ``min(median * factor, ceiling)`` long.

    The threshold follows the dataset's own cadence: a vehicle reporting
    every 5 s gets a 50 s threshold, one reporting every 10 s hits the
    ceiling.
    """

    if not gaps:
        return MissingUpdateResult()

    intervals = [gap.interval_ms for gap in gaps]
    median_interval = stats.median(intervals) or 0.0
    computed_outlier = min(median_interval * config.missing_update_median_factor, config.missing_update_ceiling_ms)
    _logger.debug(
        "Update interval stats: mean=%s median=%s min=%s max=%s computed_outlier=%s",
        stats.mean(intervals),
        median_interval,
        min(intervals),
        max(intervals),
        computed_outlier,
    )

    significant = sorted(
        (gap for gap in gaps if gap.interval_ms >= computed_outlier),
        key=lambda gap: gap.interval_ms,
    )
    return MissingUpdateResult(
        updates=significant,
        computed_outlier=computed_outlier,
        median_interval=median_interval,
        pair_count=len(gaps),
    )


def detect_missing_updates(
    events: Sequence[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
    config: DebuggerConfig | None = None,
) -> MissingUpdateResult:
    return get_significant_gaps(compute_gaps(events, min_date, max_date), config or DebuggerConfig())
