"""High velocity jump detection.

A jump is a pair of consecutive located vehicle updates; it is significant
when the implied velocity is unrealistic either in absolute terms (above
the ceiling, ~150 mph by default) or relative to the dataset's own
distribution (above ``median + 2·stddev``).  The statistical term adapts
to fleets whose normal cruising speed is already high; it is capped at the
ceiling so plausible fast traffic is never the only reason for a flag.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from pyfleetdebug.analysis import stats
from pyfleetdebug.analysis._pairs import consecutive_pairs, elapsed_ms, located_updates
from pyfleetdebug.analysis.geo import haversine_m
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.models.anomaly import HighVelocityJump, VelocityJumpResult
from pyfleetdebug.models.event import NormalizedEvent

_logger = logging.getLogger(__name__)


def compute_jumps(
    events: Sequence[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
) -> list[HighVelocityJump]:
    """Every consecutive pair with positive elapsed time, significant or not."""
    jumps: list[HighVelocityJump] = []
    for prev_event, event in consecutive_pairs(located_updates(events, min_date, max_date)):
        time_spent_ms = elapsed_ms(prev_event, event)
        if time_spent_ms <= 0:
            continue
        start_loc = prev_event.last_location.reported_raw_location
        end_loc = event.last_location.reported_raw_location
        assert start_loc is not None and end_loc is not None  # guaranteed by located_updates
        distance = haversine_m(start_loc, end_loc)
        jumps.append(
            HighVelocityJump(
                jump_idx=len(jumps),
                prev_event=prev_event,
                event=event,
                start_loc=start_loc,
                end_loc=end_loc,
                time_spent_ms=time_spent_ms,
                distance_traveled=distance,
                velocity=distance / (time_spent_ms / 1000.0),
            )
        )
    return jumps


def get_significant_jumps(jumps: Sequence[HighVelocityJump], config: DebuggerConfig) -> VelocityJumpResult:
    """Filter *jumps* down to unrealistic velocities, sorted by velocity."""
    if not jumps:
        return VelocityJumpResult()

    velocities = [jump.velocity for jump in jumps]
    mean_velocity = stats.mean(velocities)
    median_velocity = stats.median(velocities) or 0.0
    stddev_velocity = stats.stddev(velocities) or 0.0
    ceiling = config.velocity_ceiling_mps
    computed_outlier = min(median_velocity + config.velocity_stddev_factor * stddev_velocity, ceiling)
    _logger.debug(
        "Velocity stats: mean=%s median=%s stddev=%s min=%s max=%s computed_outlier=%s",
        mean_velocity,
        median_velocity,
        stddev_velocity,
        min(velocities),
        max(velocities),
        computed_outlier,
    )

    significant = [
        jump
        for jump in jumps
        if jump.distance_traveled > config.min_jump_distance_m
        and jump.time_spent_ms > 0
        and (jump.velocity > computed_outlier or jump.velocity > ceiling)
    ]
    significant.sort(key=lambda jump: jump.velocity)
    return VelocityJumpResult(
        jumps=significant,
        computed_outlier=computed_outlier,
        mean_velocity=mean_velocity,
        median_velocity=median_velocity,
        stddev_velocity=stddev_velocity,
        pair_count=len(jumps),
    )


def detect_high_velocity_jumps(
    events: Sequence[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
    config: DebuggerConfig | None = None,
) -> VelocityJumpResult:
    """Compute and filter jumps for the ``[min_date, max_date]`` window."""
    return get_significant_jumps(compute_jumps(events, min_date, max_date), config or DebuggerConfig())
