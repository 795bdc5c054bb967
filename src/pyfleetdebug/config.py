"""Engine configuration for pyfleetdebug."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyfleetdebug import _constants as c
from pyfleetdebug.exceptions import FleetDebugConfigError


@dataclasses.dataclass(frozen=True)
class DebuggerConfig:
    """Detector thresholds and scheduling knobs.

    Parameters
    ----------
    velocity_ceiling_mps : float
        Absolute velocity above which a jump is always significant.
    velocity_stddev_factor : float
        Multiplier applied to the velocity standard deviation when
        computing the data-dependent jump threshold.
    min_jump_distance_m : float
        Pairs covering this distance or less are never jumps.
    missing_update_ceiling_ms : int
        Gap length that is always reported as a missing update.
    missing_update_median_factor : float
        Multiplier applied to the median update interval.
    dwell_radius_m : float
        Maximum distance between a point and its cluster leader.
    dwell_min_updates : int
        Clusters with fewer updates are discarded.
    debounce_seconds : float
        Quiet period used by the debounced detector entry points.
    """

    velocity_ceiling_mps: float = c.VELOCITY_CEILING_MPS
    velocity_stddev_factor: float = c.VELOCITY_STDDEV_FACTOR
    min_jump_distance_m: float = c.MIN_JUMP_DISTANCE_M
    missing_update_ceiling_ms: int = c.MISSING_UPDATE_CEILING_MS
    missing_update_median_factor: float = c.MISSING_UPDATE_MEDIAN_FACTOR
    dwell_radius_m: float = c.DWELL_RADIUS_M
    dwell_min_updates: int = c.DWELL_MIN_UPDATES
    debounce_seconds: float = c.DEBOUNCE_SECONDS

    def __post_init__(self) -> None:
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if value < 0:
                raise FleetDebugConfigError(f"{field.name} must be non-negative, got {value}")

    @classmethod
    def from_env(cls, **overrides: Any) -> DebuggerConfig:
        """Create configuration from environment variables.

        Reads optional ``FLEETDEBUG_*`` variables.  Explicit keyword
        arguments override environment values.

        Raises
        ------
        FleetDebugConfigError
            If a variable is present but not numeric.
        """
        env = os.environ

        _ENV_CONFIG_MAP: dict[str, tuple[str, type]] = {
            "FLEETDEBUG_VELOCITY_CEILING_MPS": ("velocity_ceiling_mps", float),
            "FLEETDEBUG_VELOCITY_STDDEV_FACTOR": ("velocity_stddev_factor", float),
            "FLEETDEBUG_MIN_JUMP_DISTANCE_M": ("min_jump_distance_m", float),
            "FLEETDEBUG_MISSING_UPDATE_CEILING_MS": ("missing_update_ceiling_ms", int),
            "FLEETDEBUG_MISSING_UPDATE_MEDIAN_FACTOR": ("missing_update_median_factor", float),
            "FLEETDEBUG_DWELL_RADIUS_M": ("dwell_radius_m", float),
            "FLEETDEBUG_DWELL_MIN_UPDATES": ("dwell_min_updates", int),
            "FLEETDEBUG_DEBOUNCE_SECONDS": ("debounce_seconds", float),
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, (field_name, cast) in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = cast(val.strip())
            except ValueError as exc:
                raise FleetDebugConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
