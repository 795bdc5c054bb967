"""Internal constants shared across the library."""

SOLUTION_TYPE_ODRD = "ODRD"
SOLUTION_TYPE_LMFS = "LMFS"
SOLUTION_TYPES: frozenset[str] = frozenset({SOLUTION_TYPE_ODRD, SOLUTION_TYPE_LMFS})

# ------------------------------------------------------------------
# Detector thresholds
# ------------------------------------------------------------------

# True velocities higher than this are implausible (~150 mph).
VELOCITY_CEILING_MPS = 68.0
VELOCITY_STDDEV_FACTOR = 2.0
MIN_JUMP_DISTANCE_M = 1.0
MPS_TO_MPH = 2.237

MISSING_UPDATE_CEILING_MS = 60_000
MISSING_UPDATE_MEDIAN_FACTOR = 10.0

DWELL_RADIUS_M = 20.0
# Roughly 2 minutes at a 10 second update cadence.
DWELL_MIN_UPDATES = 12

DEBOUNCE_SECONDS = 0.25

EARTH_RADIUS_M = 6_371_000.0

# ------------------------------------------------------------------
# Segmentation / normalization
# ------------------------------------------------------------------

NON_TRIP_SEGMENT_PREFIX = "non-trip-segment-"
STOPS_LEFT_PREFIX = "Stops Left "
NO_TRIP_STATUS = "no status"

NAV_STATUS_PREFIX = "NAVIGATION_STATUS_"
NAV_STATUS_NO_GUIDANCE = "NO_GUIDANCE"
VEHICLE_STATE_PREFIX = "VEHICLE_STATE_"

# Marker prefixes stripped before matching a type tag to an api type.
TYPE_MARKER_PREFIXES: tuple[str, ...] = (
    "type.googleapis.com/maps.fleetengine.delivery.v1.",
    "type.googleapis.com/maps.fleetengine.v1.",
    "type.googleapis.com/maps.fleetengine.",
    "maps.fleetengine.delivery.v1.",
    "maps.fleetengine.v1.",
)
