"""Dwell location clustering.

Leader clustering: each located update joins the first existing cluster
whose leader lies within the radius, otherwise it becomes the leader of a
new cluster.  Clusters are never re-merged and there is no time bound, so
a spot the vehicle crosses on separate days counts as one cluster.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from datetime import datetime

from pyfleetdebug.analysis._pairs import located_updates
from pyfleetdebug.analysis.geo import haversine_m
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.models._base import LatLng
from pyfleetdebug.models.anomaly import DwellLocation
from pyfleetdebug.models.event import NormalizedEvent


@dataclasses.dataclass
class _Cluster:
    leader: LatLng
    start_date: datetime
    end_date: datetime
    updates: int = 1


def detect_dwell_locations(
    events: Sequence[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
    config: DebuggerConfig | None = None,
) -> list[DwellLocation]:
    """Return clusters with at least ``dwell_min_updates`` members, in creation order."""
    config = config or DebuggerConfig()
    clusters: list[_Cluster] = []
    for event in located_updates(events, min_date, max_date):
        coord = event.last_location.reported_raw_location
        assert coord is not None
        cluster = next(
            (c for c in clusters if haversine_m(c.leader, coord) <= config.dwell_radius_m),
            None,
        )
        if cluster is None:
            clusters.append(_Cluster(leader=coord, start_date=event.date, end_date=event.date))
            continue
        cluster.updates += 1
        cluster.end_date = max(cluster.end_date, event.date)

    return [
        DwellLocation(leader=c.leader, updates=c.updates, start_date=c.start_date, end_date=c.end_date)
        for c in clusters
        if c.updates >= config.dwell_min_updates
    ]
