"""ETA-to-first-waypoint deltas between consecutive vehicle updates."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from pyfleetdebug.analysis._pairs import consecutive_pairs, located_updates
from pyfleetdebug.ingestion.normalize import get_path, parse_timestamp
from pyfleetdebug.models.anomaly import EtaDelta
from pyfleetdebug.models.event import NormalizedEvent


def eta_of(event: NormalizedEvent) -> datetime | None:
    """``etatofirstwaypoint`` from the request vehicle body, if any."""
    for body in ("vehicle", "deliveryvehicle"):
        eta = parse_timestamp(get_path(event.request, body, "etatofirstwaypoint"))
        if eta is not None:
            return eta
    return None


def detect_eta_deltas(
    events: Sequence[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
) -> list[EtaDelta]:
    """One delta per consecutive pair of located updates that both expose an ETA.

    ``delta_seconds`` is how far the ETA moved (positive = later arrival);
    an on-schedule vehicle keeps a constant ETA and yields deltas near zero.
    """

    with_eta = [
        (event, eta)
        for event in located_updates(events, min_date, max_date)
        if (eta := eta_of(event)) is not None
    ]
    deltas: list[EtaDelta] = []
    for (prev_event, prev_eta), (event, eta) in consecutive_pairs(with_eta):
        coords = event.last_location.reported_raw_location
        assert coords is not None
        deltas.append(
            EtaDelta(
                date=event.date,
                coords=coords,
                delta_seconds=(eta - prev_eta).total_seconds(),
                elapsed_seconds=(event.date - prev_event.date).total_seconds(),
                event=event,
            )
        )
    return deltas
