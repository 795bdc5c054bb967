"""Consecutive-pair scan shared by the pair detectors."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime
from typing import TypeVar

from pyfleetdebug.ingestion.normalize import parse_timestamp
from pyfleetdebug.models.event import NormalizedEvent

_T = TypeVar("_T")


def in_window(event_date: datetime, min_date: datetime | None, max_date: datetime | None) -> bool:
    if min_date is not None and event_date < min_date:
        return False
    return max_date is None or event_date <= max_date


def located_updates(
    events: Iterable[NormalizedEvent],
    min_date: datetime | None = None,
    max_date: datetime | None = None,
) -> list[NormalizedEvent]:
    """Vehicle updates inside the window that reported a raw location themselves.

    Naive window bounds are taken as UTC.
    """
    min_date, max_date = parse_timestamp(min_date), parse_timestamp(max_date)
    return [
        event
        for event in events
        if event.is_vehicle_update()
        and event.last_location.reported_raw_location is not None
        and in_window(event.date, min_date, max_date)
    ]


def consecutive_pairs(items: Sequence[_T]) -> Iterator[tuple[_T, _T]]:
    for index in range(1, len(items)):
        yield items[index - 1], items[index]


def elapsed_ms(prev_event: NormalizedEvent, event: NormalizedEvent) -> float:
    return (event.date - prev_event.date).total_seconds() * 1000
