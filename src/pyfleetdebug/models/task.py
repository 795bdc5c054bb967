"""Task model: every create/update call for one task id, and its projection."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from pyfleetdebug.analysis.geo import haversine_m
from pyfleetdebug.ingestion.normalize import get_path, parse_timestamp, safe_str
from pyfleetdebug.models._base import FleetBaseModel, LatLng


class TaskUpdate(FleetBaseModel):
    date: datetime
    request: dict[str, Any]
    response: dict[str, Any]


class TaskState(FleetBaseModel):
    """Point-in-time view of a task.

    Every field except ``task_id`` is ``None`` when the task has no update
    at or before the requested cutoff.
    """

    task_id: str
    type: str | None = None
    state: str | None = None
    tracking_id: str | None = None
    planned_location: dict[str, Any] | None = None
    task_outcome: str | None = None
    task_outcome_time: datetime | None = None
    task_outcome_location: dict[str, Any] | None = None
    task_outcome_location_source: str | None = None
    planned_vs_actual_delta_meters: float | None = None

    @property
    def planned_point(self) -> LatLng | None:
        return LatLng.from_payload(get_path(self.planned_location, "point"))

    @property
    def outcome_point(self) -> LatLng | None:
        return LatLng.from_payload(get_path(self.task_outcome_location, "point"))


def _prefer_response(update: TaskUpdate, field: str) -> Any:
    """Response value for *field*, falling back to the request's task body.

    Create and update calls place ``type``, ``plannedlocation`` and
    ``trackingid`` at different paths.
    """

    value = update.response.get(field)
    if value is None:
        value = get_path(update.request, "task", field)
    return value


@dataclasses.dataclass
class Task:
    task_idx: int
    task_id: str
    updates: list[TaskUpdate] = dataclasses.field(default_factory=list)

    @property
    def first_update(self) -> datetime | None:
        return self.updates[0].date if self.updates else None

    @property
    def last_update(self) -> datetime | None:
        return self.updates[-1].date if self.updates else None

    def add_update(self, date: datetime, request: dict[str, Any], response: dict[str, Any]) -> None:
        self.updates.append(TaskUpdate(date=date, request=request, response=response))

    def latest_update_as_of(self, max_date: datetime) -> TaskUpdate | None:
        cutoff = parse_timestamp(max_date)
        latest: TaskUpdate | None = None
        for update in self.updates:
            if cutoff is not None and update.date <= cutoff:
                latest = update
        return latest

    def get_state_as_of(self, max_date: datetime) -> TaskState:
        """Project the task as of *max_date* from the latest update at or before it.

        Note that many task changes happen as side effects of vehicle
        updates; only explicit create/update task calls are visible here.
        """

        update = self.latest_update_as_of(max_date)
        if update is None:
            return TaskState(task_id=self.task_id)

        planned_location = _prefer_response(update, "plannedlocation")
        outcome_location = update.response.get("taskoutcomelocation")
        state = TaskState(
            task_id=self.task_id,
            type=safe_str(_prefer_response(update, "type")),
            state=safe_str(update.response.get("state")),
            tracking_id=safe_str(_prefer_response(update, "trackingid")),
            planned_location=planned_location if isinstance(planned_location, dict) else None,
            task_outcome=safe_str(update.response.get("taskoutcome")),
            task_outcome_time=parse_timestamp(update.response.get("taskoutcometime")),
            task_outcome_location=outcome_location if isinstance(outcome_location, dict) else None,
            task_outcome_location_source=safe_str(update.response.get("taskoutcomelocationsource")),
        )
        planned, actual = state.planned_point, state.outcome_point
        if planned is None or actual is None:
            return state
        return state.model_copy(update={"planned_vs_actual_delta_meters": haversine_m(planned, actual)})
