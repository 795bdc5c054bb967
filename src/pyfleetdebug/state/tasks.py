"""Per-task aggregation of create/update task calls."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from pyfleetdebug.ingestion.normalize import parse_timestamp
from pyfleetdebug.models.event import NormalizedEvent, task_id_of
from pyfleetdebug.models.task import Task, TaskState

_logger = logging.getLogger(__name__)


class TaskAggregator:
    """Merge task write calls sharing a task id into one :class:`Task` each.

    Calls without a response (errored writes) or without a resolvable task
    id are skipped.  Tasks are always listed, whatever the time window; the
    cutoff only selects which state each one is shown in.
    """

    def __init__(self, events: Iterable[NormalizedEvent], max_date: datetime | None = None) -> None:
        self._tasks: dict[str, Task] = {}
        self._max_date = parse_timestamp(max_date)
        skipped = 0
        for event in events:
            if not event.api_type.is_task_write:
                continue
            task_id = task_id_of(event)
            if not task_id or not event.response:
                skipped += 1
                continue
            task = self._tasks.get(task_id)
            if task is None:
                task = self._tasks[task_id] = Task(task_idx=len(self._tasks), task_id=task_id)
            task.add_update(event.date, event.request or {}, event.response)
            if self._max_date is None or event.date > self._max_date:
                self._max_date = event.date
        if skipped:
            _logger.debug("Skipped %d task calls without task id or response", skipped)

    def __len__(self) -> int:
        return len(self._tasks)

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def get_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get_tasks_as_of(self, max_date: datetime | None = None) -> list[TaskState]:
        """One projection per task, in first-seen order."""
        cutoff = parse_timestamp(max_date) or self._max_date
        if cutoff is None:
            return []
        return [task.get_state_as_of(cutoff) for task in self._tasks.values()]
