"""Task store and timer state machine."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import date, datetime
from typing import TYPE_CHECKING

from daywise.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from daywise.models import Task, TimerState, records_from_blob

if TYPE_CHECKING:
    from daywise.storage import SnapshotWriter

logger = logging.getLogger(__name__)

DESCRIPTION_MIN = 3
DESCRIPTION_MAX = 200
ESTIMATE_MIN = 1
ESTIMATE_MAX = 1440


def is_failed(task: Task, today: date) -> bool:
    """Whether a task reads as failed on ``today``.

    Completion always clears it. Once failed, a still-incomplete task stays
    failed even if the clock later reads an earlier day.
    """
    if task.completed:
        return False
    if task.failed:
        return True
    return task.scheduled_date is not None and task.scheduled_date < today


def _require_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    return value


class TaskStore:
    """Owns the ordered Task collection.

    Every mutation runs under one re-entrant lock, recomputes ``failed`` and
    hands a full snapshot to the writer.
    """

    def __init__(
        self,
        writer: SnapshotWriter,
        key: str = "tasks",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._writer = writer
        self._key = key
        self._clock = clock
        self._lock = threading.RLock()
        self._tasks: list[Task] = []
        self.timer = TimerController(self)
        self._hydrate()

    # Reads

    def list(self) -> list[Task]:
        """All tasks in user order, with ``failed`` and running time current."""
        with self._lock:
            now = self._refresh()
            return [self._view(t, now) for t in self._tasks]

    def get(self, id: str) -> Task | None:
        with self._lock:
            now = self._refresh()
            for task in self._tasks:
                if task.id == id:
                    return self._view(task, now)
            return None

    def active_timer(self) -> Task | None:
        """The task whose timer is running, if any."""
        with self._lock:
            now = self._refresh()
            running = self._running_index()
            return None if running is None else self._view(self._tasks[running], now)

    def sweep(self) -> list[Task]:
        """Recompute ``failed`` across the store; return tasks that changed."""
        with self._lock:
            before = {t.id: t.failed for t in self._tasks}
            now = self._refresh()
            return [self._view(t, now) for t in self._tasks if t.failed != before[t.id]]

    # Mutations

    def create(
        self,
        description: str,
        estimated_time: int,
        category: str | None = None,
        scheduled_date: date | None = None,
    ) -> Task:
        text = (description or "").strip()
        if not DESCRIPTION_MIN <= len(text) <= DESCRIPTION_MAX:
            raise ValidationError(
                f"Description must be {DESCRIPTION_MIN}-{DESCRIPTION_MAX} characters"
            )
        estimate = _require_int(estimated_time, "Estimated time")
        if not ESTIMATE_MIN <= estimate <= ESTIMATE_MAX:
            raise ValidationError(
                f"Estimated time must be {ESTIMATE_MIN}-{ESTIMATE_MAX} minutes"
            )
        if isinstance(scheduled_date, datetime):
            scheduled_date = scheduled_date.date()
        elif scheduled_date is not None and not isinstance(scheduled_date, date):
            raise ValidationError(f"Scheduled date must be a date, got {scheduled_date!r}")
        category = (category or "").strip() or None

        with self._lock:
            now = self._refresh()
            task = Task(
                id=self._new_id(),
                description=text,
                estimated_time=estimate,
                created_at=now,
                category=category,
                scheduled_date=scheduled_date,
            )
            task = replace(task, failed=is_failed(task, now.date()))
            self._tasks.append(task)
            self._persist()
            logger.debug("Created task %s", task.id)
            return self._view(task, now)

    def toggle_completion(self, id: str) -> Task:
        with self._lock:
            now = self._refresh()
            idx = self._index(id)
            task = self._tasks[idx]
            if not task.completed:
                updated = replace(
                    task,
                    completed=True,
                    completed_at=now,
                    failed=False,
                    actual_time_spent=task.time_spent(now),
                    timer_state=TimerState.IDLE,
                    timer_started_at=None,
                )
            else:
                updated = replace(task, completed=False, completed_at=None)
                updated = replace(updated, failed=is_failed(updated, now.date()))
            self._tasks[idx] = updated
            self._persist()
            logger.debug("Task %s completed=%s", id, updated.completed)
            return self._view(updated, now)

    def delete(self, id: str) -> bool:
        """Remove a task. Unknown ids are a no-op; returns whether one was removed."""
        with self._lock:
            for idx, task in enumerate(self._tasks):
                if task.id == id:
                    del self._tasks[idx]
                    self._persist()
                    logger.debug("Deleted task %s", id)
                    return True
            return False

    def reorder(self, new_order: Sequence[str]) -> list[Task]:
        """Replace the user ordering in full."""
        ids = list(new_order)
        with self._lock:
            by_id = {t.id: t for t in self._tasks}
            if len(ids) != len(set(ids)) or set(ids) != set(by_id):
                raise ValidationError("Reorder must list every task id exactly once")
            self._tasks = [by_id[i] for i in ids]
            now = self._refresh()
            self._persist()
            return [self._view(t, now) for t in self._tasks]

    def add_manual_time(self, id: str, minutes: int) -> Task:
        minutes = _require_int(minutes, "Minutes")
        if minutes <= 0:
            raise ValidationError("Minutes must be positive")
        with self._lock:
            now = self._refresh()
            idx = self._index(id)
            task = self._tasks[idx]
            if task.completed or task.failed:
                raise InvalidStateError(f"Cannot add time to a completed or failed task: {id}")
            if task.timer_state == TimerState.RUNNING:
                raise InvalidStateError(f"Pause the timer before adding time: {id}")
            updated = replace(task, actual_time_spent=task.actual_time_spent + minutes * 60)
            self._tasks[idx] = updated
            self._persist()
            logger.debug("Added %d min to task %s", minutes, id)
            return self._view(updated, now)

    def flush(self) -> None:
        """Wait for queued snapshot writes."""
        self._writer.flush()

    # Internals shared with TimerController

    def _now(self) -> datetime:
        return self._clock()

    def _index(self, id: str) -> int:
        for idx, task in enumerate(self._tasks):
            if task.id == id:
                return idx
        raise NotFoundError(f"Task not found: {id}")

    def _running_index(self) -> int | None:
        for idx, task in enumerate(self._tasks):
            if task.timer_state == TimerState.RUNNING:
                return idx
        return None

    def _view(self, task: Task, now: datetime) -> Task:
        if task.timer_state != TimerState.RUNNING:
            return task
        return replace(task, actual_time_spent=task.time_spent(now))

    def _refresh(self) -> datetime:
        """Recompute ``failed``; persist if anything changed. Returns now."""
        now = self._now()
        today = now.date()
        changed = False
        for idx, task in enumerate(self._tasks):
            failed = is_failed(task, today)
            if failed == task.failed:
                continue
            updated = replace(task, failed=failed)
            if failed and task.timer_state == TimerState.RUNNING:
                updated = replace(
                    updated,
                    actual_time_spent=task.time_spent(now),
                    timer_state=TimerState.PAUSED,
                    timer_started_at=None,
                )
                logger.info("Paused timer on task %s: task is now overdue", task.id)
            self._tasks[idx] = updated
            changed = True
        if changed:
            self._persist()
        return now

    def _replace(self, idx: int, task: Task) -> None:
        self._tasks[idx] = task
        self._persist()

    def _persist(self) -> None:
        self._writer.submit(self._key, [t.to_dict() for t in self._tasks])

    def _new_id(self) -> str:
        existing = {t.id for t in self._tasks}
        while True:
            candidate = uuid.uuid4().hex[:8]
            if candidate not in existing:
                return candidate

    def _hydrate(self) -> None:
        blob = self._writer.store.load(self._key)
        tasks: list[Task] = []
        seen: set[str] = set()
        running_seen = False
        repaired = False
        for task in records_from_blob(blob, Task.from_dict, "task"):
            if task.id in seen:
                logger.warning("Dropping duplicate task id %s", task.id)
                repaired = True
                continue
            seen.add(task.id)
            if task.timer_state == TimerState.RUNNING:
                if task.completed or running_seen:
                    # Keep the recorded base time, stop accrual
                    task = replace(
                        task,
                        timer_state=TimerState.IDLE if task.completed else TimerState.PAUSED,
                        timer_started_at=None,
                    )
                    logger.warning("Stopped stray running timer on task %s", task.id)
                    repaired = True
                elif task.timer_started_at is None:
                    task = replace(task, timer_state=TimerState.PAUSED)
                    repaired = True
                else:
                    running_seen = True
            tasks.append(task)
        self._tasks = tasks
        logger.info("Loaded %d tasks from %s", len(tasks), self._key)
        if repaired:
            self._persist()


class TimerController:
    """Single-active-timer state machine over a TaskStore.

    idle -> running -> paused -> running ... -> idle (reset). Completing a
    task also forces it to idle.
    """

    def __init__(self, store: TaskStore):
        self._store = store

    def start(self, id: str) -> Task:
        store = self._store
        with store._lock:
            now = store._refresh()
            idx = store._index(id)
            task = store._tasks[idx]
            if task.timer_state == TimerState.RUNNING:
                raise InvalidStateError(f"Timer already running: {id}")
            running = store._running_index()
            if running is not None:
                other = store._tasks[running]
                raise ConflictError(f"Another task's timer is running: {other.id}")
            if task.completed or task.failed:
                raise InvalidStateError(f"Cannot start a completed or failed task: {id}")
            updated = replace(task, timer_state=TimerState.RUNNING, timer_started_at=now)
            store._replace(idx, updated)
            logger.debug("Started timer on task %s", id)
            return store._view(updated, now)

    def pause(self, id: str) -> Task:
        store = self._store
        with store._lock:
            now = store._refresh()
            idx = store._index(id)
            task = store._tasks[idx]
            if task.timer_state != TimerState.RUNNING:
                raise InvalidStateError(f"Timer is not running: {id}")
            updated = replace(
                task,
                actual_time_spent=task.time_spent(now),
                timer_state=TimerState.PAUSED,
                timer_started_at=None,
            )
            store._replace(idx, updated)
            logger.debug("Paused timer on task %s", id)
            return updated

    def reset(self, id: str) -> Task:
        store = self._store
        with store._lock:
            store._refresh()
            idx = store._index(id)
            task = store._tasks[idx]
            if task.timer_state == TimerState.RUNNING:
                raise InvalidStateError(f"Pause the timer before resetting: {id}")
            updated = replace(
                task, actual_time_spent=0, timer_state=TimerState.IDLE, timer_started_at=None
            )
            store._replace(idx, updated)
            logger.debug("Reset timer on task %s", id)
            return updated

    def active(self) -> Task | None:
        return self._store.active_timer()
