"""Tests for the timer state machine."""

import threading
from datetime import date, datetime

import pytest

from daywise.errors import ConflictError, InvalidStateError, NotFoundError
from daywise.models import TimerState
from daywise.tasks import TaskStore


@pytest.fixture
def store(writer, clock) -> TaskStore:
    return TaskStore(writer, clock=clock)


class TestStart:
    def test_start_runs(self, store, clock):
        task = store.create("Write report", 60)

        started = store.timer.start(task.id)

        assert started.timer_state == TimerState.RUNNING
        assert started.timer_started_at == clock.now
        assert store.active_timer().id == task.id

    def test_time_accrues_at_query(self, store, clock):
        task = store.create("Write report", 60)
        store.timer.start(task.id)

        clock.advance(seconds=75)

        assert store.get(task.id).actual_time_spent == 75

    def test_clock_going_back_accrues_nothing(self, store, clock):
        task = store.create("Write report", 60)
        store.timer.start(task.id)

        clock.advance(seconds=-30)

        assert store.get(task.id).actual_time_spent == 0

    def test_second_start_conflicts(self, store):
        a = store.create("First", 10)
        b = store.create("Second", 10)
        store.timer.start(a.id)

        with pytest.raises(ConflictError):
            store.timer.start(b.id)

        assert store.get(a.id).timer_state == TimerState.RUNNING
        assert store.get(b.id).timer_state == TimerState.IDLE

    def test_start_same_task_twice(self, store):
        task = store.create("Write report", 60)
        store.timer.start(task.id)

        with pytest.raises(InvalidStateError):
            store.timer.start(task.id)

    def test_start_completed_rejected(self, store):
        task = store.create("Write report", 60)
        store.toggle_completion(task.id)

        with pytest.raises(InvalidStateError):
            store.timer.start(task.id)

    def test_start_failed_rejected(self, store):
        task = store.create("Write report", 60, scheduled_date=date(2024, 5, 1))

        with pytest.raises(InvalidStateError):
            store.timer.start(task.id)

    def test_start_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.timer.start("missing")

    def test_start_after_other_paused(self, store):
        a = store.create("First", 10)
        b = store.create("Second", 10)
        store.timer.start(a.id)
        store.timer.pause(a.id)

        store.timer.start(b.id)

        assert store.active_timer().id == b.id

    def test_concurrent_starts_single_winner(self, store):
        tasks = [store.create(f"Task {i}", 10) for i in range(8)]
        barrier = threading.Barrier(len(tasks))
        results: list[str] = []

        def attempt(task_id: str) -> None:
            barrier.wait()
            try:
                store.timer.start(task_id)
                results.append("ok")
            except ConflictError:
                results.append("conflict")

        threads = [threading.Thread(target=attempt, args=(t.id,)) for t in tasks]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        running = [t for t in store.list() if t.timer_state == TimerState.RUNNING]
        assert len(running) == 1


class TestPause:
    def test_pause_materializes_time(self, store, clock):
        task = store.create("Write report", 60)
        store.timer.start(task.id)
        clock.advance(minutes=2)

        paused = store.timer.pause(task.id)

        assert paused.timer_state == TimerState.PAUSED
        assert paused.actual_time_spent == 120
        clock.advance(minutes=10)
        assert store.get(task.id).actual_time_spent == 120

    def test_resume_accumulates(self, store, clock):
        task = store.create("Write report", 60)
        store.timer.start(task.id)
        clock.advance(seconds=30)
        store.timer.pause(task.id)
        store.timer.start(task.id)
        clock.advance(seconds=45)

        assert store.timer.pause(task.id).actual_time_spent == 75

    @pytest.mark.parametrize("setup", ["idle", "paused"])
    def test_pause_when_not_running(self, store, setup):
        task = store.create("Write report", 60)
        if setup == "paused":
            store.timer.start(task.id)
            store.timer.pause(task.id)

        with pytest.raises(InvalidStateError):
            store.timer.pause(task.id)


class TestReset:
    def test_reset_paused(self, store, clock):
        task = store.create("Write report", 60)
        store.timer.start(task.id)
        clock.advance(minutes=1)
        store.timer.pause(task.id)

        reset = store.timer.reset(task.id)

        assert reset.actual_time_spent == 0
        assert reset.timer_state == TimerState.IDLE

    def test_reset_clears_manual_time(self, store):
        task = store.create("Write report", 60)
        store.add_manual_time(task.id, 5)

        assert store.timer.reset(task.id).actual_time_spent == 0

    def test_reset_running_rejected(self, store, clock):
        task = store.create("Write report", 60)
        store.timer.start(task.id)
        clock.advance(minutes=1)

        with pytest.raises(InvalidStateError):
            store.timer.reset(task.id)

        assert store.get(task.id).timer_state == TimerState.RUNNING


class TestDayRollover:
    def test_running_task_paused_when_it_fails(self, store, clock):
        clock.set(datetime(2024, 5, 10, 23, 0))
        task = store.create("Late night", 60, scheduled_date=date(2024, 5, 10))
        store.timer.start(task.id)

        clock.advance(hours=2)
        current = store.get(task.id)

        assert current.failed is True
        assert current.timer_state == TimerState.PAUSED
        assert current.actual_time_spent == 7200
        assert store.active_timer() is None


class TestEndToEnd:
    def test_write_report_scenario(self, store, clock):
        task = store.create("Write report", 60)

        store.timer.start(task.id)
        clock.advance(minutes=5)

        with pytest.raises(InvalidStateError):
            store.add_manual_time(task.id, 15)

        paused = store.timer.pause(task.id)
        assert paused.actual_time_spent == 300

        logged = store.add_manual_time(task.id, 15)
        assert logged.actual_time_spent == 300 + 900

        clock.advance(minutes=1)
        done = store.toggle_completion(task.id)
        assert done.completed is True
        assert done.completed_at == clock.now
        assert done.timer_state == TimerState.IDLE
        assert done.actual_time_spent == 1200
