"""Tests for CLI commands."""

import json
import re
from datetime import date, timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from daywise.cli import app
from daywise.config import clear_config_cache

runner = CliRunner()

TASK_ID = re.compile(r"\(([0-9a-f]{8})\)")
REVIEW_ID = re.compile(r"\((sr_[0-9a-f]{8})\)")


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Set up isolated environment for CLI tests."""
    clear_config_cache()
    config_dir = tmp_path / ".config" / "daywise"
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("DAYWISE_CONFIG_DIR", str(config_dir))
    monkeypatch.chdir(tmp_path)
    return config_dir


def _add(text: str, *extra: str) -> str:
    result = runner.invoke(app, ["add", text, *extra])
    assert result.exit_code == 0, f"Failed: {result.output}"
    return TASK_ID.search(result.stdout).group(1)


def _add_review(title: str) -> str:
    result = runner.invoke(app, ["review", "add", title])
    assert result.exit_code == 0, f"Failed: {result.output}"
    return REVIEW_ID.search(result.stdout).group(1)


def _tasks_jsonl() -> list[dict]:
    result = runner.invoke(app, ["ls", "--all", "-f", "jsonl"])
    assert result.exit_code == 0, f"Failed: {result.output}"
    return [json.loads(line) for line in result.stdout.splitlines() if line.strip()]


class TestCliBasics:
    def test_help(self, cli_env):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "task timers" in result.stdout

    def test_no_command_shows_open_tasks(self, cli_env):
        _add("Write report", "-e", "60")

        result = runner.invoke(app, [])

        assert result.exit_code == 0
        assert "Write report" in result.stdout

    def test_info(self, cli_env):
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "JsonFileStore" in result.stdout
        assert "Tasks:" in result.stdout
        assert "default_backend = 'json'" in result.stdout


class TestCliAdd:
    def test_add(self, cli_env):
        result = runner.invoke(app, ["add", "Write report", "-e", "60", "-c", "Work"])

        assert result.exit_code == 0, f"Failed: {result.output}"
        assert "Added" in result.stdout
        assert "Write report" in result.stdout
        assert (cli_env / "data" / "tasks.json").exists()

    def test_add_persists_fields(self, cli_env):
        _add("Write report", "-e", "60", "-c", "Work", "-D", "2099-01-02")

        [task] = _tasks_jsonl()
        assert task["estimatedTime"] == 60
        assert task["category"] == "Work"
        assert task["scheduledDate"] == "2099-01-02"

    def test_add_requires_estimate(self, cli_env):
        result = runner.invoke(app, ["add", "Write report"])
        assert result.exit_code != 0

    def test_add_short_description(self, cli_env):
        result = runner.invoke(app, ["add", "ab", "-e", "10"])

        assert result.exit_code == 1
        assert "Error:" in result.stdout

    def test_add_estimate_out_of_range(self, cli_env):
        result = runner.invoke(app, ["add", "Write report", "-e", "2000"])
        assert result.exit_code == 1

    def test_add_bad_date(self, cli_env):
        result = runner.invoke(app, ["add", "Write report", "-e", "10", "-D", "soon"])

        assert result.exit_code == 1
        assert "Invalid date" in result.stdout


class TestCliList:
    def test_list_empty(self, cli_env):
        result = runner.invoke(app, ["ls"])

        assert result.exit_code == 0
        assert "No tasks" in result.stdout

    def test_list_hides_completed_by_default(self, cli_env):
        _add("Open task", "-e", "10")
        done_id = _add("Finished task", "-e", "10")
        runner.invoke(app, ["done", done_id])

        result = runner.invoke(app, ["ls"])
        assert "Open task" in result.stdout
        assert "Finished task" not in result.stdout

        result = runner.invoke(app, ["ls", "--done"])
        assert "Finished task" in result.stdout
        assert "Open task" not in result.stdout

    def test_list_unknown_format(self, cli_env):
        result = runner.invoke(app, ["ls", "-f", "yaml"])

        assert result.exit_code == 1
        assert "Unknown format" in result.stdout


class TestCliDone:
    def test_done_toggles(self, cli_env):
        task_id = _add("Write report", "-e", "60")

        result = runner.invoke(app, ["done", task_id])
        assert result.exit_code == 0
        assert "Done:" in result.stdout

        result = runner.invoke(app, ["done", task_id])
        assert "Reopened:" in result.stdout
        assert _tasks_jsonl()[0]["completed"] is False

    def test_done_partial_id(self, cli_env):
        task_id = _add("Write report", "-e", "60")

        result = runner.invoke(app, ["done", task_id[:6]])

        assert result.exit_code == 0
        assert _tasks_jsonl()[0]["completed"] is True

    def test_done_unknown(self, cli_env):
        result = runner.invoke(app, ["done", "zzzzzzzz"])

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestCliTimer:
    def test_start_pause(self, cli_env):
        task_id = _add("Write report", "-e", "60")

        result = runner.invoke(app, ["start", task_id])
        assert result.exit_code == 0, f"Failed: {result.output}"
        assert "Timer running" in result.stdout
        assert _tasks_jsonl()[0]["timerState"] == "running"

        result = runner.invoke(app, ["pause", task_id])
        assert result.exit_code == 0
        assert "Paused" in result.stdout
        assert _tasks_jsonl()[0]["timerState"] == "paused"

    def test_second_timer_conflicts(self, cli_env):
        first = _add("First task", "-e", "10")
        second = _add("Second task", "-e", "10")
        runner.invoke(app, ["start", first])

        result = runner.invoke(app, ["start", second])

        assert result.exit_code == 1
        assert "Another task's timer is running" in result.stdout

    def test_info_shows_running(self, cli_env):
        task_id = _add("Write report", "-e", "60")
        runner.invoke(app, ["start", task_id])

        result = runner.invoke(app, ["info"])

        assert "Running:" in result.stdout
        assert task_id in result.stdout

    def test_pause_idle_fails(self, cli_env):
        task_id = _add("Write report", "-e", "60")

        result = runner.invoke(app, ["pause", task_id])

        assert result.exit_code == 1

    def test_log_and_reset(self, cli_env):
        task_id = _add("Write report", "-e", "60")

        result = runner.invoke(app, ["log", task_id, "15"])
        assert result.exit_code == 0, f"Failed: {result.output}"
        assert "Logged 15 min" in result.stdout
        assert _tasks_jsonl()[0]["actualTimeSpent"] == 900

        result = runner.invoke(app, ["reset", task_id])
        assert result.exit_code == 0
        assert _tasks_jsonl()[0]["actualTimeSpent"] == 0

    def test_log_while_running_fails(self, cli_env):
        task_id = _add("Write report", "-e", "60")
        runner.invoke(app, ["start", task_id])

        result = runner.invoke(app, ["log", task_id, "15"])

        assert result.exit_code == 1
        assert "Pause the timer" in result.stdout

    def test_log_non_positive_fails(self, cli_env):
        task_id = _add("Write report", "-e", "60")
        result = runner.invoke(app, ["log", task_id, "0"])
        assert result.exit_code == 1


class TestCliRemoveMove:
    def test_rm(self, cli_env):
        task_id = _add("Write report", "-e", "60")

        result = runner.invoke(app, ["rm", task_id])

        assert result.exit_code == 0
        assert "Removed" in result.stdout
        assert _tasks_jsonl() == []

    def test_move(self, cli_env):
        a = _add("First task", "-e", "10")
        b = _add("Second task", "-e", "10")

        result = runner.invoke(app, ["move", b, a])

        assert result.exit_code == 0, f"Failed: {result.output}"
        assert [t["id"] for t in _tasks_jsonl()] == [b, a]

    def test_move_incomplete_list(self, cli_env):
        a = _add("First task", "-e", "10")
        _add("Second task", "-e", "10")

        result = runner.invoke(app, ["move", a])

        assert result.exit_code == 1
        assert "every task" in result.stdout


class TestCliReview:
    def test_add_and_due(self, cli_env):
        _add_review("Spanish verbs")

        result = runner.invoke(app, ["review", "due"])

        assert result.exit_code == 0
        assert "Spanish verbs" in result.stdout

    def test_done_reschedules(self, cli_env):
        item_id = _add_review("Spanish verbs")

        result = runner.invoke(app, ["review", "done", item_id, "easy"])

        assert result.exit_code == 0, f"Failed: {result.output}"
        assert "(4d)" in result.stdout
        result = runner.invoke(app, ["review", "due"])
        assert "No review items" in result.stdout

    def test_done_bad_difficulty(self, cli_env):
        item_id = _add_review("Spanish verbs")

        result = runner.invoke(app, ["review", "done", item_id, "trivial"])

        assert result.exit_code == 1
        assert "Invalid difficulty" in result.stdout

    def test_edit_and_rm(self, cli_env):
        item_id = _add_review("Spanish verbs")

        result = runner.invoke(app, ["review", "edit", item_id, "-t", "Spanish irregulars"])
        assert result.exit_code == 0
        assert "Spanish irregulars" in result.stdout

        result = runner.invoke(app, ["review", "rm", item_id])
        assert result.exit_code == 0
        result = runner.invoke(app, ["review", "ls"])
        assert "No review items" in result.stdout

    def test_review_ls_jsonl(self, cli_env):
        _add_review("Spanish verbs")

        result = runner.invoke(app, ["review", "ls", "-f", "jsonl"])

        record = json.loads(result.stdout.strip())
        assert record["title"] == "Spanish verbs"
        assert record["intervalDays"] == 1


class TestCliReporting:
    def test_stats_days_from_config(self, cli_env, monkeypatch):
        monkeypatch.setenv("DAYWISE_STATS_DAYS", "3")
        clear_config_cache()
        today = date.today()

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert (today - timedelta(days=2)).strftime("%b %d") in result.stdout
        assert (today - timedelta(days=3)).strftime("%b %d") not in result.stdout

    def test_stats(self, cli_env):
        task_id = _add("Write report", "-e", "60", "-c", "Work")
        runner.invoke(app, ["log", task_id, "20"])
        runner.invoke(app, ["done", task_id])

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "Completed: 1" in result.stdout
        assert "Time tracked: 20 min" in result.stdout
        assert "Work: 1" in result.stdout

    def test_export_stdout(self, cli_env):
        _add("Write report", "-e", "60")
        _add_review("Spanish verbs")

        result = runner.invoke(app, ["export"])

        records = [json.loads(line) for line in result.stdout.splitlines()]
        assert [r["type"] for r in records] == ["task", "review"]

    def test_export_file(self, cli_env, tmp_path):
        _add("Write report", "-e", "60")
        out = tmp_path / "export.jsonl"

        result = runner.invoke(app, ["export", "-o", str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text().strip())["description"] == "Write report"


class TestCliSqlite:
    def test_sqlite_backend(self, cli_env, monkeypatch):
        monkeypatch.setenv("DAYWISE_DEFAULT_BACKEND", "sqlite")
        clear_config_cache()

        task_id = _add("Write report", "-e", "60")

        assert (cli_env / "data" / "daywise.db").exists()
        assert _tasks_jsonl()[0]["id"] == task_id

