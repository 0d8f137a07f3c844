"""Shared formatting for durations and task state."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from daywise.models import Task

# Timer state indicators (Rich markup)
TIMER_INDICATORS: dict[str, str] = {
    "idle": "",
    "running": "[green bold]▶[/green bold]",
    "paused": "[yellow]⏸[/yellow]",
}


def format_clock(total_seconds: int) -> str:
    """Format seconds as MM:SS, or HH:MM:SS from one hour up."""
    total_seconds = abs(int(total_seconds))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_estimate(minutes: int) -> str:
    """Format an estimate: '45 min', '2h', '1h 30min'."""
    minutes = max(0, minutes)
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}min" if mins else f"{hours}h"


def format_remaining(task: Task) -> str:
    remaining = task.remaining_seconds
    if remaining >= 0:
        return f"{format_clock(remaining)} left"
    return f"[red]{format_clock(remaining)} over[/red]"


def format_due(task: Task) -> str:
    """Due-date status with Rich markup."""
    if not task.scheduled_date:
        return ""
    day = task.scheduled_date.strftime("%b %d")
    if task.completed:
        return f"[dim]{day}[/dim]"
    if task.failed:
        return f"[red bold]overdue {day}[/red bold]"
    return day


def format_day(day: date | None) -> str:
    return day.isoformat() if day else ""
