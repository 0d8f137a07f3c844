"""Rich table formatter."""

from typing import Any

from rich.table import Table

from daywise.formatting import (
    TIMER_INDICATORS,
    format_clock,
    format_day,
    format_due,
    format_estimate,
    format_remaining,
)
from daywise.models import ReviewItem, Task


class TableFormatter:
    """Format tasks and review items as Rich tables."""

    NAME = "table"

    def __init__(self, show_id: bool = True):
        self.show_id = show_id

    def _status(self, task: Task) -> str:
        # Colorblind-safe: blue checkmark for done
        if task.completed:
            return "[blue]✓[/blue]"
        if task.failed:
            return "[red]✗[/red]"
        return "[dim]•[/dim]"

    def format_tasks(self, tasks: list[Task]) -> Any:
        if not tasks:
            return "[dim]No tasks[/dim]"

        has_category = any(t.category for t in tasks)
        has_due = any(t.scheduled_date for t in tasks)

        table = Table(show_header=True, header_style="bold")
        if self.show_id:
            table.add_column("ID", style="dim")
        table.add_column("Done", width=4)
        table.add_column("Task")
        table.add_column("Est", justify="right")
        table.add_column("Spent", justify="right")
        table.add_column("Left", justify="right")
        if has_due:
            table.add_column("Due")
        if has_category:
            table.add_column("Category", style="magenta")

        for task in tasks:
            row = []
            if self.show_id:
                row.append(task.id)
            row.append(self._status(task))
            text = task.description
            if task.completed:
                text = f"[strike dim]{text}[/strike dim]"
            row.append(text)
            row.append(format_estimate(task.estimated_time))
            indicator = TIMER_INDICATORS.get(task.timer_state.value, "")
            spent = format_clock(task.actual_time_spent)
            row.append(f"{indicator} {spent}" if indicator else spent)
            row.append("" if task.completed or task.failed else format_remaining(task))
            if has_due:
                row.append(format_due(task))
            if has_category:
                row.append(task.category or "")
            table.add_row(*row)

        return table

    def format_reviews(self, items: list[ReviewItem]) -> Any:
        if not items:
            return "[dim]No review items[/dim]"

        table = Table(show_header=True, header_style="bold")
        if self.show_id:
            table.add_column("ID", style="dim")
        table.add_column("Title")
        table.add_column("Next", width=10)
        table.add_column("Interval", justify="right")
        table.add_column("Reviews", justify="right")
        table.add_column("Last", width=10)
        table.add_column("Rating")

        for item in items:
            row = []
            if self.show_id:
                row.append(item.id)
            row.append(item.title)
            row.append(format_day(item.next_review_date))
            row.append(f"{item.interval_days}d")
            row.append(str(item.times_reviewed))
            row.append(format_day(item.last_reviewed_date))
            row.append(item.difficulty.value if item.difficulty else "")
            table.add_row(*row)

        return table
