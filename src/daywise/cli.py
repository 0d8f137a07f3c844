"""CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console

if TYPE_CHECKING:
    from daywise.config import Config
    from daywise.core import Tracker
    from daywise.models import ReviewItem, Task

app = typer.Typer(
    name="daywise",
    help="Daywise - task timers and spaced-repetition reviews.",
    no_args_is_help=False,
)
review_app = typer.Typer(help="Spaced-repetition review items.", no_args_is_help=True)
app.add_typer(review_app, name="review")

console = Console()


def _get_config() -> Config:
    """Lazy import and load config."""
    from daywise.config import Config

    return Config.load()


@contextmanager
def _open_tracker() -> Iterator[Tracker]:
    """Open both stores; pending snapshot writes are drained on exit."""
    from daywise.core import Tracker

    cfg = _get_config()
    try:
        tracker = Tracker(cfg)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    with tracker:
        yield tracker


@contextmanager
def _errors() -> Iterator[None]:
    """Report store errors as a red line and exit 1."""
    from daywise.errors import DaywiseError

    try:
        yield
    except DaywiseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "today":
        return date.today()
    if lowered == "tomorrow":
        return date.today() + timedelta(days=1)
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid date '{value}'. Use YYYY-MM-DD")
        raise typer.Exit(1)


def _find_by_partial_id(items: list, partial_id: str, kind: str, label):
    """Find a task or review item by full or unique partial ID."""
    for item in items:
        if item.id == partial_id:
            return item

    matches = [item for item in items if item.id.startswith(partial_id)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        console.print(f"[red]Error:[/red] {kind} not found: {partial_id}")
        raise typer.Exit(1)

    console.print(f"[yellow]Ambiguous ID '{partial_id}'. Matches:[/yellow]")
    for m in matches:
        console.print(f"  - {m.id}: {label(m)[:50]}")
    raise typer.Exit(1)


def _find_task(tracker: Tracker, partial_id: str) -> Task:
    return _find_by_partial_id(tracker.tasks.list(), partial_id, "Task", lambda t: t.description)


def _find_review(tracker: Tracker, partial_id: str) -> ReviewItem:
    return _find_by_partial_id(tracker.reviews.list(), partial_id, "Review item", lambda r: r.title)


def _get_formatter(cfg: Config, format_: str | None):
    from daywise.formatters import get_formatter

    try:
        return get_formatter(format_ or cfg.default_format)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """Show today's tasks and due reviews if no command given."""
    from daywise.logging_setup import setup_logging

    cfg = _get_config()
    setup_logging("DEBUG" if verbose else cfg.log_level, log_file=cfg.log_path)

    if ctx.invoked_subcommand is None:
        formatter = _get_formatter(cfg, None)
        with _open_tracker() as tracker:
            tasks = [t for t in tracker.tasks.list() if not t.completed]
            due = tracker.reviews.due_on(date.today())
            overdue = tracker.reviews.overdue(date.today())
        console.print(formatter.format_tasks(tasks))
        if due or overdue:
            console.print(f"[bold]Reviews due:[/bold] {len(due)} today, {len(overdue)} overdue")
            console.print(formatter.format_reviews(overdue + due))


# --- Tasks ---


@app.command()
def add(
    text: Annotated[str, typer.Argument(help="Task description (use quotes)")],
    estimate: Annotated[int, typer.Option("--estimate", "-e", help="Estimated minutes (1-1440)")],
    category: Annotated[str | None, typer.Option("--category", "-c", help="Category")] = None,
    date_: Annotated[
        str | None, typer.Option("--date", "-D", help="Scheduled date YYYY-MM-DD")
    ] = None,
):
    """Add a task."""
    scheduled = _parse_date(date_)
    with _open_tracker() as tracker, _errors():
        task = tracker.tasks.create(text, estimate, category=category, scheduled_date=scheduled)
    console.print(f"[green]✓[/green] Added: {task.description} [dim]({task.id})[/dim]")


@app.command(name="ls")
@app.command(name="list")
def list_tasks(
    done: Annotated[bool, typer.Option("--done", help="Show completed only")] = False,
    all_: Annotated[bool, typer.Option("-a", "--all", help="Show all")] = False,
    failed: Annotated[bool, typer.Option("--failed", help="Show failed only")] = False,
    format_: Annotated[str | None, typer.Option("-f", "--format", help="Output format")] = None,
):
    """List tasks in their saved order."""
    cfg = _get_config()
    formatter = _get_formatter(cfg, format_)
    with _open_tracker() as tracker:
        tasks = tracker.tasks.list()

    if done:
        tasks = [t for t in tasks if t.completed]
    elif failed:
        tasks = [t for t in tasks if t.failed]
    elif not all_:
        tasks = [t for t in tasks if not t.completed]

    console.print(formatter.format_tasks(tasks))


@app.command()
def done(
    id: Annotated[str, typer.Argument(help="Task ID (or partial)")],
):
    """Toggle a task's completion."""
    with _open_tracker() as tracker, _errors():
        task = _find_task(tracker, id)
        updated = tracker.tasks.toggle_completion(task.id)
    if updated.completed:
        console.print(f"[green]✓[/green] Done: {updated.description}")
    else:
        console.print(f"[yellow]↩[/yellow] Reopened: {updated.description}")


@app.command(name="remove")
@app.command()
def rm(
    id: Annotated[str, typer.Argument(help="Task ID (or partial)")],
):
    """Remove a task."""
    with _open_tracker() as tracker:
        task = _find_task(tracker, id)
        tracker.tasks.delete(task.id)
    console.print(f"[yellow]✓[/yellow] Removed: {task.description}")


@app.command()
def move(
    ids: Annotated[list[str], typer.Argument(help="Every task ID (or partial), in new order")],
):
    """Reorder tasks. All tasks must be listed."""
    with _open_tracker() as tracker, _errors():
        resolved = [_find_task(tracker, i).id for i in ids]
        tracker.tasks.reorder(resolved)
    console.print(f"[green]✓[/green] Reordered {len(resolved)} tasks")


@app.command()
def start(
    id: Annotated[str, typer.Argument(help="Task ID (or partial)")],
):
    """Start or resume a task's timer."""
    with _open_tracker() as tracker, _errors():
        task = _find_task(tracker, id)
        tracker.tasks.timer.start(task.id)
    console.print(f"[green]▶[/green] Timer running: {task.description}")


@app.command()
def pause(
    id: Annotated[str, typer.Argument(help="Task ID (or partial)")],
):
    """Pause a running timer."""
    from daywise.formatting import format_clock

    with _open_tracker() as tracker, _errors():
        task = _find_task(tracker, id)
        updated = tracker.tasks.timer.pause(task.id)
    console.print(
        f"[yellow]⏸[/yellow] Paused: {updated.description} "
        f"[dim]({format_clock(updated.actual_time_spent)})[/dim]"
    )


@app.command()
def reset(
    id: Annotated[str, typer.Argument(help="Task ID (or partial)")],
):
    """Reset a stopped timer to zero."""
    with _open_tracker() as tracker, _errors():
        task = _find_task(tracker, id)
        tracker.tasks.timer.reset(task.id)
    console.print(f"[yellow]↺[/yellow] Reset: {task.description}")


@app.command()
def log(
    id: Annotated[str, typer.Argument(help="Task ID (or partial)")],
    minutes: Annotated[int, typer.Argument(help="Minutes to add")],
):
    """Add time spent without the timer."""
    from daywise.formatting import format_clock

    with _open_tracker() as tracker, _errors():
        task = _find_task(tracker, id)
        updated = tracker.tasks.add_manual_time(task.id, minutes)
    console.print(
        f"[green]✓[/green] Logged {minutes} min on {updated.description} "
        f"[dim](total {format_clock(updated.actual_time_spent)})[/dim]"
    )


@app.command()
def sweep():
    """Mark overdue tasks as failed."""
    with _open_tracker() as tracker:
        changed = tracker.tasks.sweep()
    if not changed:
        console.print("[dim]Nothing changed[/dim]")
        return
    for task in changed:
        console.print(f"[red]failed[/red]: {task.description} [dim]({task.id})[/dim]")


# --- Reviews ---


@review_app.command("add")
def review_add(
    title: Annotated[str, typer.Argument(help="What to review")],
    content: Annotated[str | None, typer.Option("--content", "-c", help="Notes")] = None,
    first: Annotated[
        str | None, typer.Option("--first", "-D", help="First review date (default today)")
    ] = None,
):
    """Schedule a new review item."""
    first_date = _parse_date(first)
    with _open_tracker() as tracker, _errors():
        item = tracker.reviews.add_item(title, first_review_date=first_date, content=content)
    console.print(
        f"[green]✓[/green] Scheduled: {item.title} on {item.next_review_date.isoformat()} "
        f"[dim]({item.id})[/dim]"
    )


@review_app.command("ls")
def review_ls(
    format_: Annotated[str | None, typer.Option("-f", "--format", help="Output format")] = None,
):
    """List review items by next review date."""
    cfg = _get_config()
    formatter = _get_formatter(cfg, format_)
    with _open_tracker() as tracker:
        items = tracker.reviews.list()
    console.print(formatter.format_reviews(items))


@review_app.command("due")
def review_due(
    date_: Annotated[str | None, typer.Option("--date", "-D", help="Day (default today)")] = None,
    format_: Annotated[str | None, typer.Option("-f", "--format", help="Output format")] = None,
):
    """List items due on a day."""
    cfg = _get_config()
    formatter = _get_formatter(cfg, format_)
    day = _parse_date(date_) or date.today()
    with _open_tracker() as tracker:
        items = tracker.reviews.due_on(day)
    console.print(formatter.format_reviews(items))


@review_app.command("done")
def review_done(
    id: Annotated[str, typer.Argument(help="Review item ID (or partial)")],
    difficulty: Annotated[str, typer.Argument(help="easy/medium/hard")],
):
    """Record a review and reschedule the item."""
    with _open_tracker() as tracker, _errors():
        item = _find_review(tracker, id)
        updated = tracker.reviews.mark_reviewed(item.id, difficulty)
    console.print(
        f"[green]✓[/green] Reviewed: {updated.title} - next on "
        f"{updated.next_review_date.isoformat()} ({updated.interval_days}d)"
    )


@review_app.command("edit")
def review_edit(
    id: Annotated[str, typer.Argument(help="Review item ID (or partial)")],
    title: Annotated[str | None, typer.Option("--title", "-t")] = None,
    content: Annotated[str | None, typer.Option("--content", "-c")] = None,
    next_: Annotated[str | None, typer.Option("--next", "-n", help="Next review date")] = None,
):
    """Edit a review item."""
    changes: dict = {}
    if title is not None:
        changes["title"] = title
    if content is not None:
        changes["content"] = content
    if next_ is not None:
        changes["next_review_date"] = _parse_date(next_)
    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        raise typer.Exit(0)

    with _open_tracker() as tracker, _errors():
        item = _find_review(tracker, id)
        updated = tracker.reviews.update_item(item.id, **changes)
    console.print(f"[green]✓[/green] Updated: {updated.title}")


@review_app.command("rm")
def review_rm(
    id: Annotated[str, typer.Argument(help="Review item ID (or partial)")],
):
    """Remove a review item."""
    with _open_tracker() as tracker:
        item = _find_review(tracker, id)
        tracker.reviews.delete_item(item.id)
    console.print(f"[yellow]✓[/yellow] Removed: {item.title}")


# --- Reporting ---


@app.command()
def stats(
    days: Annotated[int | None, typer.Option("--days", "-n", help="Days of history")] = None,
):
    """Show completion and time statistics."""
    from rich.table import Table

    if days is None:
        days = _get_config().stats_days
    with _open_tracker() as tracker:
        summary = tracker.summary(days=max(1, days))

    console.print(f"[bold]Completed:[/bold] {summary.completed_count}")
    console.print(f"[bold]Failed:[/bold] {summary.failed_count}")
    console.print(f"[bold]Time tracked:[/bold] {summary.total_time_minutes} min")
    console.print(f"[bold]Reviews done:[/bold] {summary.total_reviews}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Day")
    table.add_column("Completed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    for stat in summary.per_day:
        table.add_row(stat.date.strftime("%b %d"), str(stat.completed), str(stat.failed))
    console.print(table)

    if summary.categories:
        console.print("[bold]Top categories:[/bold]")
        for name, count in summary.categories:
            console.print(f"  {name}: {count}")


@app.command()
def export(
    output: Annotated[str | None, typer.Option("-o", "--output", help="Output file")] = None,
):
    """Export tasks and review items as JSON lines."""
    import json

    with _open_tracker() as tracker:
        tasks = tracker.tasks.list()
        items = tracker.reviews.list()

    lines = [json.dumps({"type": "task", **t.to_dict()}) for t in tasks]
    lines += [json.dumps({"type": "review", **i.to_dict()}) for i in items]
    content = "\n".join(lines)

    if output:
        Path(output).write_text(content + "\n" if content else "")
        console.print(
            f"[green]✓[/green] Exported {len(tasks)} tasks and {len(items)} review items to {output}"
        )
    else:
        # Plain print so rich does not wrap or style JSON
        typer.echo(content)


@app.command()
def info():
    """Show storage, counts and settings."""
    with _open_tracker() as tracker:
        tasks = tracker.tasks.list()
        items = tracker.reviews.list()
        active = tracker.tasks.active_timer()

    done_count = sum(1 for t in tasks if t.completed)
    console.print(f"[bold]Backend:[/bold] {tracker.backend_name}")
    console.print(f"[bold]Storage:[/bold] {tracker.storage_path}")
    console.print(f"[bold]Tasks:[/bold] {len(tasks)} total ({done_count} done)")
    console.print(f"[bold]Review items:[/bold] {len(items)}")
    if active:
        console.print(f"[bold]Running:[/bold] {active.description} [dim]({active.id})[/dim]")
    console.print("[bold]Settings:[/bold]")
    for name, _desc, value in _get_config().get_settings():
        console.print(f"  {name} = {value!r}")
