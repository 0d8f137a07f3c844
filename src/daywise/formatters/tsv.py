"""Tab-separated values formatter."""

from daywise.models import ReviewItem, Task


class TsvFormatter:
    """Format entities as tab-separated values.

    Task columns: id, status, timer, seconds spent, description
    Review columns: id, next review, interval, times reviewed, title
    """

    NAME = "tsv"

    def format_tasks(self, tasks: list[Task]) -> str:
        lines = []
        for task in tasks:
            status = "done" if task.completed else "failed" if task.failed else "open"
            row = [
                task.id,
                status,
                task.timer_state.value,
                str(task.actual_time_spent),
                task.description,
            ]
            lines.append("\t".join(row))
        return "\n".join(lines)

    def format_reviews(self, items: list[ReviewItem]) -> str:
        lines = []
        for item in items:
            row = [
                item.id,
                item.next_review_date.isoformat(),
                str(item.interval_days),
                str(item.times_reviewed),
                item.title,
            ]
            lines.append("\t".join(row))
        return "\n".join(lines)
