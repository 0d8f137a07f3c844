"""Derived statistics over task and review snapshots."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from daywise.models import ReviewItem, Task


@dataclass(frozen=True)
class DayStat:
    date: date
    completed: int
    failed: int


@dataclass(frozen=True)
class Summary:
    completed_count: int
    failed_count: int
    total_time_seconds: int
    total_reviews: int
    per_day: list[DayStat] = field(default_factory=list)
    categories: list[tuple[str, int]] = field(default_factory=list)

    @property
    def total_time_minutes(self) -> int:
        return self.total_time_seconds // 60


def summarize(
    tasks: Sequence[Task],
    reviews: Sequence[ReviewItem],
    today: date,
    days: int = 7,
    top_categories: int = 5,
) -> Summary:
    """Summarize snapshots taken from the stores.

    ``per_day`` covers the ``days`` days ending on ``today``, oldest first.
    Completions count on their ``completed_at`` day, failures on their
    scheduled day.
    """
    per_day = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        completed = sum(
            1 for t in tasks if t.completed and t.completed_at and t.completed_at.date() == day
        )
        failed = sum(1 for t in tasks if t.failed and t.scheduled_date == day)
        per_day.append(DayStat(date=day, completed=completed, failed=failed))

    # Counter.most_common keeps first-seen order among equal counts
    counts = Counter(t.category for t in tasks if t.completed and t.category)

    return Summary(
        completed_count=sum(1 for t in tasks if t.completed),
        failed_count=sum(1 for t in tasks if t.failed),
        total_time_seconds=sum(t.actual_time_spent for t in tasks),
        total_reviews=sum(r.times_reviewed for r in reviews),
        per_day=per_day,
        categories=counts.most_common(top_categories),
    )
