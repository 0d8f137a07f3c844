"""Data models for daywise."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    """Task timer state."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Difficulty(str, Enum):
    """Review rating chosen by the user."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO timestamp into naive local time.

    Accepts a trailing ``Z``; aware values are converted to the local zone.
    """
    if not value:
        return None
    text = str(value)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    return int(value)


@dataclass(frozen=True)
class Task:
    """Immutable task snapshot.

    ``actual_time_spent`` is in seconds. On snapshots handed out by the store
    it already includes the running segment; internally the store keeps the
    base value and ``timer_started_at`` as the accrual anchor.
    """

    id: str
    description: str
    estimated_time: int
    created_at: datetime
    category: str | None = None
    scheduled_date: date | None = None
    completed: bool = False
    completed_at: datetime | None = None
    failed: bool = False
    actual_time_spent: int = 0
    timer_state: TimerState = TimerState.IDLE
    timer_started_at: datetime | None = None

    def running_seconds(self, now: datetime) -> int:
        """Whole seconds accrued by the current running segment."""
        if self.timer_state != TimerState.RUNNING or self.timer_started_at is None:
            return 0
        return max(0, int((now - self.timer_started_at).total_seconds()))

    def time_spent(self, now: datetime) -> int:
        return self.actual_time_spent + self.running_seconds(now)

    @property
    def remaining_seconds(self) -> int:
        """Estimate minus time spent; negative when over estimate."""
        return self.estimated_time * 60 - self.actual_time_spent

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "estimatedTime": self.estimated_time,
            "category": self.category,
            "scheduledDate": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "completed": self.completed,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "failed": self.failed,
            "actualTimeSpent": self.actual_time_spent,
            "timerState": self.timer_state.value,
            "timerStartedAt": (
                self.timer_started_at.isoformat() if self.timer_started_at else None
            ),
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        """Build a Task from a persisted record.

        Unknown keys are ignored and missing optional keys take their defaults.
        Raises KeyError/ValueError/TypeError on records that cannot be parsed.
        """
        state = TimerState(data.get("timerState") or TimerState.IDLE.value)
        started_at = _parse_datetime(data.get("timerStartedAt"))
        if state != TimerState.RUNNING:
            started_at = None
        return cls(
            id=str(data["id"]),
            description=str(data.get("description") or ""),
            estimated_time=_int(data.get("estimatedTime"), 1),
            created_at=_parse_datetime(data.get("createdAt")) or datetime.now(),
            category=data.get("category") or None,
            scheduled_date=_parse_date(data.get("scheduledDate")),
            completed=bool(data.get("completed", False)),
            completed_at=_parse_datetime(data.get("completedAt")),
            failed=bool(data.get("failed", False)),
            actual_time_spent=max(0, _int(data.get("actualTimeSpent"), 0)),
            timer_state=state,
            timer_started_at=started_at,
        )


@dataclass(frozen=True)
class ReviewItem:
    """Immutable spaced-repetition item."""

    id: str
    title: str
    first_review_date: date
    next_review_date: date
    created_at: datetime
    content: str | None = None
    last_reviewed_date: date | None = None
    difficulty: Difficulty | None = None
    interval_days: int = 1
    times_reviewed: int = 0

    @property
    def sort_key(self) -> str:
        return self.next_review_date.isoformat()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "firstReviewDate": self.first_review_date.isoformat(),
            "lastReviewedDate": (
                self.last_reviewed_date.isoformat() if self.last_reviewed_date else None
            ),
            "nextReviewDate": self.next_review_date.isoformat(),
            "difficulty": self.difficulty.value if self.difficulty else None,
            "intervalDays": self.interval_days,
            "timesReviewed": self.times_reviewed,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ReviewItem:
        first = _parse_date(data["firstReviewDate"])
        if first is None:
            raise ValueError("firstReviewDate is required")
        difficulty = data.get("difficulty")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            content=data.get("content") or None,
            first_review_date=first,
            last_reviewed_date=_parse_date(data.get("lastReviewedDate")),
            next_review_date=_parse_date(data.get("nextReviewDate")) or first,
            difficulty=Difficulty(difficulty) if difficulty else None,
            interval_days=max(1, _int(data.get("intervalDays"), 1)),
            times_reviewed=max(0, _int(data.get("timesReviewed"), 0)),
            created_at=_parse_datetime(data.get("createdAt")) or datetime.now(),
        )


def records_from_blob(blob: Any, factory, kind: str) -> list:
    """Parse a persisted snapshot into entities, skipping bad records.

    A blob that is not a list is treated as absent.
    """
    if blob is None:
        return []
    if not isinstance(blob, list):
        logger.warning("Discarding corrupt %s snapshot (expected a list)", kind)
        return []
    items = []
    for record in blob:
        if not isinstance(record, dict):
            logger.warning("Skipping non-object %s record", kind)
            continue
        try:
            items.append(factory(record))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping unreadable %s record: %s", kind, e)
    return items
