"""Spaced-repetition scheduling."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from daywise.errors import NotFoundError, ValidationError
from daywise.models import Difficulty, ReviewItem, records_from_blob

if TYPE_CHECKING:
    from daywise.storage import SnapshotWriter

logger = logging.getLogger(__name__)

MIN_INTERVAL = 1
MAX_INTERVAL = 180

FIRST_REVIEW_INTERVALS: dict[Difficulty, int] = {
    Difficulty.EASY: 4,
    Difficulty.MEDIUM: 1,
    Difficulty.HARD: 1,
}

INTERVAL_FACTORS: dict[Difficulty, Decimal] = {
    Difficulty.EASY: Decimal("2.0"),
    Difficulty.MEDIUM: Decimal("1.5"),
    Difficulty.HARD: Decimal("0.8"),
}

# Fields callers may change through update_item
EDITABLE_FIELDS = {
    "title",
    "content",
    "first_review_date",
    "next_review_date",
    "last_reviewed_date",
    "difficulty",
}


def parse_difficulty(value: Difficulty | str) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    try:
        return Difficulty(str(value).lower())
    except ValueError:
        raise ValidationError(f"Invalid difficulty '{value}'. Use: easy/medium/hard") from None


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero.

    Builtin round() rounds halves to even, which would turn 2.5 into 2.
    """
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def adapt_interval(current_interval: int, difficulty: Difficulty | str, times_reviewed: int) -> int:
    """Next interval in days.

    ``times_reviewed`` is the count after this review, so 1 means the first
    review ever; that case ignores ``current_interval``.
    """
    difficulty = parse_difficulty(difficulty)
    if times_reviewed == 1:
        interval = FIRST_REVIEW_INTERVALS[difficulty]
    else:
        scaled = Decimal(current_interval) * INTERVAL_FACTORS[difficulty]
        interval = max(MIN_INTERVAL, round_half_up(scaled))
    return min(interval, MAX_INTERVAL)


def _as_date(value: Any, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError(f"{name} must be a date (YYYY-MM-DD), got {value!r}")


class SpacedRepetitionScheduler:
    """Owns the ReviewItem collection, always sorted by next review date."""

    def __init__(
        self,
        writer: SnapshotWriter,
        key: str = "reviews",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._writer = writer
        self._key = key
        self._clock = clock
        self._lock = threading.RLock()
        self._items: list[ReviewItem] = []
        self._hydrate()

    # Reads

    def list(self) -> list[ReviewItem]:
        with self._lock:
            return list(self._items)

    def get(self, id: str) -> ReviewItem | None:
        with self._lock:
            for item in self._items:
                if item.id == id:
                    return item
            return None

    def due_on(self, day: date) -> list[ReviewItem]:
        """Items whose next review falls exactly on ``day``."""
        day = _as_date(day, "Date")
        with self._lock:
            return [i for i in self._items if i.next_review_date == day]

    def overdue(self, today: date | None = None) -> list[ReviewItem]:
        """Items whose next review is before ``today``."""
        today = self._today() if today is None else _as_date(today, "Date")
        with self._lock:
            return [i for i in self._items if i.next_review_date < today]

    def total_reviews(self) -> int:
        with self._lock:
            return sum(i.times_reviewed for i in self._items)

    # Mutations

    def add_item(
        self,
        title: str,
        first_review_date: date | None = None,
        content: str | None = None,
        difficulty: Difficulty | str | None = None,
    ) -> ReviewItem:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title must not be empty")
        first = self._today() if first_review_date is None else _as_date(
            first_review_date, "First review date"
        )
        with self._lock:
            item = ReviewItem(
                id=self._new_id(),
                title=title,
                content=content or None,
                first_review_date=first,
                next_review_date=first,
                difficulty=parse_difficulty(difficulty) if difficulty else None,
                interval_days=1,
                times_reviewed=0,
                created_at=self._clock(),
            )
            self._items.append(item)
            self._sort()
            self._persist()
            logger.debug("Added review item %s due %s", item.id, first)
            return item

    def update_item(self, id: str, **changes: Any) -> ReviewItem:
        """Merge ``changes`` into an item and re-sort."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        fields: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "title":
                value = (value or "").strip()
                if not value:
                    raise ValidationError("Title must not be empty")
            elif name == "content":
                value = value or None
            elif name == "difficulty":
                value = parse_difficulty(value) if value else None
            elif name == "last_reviewed_date":
                value = _as_date(value, name) if value is not None else None
            else:
                value = _as_date(value, name)
            fields[name] = value

        with self._lock:
            idx = self._index(id)
            updated = replace(self._items[idx], **fields)
            self._items[idx] = updated
            self._sort()
            self._persist()
            logger.debug("Updated review item %s: %s", id, ", ".join(sorted(fields)))
            return updated

    def delete_item(self, id: str) -> bool:
        """Remove an item. Unknown ids are a no-op; returns whether one was removed."""
        with self._lock:
            for idx, item in enumerate(self._items):
                if item.id == id:
                    del self._items[idx]
                    self._persist()
                    logger.debug("Deleted review item %s", id)
                    return True
            return False

    def mark_reviewed(self, id: str, difficulty: Difficulty | str) -> ReviewItem:
        difficulty = parse_difficulty(difficulty)
        with self._lock:
            idx = self._index(id)
            item = self._items[idx]
            today = self._today()
            times = item.times_reviewed + 1
            interval = adapt_interval(item.interval_days, difficulty, times)
            updated = replace(
                item,
                last_reviewed_date=today,
                next_review_date=today + timedelta(days=interval),
                difficulty=difficulty,
                interval_days=interval,
                times_reviewed=times,
            )
            self._items[idx] = updated
            self._sort()
            self._persist()
            logger.debug(
                "Reviewed %s as %s: next in %d days", id, difficulty.value, interval
            )
            return updated

    def flush(self) -> None:
        """Wait for queued snapshot writes."""
        self._writer.flush()

    def _today(self) -> date:
        return self._clock().date()

    def _index(self, id: str) -> int:
        for idx, item in enumerate(self._items):
            if item.id == id:
                return idx
        raise NotFoundError(f"Review item not found: {id}")

    def _sort(self) -> None:
        # ISO dates sort lexically in calendar order; sort is stable
        self._items.sort(key=lambda i: i.sort_key)

    def _persist(self) -> None:
        self._writer.submit(self._key, [i.to_dict() for i in self._items])

    def _new_id(self) -> str:
        existing = {i.id for i in self._items}
        while True:
            candidate = f"sr_{uuid.uuid4().hex[:8]}"
            if candidate not in existing:
                return candidate

    def _hydrate(self) -> None:
        blob = self._writer.store.load(self._key)
        items: list[ReviewItem] = []
        seen: set[str] = set()
        repaired = False
        for item in records_from_blob(blob, ReviewItem.from_dict, "review"):
            if item.id in seen:
                logger.warning("Dropping duplicate review item id %s", item.id)
                repaired = True
                continue
            seen.add(item.id)
            items.append(item)
        loaded_order = [i.id for i in items]
        self._items = items
        self._sort()
        logger.info("Loaded %d review items from %s", len(items), self._key)
        if repaired or loaded_order != [i.id for i in self._items]:
            self._persist()
