"""JSON lines formatter."""

import json

from daywise.models import ReviewItem, Task


class JsonlFormatter:
    """Format entities as JSON lines (one JSON object per line).

    Uses the same field names as the persisted snapshots.
    """

    NAME = "jsonl"

    def _format(self, items: list) -> str:
        if not items:
            return ""
        return "\n".join(json.dumps(item.to_dict()) for item in items)

    def format_tasks(self, tasks: list[Task]) -> str:
        return self._format(tasks)

    def format_reviews(self, items: list[ReviewItem]) -> str:
        return self._format(items)
