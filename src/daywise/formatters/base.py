"""Base formatter protocol."""

from typing import Any, Protocol, runtime_checkable

from daywise.models import ReviewItem, Task


@runtime_checkable
class FormatterProtocol(Protocol):
    """Protocol for output formatters.

    Implement this to add new output formats.
    Returns a Rich-printable object (Table, str, etc.)
    """

    def format_tasks(self, tasks: list[Task]) -> Any:
        """Format tasks for output."""
        ...

    def format_reviews(self, items: list[ReviewItem]) -> Any:
        """Format review items for output."""
        ...
