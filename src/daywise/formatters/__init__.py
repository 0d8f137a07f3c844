"""Output formatters for list commands."""

from .base import FormatterProtocol
from .jsonl import JsonlFormatter
from .table import TableFormatter
from .tsv import TsvFormatter

FORMATTERS: dict[str, type] = {
    "table": TableFormatter,
    "jsonl": JsonlFormatter,
    "tsv": TsvFormatter,
}


def get_formatter(format_str: str) -> FormatterProtocol:
    """Parse format string and return configured formatter.

    Format string syntax: <name>[:<options>]

    Examples:
        "table"         -> TableFormatter()
        "table:noid"    -> TableFormatter(show_id=False)
        "jsonl"         -> JsonlFormatter()
        "tsv"           -> TsvFormatter()
    """
    parts = format_str.split(":")
    name = parts[0]

    if name not in FORMATTERS:
        available = list(FORMATTERS.keys())
        raise ValueError(f"Unknown format: {name}. Available: {', '.join(available)}")

    cls = FORMATTERS[name]
    if name == "table":
        show_id = not (len(parts) > 1 and parts[1] == "noid")
        return cls(show_id=show_id)

    return cls()


__all__ = [
    "FormatterProtocol",
    "TableFormatter",
    "JsonlFormatter",
    "TsvFormatter",
    "FORMATTERS",
    "get_formatter",
]
