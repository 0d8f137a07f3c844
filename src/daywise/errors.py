"""Error kinds raised by the stores."""


class DaywiseError(Exception):
    """Base class for recoverable store errors."""


class ValidationError(DaywiseError, ValueError):
    """Input outside allowed bounds."""


class NotFoundError(DaywiseError, KeyError):
    """Operation on an unknown id."""

    def __str__(self) -> str:
        # KeyError repr-quotes its message
        return str(self.args[0]) if self.args else ""


class ConflictError(DaywiseError):
    """Another task's timer is already running."""


class InvalidStateError(DaywiseError):
    """Transition not legal from the entity's current state."""
