"""Daywise - task timers and spaced-repetition reviews."""

__version__ = "0.1.0"
