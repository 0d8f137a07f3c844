"""Snapshot storage backends."""
