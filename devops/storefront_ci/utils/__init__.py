"""Utility functions for the release pipeline."""

from .helpers import generate_id, format_duration

__all__ = [
    "generate_id",
    "format_duration",
]
