"""Habit domain services."""

from .habits import SortMode, compute_streaks, filter_and_sort, unique_categories
from .store import HabitStore, StoreEvent

__all__ = [
    "HabitStore",
    "SortMode",
    "StoreEvent",
    "compute_streaks",
    "filter_and_sort",
    "unique_categories",
]
