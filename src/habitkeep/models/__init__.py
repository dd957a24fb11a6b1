"""Domain records and SQLModel table exports."""

from .habit import Habit
from .storage import StoredValue

__all__ = ["Habit", "StoredValue"]
