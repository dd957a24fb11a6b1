"""Habit tracking data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from ..constants.categories import DEFAULT_CATEGORY


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Habit:
    """A user-defined habit tracked for daily completion.

    ``history`` holds ISO ``YYYY-MM-DD`` strings, most recent first, without duplicates.
    Instances are treated as values: store operations swap in a replaced copy rather
    than editing a habit in place, and ``history`` is a tuple so copies never share
    a mutable list.
    """

    key: str
    title: str
    category: str = DEFAULT_CATEGORY
    time: Optional[str] = None
    streak: int = 0
    history: tuple[str, ...] = ()
    info: str = ""
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        # Shared snapshots must not be able to edit the history in place.
        self.history = tuple(self.history)

    @property
    def last_completed(self) -> Optional[str]:
        """Most recent completion date, if any."""
        return self.history[0] if self.history else None

    def completed_on(self, day: date | str) -> bool:
        """Return True when ``day`` is recorded in the history."""

        day_str = day if isinstance(day, str) else day.isoformat()
        return day_str in self.history
