"""Habit domain helpers: streaks, completion history, filtering and sorting.

Every function here is pure. Transformations return a new ``Habit`` built with
``dataclasses.replace`` and hand back the original instance when nothing changes,
so callers can detect a no-op with an identity check.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from ..constants.categories import DEFAULT_CATEGORY, normalize_category
from ..models.habit import Habit


class SortMode(str, Enum):
    """Ordering applied to the habit list."""

    CREATED_AT = "created"
    STREAK = "streak"


def today_string(today: date) -> str:
    return today.isoformat()


def yesterday_string(today: date) -> str:
    return (today - timedelta(days=1)).isoformat()


def is_completed_on(habit: Habit, today: date) -> bool:
    """Return True when ``today`` already appears in the habit's history.

    Computed from history on every read, so the flag clears itself once the date changes.
    """

    return habit.completed_on(today)


def next_streak(habit: Habit, today: date) -> int:
    """Streak after completing ``habit`` on ``today``.

    Only the most recent history entry is consulted: yesterday extends the streak,
    anything else (including an empty history) starts over at 1.
    """

    last = habit.last_completed
    if last is not None and last == yesterday_string(today):
        return habit.streak + 1
    return 1


def toggle_complete(habit: Habit, today: date) -> Habit:
    """Record today's completion and advance the streak."""

    if is_completed_on(habit, today):
        return habit
    return replace(
        habit,
        streak=next_streak(habit, today),
        history=(today_string(today), *habit.history),
    )


def add_manual_completion(habit: Habit, day: str) -> Habit:
    """Prepend a back-filled completion date. The streak is left alone."""

    day = day.strip()
    if not day or day in habit.history:
        return habit
    return replace(habit, history=(day, *habit.history))


def remove_completion(habit: Habit, day: str) -> Habit:
    """Drop ``day`` from the history. The streak is left alone."""

    day = day.strip()
    if day not in habit.history:
        return habit
    return replace(habit, history=tuple(d for d in habit.history if d != day))


def edit_habit(habit: Habit, title: str, category: Optional[str]) -> Habit:
    if not title or not title.strip():
        return habit
    return replace(habit, title=title.strip(), category=normalize_category(category))


def reset_streak(habit: Habit) -> Habit:
    return replace(habit, streak=0)


def update_info(habit: Habit, text: Optional[str]) -> Habit:
    return replace(habit, info=text or "")


def _parse_days(history: Iterable[str]) -> list[date]:
    days = set()
    for raw in history:
        try:
            days.add(date.fromisoformat(raw))
        except (TypeError, ValueError):
            continue
    return sorted(days, reverse=True)


def compute_streaks(history: Iterable[str]) -> tuple[int, int]:
    """Return (current_streak, longest_streak) for a completion history.

    The current streak is the run of consecutive calendar days ending at the most
    recent recorded date, counted backwards. Entries that are not ISO dates are skipped.
    """

    days = _parse_days(history)
    if not days:
        return 0, 0

    # Current streak: walk backwards from the most recent day until a gap.
    current = 1
    for newer, older in zip(days, days[1:]):
        if newer - older != timedelta(days=1):
            break
        current += 1

    # Longest streak: sweep every run.
    longest = 1
    run = 1
    for newer, older in zip(days, days[1:]):
        if newer - older == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    return current, longest


def recompute_streak(habit: Habit) -> Habit:
    """Rebuild ``streak`` from the full history instead of the single-step rule."""

    current, _ = compute_streaks(habit.history)
    if current == habit.streak:
        return habit
    return replace(habit, streak=current)


def habit_category(habit: Habit) -> str:
    return habit.category or DEFAULT_CATEGORY


def unique_categories(habits: Iterable[Habit]) -> list[str]:
    """Distinct categories in discovery order.

    Compared by exact string, unlike the case-insensitive filter match.
    """

    seen: dict[str, None] = {}
    for habit in habits:
        seen.setdefault(habit_category(habit), None)
    return list(seen)


def filter_and_sort(
    habits: Iterable[Habit],
    filter_category: Optional[str] = None,
    sort_mode: SortMode | str = SortMode.CREATED_AT,
    *,
    newest_first: bool = True,
) -> list[Habit]:
    """Project the collection for display without mutating it.

    Args:
        habits: Habits in insertion order
        filter_category: Keep only this category (case-insensitive); blank keeps all
        sort_mode: ``SortMode.STREAK`` (highest first) or ``SortMode.CREATED_AT``
        newest_first: Direction for creation-time ordering

    Returns:
        A new list; ties keep insertion order
    """

    mode = SortMode(sort_mode)
    items = list(habits)

    if filter_category and filter_category.strip():
        wanted = filter_category.strip().lower()
        items = [h for h in items if habit_category(h).lower() == wanted]

    if mode is SortMode.STREAK:
        return sorted(items, key=lambda h: h.streak, reverse=True)
    return sorted(items, key=lambda h: h.created_at, reverse=newest_first)


__all__ = [
    "SortMode",
    "add_manual_completion",
    "compute_streaks",
    "edit_habit",
    "filter_and_sort",
    "habit_category",
    "is_completed_on",
    "next_streak",
    "recompute_streak",
    "remove_completion",
    "reset_streak",
    "today_string",
    "toggle_complete",
    "unique_categories",
    "update_info",
    "yesterday_string",
]
