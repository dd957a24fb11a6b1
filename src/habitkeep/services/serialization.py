"""JSON codec for the persisted habit document."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from ..constants.categories import normalize_category
from ..models.habit import Habit

logger = logging.getLogger("habitkeep.services.serialization")

# Records written before creation times were tracked sort as the oldest.
LEGACY_CREATED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DecodeError(ValueError):
    """Raised when the stored document is not a JSON array of habit objects."""


def _parse_created_at(raw: Any) -> datetime:
    if isinstance(raw, (int, float)):
        # Millisecond epoch timestamps, as produced by JavaScript clients.
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return LEGACY_CREATED_AT
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return LEGACY_CREATED_AT
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return LEGACY_CREATED_AT


def _clean_history(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    history: list[str] = []
    for item in raw:
        if isinstance(item, str) and item and item not in history:
            history.append(item)
    return tuple(history)


def habit_to_record(habit: Habit, today: Optional[date] = None) -> dict[str, Any]:
    """Map a habit onto the stored camelCase shape.

    ``completedToday`` is derived from history for readers of the raw document;
    it is ignored again on load.
    """

    return {
        "key": habit.key,
        "title": habit.title,
        "category": habit.category,
        "time": habit.time,
        "completedToday": habit.completed_on(today) if today else False,
        "streak": habit.streak,
        "history": list(habit.history),
        "info": habit.info,
        "createdAt": habit.created_at.isoformat(),
    }


def habit_from_record(record: dict[str, Any]) -> Optional[Habit]:
    """Build a habit from a stored record, filling defaults for missing fields.

    Returns None for records without a usable key or title.
    """

    key = record.get("key")
    title = record.get("title")
    if key is None or not isinstance(title, str) or not title.strip():
        return None

    streak = record.get("streak", 0)
    if not isinstance(streak, int) or isinstance(streak, bool) or streak < 0:
        streak = 0

    created_raw = record.get("createdAt")
    if created_raw is None and isinstance(key, str) and key.isdigit():
        # Early records used the creation timestamp in milliseconds as their key.
        created_raw = int(key)

    category = record.get("category")
    time = record.get("time")
    info = record.get("info")
    return Habit(
        key=str(key),
        title=title,
        category=normalize_category(category if isinstance(category, str) else None),
        time=time if isinstance(time, str) and time else None,
        streak=streak,
        history=_clean_history(record.get("history")),
        info=info if isinstance(info, str) else "",
        created_at=_parse_created_at(created_raw),
    )


def encode_habits(habits: Iterable[Habit], today: Optional[date] = None) -> str:
    """Serialize the full collection for a single key/value write."""

    return json.dumps(
        [habit_to_record(h, today) for h in habits],
        ensure_ascii=False,
    )


def decode_habits(payload: Optional[str]) -> list[Habit]:
    """Parse the stored document; an absent or empty payload is an empty collection.

    Raises:
        DecodeError: if the payload is not a JSON array
    """

    if payload is None or not payload.strip():
        return []
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Stored habits are not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise DecodeError(f"Stored habits must be a JSON array, got {type(data).__name__}")

    habits: list[Habit] = []
    seen_keys: set[str] = set()
    for index, record in enumerate(data):
        try:
            habit = habit_from_record(record) if isinstance(record, dict) else None
        except (TypeError, ValueError, AttributeError):
            habit = None
        if habit is None:
            logger.warning("Skipping unreadable habit record", extra={"index": index})
            continue
        if habit.key in seen_keys:
            logger.warning("Skipping duplicate habit key", extra={"habit_key": habit.key})
            continue
        seen_keys.add(habit.key)
        habits.append(habit)
    return habits


__all__ = [
    "DecodeError",
    "LEGACY_CREATED_AT",
    "decode_habits",
    "encode_habits",
    "habit_from_record",
    "habit_to_record",
]
