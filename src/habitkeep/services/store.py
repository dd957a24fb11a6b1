"""In-memory habit collection with change notification and write-through persistence."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from ..config import BaseConfig
from ..constants.categories import normalize_category
from ..domain.repositories.storage import KeyValueStore
from ..models.habit import Habit
from . import habits as ops
from .habits import SortMode
from .serialization import decode_habits, encode_habits

logger = logging.getLogger("habitkeep.services.store")

Confirm = Callable[[Habit], bool]


@dataclass(frozen=True, slots=True)
class StoreEvent:
    """Change notification delivered to store listeners."""

    kind: str
    key: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[StoreEvent], None]


def _new_key() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HabitStore:
    """Owns the habit collection for one session.

    Mutations are synchronous and return the updated habit, or None when the call did
    not take effect (blank input, unknown key, duplicate date, declined confirmation).
    Every effective mutation notifies listeners and writes the whole collection to the
    key/value store. Persistence failures are logged; memory stays authoritative.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        storage_key: str = "habits",
        clock: Callable[[], date] = date.today,
        now: Callable[[], datetime] = _utcnow,
        key_factory: Callable[[], str] = _new_key,
        sort_mode: SortMode | str = SortMode.CREATED_AT,
        newest_first: bool = True,
        celebration_seconds: float = 1.5,
    ):
        self.storage = storage
        self.storage_key = storage_key
        self.clock = clock
        self.now = now
        self.key_factory = key_factory
        self.sort_mode = SortMode(sort_mode)
        self.newest_first = newest_first
        self.celebration_seconds = celebration_seconds

        self._habits: list[Habit] = []
        self._listeners: list[Listener] = []
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: BaseConfig, storage: KeyValueStore, **kwargs) -> "HabitStore":
        """Build a store using the configured key, sort defaults and celebration time."""

        kwargs.setdefault("storage_key", config.STORAGE_KEY)
        kwargs.setdefault("sort_mode", config.SORT_MODE)
        kwargs.setdefault("newest_first", config.NEWEST_FIRST)
        kwargs.setdefault("celebration_seconds", config.CELEBRATION_SECONDS)
        return cls(storage, **kwargs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def habits(self) -> tuple[Habit, ...]:
        """Snapshot of the collection in insertion order."""
        return tuple(self._habits)

    def __len__(self) -> int:
        return len(self._habits)

    def get(self, key: str) -> Optional[Habit]:
        return next((h for h in self._habits if h.key == key), None)

    def is_completed_today(self, key: str) -> bool:
        habit = self.get(key)
        return habit is not None and ops.is_completed_on(habit, self.clock())

    def unique_categories(self) -> list[str]:
        return ops.unique_categories(self._habits)

    def filter_and_sort(
        self,
        filter_category: Optional[str] = None,
        sort_mode: SortMode | str | None = None,
        *,
        newest_first: Optional[bool] = None,
    ) -> list[Habit]:
        """Filtered, ordered view of the collection; store defaults fill omitted options."""

        return ops.filter_and_sort(
            self._habits,
            filter_category,
            self.sort_mode if sort_mode is None else sort_mode,
            newest_first=self.newest_first if newest_first is None else newest_first,
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, key: Optional[str] = None, **payload: Any) -> None:
        event = StoreEvent(kind=kind, key=key, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Store listener failed", extra={"event": kind, "habit_key": key})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self, title: str, category: Optional[str] = None, time: Optional[str] = None
    ) -> Optional[Habit]:
        """Create a habit; a blank title is rejected without error."""

        if not title or not title.strip():
            logger.debug("Rejected habit with blank title")
            return None

        habit = Habit(
            key=self._unique_key(),
            title=title.strip(),
            category=normalize_category(category),
            time=time or None,
            created_at=self.now(),
        )
        self._habits.append(habit)
        logger.info("Habit added", extra={"habit_key": habit.key, "category": habit.category})
        self._changed("added", habit)
        return habit

    def toggle_complete(self, key: str) -> Optional[Habit]:
        """Mark today's completion; repeated calls on the same day do nothing."""

        today = self.clock()
        updated = self._apply(key, lambda h: ops.toggle_complete(h, today))
        if updated is None:
            return None
        logger.info(
            "Habit completed",
            extra={"habit_key": key, "streak": updated.streak, "day": today.isoformat()},
        )
        self._changed("completed", updated)
        self._emit("celebrate", key, duration=self.celebration_seconds)
        return updated

    def delete(self, key: str, *, confirm: Optional[Confirm] = None) -> Optional[Habit]:
        """Remove a habit. Irreversible, so ``confirm`` (when given) must approve."""

        habit = self.get(key)
        if habit is None:
            logger.debug("Delete ignored for unknown habit", extra={"habit_key": key})
            return None
        if confirm is not None and not confirm(habit):
            logger.debug("Delete declined", extra={"habit_key": key})
            return None

        self._habits = [h for h in self._habits if h.key != key]
        logger.info("Habit deleted", extra={"habit_key": key})
        self._changed("deleted", habit)
        return habit

    def edit(self, key: str, new_title: str, new_category: Optional[str] = None) -> Optional[Habit]:
        updated = self._apply(key, lambda h: ops.edit_habit(h, new_title, new_category))
        if updated is not None:
            self._changed("edited", updated)
        return updated

    def add_manual_completion(self, key: str, date_string: str) -> Optional[Habit]:
        """Back-fill a completion date. Duplicates are ignored; the streak is not touched."""

        if not date_string or not date_string.strip():
            return None
        updated = self._apply(key, lambda h: ops.add_manual_completion(h, date_string))
        if updated is not None:
            self._changed("history_changed", updated, added=date_string.strip())
        return updated

    def remove_completion(self, key: str, date_string: str) -> Optional[Habit]:
        updated = self._apply(key, lambda h: ops.remove_completion(h, date_string or ""))
        if updated is not None:
            self._changed("history_changed", updated, removed=date_string.strip())
        return updated

    def reset_streak(self, key: str, *, confirm: Optional[Confirm] = None) -> Optional[Habit]:
        """Zero the streak after confirmation. History is kept."""

        habit = self.get(key)
        if habit is None:
            return None
        if confirm is not None and not confirm(habit):
            logger.debug("Streak reset declined", extra={"habit_key": key})
            return None
        updated = self._apply(key, ops.reset_streak)
        if updated is not None:
            logger.info("Streak reset", extra={"habit_key": key, "previous": habit.streak})
            self._changed("streak_reset", updated)
        return updated

    def update_info(self, key: str, text: str) -> Optional[Habit]:
        updated = self._apply(key, lambda h: ops.update_info(h, text))
        if updated is not None:
            self._changed("info_updated", updated)
        return updated

    def recalculate_streak(self, key: str) -> Optional[Habit]:
        """Rebuild a streak from its full history.

        Manual completions never feed the streak on their own; callers that want them
        counted invoke this explicitly.
        """

        habit = self.get(key)
        if habit is None:
            return None
        updated = ops.recompute_streak(habit)
        if updated is not habit:
            self._store(updated)
            self._changed("streak_recalculated", updated)
        return updated

    def roll_over_day(self) -> None:
        """Tell listeners the calendar date changed so completion flags are re-read."""

        logger.info("Day rolled over", extra={"day": self.clock().isoformat()})
        self._emit("day_changed", None, day=self.clock().isoformat())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Replace the collection with the stored document.

        A missing key starts an empty collection. Read or decode failures are logged
        and leave the current collection as it was.
        """

        try:
            payload = await self.storage.get(self.storage_key)
            loaded = decode_habits(payload)
        except Exception:
            logger.exception("Failed to load habits", extra={"storage_key": self.storage_key})
            return

        self._habits = loaded
        logger.info("Habits loaded", extra={"count": len(loaded)})
        self._emit("loaded", None, count=len(loaded))

    async def save(self) -> None:
        """Write the current collection in full."""

        await self._write(encode_habits(self._habits, self.clock()))

    async def flush(self) -> None:
        """Wait for saves scheduled from inside a running event loop."""

        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _write(self, payload: str) -> None:
        try:
            await self.storage.set(self.storage_key, payload)
        except Exception:
            logger.exception("Failed to save habits", extra={"storage_key": self.storage_key})

    def _schedule_save(self) -> None:
        # Serialize now so each write carries the snapshot of the mutation that caused it.
        payload = encode_habits(self._habits, self.clock())
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._write(payload))
            return
        task = loop.create_task(self._write(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _unique_key(self) -> str:
        key = self.key_factory()
        while self.get(key) is not None:
            key = self.key_factory()
        return key

    def _index(self, key: str) -> Optional[int]:
        return next((i for i, h in enumerate(self._habits) if h.key == key), None)

    def _store(self, habit: Habit) -> None:
        index = self._index(habit.key)
        if index is not None:
            self._habits[index] = habit

    def _apply(self, key: str, transform: Callable[[Habit], Habit]) -> Optional[Habit]:
        """Swap in ``transform(habit)``; None when the key is unknown or nothing changed."""

        index = self._index(key)
        if index is None:
            logger.debug("Unknown habit", extra={"habit_key": key})
            return None
        current = self._habits[index]
        updated = transform(current)
        if updated is current:
            return None
        self._habits[index] = updated
        return updated

    def _changed(self, kind: str, habit: Habit, **payload: Any) -> None:
        self._emit(kind, habit.key, **payload)
        self._schedule_save()


__all__ = ["HabitStore", "Listener", "StoreEvent"]
