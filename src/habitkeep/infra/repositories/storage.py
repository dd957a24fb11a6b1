"""SQLModel implementation of the key/value store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...models.storage import StoredValue


class StorageError(RuntimeError):
    """Raised when the backing database rejects a read or write."""


class SQLModelKeyValueStore:
    """Key/value store over the ``stored_value`` table.

    Session work is blocking, so each call runs in a worker thread. Writes replace the
    whole value; when two writes race, whichever commits last wins.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    def _get(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as session:
                row = session.exec(select(StoredValue).where(StoredValue.key == key)).first()
                return row.value if row else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key!r}") from exc

    def _set(self, key: str, value: str) -> None:
        try:
            with self.session_factory() as session:
                row = session.exec(select(StoredValue).where(StoredValue.key == key)).first()
                if row:
                    row.value = value
                    row.updated_at = datetime.now(timezone.utc)
                else:
                    row = StoredValue(key=key, value=value)
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to write {key!r}") from exc

    def _delete(self, key: str) -> None:
        try:
            with self.session_factory() as session:
                row = session.exec(select(StoredValue).where(StoredValue.key == key)).first()
                if row:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete {key!r}") from exc


__all__ = ["SQLModelKeyValueStore", "StorageError"]
