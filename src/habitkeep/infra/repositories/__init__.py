"""Concrete repository implementations using SQLModel."""

from .storage import SQLModelKeyValueStore, StorageError

__all__ = ["SQLModelKeyValueStore", "StorageError"]
