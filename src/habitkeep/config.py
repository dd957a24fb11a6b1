"""Application configuration objects and helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

SORT_MODES = {"created", "streak"}


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, rejecting unparseable values."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitKeep"
    DB_FILENAME = "habitkeep.db"
    DEFAULT_STORAGE_KEY = "habits"

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HABITKEEP_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("HABITKEEP_DATABASE_URL", self._build_sqlite_url())
        self.STORAGE_KEY = os.getenv("HABITKEEP_STORAGE_KEY", self.DEFAULT_STORAGE_KEY)
        self.SORT_MODE = os.getenv("HABITKEEP_SORT_MODE", "created").strip().lower()
        self.NEWEST_FIRST = _env_bool("HABITKEEP_NEWEST_FIRST", default=True)
        self.CELEBRATION_SECONDS = _env_float("HABITKEEP_CELEBRATION_SECONDS", 1.5)
        self.ROLLOVER_ENABLED = _env_bool("HABITKEEP_ROLLOVER_ENABLED", default=True)

        if self.SORT_MODE not in SORT_MODES:
            raise ValueError(
                f"HABITKEEP_SORT_MODE must be one of {sorted(SORT_MODES)}, got {self.SORT_MODE!r}"
            )
        if self.CELEBRATION_SECONDS < 0:
            raise ValueError("HABITKEEP_CELEBRATION_SECONDS must not be negative.")
        if not self.STORAGE_KEY.strip():
            raise ValueError("HABITKEEP_STORAGE_KEY must not be blank.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("HABITKEEP_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations fall back to user-local storage.
            fallback_path = Path.home() / f".{self.APP_NAME.lower()}"
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        # Storage calls run in worker threads, so the connection must be shareable.
        connect_args: dict[str, Any] = {"check_same_thread": False}
        return {"connect_args": connect_args}


class TestConfig(BaseConfig):
    """Configuration for tests: throwaway data dir, no background jobs."""

    __test__ = False  # keep pytest from collecting this class

    def __init__(self, data_dir: Path | None = None) -> None:
        self._data_dir_override = data_dir
        super().__init__()
        self.ROLLOVER_ENABLED = False

    def _resolve_data_dir(self) -> Path:
        if self._data_dir_override is not None:
            path = Path(self._data_dir_override)
        else:
            path = Path(tempfile.mkdtemp(prefix="habitkeep-test-"))
        path.mkdir(parents=True, exist_ok=True)
        return path


__all__ = ["BaseConfig", "TestConfig", "SORT_MODES"]
