"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelKeyValueStore
from .logging_config import setup_logging
from .services.store import HabitStore


@dataclass
class AppContext:
    """Wires configuration, storage and the habit store for one process."""

    config: BaseConfig
    engine: Engine
    session_factory: Callable[[], Any]
    storage: SQLModelKeyValueStore
    habit_store: HabitStore
    scheduler: Optional[Any] = None

    def start_scheduler(self) -> None:
        """Start the midnight rollover job when enabled in config."""

        if not self.config.ROLLOVER_ENABLED:
            return
        from .scheduler import create_scheduler

        if self.scheduler is None:
            self.scheduler = create_scheduler(self)
        self.scheduler.start()

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        self.engine.dispose()


def create_app_context(config: Optional[BaseConfig] = None, **store_kwargs) -> AppContext:
    """Create the database-backed store. Call ``await ctx.habit_store.load()`` afterwards."""

    if config is None:
        config = BaseConfig()

    setup_logging(config)
    engine, session_factory = bootstrap_database(config)

    storage = SQLModelKeyValueStore(session_factory)
    habit_store = HabitStore.from_config(config, storage, **store_kwargs)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        storage=storage,
        habit_store=habit_store,
    )
