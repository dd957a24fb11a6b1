"""Tests for application wiring and the rollover scheduler."""

from __future__ import annotations

import asyncio
import logging
import logging.handlers

import pytest

from habitkeep import create_app_context
from habitkeep.config import TestConfig
from habitkeep.logging_config import LOGGER_NAME, SessionBufferHandler
from habitkeep.scheduler import ROLLOVER_JOB_ID, RolloverScheduler, create_scheduler


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def app_context(tmp_path, clock):
    ctx = create_app_context(TestConfig(tmp_path), clock=clock)
    yield ctx
    ctx.close()


def test_context_installs_logging(app_context, tmp_path):
    logger = logging.getLogger(LOGGER_NAME)

    assert len(logger.handlers) == 3
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)
    assert any(isinstance(h, SessionBufferHandler) for h in logger.handlers)
    assert (tmp_path / "logs" / "habitkeep.log").exists()


def test_context_persists_between_sessions(tmp_path, clock):
    config = TestConfig(tmp_path)

    first = create_app_context(config, clock=clock)
    habit = first.habit_store.add("Drink water", "Health")
    first.habit_store.toggle_complete(habit.key)
    first.close()

    second = create_app_context(config, clock=clock)
    asyncio.run(second.habit_store.load())
    try:
        restored = second.habit_store.get(habit.key)
        assert restored.title == "Drink water"
        assert restored.streak == 1
        assert restored.history == ("2024-01-01",)
    finally:
        second.close()


def test_context_uses_configured_storage_key(tmp_path, monkeypatch, clock):
    monkeypatch.setenv("HABITKEEP_STORAGE_KEY", "tracker")
    ctx = create_app_context(TestConfig(tmp_path), clock=clock)
    try:
        ctx.habit_store.add("Stored")
        assert asyncio.run(ctx.storage.get("tracker")) is not None
        assert asyncio.run(ctx.storage.get("habits")) is None
    finally:
        ctx.close()


def test_start_scheduler_respects_config(app_context):
    app_context.start_scheduler()
    assert app_context.scheduler is None


def test_scheduler_registers_rollover_job(app_context):
    scheduler = create_scheduler(app_context, auto_start=True)
    try:
        assert scheduler.running
        job = scheduler.scheduler.get_job(ROLLOVER_JOB_ID)
        assert job is not None
        assert job.name == "Habit day rollover"

        scheduler.start()  # second start is ignored
        assert len(scheduler.scheduler.get_jobs()) == 1
    finally:
        scheduler.stop()
    assert not scheduler.running


def test_rollover_job_notifies_store(app_context, clock):
    events = []
    app_context.habit_store.subscribe(events.append)
    clock.advance()

    RolloverScheduler(app_context)._run_rollover()

    assert [e.kind for e in events] == ["day_changed"]
    assert events[0].payload["day"] == "2024-01-02"


def test_rollover_job_logs_failures(app_context, caplog, monkeypatch):
    def boom():
        raise RuntimeError("listener exploded")

    monkeypatch.setattr(app_context.habit_store, "roll_over_day", boom)

    RolloverScheduler(app_context)._run_rollover()

    assert "Day rollover failed" in caplog.text
