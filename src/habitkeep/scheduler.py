"""Background scheduling for the midnight day rollover."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from .context import AppContext

logger = logging.getLogger("habitkeep.scheduler")

ROLLOVER_JOB_ID = "day_rollover"


class RolloverScheduler:
    """Runs the store's day-rollover notification just after local midnight."""

    def __init__(self, ctx: AppContext):
        """Initialize the scheduler with app context.

        Args:
            ctx: Application context holding the habit store and config
        """
        self.ctx = ctx
        self.scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        """Start the background scheduler; a second call is a no-op."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = BackgroundScheduler()
        self.scheduler.add_job(
            func=self._run_rollover,
            trigger=CronTrigger(hour=0, minute=0, second=1),
            id=ROLLOVER_JOB_ID,
            name="Habit day rollover",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Scheduled day rollover at 00:00:01")

    def stop(self) -> None:
        """Stop the background scheduler."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def _run_rollover(self) -> None:
        try:
            self.ctx.habit_store.roll_over_day()
        except Exception as exc:
            logger.error(f"Day rollover failed: {exc}", exc_info=True)


def create_scheduler(ctx: AppContext, *, auto_start: bool = False) -> RolloverScheduler:
    """Create and optionally start a rollover scheduler.

    Args:
        ctx: Application context
        auto_start: Whether to start the scheduler immediately

    Returns:
        RolloverScheduler instance
    """
    scheduler = RolloverScheduler(ctx)
    if auto_start:
        scheduler.start()
    return scheduler
