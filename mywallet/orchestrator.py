"""
Main Orchestrator for MyWallet

Ties the store to its background passes:
1. Recurring pass: periodic timer (coarse; one materialization per
   template per pass)
2. Reminder pass: reactive, rerun whenever people, notifications or
   settings change

DESIGN DECISION: Both passes feed results back through ordinary store
mutations, so they are persisted, audited and observed exactly like user
edits. Neither pass holds state of its own.
"""

import asyncio
from datetime import datetime
from typing import Optional

from mywallet.agents import AdvisorAgent
from mywallet.audit import AuditLogger, get_logger
from mywallet.config import SchedulerSettings, Settings, get_settings
from mywallet.services.scheduling import TaskScheduler
from mywallet.services.storage import NOTIFICATIONS_KEY, PEOPLE_KEY, SETTINGS_KEY
from mywallet.store import FinanceStore

logger = get_logger(__name__)

REMINDER_TASK_KEY = "reminders"

# Aggregates whose change can make a reminder due (or suppress one)
REMINDER_TRIGGER_KEYS = frozenset({PEOPLE_KEY, NOTIFICATIONS_KEY, SETTINGS_KEY})


class FinanceOrchestrator:
    """
    Runs the recurring and reminder passes against one store.

    Usage:
        orchestrator = FinanceOrchestrator(store)
        await orchestrator.start()
        ...
        await orchestrator.stop()
    """

    def __init__(
        self,
        store: FinanceStore,
        scheduler: Optional[TaskScheduler] = None,
        settings: Optional[SchedulerSettings] = None,
    ):
        self._store = store
        self._scheduler = scheduler or store.persistence.scheduler
        self._settings = settings or get_settings().scheduler
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the periodic recurring loop and the reactive reminder wiring."""
        if self.is_running:
            return
        self._unsubscribe = self._store.subscribe(self._on_change)
        self._schedule_reminders()
        self._task = asyncio.create_task(self._recurring_loop())
        logger.info(
            "orchestrator_started",
            interval=self._settings.recurring_interval_seconds,
            initial_delay=self._settings.recurring_initial_delay_seconds,
        )

    async def stop(self) -> None:
        """Cancel the loop, drop a pending reminder pass and flush pending writes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._scheduler.cancel(REMINDER_TASK_KEY)

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._store.persistence.flush()
        logger.info("orchestrator_stopped")

    def run_once(self, now: Optional[datetime] = None) -> None:
        """Run both passes synchronously."""
        self._store.apply_recurring_pass(now)
        self._store.apply_reminder_pass(now)

    async def _recurring_loop(self) -> None:
        await asyncio.sleep(self._settings.recurring_initial_delay_seconds)
        while True:
            try:
                self._store.apply_recurring_pass()
            except Exception as e:
                # One bad pass must not stop future passes
                logger.error("recurring_pass_failed", error=str(e), exc_info=True)
            await asyncio.sleep(self._settings.recurring_interval_seconds)

    def _on_change(self, keys: frozenset[str]) -> None:
        if keys & REMINDER_TRIGGER_KEYS:
            self._schedule_reminders()

    def _schedule_reminders(self) -> None:
        self._scheduler.schedule(REMINDER_TASK_KEY, 0, self._store.apply_reminder_pass)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[FinanceStore, FinanceOrchestrator, AdvisorAgent]:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached environment settings.

    Returns:
        (store, orchestrator, advisor)
    """
    settings = settings or get_settings()
    audit_logger = AuditLogger(trail_size=settings.engine.audit_trail_size)

    store = FinanceStore.from_settings(settings, audit_logger=audit_logger)
    orchestrator = FinanceOrchestrator(store, settings=settings.scheduler)
    advisor = AdvisorAgent(store, settings=settings.gemini, audit_logger=audit_logger)

    return store, orchestrator, advisor
