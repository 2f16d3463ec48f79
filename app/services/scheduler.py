"""
app/services/scheduler.py

Purpose: Periodic due-date sweep

- Pushes date-driven fee transitions (paid -> due -> expired) as the system actor
- Sends the reminder a few days before the due date and on the due day
- Sends the overdue alert when a member expires
- Runs as a background asyncio task started from the app lifespan
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import NotFoundError, VidhyaDhamError
from app.core.logging import get_logger
from app.models.user import FeeStatus
from app.services import notification_service
from app.services.fee_service import effective_due_date, calculate_days_until_due
from app.services.store import SeatStore
from utils.time_utils import utcnow

logger = get_logger(__name__)


@dataclass
class SweepReport:
    checked: int = 0
    transitions: int = 0
    reminders: int = 0
    overdue_alerts: int = 0
    errors: List[str] = field(default_factory=list)


class DueDateScheduler:
    """
    Sweeps every member once per interval.

    Only moves fees away from paid; reinstatement stays an admin action.
    """

    def __init__(self, store: SeatStore, interval_hours: Optional[float] = None):
        self.store = store
        self.interval = timedelta(hours=interval_hours or settings.SCHEDULER_INTERVAL_HOURS)
        self.reminder_days = settings.REMINDER_DAYS_BEFORE_DUE
        self.last_check_time: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Scheduler already running")
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"⏰ Due-date scheduler started (every {self.interval.total_seconds() / 3600:g}h)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Due-date scheduler stopped")

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "last_check_time": self.last_check_time,
            "next_check_time": self.last_check_time + self.interval if self.last_check_time else None,
            "interval_hours": self.interval.total_seconds() / 3600,
        }

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Due-date sweep failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval.total_seconds())

    async def run_once(self, now: Optional[datetime] = None) -> SweepReport:
        """
        One pass over every member. Errors on one member do not stop the sweep.
        """
        now = now or utcnow()
        self.last_check_time = now
        report = SweepReport()
        library_settings = self.store.library_settings

        for user_id in [u.id for u in self.store.users]:
            try:
                current, transitioned = await self.store.apply_calendar_status(user_id, now)
            except NotFoundError:
                # Deleted while the sweep was running
                continue
            except VidhyaDhamError as e:
                logger.error(f"Sweep failed for user {user_id}: {e.message}")
                report.errors.append(f"{user_id}: {e.message}")
                continue

            report.checked += 1
            if transitioned:
                report.transitions += 1
            days_left = calculate_days_until_due(effective_due_date(current), now)

            try:
                if transitioned and current.fee_status == FeeStatus.EXPIRED:
                    await notification_service.notify(
                        notification_service.FEE_OVERDUE, current, library_settings, now)
                    report.overdue_alerts += 1
                elif current.fee_status == FeeStatus.DUE and days_left == 0:
                    await notification_service.notify(
                        notification_service.FEE_DUE, current, library_settings, now)
                    report.reminders += 1
                elif current.fee_status != FeeStatus.EXPIRED and days_left == self.reminder_days:
                    await notification_service.notify(
                        notification_service.FEE_DUE, current, library_settings, now)
                    report.reminders += 1

            except VidhyaDhamError as e:
                logger.error(f"Notification failed for user {user_id}: {e.message}")
                report.errors.append(f"{user_id}: {e.message}")

        logger.info(
            f"📅 Sweep done: {report.checked} checked, {report.transitions} transitions, "
            f"{report.reminders} reminders, {report.overdue_alerts} overdue alerts"
        )
        return report
