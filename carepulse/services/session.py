"""
Per-user session that ties the reminder engine and the streak engine together.

Lifecycle:
1. open(): refresh streak and monthly points, load reminders, start the poller
2. While open: ticks fire reminders; a calendar-day rollover reloads reminders
   and refreshes the streak again
3. close(): stop the poller

User-initiated actions (adding or deleting reminders, logging water or weight,
building the monthly report) go through here and surface store errors
verbatim as UserActionError.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from carepulse.config import AppConfig, get_config
from carepulse.domain.models import (
    WATER_LABEL,
    HydrationStatus,
    MonthlyReport,
    NewReminder,
    Profile,
    RecurrenceKind,
    Reminder,
    ReminderCategory,
    WeightLog,
)
from carepulse.services.clock import Clock, SystemClock
from carepulse.services.data_store import DataStore, NotificationSink, UserActionError, logger
from carepulse.services.hydration import HydrationTracker
from carepulse.services.recurrence import normalize_time_of_day, resolve_recurrence
from carepulse.services.reminder_scheduler import ReminderScheduler, ReminderSchedulerConfig
from carepulse.services.report import MonthlyReportBuilder
from carepulse.services.streaks import StreakEngine


class HealthSession:
    """
    One signed-in user's live session.

    The scheduler's mirror is the authoritative reminder set while the session
    is open; presentation code reads it through reminders() and never mutates it.
    """

    def __init__(
        self,
        owner_id: str,
        store: DataStore,
        sink: NotificationSink,
        clock: Clock | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.store = store
        self.clock: Clock = clock or SystemClock()
        self.config = config or get_config()
        self.logger = logger.bind(component="health_session", owner_id=owner_id)

        self.scheduler = ReminderScheduler(
            owner_id,
            store,
            sink,
            clock=self.clock,
            config=ReminderSchedulerConfig(
                poll_interval_seconds=self.config.reminders.poll_interval_seconds,
                dedupe_within_minute=self.config.reminders.dedupe_within_minute,
            ),
        )
        self.scheduler.on_day_change(self._on_day_change)

        self.streaks = StreakEngine(store)
        self.hydration = HydrationTracker(store, self.config.water)
        self.reports = MonthlyReportBuilder(store)

        self.profile: Profile | None = None

    async def open(self) -> Profile | None:
        """Bootstrap the session and start the reminder poller."""
        self.profile = await self.streaks.refresh(self.owner_id, self.clock.now())
        await self.scheduler.reload()
        self.scheduler.start()
        self.logger.info("session_opened", has_profile=self.profile is not None)
        return self.profile

    async def close(self) -> None:
        await self.scheduler.stop()
        self.logger.info("session_closed")

    @asynccontextmanager
    async def active(self) -> AsyncIterator["HealthSession"]:
        """Keep the session open for the duration of the block."""
        await self.open()
        try:
            yield self
        finally:
            await self.close()

    async def _on_day_change(self, now: datetime) -> None:
        refreshed = await self.streaks.refresh(self.owner_id, now)
        if refreshed is not None:
            self.profile = refreshed

    def reminders(self, category: ReminderCategory) -> tuple[Reminder, ...]:
        return self.scheduler.reminders(category)

    async def add_medicine_reminder(
        self, label: str, time_of_day: str, recurrence: str = RecurrenceKind.DAILY.value
    ) -> Reminder:
        """Persist a medicine reminder and add it to the live set."""
        return await self._add_reminder(ReminderCategory.MEDICINE, label, time_of_day, recurrence)

    async def add_water_reminder(
        self, time_of_day: str, recurrence: str = RecurrenceKind.ONCE.value
    ) -> Reminder:
        """Persist a water reminder and add it to the live set."""
        return await self._add_reminder(
            ReminderCategory.WATER, WATER_LABEL, time_of_day, recurrence
        )

    async def delete_reminder(self, reminder_id: str) -> None:
        """Delete a reminder from the store, then from the live set."""
        result = await self.store.delete_reminder(reminder_id)
        if result.is_err():
            raise UserActionError(f"Error deleting reminder: {result.unwrap_err()}")
        self.scheduler.remove(reminder_id)

    async def _add_reminder(
        self, category: ReminderCategory, label: str, time_of_day: str, recurrence: str
    ) -> Reminder:
        label = label.strip()
        if not label:
            raise UserActionError("Reminder label must not be empty")
        try:
            normalized_time = normalize_time_of_day(time_of_day)
        except ValueError as e:
            raise UserActionError(str(e)) from e
        if resolve_recurrence(recurrence) is None:
            raise UserActionError(f"Unknown reminder type: {recurrence!r}")

        new_reminder = NewReminder(
            owner_id=self.owner_id,
            category=category,
            label=label,
            recurrence=recurrence.strip().lower(),
            time_of_day=normalized_time,
        )
        result = await self.store.insert_reminder(new_reminder)
        if result.is_err():
            raise UserActionError(
                f"Error saving {category.value} reminder: {result.unwrap_err()}"
            )

        reminder = result.unwrap()
        self.scheduler.add(reminder)
        return reminder

    async def log_water(self) -> HydrationStatus:
        status = await self.hydration.log_glass(self.owner_id, self.clock.now())
        self._remember_points(status)
        return status

    async def remove_water(self) -> HydrationStatus:
        status = await self.hydration.remove_last_glass(self.owner_id, self.clock.now())
        self._remember_points(status)
        return status

    async def reset_water(self) -> HydrationStatus:
        status = await self.hydration.reset_today(self.owner_id, self.clock.now())
        self._remember_points(status)
        return status

    def _remember_points(self, status: HydrationStatus) -> None:
        if self.profile is not None and status.points is not None:
            self.profile = self.profile.model_copy(update={"points": status.points})

    async def log_weight(self, weight_kg: float) -> WeightLog:
        """Record today's body weight for the monthly report."""
        if not weight_kg > 0:
            raise UserActionError("Weight must be a positive number")
        result = await self.store.insert_weight_log(self.owner_id, weight_kg, self.clock.now())
        if result.is_err():
            raise UserActionError(f"Failed to log weight: {result.unwrap_err()}")
        return result.unwrap()

    async def monthly_report(self) -> MonthlyReport:
        return await self.reports.build(self.owner_id, self.clock.now())


# Example usage and demonstration
async def main() -> None:
    """Demonstrate a session against the in-memory store with a manual clock."""

    from adapters.console.notifier import ConsoleNotificationSink
    from adapters.inmemory.store import InMemoryDataStore
    from carepulse.config import configure_logging
    from carepulse.services.clock import ManualClock

    config = get_config()
    configure_logging(config.logging)

    clock = ManualClock(datetime(2024, 3, 4, 7, 58))
    store = InMemoryDataStore()
    store.create_profile("demo-user", full_name="Demo User", height_cm=172.0)
    sink = ConsoleNotificationSink(
        display_seconds=config.notifications.display_seconds,
        sound_enabled=config.notifications.sound_enabled,
    )

    session = HealthSession("demo-user", store, sink, clock=clock, config=config)
    async with session.active():
        await session.add_medicine_reminder("Vitamin D", "08:00", "daily")
        await session.add_water_reminder("08:00", "2hrs")
        await session.add_water_reminder("08:01", "once")

        # Drive virtual time instead of waiting on the poller
        for _ in range(4):
            clock.advance(minutes=1)
            await session.scheduler.tick()

        status = await session.log_water()
        print(f"Water today: {status.total_ml} ml, points: {status.points}")
        await session.log_weight(71.4)
        clock.advance(minutes=60 * 24)
        await session.log_weight(70.9)
        report = await session.monthly_report()
        print(
            f"Month to date: weight {report.weight_change_kg:+} kg, "
            f"BMI {report.bmi_change:+}, water {report.average_daily_water_ml} ml/day"
        )

    if session.profile:
        print(f"Streak: {session.profile.current_streak} (best {session.profile.best_streak})")


if __name__ == "__main__":
    asyncio.run(main())
