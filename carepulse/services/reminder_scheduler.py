"""
Reminder scheduler: the authoritative in-memory reminder mirror plus its poller.

Key patterns:
- The scheduler owns its reminder sets; callers change them only through
  reload(), add() and remove(), so the poller never reads a stale copy
- Each category (medicine, water) runs its fetch/evaluate/act cycle independently
- Explicit start()/stop() lifecycle with an injectable clock
- Background failures are logged and tolerated, never raised out of a tick
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import date, datetime

from pydantic import BaseModel, Field

from carepulse.domain.models import Firing, RecurrenceKind, Reminder, ReminderCategory
from carepulse.services.clock import Clock, SystemClock
from carepulse.services.data_store import DataStore, NotificationSink, logger
from carepulse.services.recurrence import resolve_recurrence, should_fire

MEDICINE_TITLE = "Medicine Reminder"
WATER_TITLE = "Water Reminder"
WATER_BODY = "Time to drink a glass of water! 💧"

DayChangeListener = Callable[[datetime], Awaitable[None]]

# Legacy medicine rows without a type fire every day; water rows without a type never fire
_DEFAULT_KINDS: dict[ReminderCategory, RecurrenceKind | None] = {
    ReminderCategory.MEDICINE: RecurrenceKind.WEEKLY,
    ReminderCategory.WATER: None,
}

_CATEGORY_ORDER = (ReminderCategory.MEDICINE, ReminderCategory.WATER)


class ReminderSchedulerConfig(BaseModel):
    """
    Poller configuration with validation and smart defaults.
    """

    poll_interval_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Interval between reminder evaluations in seconds.",
    )
    wait_first: bool = Field(
        default=False,
        description="Wait one interval before the first tick instead of ticking on start.",
    )
    dedupe_within_minute: bool = Field(
        default=True,
        description="Fire a reminder at most once per clock minute even if two ticks land in it.",
    )


def notification_for(reminder: Reminder) -> tuple[str, str]:
    """Title and body shown when a reminder fires."""
    if reminder.category is ReminderCategory.MEDICINE:
        return MEDICINE_TITLE, f"Time to take your medicine: {reminder.label}"
    return WATER_TITLE, WATER_BODY


class ReminderScheduler:
    """
    Evaluates one user's active reminders once per tick and applies post-fire actions.

    Design principles:
    - Evaluation is pure; notification and the one-shot delete are the only side effects
    - Notification is dispatched before any persistence change for that reminder
    - Graceful degradation (a failed fetch keeps the previous mirror, a failed
      delete may cause a duplicate firing later)
    """

    def __init__(
        self,
        owner_id: str,
        store: DataStore,
        sink: NotificationSink,
        clock: Clock | None = None,
        config: ReminderSchedulerConfig | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.store = store
        self.sink = sink
        self.clock: Clock = clock or SystemClock()
        self.config = config or ReminderSchedulerConfig()
        self.logger = logger.bind(component="reminder_scheduler", owner_id=owner_id)

        self._reminders: dict[ReminderCategory, list[Reminder]] = {
            category: [] for category in _CATEGORY_ORDER
        }
        self._day_listeners: list[DayChangeListener] = []
        self._last_seen_day: date | None = None
        self._fired_minutes: dict[str, datetime] = {}

        # Serializes ticks so a manual tick never overlaps the poller's
        self._tick_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    # Mirror management

    def reminders(self, category: ReminderCategory) -> tuple[Reminder, ...]:
        """Read-only snapshot of one reminder set, in load order."""
        return tuple(self._reminders[category])

    def add(self, reminder: Reminder) -> None:
        """Add a reminder that was just persisted. Replaces an entry with the same id."""
        if reminder.owner_id != self.owner_id:
            raise ValueError(
                f"Reminder {reminder.id} belongs to {reminder.owner_id}, not {self.owner_id}"
            )
        if not reminder.active:
            self.remove(reminder.id)
            return

        entries = self._reminders[reminder.category]
        for index, existing in enumerate(entries):
            if existing.id == reminder.id:
                entries[index] = reminder
                break
        else:
            entries.append(reminder)
        self.logger.info(
            "reminder_added", reminder_id=reminder.id, category=reminder.category.value
        )

    def remove(self, reminder_id: str) -> bool:
        """Drop a reminder from the mirror. Returns False if it was not present."""
        for category, entries in self._reminders.items():
            remaining = [r for r in entries if r.id != reminder_id]
            if len(remaining) != len(entries):
                self._reminders[category] = remaining
                self._fired_minutes.pop(reminder_id, None)
                self.logger.info(
                    "reminder_removed", reminder_id=reminder_id, category=category.value
                )
                return True
        return False

    async def reload(self) -> bool:
        """
        Refresh both reminder sets from the store.

        Returns:
            True if every set was refreshed; a failed set keeps its previous contents.
        """
        all_ok = True
        for category in _CATEGORY_ORDER:
            try:
                result = await self.store.get_active_reminders(self.owner_id, category)
            except Exception as e:
                self.logger.exception(
                    "unexpected_reminder_reload_error", category=category.value, error=str(e)
                )
                all_ok = False
                continue

            if result.is_err():
                self.logger.warning(
                    "reminder_reload_failed",
                    category=category.value,
                    error=str(result.unwrap_err()),
                    retained=len(self._reminders[category]),
                )
                all_ok = False
                continue

            self._reminders[category] = [r for r in result.unwrap() if r.active]

        self.logger.info(
            "reminders_reloaded",
            medicine=len(self._reminders[ReminderCategory.MEDICINE]),
            water=len(self._reminders[ReminderCategory.WATER]),
            complete=all_ok,
        )
        return all_ok

    def on_day_change(self, listener: DayChangeListener) -> None:
        """Register a coroutine called with the tick time when the calendar day rolls over."""
        self._day_listeners.append(listener)

    # Evaluation

    async def tick(self, now: datetime | None = None) -> list[Firing]:
        """
        Run one evaluation pass over every active reminder.

        Day rollover is handled first (reload and listeners), then medicine and
        water reminders are evaluated in load order.
        """
        async with self._tick_lock:
            now = now or self.clock.now()
            await self._check_day_rollover(now)

            firings: list[Firing] = []
            for category in _CATEGORY_ORDER:
                try:
                    firings.extend(await self._tick_category(category, now))
                except Exception as e:
                    # Log error but continue with the other category
                    self.logger.exception(
                        "reminder_category_tick_failed", category=category.value, error=str(e)
                    )

            self._forget_old_minutes(now)

            if firings:
                self.logger.info(
                    "reminder_tick_completed",
                    fired=len(firings),
                    consumed=sum(1 for f in firings if f.consumed),
                    minute=now.strftime("%Y-%m-%d %H:%M"),
                )
            return firings

    async def _tick_category(self, category: ReminderCategory, now: datetime) -> list[Firing]:
        firings: list[Firing] = []
        default_kind = _DEFAULT_KINDS[category]
        minute = _minute_of(now)

        # Iterate over a snapshot: consuming a one-shot reminder mutates the mirror
        for reminder in list(self._reminders[category]):
            if not reminder.active:
                continue
            if not should_fire(
                reminder.recurrence, reminder.time_of_day, now, default_kind=default_kind
            ):
                continue
            if self.config.dedupe_within_minute and self._fired_minutes.get(reminder.id) == minute:
                self.logger.debug("reminder_already_fired_this_minute", reminder_id=reminder.id)
                continue

            title, body = notification_for(reminder)
            self._dispatch(reminder, title, body)
            self._fired_minutes[reminder.id] = minute

            consumed = False
            if resolve_recurrence(reminder.recurrence, default_kind) is RecurrenceKind.ONCE:
                consumed = await self._consume(reminder)

            firings.append(
                Firing(reminder=reminder, title=title, body=body, fired_at=now, consumed=consumed)
            )
        return firings

    def _dispatch(self, reminder: Reminder, title: str, body: str) -> None:
        try:
            self.sink.notify(title, body)
            self.logger.info(
                "reminder_fired", reminder_id=reminder.id, category=reminder.category.value
            )
        except Exception as e:
            self.logger.error("notification_dispatch_failed", reminder_id=reminder.id, error=str(e))

    async def _consume(self, reminder: Reminder) -> bool:
        """Delete a one-shot reminder after it fired. Failure leaves it in place."""
        try:
            result = await self.store.delete_reminder(reminder.id)
        except Exception as e:
            self.logger.exception("one_shot_delete_error", reminder_id=reminder.id, error=str(e))
            return False

        if result.is_err():
            self.logger.warning(
                "one_shot_delete_failed",
                reminder_id=reminder.id,
                error=str(result.unwrap_err()),
            )
            return False

        self.remove(reminder.id)
        return True

    async def _check_day_rollover(self, now: datetime) -> None:
        today = now.date()
        if self._last_seen_day is None:
            self._last_seen_day = today
            return
        if today == self._last_seen_day:
            return

        self.logger.info(
            "day_rollover_detected",
            previous_day=self._last_seen_day.isoformat(),
            day=today.isoformat(),
        )
        self._last_seen_day = today
        await self.reload()

        for listener in self._day_listeners:
            try:
                await listener(now)
            except Exception as e:
                self.logger.exception("day_change_listener_failed", error=str(e))

    def _forget_old_minutes(self, now: datetime) -> None:
        minute = _minute_of(now)
        self._fired_minutes = {
            reminder_id: fired
            for reminder_id, fired in self._fired_minutes.items()
            if fired == minute
        }

    # Poller lifecycle

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the poller on the running event loop."""
        if self.is_running:
            self.logger.warning("reminder_poller_already_running")
            return

        self._stop_event = asyncio.Event()
        self._last_seen_day = self.clock.now().date()
        self._task = asyncio.create_task(self._run(), name=f"reminder-poller-{self.owner_id}")

    async def stop(self) -> None:
        """
        Stop the poller.

        An in-flight tick runs to completion; no tick is started afterwards.
        """
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self.logger.info("reminder_poller_stopped")

    @asynccontextmanager
    async def running(self) -> AsyncIterator["ReminderScheduler"]:
        """Run the poller for the duration of the block."""
        self.start()
        try:
            yield self
        finally:
            await self.stop()

    async def _run(self) -> None:
        """
        Tick at a fixed rate until stopped.

        Ticks are scheduled against deadlines on the loop's monotonic clock, so
        the time a tick takes does not push later ticks back. A poller that
        falls more than one interval behind ticks at once and resumes the
        cadence from there instead of bursting through the missed slots.
        """
        loop = asyncio.get_running_loop()
        interval = self.config.poll_interval_seconds
        self.logger.info("reminder_poller_started", interval_seconds=interval)

        next_at = loop.time()
        if self.config.wait_first:
            next_at += interval
            if await self._wait_or_stop(interval):
                return

        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                # A failed tick must not kill the poller
                self.logger.exception("reminder_tick_failed", error=str(e))

            next_at += interval
            lag = loop.time() - next_at
            if lag > interval:
                self.logger.warning("reminder_poller_lagging", lag_seconds=round(lag, 3))
                next_at = loop.time()

            if await self._wait_or_stop(max(0.0, next_at - loop.time())):
                return

    async def _wait_or_stop(self, seconds: float) -> bool:
        """Sleep for seconds; returns True as soon as stop() is requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True


def _minute_of(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)
