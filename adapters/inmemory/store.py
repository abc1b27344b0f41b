"""
In-memory implementation of the DataStore protocol.

Rows are kept in insertion order, so "active reminders" come back in the order
they were added, matching what the scheduler treats as load order. Every call
yields to the event loop once to behave like a remote store.
"""

import asyncio
import uuid
from datetime import datetime

import structlog

from carepulse.domain.models import (
    NewReminder,
    Profile,
    ProfileUpdate,
    Reminder,
    ReminderCategory,
    WaterLog,
    WeightLog,
)
from carepulse.services.data_store import ProfileNotFoundError, Result, StoreError

logger = structlog.get_logger(__name__)


class InMemoryDataStore:
    """Dict-backed store for demos and tests."""

    def __init__(self) -> None:
        self._reminders: dict[str, Reminder] = {}
        self._profiles: dict[str, Profile] = {}
        self._water_logs: dict[str, WaterLog] = {}
        self._weight_logs: dict[str, WeightLog] = {}
        self.logger = logger.bind(component="inmemory_store")

    def create_profile(self, owner_id: str, **fields: object) -> Profile:
        """Seed a profile row (profiles are created by sign-up, outside this store's contract)."""
        profile = Profile(owner_id=owner_id, **fields)
        self._profiles[owner_id] = profile
        return profile

    async def get_active_reminders(
        self, owner_id: str, category: ReminderCategory
    ) -> Result[list[Reminder], StoreError]:
        await asyncio.sleep(0)
        reminders = [
            r
            for r in self._reminders.values()
            if r.owner_id == owner_id and r.category is category and r.active
        ]
        return Result.ok(reminders)

    async def insert_reminder(self, new_reminder: NewReminder) -> Result[Reminder, StoreError]:
        await asyncio.sleep(0)
        reminder = Reminder(id=uuid.uuid4().hex, **new_reminder.model_dump())
        self._reminders[reminder.id] = reminder
        self.logger.debug("reminder_inserted", reminder_id=reminder.id)
        return Result.ok(reminder)

    async def delete_reminder(self, reminder_id: str) -> Result[str, StoreError]:
        await asyncio.sleep(0)
        if self._reminders.pop(reminder_id, None) is None:
            return Result.err(StoreError(f"Reminder {reminder_id} not found"))
        return Result.ok(reminder_id)

    async def get_profile(self, owner_id: str) -> Result[Profile, StoreError]:
        await asyncio.sleep(0)
        profile = self._profiles.get(owner_id)
        if profile is None:
            return Result.err(ProfileNotFoundError(owner_id))
        return Result.ok(profile)

    async def update_profile(
        self, owner_id: str, update: ProfileUpdate
    ) -> Result[Profile, StoreError]:
        await asyncio.sleep(0)
        profile = self._profiles.get(owner_id)
        if profile is None:
            return Result.err(ProfileNotFoundError(owner_id))

        updated = Profile.model_validate({**profile.model_dump(), **update.changes()})
        self._profiles[owner_id] = updated
        return Result.ok(updated)

    async def insert_water_log(
        self, owner_id: str, amount_ml: int, logged_at: datetime
    ) -> Result[WaterLog, StoreError]:
        await asyncio.sleep(0)
        log = WaterLog(
            id=uuid.uuid4().hex, owner_id=owner_id, amount_ml=amount_ml, logged_at=logged_at
        )
        self._water_logs[log.id] = log
        return Result.ok(log)

    async def list_water_logs(
        self, owner_id: str, since: datetime
    ) -> Result[list[WaterLog], StoreError]:
        await asyncio.sleep(0)
        logs = [
            log
            for log in self._water_logs.values()
            if log.owner_id == owner_id and log.logged_at >= since
        ]
        return Result.ok(sorted(logs, key=lambda log: log.logged_at))

    async def delete_water_logs(self, log_ids: list[str]) -> Result[int, StoreError]:
        await asyncio.sleep(0)
        removed = 0
        for log_id in log_ids:
            if self._water_logs.pop(log_id, None) is not None:
                removed += 1
        return Result.ok(removed)

    async def insert_weight_log(
        self, owner_id: str, weight_kg: float, logged_at: datetime
    ) -> Result[WeightLog, StoreError]:
        await asyncio.sleep(0)
        log = WeightLog(
            id=uuid.uuid4().hex, owner_id=owner_id, weight_kg=weight_kg, logged_at=logged_at
        )
        self._weight_logs[log.id] = log
        return Result.ok(log)

    async def list_weight_logs(
        self, owner_id: str, since: datetime
    ) -> Result[list[WeightLog], StoreError]:
        await asyncio.sleep(0)
        logs = [
            log
            for log in self._weight_logs.values()
            if log.owner_id == owner_id and log.logged_at >= since
        ]
        return Result.ok(sorted(logs, key=lambda log: log.logged_at))
