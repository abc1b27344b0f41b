"""Shared test doubles for the reminder and streak engines."""

from __future__ import annotations

from datetime import datetime

import pytest

from adapters.inmemory.store import InMemoryDataStore
from carepulse.domain.models import (
    NewReminder,
    Profile,
    ProfileUpdate,
    Reminder,
    ReminderCategory,
    WaterLog,
    WeightLog,
)
from carepulse.services.clock import ManualClock
from carepulse.services.data_store import Result, StoreError

OWNER = "user-1"


class RecordingSink:
    """NotificationSink test double that remembers every notification."""

    def __init__(self, events: list[tuple[str, str]] | None = None) -> None:
        self.notifications: list[tuple[str, str]] = []
        self.events = events if events is not None else []

    def notify(self, title: str, body: str) -> None:
        self.notifications.append((title, body))
        self.events.append(("notify", title))


class FlakyStore(InMemoryDataStore):
    """In-memory store whose individual operations can be switched to fail."""

    def __init__(self, events: list[tuple[str, str]] | None = None) -> None:
        super().__init__()
        self.failing: set[str] = set()
        self.failing_categories: set[ReminderCategory] = set()
        # Operations that raise instead of returning an error
        self.raising: set[str] = set()
        self.calls: dict[str, int] = {}
        self.events = events if events is not None else []

    def _record(self, operation: str) -> bool:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        if operation in self.raising:
            raise ConnectionError(f"{operation}: connection reset by peer")
        return operation in self.failing

    async def get_active_reminders(
        self, owner_id: str, category: ReminderCategory
    ) -> Result[list[Reminder], StoreError]:
        if self._record("get_active_reminders") or category in self.failing_categories:
            return Result.err(StoreError(f"{category.value} fetch timed out"))
        return await super().get_active_reminders(owner_id, category)

    async def insert_reminder(self, new_reminder: NewReminder) -> Result[Reminder, StoreError]:
        if self._record("insert_reminder"):
            return Result.err(StoreError("permission denied for table reminders"))
        return await super().insert_reminder(new_reminder)

    async def delete_reminder(self, reminder_id: str) -> Result[str, StoreError]:
        self.events.append(("delete", reminder_id))
        if self._record("delete_reminder"):
            return Result.err(StoreError("network unreachable"))
        return await super().delete_reminder(reminder_id)

    async def get_profile(self, owner_id: str) -> Result[Profile, StoreError]:
        if self._record("get_profile"):
            return Result.err(StoreError("profile read failed"))
        return await super().get_profile(owner_id)

    async def update_profile(
        self, owner_id: str, update: ProfileUpdate
    ) -> Result[Profile, StoreError]:
        if self._record("update_profile"):
            return Result.err(StoreError("profile write failed"))
        return await super().update_profile(owner_id, update)

    async def insert_water_log(
        self, owner_id: str, amount_ml: int, logged_at: datetime
    ) -> Result[WaterLog, StoreError]:
        if self._record("insert_water_log"):
            return Result.err(StoreError("water_logs insert rejected"))
        return await super().insert_water_log(owner_id, amount_ml, logged_at)

    async def delete_water_logs(self, log_ids: list[str]) -> Result[int, StoreError]:
        if self._record("delete_water_logs"):
            return Result.err(StoreError("water_logs delete rejected"))
        return await super().delete_water_logs(log_ids)

    async def list_water_logs(
        self, owner_id: str, since: datetime
    ) -> Result[list[WaterLog], StoreError]:
        if self._record("list_water_logs"):
            return Result.err(StoreError("water_logs select timed out"))
        return await super().list_water_logs(owner_id, since)

    async def insert_weight_log(
        self, owner_id: str, weight_kg: float, logged_at: datetime
    ) -> Result[WeightLog, StoreError]:
        if self._record("insert_weight_log"):
            return Result.err(StoreError("weight_logs insert rejected"))
        return await super().insert_weight_log(owner_id, weight_kg, logged_at)

    async def list_weight_logs(
        self, owner_id: str, since: datetime
    ) -> Result[list[WeightLog], StoreError]:
        if self._record("list_weight_logs"):
            return Result.err(StoreError("weight_logs select timed out"))
        return await super().list_weight_logs(owner_id, since)


@pytest.fixture
def events() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def store(events: list[tuple[str, str]]) -> FlakyStore:
    return FlakyStore(events)


@pytest.fixture
def sink(events: list[tuple[str, str]]) -> RecordingSink:
    return RecordingSink(events)


@pytest.fixture
def clock() -> ManualClock:
    # Monday
    return ManualClock(datetime(2024, 3, 4, 7, 59))
