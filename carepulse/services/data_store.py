"""
Collaborator contracts for the reminder engine and streak/points engine.

Key patterns:
- Protocol-based dependency injection for the data store and notification sink
- Generic Result type for expected I/O failures
- Structured logging shared by all services
"""

from datetime import datetime
from typing import Generic, Protocol, TypeVar

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

# Configure structured logging (production-ready observability)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class StoreError(Exception):
    """A read or write against the data store failed."""


class ProfileNotFoundError(StoreError):
    """The owner has no profile row yet."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(f"Profile not found for user {owner_id}")
        self.owner_id = owner_id


class UserActionError(Exception):
    """
    A user-initiated action could not be completed.

    The message is shown to the user as-is, so store errors are carried verbatim.
    """


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Store calls fail for ordinary reasons (network, permissions), so callers
    decide per call site whether to tolerate or surface the error.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class DataStore(Protocol):
    """
    Remote row store holding reminders, water and weight logs, and profiles.

    Implementations never raise for I/O failures; they return Result.err(StoreError).
    """

    async def get_active_reminders(
        self, owner_id: str, category: ReminderCategory
    ) -> Result[list[Reminder], StoreError]:
        """Active reminders of one category, in insertion order."""
        ...

    async def insert_reminder(self, new_reminder: NewReminder) -> Result[Reminder, StoreError]:
        """Persist a reminder; the store assigns the id."""
        ...

    async def delete_reminder(self, reminder_id: str) -> Result[str, StoreError]:
        """Delete a reminder, returning the deleted id."""
        ...

    async def get_profile(self, owner_id: str) -> Result[Profile, StoreError]:
        """Fetch a profile. Absent profiles yield ProfileNotFoundError."""
        ...

    async def update_profile(
        self, owner_id: str, update: ProfileUpdate
    ) -> Result[Profile, StoreError]:
        """Write the set fields of update and return the stored profile."""
        ...

    async def insert_water_log(
        self, owner_id: str, amount_ml: int, logged_at: datetime
    ) -> Result[WaterLog, StoreError]: ...

    async def list_water_logs(
        self, owner_id: str, since: datetime
    ) -> Result[list[WaterLog], StoreError]:
        """Water logs at or after since, oldest first."""
        ...

    async def delete_water_logs(self, log_ids: list[str]) -> Result[int, StoreError]:
        """Delete logs by id, returning how many were removed."""
        ...

    async def insert_weight_log(
        self, owner_id: str, weight_kg: float, logged_at: datetime
    ) -> Result[WeightLog, StoreError]: ...

    async def list_weight_logs(
        self, owner_id: str, since: datetime
    ) -> Result[list[WeightLog], StoreError]:
        """Weight logs at or after since, oldest first."""
        ...


class NotificationSink(Protocol):
    """
    Delivers a title/body pair to the user.

    Fire-and-forget: notify must return without waiting for the user, and the
    visible banner expires on its own.
    """

    def notify(self, title: str, body: str) -> None: ...
