"""
Domain models for reminders, streaks and hydration tracking.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReminderCategory(str, Enum):
    """What a reminder is about; decides the notification title and body."""

    MEDICINE = "medicine"
    WATER = "water"


class RecurrenceKind(str, Enum):
    """Named rules governing when a reminder fires."""

    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"  # Historical name: fires every day
    EVERY_HOUR = "1hr"
    EVERY_2_HOURS = "2hrs"
    EVERY_3_HOURS = "3hrs"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


WATER_LABEL = "water"


class Reminder(BaseModel):
    """A persisted reminder row as mirrored by the scheduler."""

    model_config = ConfigDict(frozen=True)  # Mirror entries are replaced, never edited

    id: str
    owner_id: str
    category: ReminderCategory
    label: str
    # Raw strings: unknown kinds and malformed times must reach the evaluator, which fails closed
    recurrence: str = ""
    time_of_day: str = Field(description="Local anchor time, HH:MM:SS")
    active: bool = True


class NewReminder(BaseModel):
    """Insert payload for a reminder; the store assigns the id."""

    owner_id: str = Field(min_length=1)
    category: ReminderCategory
    label: str = Field(min_length=1)
    recurrence: str
    time_of_day: str
    active: bool = True


class StreakState(BaseModel):
    """Daily activity streak triple."""

    model_config = ConfigDict(frozen=True)

    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    last_active_date: datetime | None = None


class PointsState(BaseModel):
    """Monthly points bucket."""

    model_config = ConfigDict(frozen=True)

    points: int = Field(default=0, ge=0)
    last_points_reset: datetime | None = None


class Profile(BaseModel):
    """Profile fields owned by the streak/points engine."""

    owner_id: str
    full_name: str | None = None
    height_cm: float | None = Field(default=None, gt=0, description="Height used for BMI")
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    last_active_date: datetime | None = None
    points: int = Field(default=0, ge=0)
    last_points_reset: datetime | None = None

    @property
    def streak(self) -> StreakState:
        return StreakState(
            current_streak=self.current_streak,
            best_streak=self.best_streak,
            last_active_date=self.last_active_date,
        )

    @property
    def points_state(self) -> PointsState:
        return PointsState(points=self.points, last_points_reset=self.last_points_reset)


class ProfileUpdate(BaseModel):
    """Partial profile write. Only fields explicitly set are persisted."""

    current_streak: int | None = Field(default=None, ge=0)
    best_streak: int | None = Field(default=None, ge=0)
    last_active_date: datetime | None = None
    points: int | None = Field(default=None, ge=0)
    last_points_reset: datetime | None = None

    @model_validator(mode="after")
    def best_not_below_current(self) -> "ProfileUpdate":
        """Reject writes that would leave the best streak under the current one."""
        if (
            self.current_streak is not None
            and self.best_streak is not None
            and self.best_streak < self.current_streak
        ):
            raise ValueError("best_streak must be >= current_streak")
        return self

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set


class WaterLog(BaseModel):
    """One logged glass of water."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    amount_ml: int = Field(gt=0)
    logged_at: datetime


class Firing(BaseModel):
    """A reminder that fired during a scheduler tick."""

    reminder: Reminder
    title: str
    body: str
    fired_at: datetime
    consumed: bool = Field(
        default=False, description="True when a one-shot reminder was deleted after firing"
    )


class HydrationStatus(BaseModel):
    """Today's water intake for one user."""

    glasses: int = Field(ge=0)
    total_ml: int = Field(ge=0)
    daily_limit_ml: int = Field(gt=0)
    points: int | None = Field(default=None, ge=0)
    goal_reached: bool = False

    @property
    def remaining_ml(self) -> int:
        return max(0, self.daily_limit_ml - self.total_ml)


class WeightLog(BaseModel):
    """One recorded body weight."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    weight_kg: float = Field(gt=0)
    logged_at: datetime


class MonthlyReport(BaseModel):
    """
    Month-to-date summary for one user.

    Weight and BMI changes compare the first and last weight of the period and
    stay at zero until at least two weights were logged. BMI change also needs
    a profile height.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str
    period_start: datetime
    generated_at: datetime
    weight_change_kg: float = 0.0
    bmi_change: float = 0.0
    average_daily_water_ml: int = Field(default=0, ge=0)
    water_days: int = Field(default=0, ge=0)
    water_logs: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)
