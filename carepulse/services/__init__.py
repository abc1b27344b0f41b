"""
Core services for the application.

This package contains the reminder evaluation engine and scheduler, the
streak/points engine, hydration tracking, the monthly report and the per-user
session.
"""

from .clock import Clock, ManualClock, SystemClock
from .data_store import (
    DataStore,
    NotificationSink,
    ProfileNotFoundError,
    Result,
    StoreError,
    UserActionError,
)
from .hydration import HydrationTracker
from .recurrence import normalize_time_of_day, parse_time_of_day, should_fire
from .reminder_scheduler import ReminderScheduler, ReminderSchedulerConfig
from .report import MonthlyReportBuilder
from .streaks import StreakEngine, advance_streak, apply_monthly_reset

__all__ = [
    "Clock",
    "DataStore",
    "HydrationTracker",
    "ManualClock",
    "MonthlyReportBuilder",
    "NotificationSink",
    "ProfileNotFoundError",
    "ReminderScheduler",
    "ReminderSchedulerConfig",
    "Result",
    "StoreError",
    "StreakEngine",
    "SystemClock",
    "UserActionError",
    "advance_streak",
    "apply_monthly_reset",
    "normalize_time_of_day",
    "parse_time_of_day",
    "should_fire",
]
