"""
Month-to-date health report.

Aggregates everything logged since local midnight on the 1st of the current
month: weight and BMI change, average water per day with a log, the number of
water logs, and the profile's streak and points. Generating a report is
user-initiated, so store failures surface as UserActionError; a missing
profile only leaves the streak and points at zero.
"""

import math
from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from carepulse.domain.models import MonthlyReport, Profile, WaterLog, WeightLog
from carepulse.services.data_store import (
    DataStore,
    ProfileNotFoundError,
    StoreError,
    UserActionError,
    logger,
)
from carepulse.services.hydration import start_of_day


def start_of_month(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


def round_tenth(value: float) -> float:
    """Round to one decimal, halves away from zero."""
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def body_mass_index(weight_kg: float, height_cm: float) -> float:
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def weight_changes(logs: list[WeightLog], height_cm: float | None) -> tuple[float, float]:
    """
    (weight change in kg, BMI change) between the first and last log.

    Logs must be oldest first. Fewer than two logs, or no height for the BMI,
    give zero.
    """
    if len(logs) < 2:
        return 0.0, 0.0

    first, last = logs[0].weight_kg, logs[-1].weight_kg
    weight_change = round_tenth(last - first)
    if not height_cm:
        return weight_change, 0.0

    bmi_change = round_tenth(body_mass_index(last, height_cm) - body_mass_index(first, height_cm))
    return weight_change, bmi_change


def daily_water_totals(logs: list[WaterLog]) -> dict[date, int]:
    totals: dict[date, int] = defaultdict(int)
    for log in logs:
        totals[log.logged_at.date()] += log.amount_ml
    return dict(totals)


def average_daily_water(logs: list[WaterLog]) -> int:
    """Whole millilitres per calendar day that has at least one log."""
    totals = daily_water_totals(logs)
    if not totals:
        return 0
    return math.floor(sum(totals.values()) / len(totals))


class MonthlyReportBuilder:
    """Builds MonthlyReport snapshots from the store."""

    def __init__(self, store: DataStore) -> None:
        self.store = store
        self.logger = logger.bind(component="monthly_report")

    async def build(self, owner_id: str, now: datetime) -> MonthlyReport:
        """
        Summarize the month containing now, up to now.

        Raises:
            UserActionError: if the profile or a log table could not be read.
        """
        period_start = start_of_month(now)

        profile = await self._profile(owner_id)

        weights = await self.store.list_weight_logs(owner_id, period_start)
        if weights.is_err():
            raise _report_error(weights.unwrap_err())
        weight_logs = [log for log in weights.unwrap() if log.logged_at <= now]

        water = await self.store.list_water_logs(owner_id, period_start)
        if water.is_err():
            raise _report_error(water.unwrap_err())
        water_logs = [log for log in water.unwrap() if log.logged_at <= now]

        weight_change, bmi_change = weight_changes(
            weight_logs, profile.height_cm if profile else None
        )
        report = MonthlyReport(
            owner_id=owner_id,
            period_start=period_start,
            generated_at=now,
            weight_change_kg=weight_change,
            bmi_change=bmi_change,
            average_daily_water_ml=average_daily_water(water_logs),
            water_days=len(daily_water_totals(water_logs)),
            water_logs=len(water_logs),
            current_streak=profile.current_streak if profile else 0,
            best_streak=profile.best_streak if profile else 0,
            points=profile.points if profile else 0,
        )

        self.logger.info(
            "monthly_report_generated",
            owner_id=owner_id,
            period_start=period_start.isoformat(),
            weight_logs=len(weight_logs),
            water_logs=report.water_logs,
        )
        return report

    async def _profile(self, owner_id: str) -> Profile | None:
        result = await self.store.get_profile(owner_id)
        if result.is_ok():
            return result.unwrap()

        error = result.unwrap_err()
        if isinstance(error, ProfileNotFoundError):
            self.logger.info("profile_absent", owner_id=owner_id)
            return None
        raise _report_error(error)


def _report_error(error: StoreError) -> UserActionError:
    return UserActionError(f"Failed to generate report: {error}")
