"""
Water intake logging and the points it earns.

Each logged glass earns a fixed number of points and removing a glass gives
them back; the balance never goes negative. Logging is capped per calendar day.
All operations here are user-initiated, so store failures are surfaced to the
caller as UserActionError rather than swallowed.
"""

from collections.abc import Callable
from datetime import datetime

from carepulse.config import WaterConfig
from carepulse.domain.models import HydrationStatus, ProfileUpdate, WaterLog
from carepulse.services.data_store import DataStore, UserActionError, logger
from carepulse.services.streaks import credit_points, debit_points


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class HydrationTracker:
    """Logs, removes and resets today's water glasses for a user."""

    def __init__(self, store: DataStore, config: WaterConfig | None = None) -> None:
        self.store = store
        self.config = config or WaterConfig()
        self.logger = logger.bind(component="hydration_tracker")

    async def status(self, owner_id: str, now: datetime) -> HydrationStatus:
        logs = await self._today_logs(owner_id, now)
        return self._status(logs)

    async def log_glass(self, owner_id: str, now: datetime) -> HydrationStatus:
        """
        Log one glass and credit its points.

        Raises:
            UserActionError: if today's limit is already reached or the store write fails.
        """
        logs = await self._today_logs(owner_id, now)
        total_before = sum(log.amount_ml for log in logs)
        if total_before >= self.config.daily_limit_ml:
            raise UserActionError(
                f"Daily water limit of {self.config.daily_limit_ml} ml reached. "
                "Upgrade the application to log more water per day."
            )

        result = await self.store.insert_water_log(owner_id, self.config.glass_ml, now)
        if result.is_err():
            raise UserActionError(f"Failed to log water: {result.unwrap_err()}")

        logs = [*logs, result.unwrap()]
        points = await self._adjust_points(
            owner_id, lambda balance: credit_points(balance, self.config.points_per_glass)
        )

        status = self._status(logs, points=points)
        goal_reached = total_before < self.config.daily_limit_ml <= status.total_ml
        if goal_reached:
            self.logger.info("daily_water_goal_reached", owner_id=owner_id, glasses=status.glasses)
        return status.model_copy(update={"goal_reached": goal_reached})

    async def remove_last_glass(self, owner_id: str, now: datetime) -> HydrationStatus:
        """
        Remove today's most recent glass.

        Its points are given back only if the balance covers them.
        """
        logs = await self._today_logs(owner_id, now)
        if not logs:
            return self._status(logs)

        last = logs[-1]
        result = await self.store.delete_water_logs([last.id])
        if result.is_err():
            raise UserActionError(f"Failed to remove water: {result.unwrap_err()}")

        points = await self._adjust_points(
            owner_id, lambda balance: debit_points(balance, self.config.points_per_glass)
        )
        return self._status(logs[:-1], points=points)

    async def reset_today(self, owner_id: str, now: datetime) -> HydrationStatus:
        """Delete all of today's glasses and take back their points, clamped at zero."""
        logs = await self._today_logs(owner_id, now)
        if not logs:
            return self._status(logs)

        result = await self.store.delete_water_logs([log.id for log in logs])
        if result.is_err():
            raise UserActionError(f"Failed to reset: {result.unwrap_err()}")

        deduction = len(logs) * self.config.points_per_glass
        points = await self._adjust_points(
            owner_id, lambda balance: debit_points(balance, deduction, allow_partial=True)
        )
        self.logger.info("water_reset", owner_id=owner_id, removed=len(logs))
        return self._status([], points=points)

    async def _today_logs(self, owner_id: str, now: datetime) -> list[WaterLog]:
        result = await self.store.list_water_logs(owner_id, start_of_day(now))
        if result.is_err():
            raise UserActionError(f"Failed to load water logs: {result.unwrap_err()}")
        return result.unwrap()

    async def _adjust_points(self, owner_id: str, change: Callable[[int], int]) -> int | None:
        """
        Read-modify-write the points balance.

        A failed read or write does not undo the water log; it is logged and the
        last known balance (or None) is returned.
        """
        read = await self.store.get_profile(owner_id)
        if read.is_err():
            self.logger.warning(
                "points_read_failed", owner_id=owner_id, error=str(read.unwrap_err())
            )
            return None

        current = read.unwrap().points
        updated = change(current)
        if updated == current:
            return current

        written = await self.store.update_profile(owner_id, ProfileUpdate(points=updated))
        if written.is_err():
            self.logger.warning(
                "points_update_failed", owner_id=owner_id, error=str(written.unwrap_err())
            )
            return current

        self.logger.info("points_updated", owner_id=owner_id, previous=current, points=updated)
        return written.unwrap().points

    def _status(self, logs: list[WaterLog], points: int | None = None) -> HydrationStatus:
        return HydrationStatus(
            glasses=len(logs),
            total_ml=sum(log.amount_ml for log in logs),
            daily_limit_ml=self.config.daily_limit_ml,
            points=points,
        )
