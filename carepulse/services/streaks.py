"""
Daily streak and monthly points state machines.

Two independent cycles over the profile row:
- Streak: advances on the first visit of each calendar day, resets to 1 after a gap
- Points bucket: resets to 0 on the first visit of each calendar month

The transition functions are pure; StreakEngine does the read-modify-write
against the store. Concurrent writers for the same user are not reconciled
(last write wins).
"""

from datetime import date, datetime, timedelta

from carepulse.domain.models import PointsState, Profile, ProfileUpdate, StreakState
from carepulse.services.data_store import DataStore, ProfileNotFoundError, logger


def _calendar_day(moment: datetime) -> date:
    return moment.date()


def advance_streak(state: StreakState, now: datetime) -> StreakState:
    """
    Record activity at now.

    - Same calendar day as the last activity: no change
    - The calendar day after it: current streak + 1
    - Any longer gap, or no prior activity: current streak = 1

    The best streak never decreases.
    """
    today = _calendar_day(now)

    if state.last_active_date is not None:
        last_day = _calendar_day(state.last_active_date)
        if last_day == today:
            return state
        if last_day == today - timedelta(days=1):
            current = state.current_streak + 1
        else:
            current = 1
    else:
        current = 1

    return StreakState(
        current_streak=current,
        best_streak=max(state.best_streak, current),
        last_active_date=now,
    )


def apply_monthly_reset(state: PointsState, now: datetime) -> PointsState:
    """Empty the points bucket when now falls in a different month than the last reset."""
    last_reset = state.last_points_reset
    if last_reset is not None and (last_reset.year, last_reset.month) == (now.year, now.month):
        return state
    return PointsState(points=0, last_points_reset=now)


def credit_points(points: int, amount: int) -> int:
    if amount < 0:
        raise ValueError("amount must be >= 0")
    return points + amount


def debit_points(points: int, amount: int, *, allow_partial: bool = False) -> int:
    """
    Spend points without ever going below zero.

    With allow_partial the balance is clamped at zero; without it a debit the
    balance cannot cover leaves the balance unchanged.
    """
    if amount < 0:
        raise ValueError("amount must be >= 0")
    if points >= amount:
        return points - amount
    return 0 if allow_partial else points


def profile_changes(profile: Profile, now: datetime) -> ProfileUpdate:
    """Fields to write so the profile reflects a visit at now."""
    streak = advance_streak(profile.streak, now)
    bucket = apply_monthly_reset(profile.points_state, now)

    fields: dict[str, object] = {}
    if streak != profile.streak:
        fields.update(
            current_streak=streak.current_streak,
            best_streak=streak.best_streak,
            last_active_date=streak.last_active_date,
        )
    if bucket != profile.points_state:
        fields.update(points=bucket.points, last_points_reset=bucket.last_points_reset)
    return ProfileUpdate(**fields)


class StreakEngine:
    """Applies the streak and points transitions to stored profiles."""

    def __init__(self, store: DataStore) -> None:
        self.store = store
        self.logger = logger.bind(component="streak_engine")

    async def refresh(self, owner_id: str, now: datetime) -> Profile | None:
        """
        Apply today's visit to the owner's profile.

        Idempotent per calendar day. Store failures, returned or raised, are logged
        and swallowed; the previous profile is returned when the write fails.

        Returns:
            The current profile, or None when it is absent or unreadable.
        """
        try:
            result = await self.store.get_profile(owner_id)
        except Exception as e:
            self.logger.exception("unexpected_profile_read_error", owner_id=owner_id, error=str(e))
            return None

        if result.is_err():
            error = result.unwrap_err()
            if isinstance(error, ProfileNotFoundError):
                self.logger.info("profile_absent", owner_id=owner_id)
            else:
                self.logger.warning("profile_read_failed", owner_id=owner_id, error=str(error))
            return None

        profile = result.unwrap()
        update = profile_changes(profile, now)
        if update.is_empty():
            self.logger.debug("profile_up_to_date", owner_id=owner_id)
            return profile

        try:
            written = await self.store.update_profile(owner_id, update)
        except Exception as e:
            self.logger.exception(
                "unexpected_profile_update_error", owner_id=owner_id, error=str(e)
            )
            return profile

        if written.is_err():
            self.logger.warning(
                "profile_update_failed", owner_id=owner_id, error=str(written.unwrap_err())
            )
            return profile

        updated = written.unwrap()
        self.logger.info(
            "profile_refreshed",
            owner_id=owner_id,
            current_streak=updated.current_streak,
            best_streak=updated.best_streak,
            points=updated.points,
            points_reset="points" in update.model_fields_set,
        )
        return updated
