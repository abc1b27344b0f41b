"""
Tests for water logging and the points it earns or gives back.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from conftest import OWNER, FlakyStore

from carepulse.config import WaterConfig
from carepulse.services.data_store import UserActionError
from carepulse.services.hydration import HydrationTracker, start_of_day

NOW = datetime(2024, 3, 4, 12, 0)


@pytest.fixture
def tracker(store: FlakyStore) -> HydrationTracker:
    store.create_profile(OWNER, points=0, last_points_reset=datetime(2024, 3, 1))
    return HydrationTracker(store)


async def test_logging_a_glass_earns_points(tracker: HydrationTracker) -> None:
    status = await tracker.log_glass(OWNER, NOW)

    assert (status.glasses, status.total_ml, status.points) == (1, 250, 2)
    assert not status.goal_reached


async def test_goal_reached_on_twelfth_glass_then_capped(tracker: HydrationTracker) -> None:
    statuses = [await tracker.log_glass(OWNER, NOW) for _ in range(12)]

    assert [s.goal_reached for s in statuses] == [False] * 11 + [True]
    assert statuses[-1].total_ml == 3000
    assert statuses[-1].points == 24
    assert statuses[-1].remaining_ml == 0

    with pytest.raises(UserActionError, match="3000 ml"):
        await tracker.log_glass(OWNER, NOW)


async def test_yesterdays_glasses_do_not_count(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    for _ in range(12):
        await store.insert_water_log(OWNER, 250, datetime(2024, 3, 3, 18, 0))

    status = await tracker.log_glass(OWNER, NOW)

    assert status.glasses == 1


async def test_remove_last_glass_gives_points_back(tracker: HydrationTracker) -> None:
    await tracker.log_glass(OWNER, NOW)
    await tracker.log_glass(OWNER, NOW)

    status = await tracker.remove_last_glass(OWNER, NOW)

    assert (status.glasses, status.points) == (1, 2)


async def test_remove_does_not_debit_an_uncovered_balance(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    await tracker.log_glass(OWNER, NOW)
    store.create_profile(OWNER, points=1, last_points_reset=datetime(2024, 3, 1))

    status = await tracker.remove_last_glass(OWNER, NOW)

    assert status.glasses == 0
    assert status.points == 1


async def test_remove_with_no_glasses_is_a_no_op(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    status = await tracker.remove_last_glass(OWNER, NOW)

    assert status.glasses == 0
    assert "delete_water_logs" not in store.calls


async def test_reset_clamps_points_at_zero(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    for _ in range(3):
        await tracker.log_glass(OWNER, NOW)
    # Monthly reset happened mid-day, so the bucket no longer covers today's glasses
    store.create_profile(OWNER, points=4, last_points_reset=datetime(2024, 3, 4))

    status = await tracker.reset_today(OWNER, NOW)

    assert (status.glasses, status.total_ml, status.points) == (0, 0, 0)


async def test_store_errors_surface_verbatim(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    store.failing.add("insert_water_log")

    with pytest.raises(UserActionError, match="water_logs insert rejected"):
        await tracker.log_glass(OWNER, NOW)


async def test_remove_failure_surfaces_message(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    await tracker.log_glass(OWNER, NOW)
    store.failing.add("delete_water_logs")

    with pytest.raises(UserActionError, match="Failed to remove water: water_logs delete rejected"):
        await tracker.remove_last_glass(OWNER, NOW)


async def test_points_failure_keeps_the_log(tracker: HydrationTracker, store: FlakyStore) -> None:
    store.failing.add("update_profile")

    status = await tracker.log_glass(OWNER, NOW)

    assert status.glasses == 1
    assert status.points == 0


async def test_custom_glass_size(store: FlakyStore) -> None:
    store.create_profile(OWNER)
    tracker = HydrationTracker(
        store, WaterConfig(glass_ml=500, daily_limit_ml=1000, points_per_glass=5)
    )

    await tracker.log_glass(OWNER, NOW)
    status = await tracker.log_glass(OWNER, NOW)

    assert status.goal_reached
    assert status.points == 10
    with pytest.raises(UserActionError):
        await tracker.log_glass(OWNER, NOW)


def test_start_of_day() -> None:
    assert start_of_day(datetime(2024, 3, 4, 17, 45, 12, 9)) == datetime(2024, 3, 4)


async def test_status_reports_today_without_touching_points(
    tracker: HydrationTracker, store: FlakyStore
) -> None:
    await tracker.log_glass(OWNER, NOW)
    await tracker.log_glass(OWNER, NOW)
    store.calls.clear()

    status = await tracker.status(OWNER, NOW)

    assert (status.glasses, status.total_ml, status.remaining_ml) == (2, 500, 2500)
    assert status.points is None
    assert "update_profile" not in store.calls
